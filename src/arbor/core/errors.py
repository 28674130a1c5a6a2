# どこで: `src/arbor/core/errors.py`。
# 何を: 文法の構築・展開で送出する例外型を定義する。
# なぜ: 呼び出し側が「編集を拒否して直前の Grammar を保つ」判断を型で行えるようにするため。

from __future__ import annotations


class LSystemError(ValueError):
    """arbor のコアが送出する例外の基底クラス。"""


class RuleParseError(LSystemError):
    """規則テキストが `symbol = production*` の形をしていない。"""

    def __init__(self, rule: str, reason: str) -> None:
        self.rule = str(rule)
        self.reason = str(reason)
        super().__init__(f"規則を解釈できません（{self.reason}）: {self.rule!r}")


class UnknownTokenError(LSystemError):
    """規則が未登録の記号を参照している。"""

    def __init__(self, symbol: str) -> None:
        self.symbol = str(symbol)
        super().__init__(f"未登録の記号です: {self.symbol!r}")


class RuleBuildError(LSystemError):
    """`set_rules()` の途中で規則の追加に失敗した。

    Attributes
    ----------
    index : int
        失敗した規則の 0 始まりの位置。
    rule : str
        失敗した規則テキスト。

    Notes
    -----
    原因となった例外（`RuleParseError` / `UnknownTokenError`）は `__cause__` に入る。
    """

    def __init__(self, index: int, rule: str, cause: LSystemError) -> None:
        self.index = int(index)
        self.rule = str(rule)
        self.cause = cause
        super().__init__(f"{self.index + 1} 番目の規則 {self.rule!r} を追加できません: {cause}")


class GrowthLimitError(LSystemError):
    """展開結果が指定された上限長を超えた。"""

    def __init__(self, length: int, max_length: int, generation: int) -> None:
        self.length = int(length)
        self.max_length = int(max_length)
        self.generation = int(generation)
        super().__init__(
            "展開結果が大きすぎます（iterations / rules を見直してください）"
            f": generation={self.generation} length={self.length} max={self.max_length}"
        )


class TokenNotFoundError(LSystemError, KeyError):
    """レジストリに記号が登録されていない。"""

    def __init__(self, symbol: str) -> None:
        self.symbol = str(symbol)
        super().__init__(f"記号が登録されていません: {self.symbol!r}")

    def __str__(self) -> str:
        # KeyError は repr 形式で表示するため、メッセージをそのまま返す。
        return str(self.args[0])


__all__ = [
    "GrowthLimitError",
    "LSystemError",
    "RuleBuildError",
    "RuleParseError",
    "TokenNotFoundError",
    "UnknownTokenError",
]
