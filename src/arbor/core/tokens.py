"""
どこで: `src/arbor/core/tokens.py`。
何を: 1 文字の記号と（内部 id, 描画アクション）の対応を管理するレジストリを提供する。
なぜ: 文法の展開は整数 id で行い、描画の意味付けは記号ごとに 1 か所で持つため。
"""

from __future__ import annotations

from collections.abc import Iterable, ItemsView
from dataclasses import dataclass
from enum import Enum

from arbor.core.errors import TokenNotFoundError

ACTION_KINDS: tuple[str, ...] = ("nothing", "forward", "rotate", "push", "pop")


class Direction(Enum):
    """ローカル軸まわりの回転方向（6 通り）。"""

    X_POS = "x+"
    X_NEG = "x-"
    Y_POS = "y+"
    Y_NEG = "y-"
    Z_POS = "z+"
    Z_NEG = "z-"

    @property
    def axis(self) -> int:
        """回転軸のインデックス（0=X, 1=Y, 2=Z）。"""
        return "xyz".index(self.value[0])

    @property
    def sign(self) -> float:
        """回転角に掛ける符号（+1.0 / -1.0）。"""
        return 1.0 if self.value[1] == "+" else -1.0

    @property
    def label(self) -> str:
        return _DIRECTION_LABELS[self]


_DIRECTION_LABELS = {
    Direction.X_POS: "right",
    Direction.X_NEG: "left",
    Direction.Y_POS: "forwards",
    Direction.Y_NEG: "back",
    Direction.Z_POS: "up",
    Direction.Z_NEG: "down",
}


@dataclass(frozen=True, slots=True)
class Action:
    """記号に結び付く描画アクション。

    Parameters
    ----------
    kind : str
        `"nothing"`, `"forward"`, `"rotate"`, `"push"`, `"pop"` のいずれか。
    direction : Direction or None
        `kind="rotate"` のときの回転方向。それ以外では None。

    Notes
    -----
    アクションは文法上の位置ではなく記号そのものに属する。
    同じ記号はどこに現れても同じアクションを行う。
    """

    kind: str
    direction: Direction | None = None

    def __post_init__(self) -> None:
        if self.kind not in ACTION_KINDS:
            raise ValueError(f"未知の action kind です: {self.kind!r}")
        if self.kind == "rotate":
            if not isinstance(self.direction, Direction):
                raise ValueError("rotate の action には Direction が必要です")
        elif self.direction is not None:
            raise ValueError(f"{self.kind} の action に direction は指定できません")

    @classmethod
    def parse(cls, text: str) -> Action:
        """`"forward"` / `"rotate:x+"` 形式の文字列から Action を作る。"""
        s = str(text).strip().lower()
        kind, sep, rest = s.partition(":")
        if kind == "rotate":
            if not sep:
                raise ValueError(f"rotate には方向が必要です（例: rotate:x+）: {text!r}")
            try:
                direction = Direction(rest.strip())
            except ValueError as exc:
                raise ValueError(f"未知の回転方向です: {text!r}") from exc
            return cls("rotate", direction)
        if sep:
            raise ValueError(f"{kind} の action に方向は指定できません: {text!r}")
        return cls(kind)

    @property
    def spec(self) -> str:
        """`Action.parse()` と往復できる文字列表現。"""
        if self.direction is None:
            return self.kind
        return f"{self.kind}:{self.direction.value}"

    @property
    def label(self) -> str:
        """UI 表示用のラベル。"""
        if self.kind == "rotate":
            assert self.direction is not None
            return f"Rotate {self.direction.label}"
        return _ACTION_LABELS[self.kind]


_ACTION_LABELS = {
    "nothing": "Do nothing",
    "forward": "Move forwards",
    "push": "Push transform",
    "pop": "Pop transform",
}

NOTHING = Action("nothing")
FORWARD = Action("forward")
PUSH = Action("push")
POP = Action("pop")


def rotate(direction: Direction) -> Action:
    """回転アクションを返す。"""
    return Action("rotate", direction)


ALL_ACTIONS: tuple[Action, ...] = (
    NOTHING,
    FORWARD,
    *(rotate(d) for d in Direction),
    PUSH,
    POP,
)
"""選択肢として提示できる全アクション（UI の並び順）。"""


@dataclass(frozen=True, slots=True)
class TokenEntry:
    """レジストリに登録された 1 記号分の情報。"""

    id: int
    action: Action


def _check_symbol(symbol: object) -> str:
    if not isinstance(symbol, str) or len(symbol) != 1:
        raise ValueError(f"記号は 1 文字の str である必要があります: {symbol!r}")
    return symbol


class TokenRegistry:
    """記号 ↔ (id, Action) の双方向マップ。

    Notes
    -----
    - id は挿入時に採番する小さな整数で、逆引き配列のインデックスを兼ねる。
    - 同じレジストリの寿命の中では、id が別の記号へ再利用されることはない。
      再登録・削除された記号の旧 id は欠番（逆引きで None）になる。
    - `reset()` はレジストリの寿命をやり直すため、id は 0 から振り直す。
    """

    def __init__(self, entries: Iterable[tuple[str, Action]] = ()) -> None:
        self._entries: dict[str, TokenEntry] = {}
        self._symbols: list[str | None] = []
        self._actions: list[Action | None] = []
        for symbol, action in entries:
            self.register(symbol, action)

    def register(self, symbol: str, action: Action) -> int:
        """記号を登録（または上書き）し、新しい id を返す。

        既に登録済みの記号は旧 id を破棄して新しい id を振る。
        旧 id で組み立てた axiom / rules は無効になるため、呼び出し側で作り直す。
        """
        s = _check_symbol(symbol)
        if not isinstance(action, Action):
            raise TypeError(f"action は Action である必要があります: {action!r}")
        self._discard(s)
        token_id = len(self._symbols)
        self._symbols.append(s)
        self._actions.append(action)
        self._entries[s] = TokenEntry(id=token_id, action=action)
        return token_id

    def remove(self, symbol: str) -> TokenEntry | None:
        """記号を削除し、削除したエントリを返す。未登録なら None。"""
        return self._discard(symbol)

    def lookup(self, symbol: str) -> TokenEntry:
        """記号のエントリを返す。

        Raises
        ------
        TokenNotFoundError
            記号が登録されていない場合。
        """
        entry = self._entries.get(symbol)
        if entry is None:
            raise TokenNotFoundError(symbol)
        return entry

    def get(self, symbol: str) -> TokenEntry | None:
        """記号のエントリを返す。未登録なら None。"""
        return self._entries.get(symbol)

    def reset(self, entries: Iterable[tuple[str, Action]]) -> None:
        """全エントリを破棄し、`entries` を先頭から順に登録し直す。

        同じ記号が複数回現れた場合は後勝ちになる。
        """
        self._entries.clear()
        self._symbols.clear()
        self._actions.clear()
        for symbol, action in entries:
            self.register(symbol, action)

    def symbol_of(self, token_id: int) -> str | None:
        """id に対応する記号を返す。欠番・範囲外なら None。"""
        i = int(token_id)
        if 0 <= i < len(self._symbols):
            return self._symbols[i]
        return None

    def action_of(self, token_id: int) -> Action | None:
        """id に対応する Action を返す。欠番・範囲外なら None。"""
        i = int(token_id)
        if 0 <= i < len(self._actions):
            return self._actions[i]
        return None

    def alphabet(self) -> tuple[str | None, ...]:
        """id をインデックスとした記号の逆引き配列を返す。"""
        return tuple(self._symbols)

    def action_map(self) -> dict[str, Action]:
        """記号 → Action の辞書を返す（記号編集 UI 向け）。"""
        return {s: e.action for s, e in self._entries.items()}

    def items(self) -> ItemsView[str, TokenEntry]:
        return self._entries.items()

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{s!r}: {e.action.spec}" for s, e in self._entries.items())
        return f"TokenRegistry({{{body}}})"

    def _discard(self, symbol: str) -> TokenEntry | None:
        entry = self._entries.pop(symbol, None)
        if entry is not None:
            # 旧 id は欠番にする（別の記号へは再利用しない）。
            self._symbols[entry.id] = None
            self._actions[entry.id] = None
        return entry


__all__ = [
    "ALL_ACTIONS",
    "Action",
    "Direction",
    "FORWARD",
    "NOTHING",
    "POP",
    "PUSH",
    "TokenEntry",
    "TokenRegistry",
    "rotate",
]
