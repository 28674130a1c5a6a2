"""
どこで: `src/arbor/core/grammar.py`。
何を: axiom テキストと規則テキストを TokenRegistry で解決し、不変の Grammar を組み立てる。
なぜ: 文法の検証を展開前に済ませ、展開/解釈段を「検証済みの id 列」だけに依存させるため。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from arbor.core.errors import (
    RuleBuildError,
    RuleParseError,
    UnknownTokenError,
)
from arbor.core.tokens import Action, TokenEntry, TokenRegistry

_logger = logging.getLogger(__name__)

# `<ws>* <symbol> <ws>* '=' <ws>* (<token><ws>*)*`
# 左辺は「'=' より前の空白以外の文字列」として取り出し、長さは後段で検査する。
_RULE_RE = re.compile(r"\s*(?P<lhs>[^=]*?)\s*=(?P<rhs>.*)", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Grammar:
    """展開可能な L-system 文法のスナップショット。

    Parameters
    ----------
    axiom : tuple[int, ...]
        初期 id 列。
    productions : Mapping[int, tuple[int, ...]]
        id → 置換後の id 列。規則の無い id は自分自身に書き換わる（終端）。
    alphabet : tuple[str | None, ...]
        id → 記号の逆引き配列。欠番は None。

    Notes
    -----
    builder から切り離した不変値であり、組み立て後に変更されることはない。
    """

    axiom: tuple[int, ...]
    productions: Mapping[int, tuple[int, ...]] = field(default_factory=dict)
    alphabet: tuple[str | None, ...] = ()

    def __post_init__(self) -> None:
        axiom = tuple(int(i) for i in self.axiom)
        productions = {
            int(k): tuple(int(i) for i in v) for k, v in self.productions.items()
        }
        object.__setattr__(self, "axiom", axiom)
        object.__setattr__(self, "productions", MappingProxyType(productions))
        object.__setattr__(self, "alphabet", tuple(self.alphabet))

    @property
    def n_ids(self) -> int:
        """id 空間の大きさ（文法中に現れる最大 id + 1 以上）。"""
        ids = [len(self.alphabet) - 1, *self.axiom, *self.productions.keys()]
        for rhs in self.productions.values():
            ids.extend(rhs)
        return max(ids, default=-1) + 1

    def production(self, token_id: int) -> tuple[int, ...]:
        """id の置換結果を返す（規則が無ければ `(token_id,)`）。"""
        i = int(token_id)
        return self.productions.get(i, (i,))

    def decode(self, sequence: Iterable[int]) -> str:
        """id 列を記号文字列へ戻す。逆引きできない id は `?` にする。"""
        alphabet = self.alphabet
        out: list[str] = []
        for token_id in sequence:
            i = int(token_id)
            s = alphabet[i] if 0 <= i < len(alphabet) else None
            out.append("?" if s is None else s)
        return "".join(out)


def parse_rule(text: str) -> tuple[str, list[str]]:
    """規則テキストを (左辺記号, 右辺記号列) に分解する。

    Parameters
    ----------
    text : str
        `X=F[+X]F` のような規則。記号は空白以外の 1 文字で、記号間の空白は無視する。
        右辺が空の規則（`X=`）は「X を消す」規則として受理する。

    Returns
    -------
    tuple[str, list[str]]
        左辺記号と右辺記号列。記号の登録有無はここでは検査しない。

    Raises
    ------
    RuleParseError
        '=' が無い、左辺が空、または左辺が 1 文字でない場合。
    """
    s = str(text)
    m = _RULE_RE.fullmatch(s)
    if m is None:
        raise RuleParseError(s, "'=' がありません")
    lhs = m.group("lhs")
    if not lhs:
        raise RuleParseError(s, "左辺の記号がありません")
    if len(lhs) != 1:
        raise RuleParseError(s, "左辺は 1 文字である必要があります")
    rhs = [ch for ch in m.group("rhs") if not ch.isspace()]
    return lhs, rhs


class GrammarBuilder:
    """TokenRegistry を通して axiom / rules を検証・コンパイルする builder。

    Notes
    -----
    builder は単一の書き手を前提とする（`set_rules` / `set_axiom` / `build` を
    並行に呼ばない）。並行に編集したい場合は編集ごとに builder を作る。
    """

    def __init__(self, registry: TokenRegistry | None = None) -> None:
        self._registry = TokenRegistry() if registry is None else registry
        self._axiom: tuple[int, ...] = ()
        self._rules: dict[int, tuple[int, ...]] = {}

    @property
    def registry(self) -> TokenRegistry:
        return self._registry

    @property
    def axiom(self) -> tuple[int, ...]:
        return self._axiom

    @property
    def rules(self) -> dict[int, tuple[int, ...]]:
        """コンパイル済み規則のコピー。"""
        return dict(self._rules)

    # --- tokens -----------------------------------------------------------

    def set_tokens(self, entries: Iterable[tuple[str, Action]]) -> GrammarBuilder:
        """記号表を丸ごと差し替える。axiom と rules も破棄する。"""
        self._registry.reset(entries)
        self._axiom = ()
        self._rules.clear()
        return self

    def add_token(self, symbol: str, action: Action) -> GrammarBuilder:
        self._registry.register(symbol, action)
        return self

    def remove_token(self, symbol: str) -> TokenEntry | None:
        return self._registry.remove(symbol)

    def change_token(self, prev: str, new: str) -> bool:
        """記号 `prev` を `new` に付け替える（アクションは引き継ぐ）。

        Returns
        -------
        bool
            `prev` が登録されていて付け替えた場合 True。
        """
        entry = self._registry.get(prev)
        if entry is None:
            return False
        # register が new を検証してから prev を外す（失敗時は何も変えない）。
        self._registry.register(new, entry.action)
        if new != prev:
            self._registry.remove(prev)
        return True

    def change_action(self, symbol: str, action: Action) -> bool:
        """登録済みの記号のアクションを差し替える。未登録なら何もせず False。"""
        if self._registry.get(symbol) is None:
            return False
        self._registry.register(symbol, action)
        return True

    # --- rules / axiom ----------------------------------------------------

    def _resolve(self, symbol: str) -> int:
        entry = self._registry.get(symbol)
        if entry is None:
            raise UnknownTokenError(symbol)
        return entry.id

    def add_rule(self, text: str) -> GrammarBuilder:
        """規則を 1 つ追加する（同じ左辺の既存規則は置き換える）。

        Raises
        ------
        RuleParseError
            規則テキストの形が不正な場合。
        UnknownTokenError
            左辺または右辺が未登録の記号を含む場合。規則は追加されない。
        """
        lhs, rhs = parse_rule(text)
        # 全記号を解決できた場合だけ反映する（部分適用しない）。
        lhs_id = self._resolve(lhs)
        rhs_ids = tuple(self._resolve(s) for s in rhs)
        self._rules[lhs_id] = rhs_ids
        return self

    def set_rules(self, rule_texts: Sequence[str]) -> GrammarBuilder:
        """既存の規則を全て消し、`rule_texts` を順に追加する。

        Raises
        ------
        RuleBuildError
            途中の規則で失敗した場合。それ以降の規則は追加しないが、
            それまでに追加できた規則は残る。
        """
        self._rules.clear()
        for i, rule in enumerate(rule_texts):
            try:
                self.add_rule(rule)
            except (RuleParseError, UnknownTokenError) as exc:
                raise RuleBuildError(i, rule, exc) from exc
        return self

    def set_rules_text(self, text: str) -> GrammarBuilder:
        """改行区切りの規則テキストを `set_rules()` に渡す。

        空行と `#` で始まる行は無視する。
        """
        lines = []
        for raw in str(text).splitlines():
            s = raw.strip()
            if not s or s.startswith("#"):
                continue
            lines.append(s)
        return self.set_rules(lines)

    def set_axiom(self, text: str) -> GrammarBuilder:
        """axiom を設定する。未登録の文字は例外にせず読み飛ばす。"""
        ids: list[int] = []
        dropped: list[str] = []
        for ch in str(text):
            entry = self._registry.get(ch)
            if entry is None:
                dropped.append(ch)
                continue
            ids.append(entry.id)
        if dropped:
            _logger.debug("axiom の未登録文字を無視しました: %r", "".join(dropped))
        self._axiom = tuple(ids)
        return self

    def build(self) -> Grammar:
        """現在の axiom / rules から不変の Grammar を組み立てる。"""
        return Grammar(
            axiom=self._axiom,
            productions=dict(self._rules),
            alphabet=self._registry.alphabet(),
        )


def compile_grammar(
    tokens: Iterable[tuple[str, Action]],
    axiom: str,
    rules: Sequence[str],
) -> Grammar:
    """記号表・axiom・規則列から Grammar を一度に組み立てる。

    Raises
    ------
    RuleBuildError
        規則の追加に失敗した場合。
    """
    builder = GrammarBuilder()
    builder.set_tokens(tokens)
    builder.set_axiom(axiom)
    builder.set_rules(rules)
    return builder.build()


__all__ = [
    "Grammar",
    "GrammarBuilder",
    "compile_grammar",
    "parse_rule",
]
