"""
どこで: `src/arbor/core/plant.py`。
何を: 1 つの植物について「文法の構築 → 展開 → タートル解釈」のパイプラインを実行する。
なぜ: 記号表・文法テキスト・描画設定と、その結果の点列を 1 つの単位として扱うため。
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import numpy as np

from arbor.core.grammar import Grammar, GrammarBuilder
from arbor.core.presets import DEFAULT_TOKENS, PlantOptions
from arbor.core.rewrite import expand
from arbor.core.tokens import Action
from arbor.core.turtle import TurtleTrace, interpret


@dataclass(frozen=True, slots=True)
class PlantGeometry:
    """1 回の rebuild で得られた結果。"""

    grammar: Grammar
    sequence: np.ndarray
    trace: TurtleTrace

    @property
    def vertex_count(self) -> int:
        return self.trace.vertex_count

    def text(self) -> str:
        """展開結果を記号文字列で返す。"""
        return self.grammar.decode(self.sequence.tolist())


class Plant:
    """記号表・文法テキスト・描画設定を持ち、要求に応じて点列を作り直す。

    Parameters
    ----------
    options : PlantOptions or None, optional
        文法テキストと描画設定。None なら既定値。
    tokens : Iterable[tuple[str, Action]] or None, optional
        記号表。None なら `DEFAULT_TOKENS`。
    max_sequence_length : int or None, optional
        展開長の上限。None なら無制限。

    Notes
    -----
    rebuild は毎回 axiom / rules をテキストからコンパイルし直す（差分更新はしない）。
    記号を編集した後でも、古い id で組んだ規則が残ることはない。
    """

    def __init__(
        self,
        options: PlantOptions | None = None,
        *,
        tokens: Iterable[tuple[str, Action]] | None = None,
        max_sequence_length: int | None = None,
    ) -> None:
        self._options = PlantOptions() if options is None else options
        self._builder = GrammarBuilder()
        self._builder.set_tokens(DEFAULT_TOKENS if tokens is None else tokens)
        self._max_sequence_length = max_sequence_length
        self._geometry: PlantGeometry | None = None
        self._action_map: dict[str, Action] = self._builder.registry.action_map()

    @property
    def options(self) -> PlantOptions:
        return self._options

    @options.setter
    def options(self, value: PlantOptions) -> None:
        self._options = value

    def update_options(self, **changes: Any) -> PlantOptions:
        """options の一部を差し替えた新しい値を設定して返す。"""
        self._options = dataclasses.replace(self._options, **changes)
        return self._options

    @property
    def builder(self) -> GrammarBuilder:
        return self._builder

    @property
    def geometry(self) -> PlantGeometry | None:
        """最後に成功した rebuild の結果。未実行なら None。"""
        return self._geometry

    @property
    def action_map(self) -> dict[str, Action]:
        """最後に成功した rebuild 時点の記号 → Action（記号編集 UI 向け）。"""
        return dict(self._action_map)

    @property
    def vertex_count(self) -> int:
        return 0 if self._geometry is None else self._geometry.vertex_count

    def compile(self) -> Grammar:
        """現在の記号表で axiom / rules をコンパイルし、Grammar を返す。

        Raises
        ------
        RuleBuildError
            規則の追加に失敗した場合。
        """
        self._builder.set_axiom(self._options.axiom)
        self._builder.set_rules(self._options.rules)
        return self._builder.build()

    def rebuild(self) -> PlantGeometry:
        """文法を組み直して展開・解釈し、結果を保持して返す。

        失敗した場合は例外を送出し、直前の結果はそのまま残す。

        Raises
        ------
        RuleBuildError
            規則の追加に失敗した場合。
        GrowthLimitError
            展開長が上限を超えた場合。
        """
        grammar = self.compile()
        sequence = expand(
            grammar,
            self._options.iterations,
            max_length=self._max_sequence_length,
        )
        registry = self._builder.registry
        trace = interpret(sequence, registry.action_of, self._options.turtle_config())

        geometry = PlantGeometry(grammar=grammar, sequence=sequence, trace=trace)
        self._geometry = geometry
        self._action_map = registry.action_map()
        return geometry


__all__ = ["Plant", "PlantGeometry"]
