"""
arbor: L-system の文法から 3D の枝分かれ線を生成するパッケージ。

公開 API
--------
- 記号表: `TokenRegistry`, `Action`, `Direction`
- 文法: `GrammarBuilder`, `Grammar`, `parse_rule`
- 展開/解釈: `expand`, `interpret`, `TurtleConfig`, `TurtleTrace`
- 植物: `Plant`, `PlantOptions`, `Garden`
"""

from __future__ import annotations

from arbor.core.errors import (
    GrowthLimitError,
    LSystemError,
    RuleBuildError,
    RuleParseError,
    TokenNotFoundError,
    UnknownTokenError,
)
from arbor.core.garden import Garden
from arbor.core.grammar import Grammar, GrammarBuilder, compile_grammar, parse_rule
from arbor.core.plant import Plant, PlantGeometry
from arbor.core.presets import DEFAULT_TOKENS, PlantOptions, preset, preset_names
from arbor.core.rewrite import expand, expand_text
from arbor.core.tokens import (
    FORWARD,
    NOTHING,
    POP,
    PUSH,
    Action,
    Direction,
    TokenEntry,
    TokenRegistry,
    rotate,
)
from arbor.core.turtle import BREAK, Break, TurtleConfig, TurtleTrace, Vertex, interpret

__all__ = [
    "Action",
    "BREAK",
    "Break",
    "DEFAULT_TOKENS",
    "Direction",
    "FORWARD",
    "Garden",
    "Grammar",
    "GrammarBuilder",
    "GrowthLimitError",
    "LSystemError",
    "NOTHING",
    "POP",
    "PUSH",
    "Plant",
    "PlantGeometry",
    "PlantOptions",
    "RuleBuildError",
    "RuleParseError",
    "TokenEntry",
    "TokenNotFoundError",
    "TokenRegistry",
    "TurtleConfig",
    "TurtleTrace",
    "UnknownTokenError",
    "Vertex",
    "compile_grammar",
    "expand",
    "expand_text",
    "interpret",
    "parse_rule",
    "preset",
    "preset_names",
    "rotate",
]
