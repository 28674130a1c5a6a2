"""expand / expand_text のテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from arbor.core.errors import GrowthLimitError
from arbor.core.grammar import compile_grammar
from arbor.core.rewrite import expand, expand_text
from arbor.core.tokens import FORWARD, NOTHING, POP, PUSH, Direction, rotate

ALGAE = (("A", NOTHING), ("B", NOTHING))
TREE = (
    ("X", NOTHING),
    ("F", FORWARD),
    ("+", rotate(Direction.X_POS)),
    ("[", PUSH),
    ("]", POP),
)


def test_zero_iterations_returns_axiom() -> None:
    grammar = compile_grammar(TREE, "XF", ["X=F[+X]"])
    assert expand_text(grammar, 0) == "XF"


@pytest.mark.parametrize(
    ("n", "expected"),
    [(0, "A"), (1, "AB"), (2, "ABA"), (3, "ABAAB"), (4, "ABAABABA")],
)
def test_algae_generations(n: int, expected: str) -> None:
    grammar = compile_grammar(ALGAE, "A", ["A=AB", "B=A"])
    assert expand_text(grammar, n) == expected


def test_symbols_rewritten_once_per_generation() -> None:
    # 同じ世代で生まれた X を同じ世代のうちに再び書き換えない。
    grammar = compile_grammar(TREE, "X", ["X=F[+X]F"])
    assert expand_text(grammar, 1) == "F[+X]F"
    assert expand_text(grammar, 2) == "F[+F[+X]F]F"


def test_expand_is_deterministic() -> None:
    grammar = compile_grammar(TREE, "X", ["X=F[+X]FX", "F=FF"])
    a = expand(grammar, 5)
    b = expand(grammar, 5)
    np.testing.assert_array_equal(a, b)


def test_terminal_only_sequence_is_a_fixed_point() -> None:
    grammar = compile_grammar(TREE, "F+F", ["X=FF"])
    assert expand_text(grammar, 1) == "F+F"
    assert expand_text(grammar, 50) == "F+F"


def test_grammar_without_rules_returns_axiom() -> None:
    grammar = compile_grammar(TREE, "F[+F]", [])
    assert expand_text(grammar, 3) == "F[+F]"


def test_erasing_rule_removes_symbol() -> None:
    grammar = compile_grammar(TREE, "XFX", ["X="])
    assert expand_text(grammar, 1) == "F"


def test_sequence_can_become_empty() -> None:
    grammar = compile_grammar(TREE, "XX", ["X="])
    out = expand(grammar, 3)
    assert out.shape == (0,)
    assert out.dtype == np.int64


def test_growth_limit_reports_generation_and_length() -> None:
    grammar = compile_grammar(TREE, "F", ["F=FF"])
    assert expand(grammar, 3, max_length=10).shape == (8,)

    with pytest.raises(GrowthLimitError) as info:
        expand(grammar, 6, max_length=10)

    err = info.value
    assert err.generation == 4
    assert err.length == 16
    assert err.max_length == 10


def test_negative_iterations_rejected() -> None:
    grammar = compile_grammar(TREE, "F", [])
    with pytest.raises(ValueError):
        expand(grammar, -1)


def test_result_is_read_only_int64() -> None:
    grammar = compile_grammar(TREE, "X", ["X=F[+X]"])
    out = expand(grammar, 2)
    assert out.dtype == np.int64
    assert not out.flags.writeable
    with pytest.raises(ValueError):
        out[0] = 0


def test_expand_returns_registry_ids() -> None:
    grammar = compile_grammar(TREE, "X", ["X=F+X"])
    # TREE の登録順: X=0, F=1, +=2
    assert expand(grammar, 2).tolist() == [1, 2, 1, 2, 0]
