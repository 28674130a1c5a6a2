"""
どこで: `src/arbor/core/rewrite.py`。
何を: Grammar を世代ごとに書き換え、展開後の id 列を返す。
なぜ: 展開を (Grammar, iterations) だけに依存する純関数として切り出し、決定性を保証するため。
"""

from __future__ import annotations

import logging

import numpy as np

from arbor.core.errors import GrowthLimitError
from arbor.core.grammar import Grammar

_logger = logging.getLogger(__name__)


def _production_tables(grammar: Grammar) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """規則を平坦化した参照テーブルを返す。

    Returns
    -------
    tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]
        `(flat, starts, lengths, has_rule)`。id `i` の置換結果は
        `flat[starts[i] : starts[i] + lengths[i]]`。規則の無い id は自分自身 1 要素。
    """
    n = grammar.n_ids
    starts = np.empty((n,), dtype=np.int64)
    lengths = np.empty((n,), dtype=np.int64)
    has_rule = np.zeros((n,), dtype=np.bool_)
    flat: list[int] = []
    for i in range(n):
        rhs = grammar.production(i)
        starts[i] = len(flat)
        lengths[i] = len(rhs)
        has_rule[i] = i in grammar.productions
        flat.extend(rhs)
    return np.asarray(flat, dtype=np.int64), starts, lengths, has_rule


def _frozen(a: np.ndarray) -> np.ndarray:
    out = np.ascontiguousarray(a, dtype=np.int64)
    out.setflags(write=False)
    return out


def expand(
    grammar: Grammar,
    iterations: int,
    *,
    max_length: int | None = None,
) -> np.ndarray:
    """axiom から `iterations` 世代ぶん書き換えた id 列を返す。

    Parameters
    ----------
    grammar : Grammar
        展開する文法。
    iterations : int
        世代数。0 のとき axiom をそのまま返す。
    max_length : int or None, optional
        展開長の上限。None なら無制限（指数的な成長も呼び出し側の責任とする）。

    Returns
    -------
    np.ndarray
        int64 型 shape (N,) の id 列（writeable=False）。

    Raises
    ------
    ValueError
        `iterations` が負の場合。
    GrowthLimitError
        `max_length` を指定し、ある世代の長さがそれを超える場合。

    Notes
    -----
    各世代は前世代の列を左から走査して新しい列を組み立て、その後に丸ごと置き換える。
    同じ世代で生まれた記号を同じ世代のうちに再び書き換えることはない。
    """
    n = int(iterations)
    if n < 0:
        raise ValueError(f"iterations は 0 以上である必要があります: got={iterations!r}")
    limit = None if max_length is None else int(max_length)

    current = np.asarray(grammar.axiom, dtype=np.int64)
    if n == 0 or current.size == 0 or not grammar.productions:
        return _frozen(current)

    flat, starts, lengths, has_rule = _production_tables(grammar)

    for generation in range(1, n + 1):
        if not bool(has_rule[current].any()):
            # 終端記号だけになったら以降の世代も同じ列になる。
            _logger.debug("generation=%d で不動点に到達しました", generation - 1)
            break

        counts = lengths[current]
        total = int(counts.sum())
        if limit is not None and total > limit:
            raise GrowthLimitError(total, limit, generation)
        if total == 0:
            current = np.zeros((0,), dtype=np.int64)
            break

        # 出力位置 j の値は flat[starts[current[k]] + (j - out_start[k])]。
        out_start = np.cumsum(counts) - counts
        src = np.repeat(starts[current] - out_start, counts) + np.arange(total, dtype=np.int64)
        current = flat[src]
        _logger.debug("generation=%d length=%d", generation, total)

    return _frozen(current)


def expand_text(grammar: Grammar, iterations: int, *, max_length: int | None = None) -> str:
    """`expand()` の結果を記号文字列に戻して返す。"""
    return grammar.decode(expand(grammar, iterations, max_length=max_length).tolist())


__all__ = ["expand", "expand_text"]
