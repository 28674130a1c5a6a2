"""
どこで: `src/arbor/core/turtle.py`。
何を: 展開済み id 列をタートル（位置 + 姿勢のカーソル）で解釈し、3D 点列を生成する。
なぜ: 枝の保存/復帰と「pop で線を切る」契約を 1 か所に閉じ込め、描画側は点列だけを扱えるようにするため。
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

import numpy as np
from numba import njit  # type: ignore[import-untyped]

from arbor.core.tokens import Action, Direction

_logger = logging.getLogger(__name__)

# kernel に渡すアクションコード。回転は _ROTATE_BASE + Direction の並び順。
_SKIP = -1
_NOTHING = 0
_FORWARD = 1
_PUSH = 2
_POP = 3
_ROTATE_BASE = 4
_DIRECTIONS: tuple[Direction, ...] = tuple(Direction)

Resolver = Mapping[int, Action] | Callable[[int], Action | None]


@dataclass(frozen=True, slots=True)
class TurtleConfig:
    """タートル解釈の描画設定。

    Parameters
    ----------
    segment_length : float
        `forward` 1 回の前進距離（正の有限値）。
    rotation_angle : float
        `rotate` 1 回の回転角 [deg]。
    """

    segment_length: float = 1.0
    rotation_angle: float = 90.0

    def __post_init__(self) -> None:
        length = float(self.segment_length)
        angle = float(self.rotation_angle)
        if not math.isfinite(length) or length <= 0.0:
            raise ValueError(f"segment_length は正の有限値である必要があります: got={self.segment_length!r}")
        if not math.isfinite(angle):
            raise ValueError(f"rotation_angle は有限値である必要があります: got={self.rotation_angle!r}")
        object.__setattr__(self, "segment_length", length)
        object.__setattr__(self, "rotation_angle", angle)


@dataclass(frozen=True, slots=True)
class Vertex:
    """点列中の 1 頂点。"""

    x: float
    y: float
    z: float

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True, slots=True)
class Break:
    """線の切れ目。直後の頂点から新しいラインストリップが始まる。"""


BREAK = Break()

TraceItem = Vertex | Break


@dataclass(frozen=True, slots=True)
class TurtleTrace:
    """タートル解釈の結果（頂点 + 線の切れ目）。

    Parameters
    ----------
    coords : np.ndarray
        float64 型 shape (N, 3) の頂点配列（切れ目は含まない）。
    offsets : np.ndarray
        int64 型 shape (M+1,) のストリップ境界配列。M は「切れ目の数 + 1」。

    Notes
    -----
    ストリップ i は `coords[offsets[i]:offsets[i+1]]`。
    切れ目は隣り合うストリップの境界そのものなので、空のストリップも保持する
    （例: 最初の点より前の pop）。これにより `items()` と往復しても情報を失わない。
    """

    coords: np.ndarray
    offsets: np.ndarray

    def __post_init__(self) -> None:
        coords = np.asarray(self.coords, dtype=np.float64)
        offsets = np.asarray(self.offsets, dtype=np.int64)

        if coords.ndim != 2 or coords.shape[1] != 3:
            raise ValueError("coords は shape (N,3) の 2 次元配列である必要がある")
        if offsets.ndim != 1 or offsets.size < 2:
            raise ValueError("offsets は 2 要素以上の 1 次元配列である必要がある")
        if offsets[0] != 0:
            raise ValueError("offsets[0] は 0 である必要がある")
        if offsets[-1] != coords.shape[0]:
            raise ValueError("offsets[-1] は coords 行数と一致する必要がある")
        if np.any(np.diff(offsets) < 0):
            raise ValueError("offsets は単調非減少である必要がある")

        coords.setflags(write=False)
        offsets.setflags(write=False)
        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "offsets", offsets)

    @classmethod
    def empty(cls) -> TurtleTrace:
        return cls(
            coords=np.zeros((0, 3), dtype=np.float64),
            offsets=np.zeros((2,), dtype=np.int64),
        )

    @classmethod
    def from_items(cls, items: Iterable[TraceItem]) -> TurtleTrace:
        """`Vertex` / `Break` の列から組み立てる。"""
        points: list[tuple[float, float, float]] = []
        offsets = [0]
        for item in items:
            if isinstance(item, Break):
                offsets.append(len(points))
            else:
                points.append(item.position)
        offsets.append(len(points))
        coords = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return cls(coords=coords, offsets=np.asarray(offsets, dtype=np.int64))

    @property
    def n_points(self) -> int:
        return int(self.coords.shape[0])

    @property
    def n_breaks(self) -> int:
        return int(self.offsets.shape[0]) - 2

    @property
    def n_runs(self) -> int:
        return int(self.offsets.shape[0]) - 1

    @property
    def vertex_count(self) -> int:
        """切れ目を 1 頂点として数えた頂点数（表示用）。"""
        return self.n_points + self.n_breaks

    def runs(self) -> list[np.ndarray]:
        """ストリップごとの頂点配列（shape (k,3)）のリストを返す。"""
        return [
            self.coords[int(a) : int(b)]
            for a, b in zip(self.offsets[:-1], self.offsets[1:])
        ]

    def items(self) -> list[TraceItem]:
        """頂点と切れ目を出現順に並べたリストを返す。"""
        out: list[TraceItem] = []
        for i, run in enumerate(self.runs()):
            if i > 0:
                out.append(BREAK)
            out.extend(Vertex(float(p[0]), float(p[1]), float(p[2])) for p in run)
        return out

    def to_sentinel_vertices(self) -> np.ndarray:
        """切れ目を全成分 -inf の行で表した shape (vertex_count, 3) の配列を返す。

        ラインストリップの分割をこの番兵値で行う描画側との互換用。
        """
        out = np.full((self.vertex_count, 3), -np.inf, dtype=np.float64)
        if self.n_points == 0:
            return out
        boundaries = self.offsets[1:-1]
        p = np.arange(self.n_points, dtype=np.int64)
        # 頂点 p より前にある切れ目の数だけ後ろへずらす。
        shift = np.searchsorted(boundaries, p, side="right")
        out[p + shift] = self.coords
        return out


def rotation_table(rotation_angle: float) -> np.ndarray:
    """Direction の並び順に対応する 3x3 回転行列の配列（shape (6,3,3)）を返す。

    回転は右手系で、符号は `Direction.sign` に従う。
    """
    base = math.radians(float(rotation_angle))
    out = np.zeros((len(_DIRECTIONS), 3, 3), dtype=np.float64)
    for k, d in enumerate(_DIRECTIONS):
        a = base * d.sign
        c = math.cos(a)
        s = math.sin(a)
        if d.axis == 0:
            m = ((1.0, 0.0, 0.0), (0.0, c, -s), (0.0, s, c))
        elif d.axis == 1:
            m = ((c, 0.0, s), (0.0, 1.0, 0.0), (-s, 0.0, c))
        else:
            m = ((c, -s, 0.0), (s, c, 0.0), (0.0, 0.0, 1.0))
        out[k] = m
    return out


def _action_code(action: Action | None) -> int:
    if action is None:
        return _SKIP
    if action.kind == "nothing":
        return _NOTHING
    if action.kind == "forward":
        return _FORWARD
    if action.kind == "push":
        return _PUSH
    if action.kind == "pop":
        return _POP
    assert action.direction is not None
    return _ROTATE_BASE + _DIRECTIONS.index(action.direction)


def _resolve_one(resolve: Resolver, token_id: int) -> Action | None:
    if isinstance(resolve, Mapping):
        return resolve.get(token_id)
    try:
        return resolve(token_id)
    except LookupError:
        return None


@njit(cache=True)  # type: ignore[misc]
def _interpret_kernel(
    codes: np.ndarray,
    rotations: np.ndarray,
    step: float,
    out_coords: np.ndarray,
    out_break: np.ndarray,
    stack_pos: np.ndarray,
    stack_rot: np.ndarray,
) -> int:
    """アクションコード列を解釈し、書き込んだ行数を返す。"""
    px = 0.0
    py = 0.0
    pz = 0.0
    rot = np.eye(3)
    tmp = np.empty((3, 3))
    depth = 0
    k = 0

    for i in range(codes.shape[0]):
        c = codes[i]
        if c == _NOTHING:
            out_coords[k, 0] = px
            out_coords[k, 1] = py
            out_coords[k, 2] = pz
            k += 1
        elif c == _FORWARD:
            # rot @ (0, 1, 0) は rot の第 1 列。
            px += rot[0, 1] * step
            py += rot[1, 1] * step
            pz += rot[2, 1] * step
            out_coords[k, 0] = px
            out_coords[k, 1] = py
            out_coords[k, 2] = pz
            k += 1
        elif c == _PUSH:
            stack_pos[depth, 0] = px
            stack_pos[depth, 1] = py
            stack_pos[depth, 2] = pz
            for a in range(3):
                for b in range(3):
                    stack_rot[depth, a, b] = rot[a, b]
            depth += 1
        elif c == _POP:
            if depth == 0:
                continue
            depth -= 1
            px = stack_pos[depth, 0]
            py = stack_pos[depth, 1]
            pz = stack_pos[depth, 2]
            for a in range(3):
                for b in range(3):
                    rot[a, b] = stack_rot[depth, a, b]
            out_coords[k, 0] = -np.inf
            out_coords[k, 1] = -np.inf
            out_coords[k, 2] = -np.inf
            out_break[k] = True
            k += 1
            out_coords[k, 0] = px
            out_coords[k, 1] = py
            out_coords[k, 2] = pz
            k += 1
        elif c >= _ROTATE_BASE:
            # 姿勢はローカル軸まわりに合成する（rot = rot @ r）。
            r = rotations[c - _ROTATE_BASE]
            for a in range(3):
                for b in range(3):
                    tmp[a, b] = rot[a, 0] * r[0, b] + rot[a, 1] * r[1, b] + rot[a, 2] * r[2, b]
            for a in range(3):
                for b in range(3):
                    rot[a, b] = tmp[a, b]
        # _SKIP（解決できない id）は何もしない。

    return k


def _trace_from_rows(rows: np.ndarray, is_break: np.ndarray) -> TurtleTrace:
    break_idx = np.flatnonzero(is_break)
    coords = rows[~is_break]
    # 各切れ目より前にある頂点数 = 切れ目位置 - それより前の切れ目数。
    boundaries = break_idx - np.arange(break_idx.shape[0], dtype=np.int64)
    offsets = np.concatenate(
        (
            np.zeros((1,), dtype=np.int64),
            boundaries.astype(np.int64, copy=False),
            np.asarray([coords.shape[0]], dtype=np.int64),
        )
    )
    return TurtleTrace(coords=coords, offsets=offsets)


def interpret(
    sequence: Iterable[int] | np.ndarray,
    resolve: Resolver,
    config: TurtleConfig,
) -> TurtleTrace:
    """id 列をタートルとして解釈し、点列を返す。

    Parameters
    ----------
    sequence : array-like of int
        展開済みの id 列。
    resolve : Mapping[int, Action] or Callable[[int], Action | None]
        id → Action の解決。None を返す / KeyError を送出する id は何もしない。
    config : TurtleConfig
        前進距離と回転角。

    Returns
    -------
    TurtleTrace
        頂点と切れ目の列。

    Notes
    -----
    - カーソルは原点・単位姿勢から始まり、前方は +Y。
    - `nothing`: 現在位置を出力する（線は途切れない）。
    - `forward`: 前方へ `segment_length` 進み、新しい位置を出力する。
    - `rotate`: ローカル軸まわりに `±rotation_angle` 回す。出力なし。
    - `push`: カーソルを退避する。出力なし。
    - `pop`: 退避したカーソルへ戻し、切れ目と復帰位置を出力する。
      スタックが空なら何もしない（例外にもしない）。
    - 退避スタックは呼び出しごとに新しく作る。
    """
    seq = np.asarray(
        sequence if isinstance(sequence, np.ndarray) else list(sequence),
        dtype=np.int64,
    ).reshape(-1)
    if seq.size == 0:
        return TurtleTrace.empty()

    # 記号の種類は少ないので、id ごとに 1 回だけ解決してからコード列へ展開する。
    unique_ids, inverse = np.unique(seq, return_inverse=True)
    table = np.asarray(
        [_action_code(_resolve_one(resolve, int(i))) for i in unique_ids],
        dtype=np.int64,
    )
    n_unresolved = int(np.count_nonzero(table == _SKIP))
    if n_unresolved:
        _logger.debug("解決できない id を %d 種類無視しました", n_unresolved)
    codes = np.ascontiguousarray(table[inverse.reshape(-1)])

    n_push = int(np.count_nonzero(codes == _PUSH))
    n_pop = int(np.count_nonzero(codes == _POP))
    out_rows = np.empty((codes.shape[0] + n_pop, 3), dtype=np.float64)
    out_break = np.zeros((codes.shape[0] + n_pop,), dtype=np.bool_)
    depth_cap = max(n_push, 1)
    stack_pos = np.empty((depth_cap, 3), dtype=np.float64)
    stack_rot = np.empty((depth_cap, 3, 3), dtype=np.float64)

    k = int(
        _interpret_kernel(
            codes,
            rotation_table(config.rotation_angle),
            float(config.segment_length),
            out_rows,
            out_break,
            stack_pos,
            stack_rot,
        )
    )
    trace = _trace_from_rows(out_rows[:k], out_break[:k])
    _logger.debug(
        "interpret: symbols=%d points=%d breaks=%d",
        int(seq.size),
        trace.n_points,
        trace.n_breaks,
    )
    return trace


__all__ = [
    "BREAK",
    "Break",
    "TraceItem",
    "TurtleConfig",
    "TurtleTrace",
    "Vertex",
    "interpret",
    "rotation_table",
]
