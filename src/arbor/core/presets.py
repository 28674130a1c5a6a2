"""
どこで: `src/arbor/core/presets.py`。
何を: 既定の記号表と、名前付きの植物プリセット（axiom / rules / 描画設定）を提供する。
なぜ: 新しい植物を少ない入力で作れるようにし、CLI と Garden で同じ初期値を共有するため。
"""

from __future__ import annotations

from dataclasses import dataclass

from arbor.core.tokens import FORWARD, NOTHING, POP, PUSH, Action, Direction, rotate
from arbor.core.turtle import TurtleConfig

DEFAULT_TOKENS: tuple[tuple[str, Action], ...] = (
    ("X", NOTHING),
    ("F", FORWARD),
    ("+", rotate(Direction.X_POS)),
    ("-", rotate(Direction.X_NEG)),
    (">", rotate(Direction.Y_POS)),
    ("<", rotate(Direction.Y_NEG)),
    ("^", rotate(Direction.Z_POS)),
    ("v", rotate(Direction.Z_NEG)),
    ("[", PUSH),
    ("]", POP),
)
"""植物を新規作成したときの記号表。"""


@dataclass(frozen=True, slots=True)
class PlantOptions:
    """1 つの植物の文法テキストと描画設定。

    Parameters
    ----------
    axiom : str
        初期文字列。
    rules : tuple[str, ...]
        `A=...` 形式の規則テキスト列。
    iterations : int
        展開回数（0 以上）。
    rotation_angle : float
        回転角 [deg]。
    segment_length : float
        前進距離。
    """

    axiom: str = "X"
    rules: tuple[str, ...] = ("X=[+F][^F][-F][vF]FX", "F=FX")
    iterations: int = 6
    rotation_angle: float = 30.0
    segment_length: float = 0.25

    def __post_init__(self) -> None:
        if isinstance(self.rules, str):
            raise TypeError("rules は規則テキストの列である必要があります（str 単体は不可）")
        iterations = int(self.iterations)
        if iterations < 0:
            raise ValueError(f"iterations は 0 以上である必要があります: got={self.iterations!r}")
        object.__setattr__(self, "axiom", str(self.axiom))
        object.__setattr__(self, "rules", tuple(str(r) for r in self.rules))
        object.__setattr__(self, "iterations", iterations)
        object.__setattr__(self, "rotation_angle", float(self.rotation_angle))
        object.__setattr__(self, "segment_length", float(self.segment_length))

    def turtle_config(self) -> TurtleConfig:
        return TurtleConfig(
            segment_length=self.segment_length,
            rotation_angle=self.rotation_angle,
        )


_PRESETS: dict[str, PlantOptions] = {
    "bush": PlantOptions(),
    "plant": PlantOptions(
        axiom="X",
        rules=("X=F-[[X]+X]+F[+FX]-X", "F=FF"),
        iterations=5,
        rotation_angle=25.0,
        segment_length=0.05,
    ),
    "circuit": PlantOptions(
        axiom="X",
        rules=("X=F[+X]F[-X]FX", "F=FF"),
        iterations=5,
        rotation_angle=90.0,
        segment_length=0.05,
    ),
}


def preset_names() -> tuple[str, ...]:
    return tuple(_PRESETS)


def preset(name: str) -> PlantOptions:
    """名前付きプリセットを返す。

    Raises
    ------
    ValueError
        未知のプリセット名の場合。
    """
    try:
        return _PRESETS[str(name)]
    except KeyError as exc:
        raise ValueError(
            f"未知のプリセットです: {name!r}（choices={', '.join(_PRESETS)}）"
        ) from exc


__all__ = ["DEFAULT_TOKENS", "PlantOptions", "preset", "preset_names"]
