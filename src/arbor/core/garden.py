"""
どこで: `src/arbor/core/garden.py`。
何を: 複数の植物と編集イベント（記号の追加/削除/改名、アクション変更、設定変更）を管理する。
なぜ: 「文法を変える編集 1 回につき rebuild 要求をちょうど 1 回」流す契約を、ホスト側の
    スケジューラから独立して 1 か所で守るため。

イベントは `post()` で積み、`step()` で 1 段ずつ処理する。
編集イベントから派生した `RebuildRequested` は次の `step()` で処理される。
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from arbor.core.plant import Plant
from arbor.core.presets import DEFAULT_TOKENS, PlantOptions
from arbor.core.tokens import Action

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpawnPlant:
    options: PlantOptions | None = None


@dataclass(frozen=True, slots=True)
class RebuildRequested:
    plant_id: int


@dataclass(frozen=True, slots=True)
class AddToken:
    plant_id: int
    symbol: str
    action: Action


@dataclass(frozen=True, slots=True)
class RemoveToken:
    plant_id: int
    symbol: str


@dataclass(frozen=True, slots=True)
class ChangeToken:
    plant_id: int
    prev: str
    new: str


@dataclass(frozen=True, slots=True)
class ChangeAction:
    plant_id: int
    symbol: str
    action: Action


@dataclass(frozen=True, slots=True)
class UpdateOptions:
    plant_id: int
    options: PlantOptions


GardenEvent = Union[
    SpawnPlant,
    RebuildRequested,
    AddToken,
    RemoveToken,
    ChangeToken,
    ChangeAction,
    UpdateOptions,
]


class Garden:
    """植物の集合とイベントキュー。

    Parameters
    ----------
    tokens : Iterable[tuple[str, Action]] or None, optional
        新しい植物の記号表。None なら `DEFAULT_TOKENS`。
    default_options : PlantOptions or None, optional
        `SpawnPlant(options=None)` で使う設定。
    max_sequence_length : int or None, optional
        各植物の展開長の上限。

    Notes
    -----
    植物どうしは状態を共有しない。不正な編集イベントは warning を出して捨てる。
    rebuild に失敗した植物は warning を出して直前の結果を保つ（他の植物の処理は続ける）。
    """

    def __init__(
        self,
        *,
        tokens: Iterable[tuple[str, Action]] | None = None,
        default_options: PlantOptions | None = None,
        max_sequence_length: int | None = None,
    ) -> None:
        self._tokens = tuple(DEFAULT_TOKENS if tokens is None else tokens)
        self._default_options = PlantOptions() if default_options is None else default_options
        self._max_sequence_length = max_sequence_length
        self._plants: dict[int, Plant] = {}
        self._next_id = 0
        self._queue: deque[GardenEvent] = deque()

    @property
    def plants(self) -> dict[int, Plant]:
        return dict(self._plants)

    def plant(self, plant_id: int) -> Plant:
        """植物を返す。

        Raises
        ------
        KeyError
            未知の plant_id の場合。
        """
        return self._plants[int(plant_id)]

    def pending(self) -> tuple[GardenEvent, ...]:
        """未処理のイベントを返す。"""
        return tuple(self._queue)

    def post(self, event: GardenEvent) -> None:
        self._queue.append(event)

    def spawn(self, options: PlantOptions | None = None) -> int:
        """植物を追加し、その rebuild 要求を積んで plant_id を返す。"""
        plant_id = self._add_plant(options)
        self._queue.append(RebuildRequested(plant_id))
        return plant_id

    def _add_plant(self, options: PlantOptions | None) -> int:
        plant_id = self._next_id
        self._next_id += 1
        self._plants[plant_id] = Plant(
            self._default_options if options is None else options,
            tokens=self._tokens,
            max_sequence_length=self._max_sequence_length,
        )
        return plant_id

    def step(self) -> list[int]:
        """現在積まれているイベントを処理し、rebuild に成功した plant_id を返す。

        処理中に派生したイベントは次回の `step()` に回す。
        """
        events = list(self._queue)
        self._queue.clear()
        derived: list[GardenEvent] = []
        rebuilt: list[int] = []

        n_rebuild = sum(1 for e in events if isinstance(e, RebuildRequested))
        if n_rebuild:
            _logger.info("rebuild requested for %d plant(s)", n_rebuild)

        for event in events:
            if isinstance(event, SpawnPlant):
                derived.append(RebuildRequested(self._add_plant(event.options)))
                continue

            if isinstance(event, RebuildRequested):
                if self._rebuild(event.plant_id):
                    rebuilt.append(event.plant_id)
                continue

            plant = self._plants.get(event.plant_id)
            if plant is None:
                _logger.debug("未知の plant_id へのイベントを無視しました: %r", event)
                continue
            try:
                changed = self._apply_edit(plant, event)
            except (ValueError, TypeError) as exc:
                _logger.warning("plant %s への編集を拒否しました: %r: %s", event.plant_id, event, exc)
                continue
            if changed:
                derived.append(RebuildRequested(event.plant_id))

        self._queue.extend(derived)
        return rebuilt

    def run_until_idle(self, *, max_steps: int = 64) -> list[int]:
        """キューが空になるまで `step()` を繰り返し、rebuild した plant_id を順に返す。"""
        rebuilt: list[int] = []
        for _ in range(int(max_steps)):
            if not self._queue:
                break
            rebuilt.extend(self.step())
        return rebuilt

    def _apply_edit(self, plant: Plant, event: GardenEvent) -> bool:
        """編集イベントを適用し、文法が変わり得る場合 True を返す。"""
        builder = plant.builder
        if isinstance(event, AddToken):
            builder.add_token(event.symbol, event.action)
            return True
        if isinstance(event, RemoveToken):
            builder.remove_token(event.symbol)
            return True
        if isinstance(event, ChangeToken):
            return builder.change_token(event.prev, event.new)
        if isinstance(event, ChangeAction):
            return builder.change_action(event.symbol, event.action)
        if isinstance(event, UpdateOptions):
            if event.options == plant.options:
                return False
            plant.options = event.options
            return True
        raise AssertionError(f"unknown event: {event!r}")

    def _rebuild(self, plant_id: int) -> bool:
        plant = self._plants.get(plant_id)
        if plant is None:
            _logger.debug("未知の plant_id の rebuild 要求を無視しました: %s", plant_id)
            return False
        try:
            plant.rebuild()
        except ValueError as exc:
            _logger.warning("plant %s の rebuild に失敗しました（直前の結果を保持）: %s", plant_id, exc)
            return False
        return True


__all__ = [
    "AddToken",
    "ChangeAction",
    "ChangeToken",
    "Garden",
    "GardenEvent",
    "RebuildRequested",
    "RemoveToken",
    "SpawnPlant",
    "UpdateOptions",
]
