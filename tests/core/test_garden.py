"""Garden のイベント処理のテスト。"""

from __future__ import annotations

import logging

import pytest

from arbor.core.garden import (
    AddToken,
    ChangeAction,
    ChangeToken,
    Garden,
    RebuildRequested,
    RemoveToken,
    SpawnPlant,
    UpdateOptions,
)
from arbor.core.presets import PlantOptions
from arbor.core.tokens import FORWARD, NOTHING

SMALL = PlantOptions(axiom="X", rules=("X=F[+F]F",), iterations=1, rotation_angle=90.0, segment_length=1.0)


def test_spawn_queues_one_rebuild() -> None:
    garden = Garden(default_options=SMALL)
    pid = garden.spawn()

    assert garden.pending() == (RebuildRequested(pid),)
    assert garden.step() == [pid]
    assert garden.pending() == ()
    assert garden.plant(pid).vertex_count == 5


def test_spawn_event_rebuilds_on_next_step() -> None:
    garden = Garden()
    garden.post(SpawnPlant(SMALL))

    assert garden.step() == []
    assert list(garden.plants) == [0]
    assert garden.pending() == (RebuildRequested(0),)
    assert garden.step() == [0]
    assert garden.plant(0).geometry is not None


def test_grammar_edit_emits_exactly_one_rebuild() -> None:
    garden = Garden(default_options=SMALL)
    pid = garden.spawn()
    garden.step()

    garden.post(AddToken(pid, "G", FORWARD))
    assert garden.step() == []
    assert garden.pending() == (RebuildRequested(pid),)
    assert garden.step() == [pid]
    assert garden.pending() == ()


@pytest.mark.parametrize(
    ("event", "rebuilds"),
    [
        (ChangeToken(0, "F", "G"), 1),
        (ChangeToken(0, "Q", "G"), 0),
        (ChangeAction(0, "X", FORWARD), 1),
        (ChangeAction(0, "Q", FORWARD), 0),
        (RemoveToken(0, "Q"), 1),
        (UpdateOptions(0, SMALL), 0),
    ],
)
def test_edits_request_rebuild_only_when_grammar_may_change(event: object, rebuilds: int) -> None:
    garden = Garden(default_options=SMALL)
    garden.spawn()
    garden.step()

    garden.post(event)  # type: ignore[arg-type]
    garden.step()
    assert len(garden.pending()) == rebuilds


def test_update_options_changes_geometry() -> None:
    garden = Garden(default_options=SMALL)
    pid = garden.spawn()
    garden.step()

    garden.post(UpdateOptions(pid, PlantOptions(axiom="F", rules=(), iterations=0)))
    assert garden.run_until_idle() == [pid]
    assert garden.plant(pid).geometry.text() == "F"


def test_change_action_updates_interpretation() -> None:
    garden = Garden(default_options=SMALL)
    pid = garden.spawn()
    garden.run_until_idle()

    garden.post(ChangeAction(pid, "F", NOTHING))
    garden.run_until_idle()

    geometry = garden.plant(pid).geometry
    # 前進しないので全頂点が原点に留まる。
    assert geometry.trace.coords.tolist() == [[0.0, 0.0, 0.0]] * 4


def test_failed_rebuild_warns_and_keeps_previous_geometry(caplog: pytest.LogCaptureFixture) -> None:
    garden = Garden(default_options=SMALL)
    pid = garden.spawn()
    garden.run_until_idle()
    before = garden.plant(pid).geometry

    garden.post(RemoveToken(pid, "+"))
    with caplog.at_level(logging.WARNING, logger="arbor.core.garden"):
        rebuilt = garden.run_until_idle()

    assert rebuilt == []
    assert garden.plant(pid).geometry is before
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_failure_in_one_plant_does_not_block_others() -> None:
    garden = Garden(default_options=SMALL)
    a = garden.spawn()
    b = garden.spawn()
    garden.run_until_idle()

    garden.post(RemoveToken(a, "F"))
    garden.post(RebuildRequested(b))
    assert garden.step() == [b]
    assert garden.step() == []


def test_rejected_edit_does_not_drop_queued_events(caplog: pytest.LogCaptureFixture) -> None:
    garden = Garden(default_options=SMALL)
    a = garden.spawn()
    b = garden.spawn()
    garden.run_until_idle()

    garden.post(AddToken(a, "GG", FORWARD))
    garden.post(ChangeToken(a, "F", "HH"))
    garden.post(RebuildRequested(b))
    with caplog.at_level(logging.WARNING, logger="arbor.core.garden"):
        assert garden.step() == [b]

    assert garden.pending() == ()
    assert "F" in garden.plant(a).builder.registry
    assert sum(r.levelno == logging.WARNING for r in caplog.records) == 2


def test_plants_do_not_share_token_tables() -> None:
    garden = Garden(default_options=SMALL)
    a = garden.spawn()
    b = garden.spawn()
    garden.post(AddToken(a, "G", FORWARD))
    garden.run_until_idle()

    assert "G" in garden.plant(a).builder.registry
    assert "G" not in garden.plant(b).builder.registry


def test_events_for_unknown_plants_are_ignored() -> None:
    garden = Garden()
    garden.post(RebuildRequested(42))
    garden.post(AddToken(42, "G", FORWARD))
    assert garden.step() == []
    assert garden.pending() == ()

    with pytest.raises(KeyError):
        garden.plant(42)


def test_run_until_idle_respects_max_steps() -> None:
    garden = Garden(default_options=SMALL)
    garden.post(SpawnPlant())
    assert garden.run_until_idle(max_steps=1) == []
    assert garden.pending() == (RebuildRequested(0),)
    assert garden.run_until_idle() == [0]
