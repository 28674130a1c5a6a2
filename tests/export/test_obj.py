"""OBJ export（`arbor.export.obj`）のテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from arbor.core.turtle import BREAK, TurtleTrace, Vertex
from arbor.export.obj import export_obj, obj_lines


def _branch_trace() -> TurtleTrace:
    return TurtleTrace.from_items(
        [
            Vertex(0.0, 1.0, 0.0),
            Vertex(0.0, 1.0, 1.0),
            BREAK,
            Vertex(0.0, 1.0, 0.0),
            Vertex(0.0, 2.0, 0.0),
        ]
    )


def test_obj_lines_writes_vertices_and_polylines() -> None:
    lines = obj_lines(_branch_trace(), decimals=3, name="bush")
    assert lines == [
        "# arbor turtle trace",
        "# points=4 runs=2",
        "o bush",
        "v 0.000 1.000 0.000",
        "v 0.000 1.000 1.000",
        "v 0.000 1.000 0.000",
        "v 0.000 2.000 0.000",
        "l 1 2",
        "l 3 4",
    ]


def test_single_point_runs_keep_vertices_without_lines() -> None:
    trace = TurtleTrace.from_items([Vertex(0.0, 0.0, 0.0), BREAK, BREAK, Vertex(1.0, 0.0, 0.0), Vertex(2.0, 0.0, 0.0)])
    lines = obj_lines(trace, decimals=1)
    assert [ln for ln in lines if ln.startswith("v ")] == [
        "v 0.0 0.0 0.0",
        "v 1.0 0.0 0.0",
        "v 2.0 0.0 0.0",
    ]
    assert [ln for ln in lines if ln.startswith("l ")] == ["l 2 3"]
    assert "# points=3 runs=3" in lines


def test_negative_zero_is_normalized() -> None:
    trace = TurtleTrace.from_items([Vertex(-0.0, -0.0000001, 1.0)])
    assert obj_lines(trace, decimals=3)[-1] == "v 0.000 0.000 1.000"


def test_empty_trace_has_only_header() -> None:
    assert obj_lines(TurtleTrace.empty()) == ["# arbor turtle trace", "# points=0 runs=1"]


def test_negative_decimals_rejected() -> None:
    with pytest.raises(ValueError):
        obj_lines(_branch_trace(), decimals=-1)


def test_export_obj_creates_parent_dirs_and_is_deterministic(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "dir" / "tree.obj"
    path = export_obj(_branch_trace(), out, decimals=2)

    assert path == out
    first = out.read_text(encoding="utf-8")
    assert first.endswith("l 3 4\n")
    assert "o " not in first

    export_obj(_branch_trace(), out, decimals=2)
    assert out.read_text(encoding="utf-8") == first
