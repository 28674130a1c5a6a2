# どこで: `src/arbor/__main__.py`。
# 何を: `python -m arbor ...` の CLI エントリポイントを提供する。
# なぜ: 文法の展開結果の確認と OBJ 書き出しを、スクリプトを書かずに試せるようにするため。

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from arbor.core.presets import PlantOptions, preset, preset_names
from arbor.core.runtime_config import output_root_dir, runtime_config, set_config_path

if TYPE_CHECKING:
    from arbor.core.plant import PlantGeometry

_logger = logging.getLogger(__name__)


def _add_plant_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--preset", default=None, choices=preset_names(), help="プリセット名（省略時: config の plant.preset）")
    p.add_argument("--axiom", default=None, help="axiom を上書きする")
    p.add_argument(
        "--rule",
        dest="rules",
        action="append",
        default=None,
        help="規則（例: 'X=F[+X]FX'）。複数指定可。指定するとプリセットの規則を置き換える",
    )
    p.add_argument("--iterations", type=int, default=None, help="展開回数")
    p.add_argument("--angle", type=float, default=None, help="回転角 [deg]")
    p.add_argument("--length", type=float, default=None, help="前進距離")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="python -m arbor")
    p.add_argument("--config", default=None, help="config.yaml のパス")
    p.add_argument("-v", "--verbose", action="store_true", help="DEBUG ログを表示する")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_expand = sub.add_parser("expand", help="文法を展開して記号列を表示する")
    _add_plant_args(p_expand)
    p_expand.add_argument("--stats", action="store_true", help="記号列の代わりに長さと頂点数を表示する")

    p_export = sub.add_parser("export", help="展開・解釈した点列を OBJ に書き出す")
    _add_plant_args(p_export)
    p_export.add_argument("--out", default=None, help="出力先（省略時: <output_dir>/<preset>.obj）")
    p_export.add_argument("--decimals", type=int, default=None, help="座標の小数桁数")

    sub.add_parser("tokens", help="既定の記号表を表示する")
    sub.add_parser("presets", help="プリセットを一覧表示する")
    return p.parse_args(argv)


def _resolve_options(args: argparse.Namespace) -> tuple[str, PlantOptions]:
    name = str(args.preset or runtime_config().preset)
    options = preset(name)
    changes: dict[str, object] = {}
    if args.axiom is not None:
        changes["axiom"] = args.axiom
    if args.rules is not None:
        changes["rules"] = tuple(args.rules)
    if args.iterations is not None:
        changes["iterations"] = args.iterations
    if args.angle is not None:
        changes["rotation_angle"] = args.angle
    if args.length is not None:
        changes["segment_length"] = args.length
    return name, dataclasses.replace(options, **changes)


def _build(args: argparse.Namespace) -> tuple[str, PlantGeometry]:
    from arbor.core.plant import Plant

    cfg = runtime_config()
    name, options = _resolve_options(args)
    plant = Plant(options, tokens=cfg.tokens, max_sequence_length=cfg.max_sequence_length)
    return name, plant.rebuild()


def _cmd_expand(args: argparse.Namespace) -> int:
    _name, geometry = _build(args)
    if args.stats:
        print(f"symbols: {int(geometry.sequence.shape[0])}")
        print(f"vertices: {geometry.vertex_count}")
        print(f"runs: {geometry.trace.n_runs}")
        return 0
    print(geometry.text())
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    from arbor.export.obj import export_obj

    name, geometry = _build(args)
    out = Path(args.out) if args.out is not None else output_root_dir() / f"{name}.obj"
    decimals = runtime_config().obj_decimals if args.decimals is None else int(args.decimals)
    path = export_obj(geometry.trace, out, decimals=decimals, name=name)
    print(f"{path} (vertices: {geometry.vertex_count})")
    return 0


def _cmd_tokens() -> int:
    for symbol, action in runtime_config().tokens:
        print(f"{symbol}\t{action.spec}\t{action.label}")
    return 0


def _cmd_presets() -> int:
    for name in preset_names():
        options = preset(name)
        rules = "; ".join(options.rules)
        print(
            f"{name}: axiom={options.axiom} rules={rules} iterations={options.iterations}"
            f" angle={options.rotation_angle:g} length={options.segment_length:g}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.config is not None:
        set_config_path(args.config)

    try:
        if args.cmd == "expand":
            return _cmd_expand(args)
        if args.cmd == "export":
            return _cmd_export(args)
        if args.cmd == "tokens":
            return _cmd_tokens()
        if args.cmd == "presets":
            return _cmd_presets()
    except ValueError as exc:
        _logger.debug("command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2

    raise AssertionError(f"unknown cmd: {args.cmd!r}")


if __name__ == "__main__":
    raise SystemExit(main())
