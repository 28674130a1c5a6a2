"""
どこで: `src/arbor/export/obj.py`。
何を: TurtleTrace を Wavefront OBJ（`v` 頂点 + `l` ポリライン）として保存する関数を提供する。
なぜ: 生成した枝構造を、線の切れ目を保ったまま一般的な 3D ツールへ持ち出せるようにするため。
"""

from __future__ import annotations

from pathlib import Path

from arbor.core.turtle import TurtleTrace

# --- 出力形式（概要）---
#
# - 全頂点を `v x y z` で出力する（ストリップの順、ストリップ内は生成順）。
# - 頂点数 2 以上のストリップごとに `l i0 i1 ...`（1 始まりの頂点番号）を 1 行出す。
#   頂点数 0/1 のストリップは線にならないので `l` を出さない（頂点は残す）。
# - 数値は固定小数で出力し、同じ入力から同じテキストが得られるようにする。


def _fmt_float(value: float, *, decimals: int) -> str:
    """小数を固定桁の文字列にして返す。`-0.000` は `0.000` に正規化する。"""

    text = f"{float(value):.{int(decimals)}f}"
    if text.startswith("-") and float(text) == 0.0:
        return text[1:]
    return text


def obj_lines(trace: TurtleTrace, *, decimals: int = 6, name: str | None = None) -> list[str]:
    """OBJ 本文を行のリストで返す（改行は含まない）。"""

    if int(decimals) < 0:
        raise ValueError(f"decimals は 0 以上である必要があります: got={decimals}")

    lines: list[str] = [
        "# arbor turtle trace",
        f"# points={trace.n_points} runs={trace.n_runs}",
    ]
    if name:
        lines.append(f"o {name}")

    for x, y, z in trace.coords.tolist():
        lines.append(
            "v "
            + " ".join(_fmt_float(c, decimals=decimals) for c in (x, y, z))
        )

    for a, b in zip(trace.offsets[:-1].tolist(), trace.offsets[1:].tolist()):
        if b - a < 2:
            continue
        lines.append("l " + " ".join(str(i + 1) for i in range(a, b)))
    return lines


def export_obj(
    trace: TurtleTrace,
    path: str | Path,
    *,
    decimals: int = 6,
    name: str | None = None,
) -> Path:
    """TurtleTrace を OBJ ファイルとして保存し、保存先パスを返す。

    Parameters
    ----------
    trace : TurtleTrace
        書き出す点列。
    path : str or Path
        出力先。親ディレクトリは必要に応じて作成する。
    decimals : int, default 6
        座標の小数点以下の桁数。
    name : str or None, optional
        `o` 行に書くオブジェクト名。
    """

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(obj_lines(trace, decimals=decimals, name=name)) + "\n"
    out.write_text(text, encoding="utf-8")
    return out


__all__ = ["export_obj", "obj_lines"]
