# どこで: `src/arbor/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: 既定の記号表・プリセット・展開長の上限・出力先をユーザーが差し替えられるようにするため。

"""arbor の `config.yaml` を読み、`RuntimeConfig` として返す。

適用順（後勝ち、トップレベルキー単位の浅い上書き）:

1) 同梱 `arbor/resource/default_config.yaml`
2) `./.arbor/config.yaml` か `~/.config/arbor/config.yaml`（先に見つかった方）
3) `set_config_path()` で指定したファイル

`limits: {}` のようにネストした mapping を書くと、同梱側の中身は丸ごと置き換わる。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from arbor.core.presets import DEFAULT_TOKENS, preset_names
from arbor.core.tokens import Action


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """arbor の実行時設定。

    Attributes
    ----------
    config_path:
        採用したユーザー設定ファイル。同梱デフォルトだけなら None。
    output_dir:
        OBJ などの既定出力先。
    preset:
        新しい植物に使うプリセット名。
    tokens:
        新しい植物に使う記号表 `(symbol, Action)` の列。
    max_sequence_length:
        展開長の上限。None で無制限。
    obj_decimals:
        OBJ 座標の小数点以下の桁数。
    """

    config_path: Path | None
    output_dir: Path
    preset: str
    tokens: tuple[tuple[str, Action], ...]
    max_sequence_length: int | None
    obj_decimals: int


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """明示 config を指定する（None で解除）。キャッシュは破棄する。"""

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    _EXPLICIT_CONFIG_PATH = None if path is None else Path(str(path)).expanduser()
    _CONFIG_CACHE = None


def _discover_config() -> Path | None:
    for candidate in (
        Path.cwd() / ".arbor" / "config.yaml",
        Path.home() / ".config" / "arbor" / "config.yaml",
    ):
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(text: str, *, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"config.yaml を解析できません: source={source}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml のトップレベルは mapping である必要があります: source={source}")
    return data


def _packaged_defaults() -> dict[str, Any]:
    resource = resources.files("arbor") / "resource" / "default_config.yaml"
    return _read_yaml(resource.read_text(encoding="utf-8"), source="arbor/resource/default_config.yaml")


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")
    return value


def _optional_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _parse_tokens(value: Any) -> tuple[tuple[str, Action], ...] | None:
    """`[{symbol: "F", action: "forward"}, ...]` を記号表に変換する。

    記号表は文法の意味そのものなので、不正な要素は読み飛ばさず例外にする。
    """

    if value is None:
        return None
    if not isinstance(value, list):
        raise RuntimeError(f"tokens は配列である必要があります: got={value!r}")

    out: list[tuple[str, Action]] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise RuntimeError(f"tokens[{i}] は mapping である必要があります: got={item!r}")
        symbol = item.get("symbol")
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise RuntimeError(f"tokens[{i}].symbol は 1 文字である必要があります: got={symbol!r}")
        try:
            action = Action.parse(str(item.get("action")))
        except ValueError as exc:
            raise RuntimeError(f"tokens[{i}].action を解釈できません: got={item.get('action')!r}") from exc
        out.append((symbol, action))
    return tuple(out)


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（プロセス内キャッシュ）。

    Raises
    ------
    FileNotFoundError
        `set_config_path()` で指定したファイルが無い場合。
    RuntimeError
        config の形が不正な場合。
    ValueError
        値が範囲外の場合（未知のプリセット、0 以下の上限など）。
    """

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")
    discovered_path = _discover_config()

    payload = _packaged_defaults()
    for path in (discovered_path, explicit_path):
        if path is not None:
            payload.update(_read_yaml(path.read_text(encoding="utf-8"), source=str(path)))

    version = _optional_int(payload.get("version"), key="version")
    if version != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version}")

    output_text = str(_section(payload, "paths").get("output_dir") or "").strip()
    if not output_text:
        raise RuntimeError("paths.output_dir が未設定です")
    output_dir = Path(os.path.expandvars(os.path.expanduser(output_text)))

    preset = str(_section(payload, "plant").get("preset") or "bush").strip()
    if preset not in preset_names():
        raise ValueError(
            f"plant.preset が未知のプリセットです: got={preset!r}"
            f"（choices={', '.join(preset_names())}）"
        )

    tokens = _parse_tokens(payload.get("tokens"))

    max_sequence_length = _optional_int(
        _section(payload, "limits").get("max_sequence_length"),
        key="limits.max_sequence_length",
    )
    if max_sequence_length is not None and max_sequence_length <= 0:
        raise ValueError(
            f"limits.max_sequence_length は正の値である必要があります: got={max_sequence_length}"
        )

    obj = _section(_section(payload, "export"), "obj")
    obj_decimals = _optional_int(obj.get("decimals"), key="export.obj.decimals")
    if obj_decimals is None:
        obj_decimals = 6
    if obj_decimals < 0:
        raise ValueError(f"export.obj.decimals は 0 以上である必要があります: got={obj_decimals}")

    _CONFIG_CACHE = RuntimeConfig(
        config_path=explicit_path or discovered_path,
        output_dir=output_dir,
        preset=preset,
        tokens=DEFAULT_TOKENS if tokens is None else tokens,
        max_sequence_length=max_sequence_length,
        obj_decimals=obj_decimals,
    )
    return _CONFIG_CACHE


def output_root_dir() -> Path:
    """出力ファイルの既定ルートディレクトリを返す。"""

    return Path(runtime_config().output_dir)


__all__ = [
    "RuntimeConfig",
    "output_root_dir",
    "runtime_config",
    "set_config_path",
]
