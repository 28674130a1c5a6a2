"""runtime_config（config.yaml の探索・ロード）のテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from arbor.core.presets import DEFAULT_TOKENS
from arbor.core.runtime_config import output_root_dir, runtime_config, set_config_path
from arbor.core.tokens import FORWARD, POP, PUSH


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # 実行環境の ./.arbor や ~/.config/arbor を拾わないようにする。
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    set_config_path(None)
    yield
    set_config_path(None)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_packaged_defaults() -> None:
    cfg = runtime_config()
    assert cfg.config_path is None
    assert cfg.output_dir == Path("data/output")
    assert cfg.preset == "bush"
    assert cfg.tokens == DEFAULT_TOKENS
    assert cfg.max_sequence_length == 5_000_000
    assert cfg.obj_decimals == 6
    assert output_root_dir() == Path("data/output")


def test_result_is_cached_until_path_changes(tmp_path: Path) -> None:
    first = runtime_config()
    assert runtime_config() is first

    cfg_path = _write(tmp_path / "custom.yaml", "plant:\n  preset: circuit\n")
    set_config_path(cfg_path)
    assert runtime_config().preset == "circuit"


def test_discovers_config_in_working_directory(tmp_path: Path) -> None:
    found = _write(tmp_path / ".arbor" / "config.yaml", "plant:\n  preset: plant\n")
    cfg = runtime_config()
    assert cfg.config_path is not None
    assert cfg.config_path.resolve() == found.resolve()
    assert cfg.preset == "plant"


def test_working_directory_wins_over_home(tmp_path: Path) -> None:
    _write(tmp_path / "home" / ".config" / "arbor" / "config.yaml", "plant:\n  preset: circuit\n")
    assert runtime_config().preset == "circuit"

    _write(tmp_path / ".arbor" / "config.yaml", "plant:\n  preset: plant\n")
    set_config_path(None)
    assert runtime_config().preset == "plant"


def test_explicit_path_overrides_discovered(tmp_path: Path) -> None:
    _write(tmp_path / ".arbor" / "config.yaml", "plant:\n  preset: plant\n")
    explicit = _write(tmp_path / "explicit.yaml", "plant:\n  preset: circuit\n")
    set_config_path(explicit)

    cfg = runtime_config()
    assert cfg.config_path == explicit
    assert cfg.preset == "circuit"


def test_nested_mapping_is_replaced_not_merged(tmp_path: Path) -> None:
    set_config_path(_write(tmp_path / "c.yaml", "limits: {}\n"))
    assert runtime_config().max_sequence_length is None


def test_custom_tokens(tmp_path: Path) -> None:
    text = (
        "tokens:\n"
        "  - {symbol: 'A', action: 'forward'}\n"
        "  - {symbol: '(', action: 'push'}\n"
        "  - {symbol: ')', action: 'pop'}\n"
    )
    set_config_path(_write(tmp_path / "c.yaml", text))
    assert runtime_config().tokens == (("A", FORWARD), ("(", PUSH), (")", POP))


@pytest.mark.parametrize(
    "text",
    [
        "tokens: {A: forward}\n",
        "tokens:\n  - {symbol: 'AB', action: 'forward'}\n",
        "tokens:\n  - {symbol: 'A', action: 'jump'}\n",
        "version: 2\n",
        "- not a mapping\n",
    ],
)
def test_invalid_config_raises_runtime_error(tmp_path: Path, text: str) -> None:
    set_config_path(_write(tmp_path / "c.yaml", text))
    with pytest.raises(RuntimeError):
        runtime_config()


@pytest.mark.parametrize(
    "text",
    [
        "plant:\n  preset: fern\n",
        "limits:\n  max_sequence_length: 0\n",
        "export:\n  obj:\n    decimals: -1\n",
    ],
)
def test_invalid_values_raise_value_error(tmp_path: Path, text: str) -> None:
    set_config_path(_write(tmp_path / "c.yaml", text))
    with pytest.raises(ValueError):
        runtime_config()


def test_missing_explicit_path_raises(tmp_path: Path) -> None:
    set_config_path(tmp_path / "missing.yaml")
    with pytest.raises(FileNotFoundError):
        runtime_config()


def test_output_dir_expands_environment_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARBOR_OUT", str(tmp_path / "out"))
    set_config_path(_write(tmp_path / "c.yaml", "paths:\n  output_dir: $ARBOR_OUT/objs\n"))
    assert output_root_dir() == tmp_path / "out" / "objs"
