"""Tests for profile-backed configuration."""

import json
from pathlib import Path

import pytest

from synergy.config import AppConfig, config_from_dict, load_config, map_path
from synergy.errors import ConfigError


def write_profile(path: Path, profile) -> Path:
    path.write_text(json.dumps(profile), encoding="utf-8")
    return path


def test_defaults_without_profile() -> None:
    config = load_config(None)
    assert config.data_dir == Path("~/.synergysphere").expanduser().resolve()
    assert config.session_strategy == "local"
    assert config.auth_base_url == "http://localhost:5000"
    assert config.auth_timeout == 10.0
    assert config.log_file is None


def test_full_profile(tmp_path: Path) -> None:
    profile = write_profile(
        tmp_path / "profile.json",
        {
            "data_dir": "data",
            "session_strategy": "remote",
            "auth_base_url": "https://auth.example.com",
            "auth_timeout": 2.5,
            "log_file": "logs/synergy.log",
        },
    )
    config = load_config(profile)
    assert config == AppConfig(
        data_dir=(tmp_path / "data").resolve(),
        session_strategy="remote",
        auth_base_url="https://auth.example.com",
        auth_timeout=2.5,
        log_file=(tmp_path / "logs" / "synergy.log").resolve(),
    )


def test_missing_profile(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.json")


def test_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_config(path)


def test_profile_must_be_object(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(write_profile(tmp_path / "profile.json", ["data_dir"]))


@pytest.mark.parametrize(
    "profile",
    [
        {"session_strategy": "oauth"},
        {"auth_timeout": 0},
        {"auth_timeout": True},
        {"auth_timeout": "10"},
        {"data_dir": ""},
        {"colour": "blue"},
    ],
)
def test_invalid_values(profile) -> None:
    with pytest.raises(ConfigError):
        config_from_dict(profile, base_dir=Path("/tmp"))


def test_map_path_variants(tmp_path: Path) -> None:
    assert map_path("~/x") == (Path.home() / "x").resolve()
    assert map_path(str(tmp_path / "abs")) == (tmp_path / "abs").resolve()
    assert map_path("rel", base_dir=tmp_path) == (tmp_path / "rel").resolve()
    assert map_path("@").name == "synergy"


def test_map_path_relative_without_base() -> None:
    with pytest.raises(ConfigError):
        map_path("relative/path")
