from __future__ import annotations

import allure
import pytest

from procspawn.config import Settings, SpawnerSettings

pytestmark = [
    allure.epic("Process Spawning"),
    allure.feature("Configuration"),
]

_VARIABLES = (
    "PROCSPAWN_ENCODING",
    "PROCSPAWN_ENCODING_ERRORS",
    "PROCSPAWN_CHANNEL_MAX_SIZE",
    "PROCSPAWN_TERMINATE_ON_ABANDON",
    "PROCSPAWN_TERMINATE_GRACE_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch) -> None:
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults() -> None:
    assert Settings.from_env().spawner == SpawnerSettings()


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("PROCSPAWN_ENCODING", "latin-1")
    monkeypatch.setenv("PROCSPAWN_ENCODING_ERRORS", "strict")
    monkeypatch.setenv("PROCSPAWN_CHANNEL_MAX_SIZE", "64")
    monkeypatch.setenv("PROCSPAWN_TERMINATE_ON_ABANDON", "off")
    monkeypatch.setenv("PROCSPAWN_TERMINATE_GRACE_SECONDS", "0.5")

    settings = Settings.from_env().spawner

    assert settings.encoding == "latin-1"
    assert settings.encoding_errors == "strict"
    assert settings.channel_max_size == 64
    assert settings.terminate_on_abandon is False
    assert settings.terminate_grace_seconds == 0.5


def test_from_env_rejects_invalid_boolean(monkeypatch) -> None:
    monkeypatch.setenv("PROCSPAWN_TERMINATE_ON_ABANDON", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean value for PROCSPAWN_TERMINATE"):
        Settings.from_env()


def test_from_env_rejects_invalid_integer(monkeypatch) -> None:
    monkeypatch.setenv("PROCSPAWN_CHANNEL_MAX_SIZE", "many")

    with pytest.raises(ValueError, match="PROCSPAWN_CHANNEL_MAX_SIZE"):
        Settings.from_env()


def test_validate_rejects_negative_channel_size() -> None:
    with pytest.raises(ValueError, match="PROCSPAWN_CHANNEL_MAX_SIZE must be >= 0"):
        SpawnerSettings(channel_max_size=-1).validate()


def test_validate_rejects_negative_grace_period() -> None:
    with pytest.raises(ValueError, match="PROCSPAWN_TERMINATE_GRACE_SECONDS"):
        SpawnerSettings(terminate_grace_seconds=-1).validate()


def test_validate_rejects_unknown_codec() -> None:
    with pytest.raises(ValueError, match="not a known codec"):
        SpawnerSettings(encoding="no-such-codec").validate()


def test_validate_rejects_unknown_error_handler() -> None:
    with pytest.raises(ValueError, match="PROCSPAWN_ENCODING_ERRORS"):
        SpawnerSettings(encoding_errors="shrug").validate()
