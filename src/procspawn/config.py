"""Runtime configuration for spawned process handling."""

from __future__ import annotations

import codecs
import os
from dataclasses import dataclass, field

_ENCODING_ERROR_HANDLERS = {
    "strict",
    "ignore",
    "replace",
    "backslashreplace",
    "surrogateescape",
}


@dataclass(slots=True)
class SpawnerSettings:
    """How child output is decoded, buffered and cleaned up."""

    encoding: str = "utf-8"
    encoding_errors: str = "replace"
    channel_max_size: int = 0
    terminate_on_abandon: bool = True
    terminate_grace_seconds: float = 2.0

    def validate(self) -> None:
        """Raise configuration error if any setting is out of range."""

        try:
            codecs.lookup(self.encoding)
        except LookupError as error:
            raise ValueError(
                f"PROCSPAWN_ENCODING is not a known codec: {self.encoding!r}",
            ) from error
        if self.encoding_errors not in _ENCODING_ERROR_HANDLERS:
            raise ValueError(
                "PROCSPAWN_ENCODING_ERRORS must be one of "
                f"{', '.join(sorted(_ENCODING_ERROR_HANDLERS))}: {self.encoding_errors!r}",
            )
        if self.channel_max_size < 0:
            raise ValueError("PROCSPAWN_CHANNEL_MAX_SIZE must be >= 0.")
        if self.terminate_grace_seconds < 0:
            raise ValueError("PROCSPAWN_TERMINATE_GRACE_SECONDS must be >= 0.")


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    spawner: SpawnerSettings = field(default_factory=SpawnerSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults suitable for most programs."""

        settings = cls(
            spawner=SpawnerSettings(
                encoding=os.getenv("PROCSPAWN_ENCODING", "utf-8"),
                encoding_errors=os.getenv("PROCSPAWN_ENCODING_ERRORS", "replace"),
                channel_max_size=_env_int("PROCSPAWN_CHANNEL_MAX_SIZE", 0),
                terminate_on_abandon=_env_bool("PROCSPAWN_TERMINATE_ON_ABANDON", default=True),
                terminate_grace_seconds=_env_float("PROCSPAWN_TERMINATE_GRACE_SECONDS", 2.0),
            ),
        )
        settings.spawner.validate()
        return settings


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
