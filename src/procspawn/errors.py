"""Error taxonomy for argument validation and child process execution."""

from __future__ import annotations

from pathlib import PurePath


class ArgumentError(ValueError):
    """Invalid configuration value detected before any process starts."""

    def __init__(self, param_name: str, message: str | None = None) -> None:
        super().__init__(message or f"Invalid value for {param_name!r}.")
        self.param_name = param_name


def require(value: object, param_name: str) -> None:
    if value is None:
        raise ArgumentError(param_name, f"{param_name} must not be None.")


def require_non_empty(value: str | None, param_name: str) -> None:
    require(value, param_name)
    if not value:
        raise ArgumentError(param_name, f"{param_name} must not be empty.")


def _program_name(path: str) -> str:
    return PurePath(path).name or path


class SpawnError(RuntimeError):
    """Runtime failure of a spawned program."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path


class ProcessStartError(SpawnError):
    """The operating system failed to create the process."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f'Process "{path}" failed to start: {reason}', path=path)
        self.reason = reason


class ProcessExitError(SpawnError):
    """The process ran and ended with a non-zero exit code."""

    def __init__(self, path: str, *, pid: int, exit_code: int) -> None:
        super().__init__(
            f'Process "{_program_name(path)}" (launched as the ID {pid}) '
            f"ended with the non-zero exit code {exit_code}.",
            path=path,
        )
        self.pid = pid
        self.exit_code = exit_code


class StreamReadError(SpawnError):
    """Reading one of the output streams of a running process failed."""

    def __init__(self, path: str, *, pid: int, stream: str, reason: str) -> None:
        super().__init__(
            f'Reading {stream} of process "{_program_name(path)}" (ID {pid}) failed: {reason}',
            path=path,
        )
        self.pid = pid
        self.stream = stream
        self.reason = reason
