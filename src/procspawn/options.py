"""Immutable spawn options and the mutable start description they update."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Protocol

from procspawn.arguments import ProgramArguments, join_command_line, split_command_line
from procspawn.errors import ArgumentError, require, require_non_empty

EnvironmentPairs = tuple[tuple[str, str], ...]

# Windows resolves environment variable names without regard to case.
ENVIRONMENT_NAMES_IGNORE_CASE = os.name == "nt"


def _same_name(a: str, b: str) -> bool:
    if ENVIRONMENT_NAMES_IGNORE_CASE:
        return a.upper() == b.upper()
    return a == b


class StartTarget(Protocol):
    """Anything `SpawnOptions.update` can write into."""

    working_directory: str
    environment: dict[str, str]


@dataclass(frozen=True, slots=True)
class SpawnOptions:
    """Working directory, environment and arguments for one program launch.

    Mutators return a new instance, or ``self`` when nothing would change.
    """

    arguments: ProgramArguments
    working_directory: str
    environment: EnvironmentPairs

    @classmethod
    def create(
        cls,
        environ: Mapping[str, str] | None = None,
        working_directory: str | None = None,
    ) -> SpawnOptions:
        """Snapshot the current working directory and environment table."""

        source = os.environ if environ is None else environ
        return cls(
            arguments=ProgramArguments.EMPTY,
            working_directory=os.getcwd() if working_directory is None else working_directory,
            environment=tuple((str(name), str(value)) for name, value in source.items()),
        )

    # -- working directory ----------------------------------------------------

    def with_working_directory(self, value: str) -> SpawnOptions:
        require(value, "value")
        if value == self.working_directory:
            return self
        return replace(self, working_directory=value)

    # -- environment ------------------------------------------------------------

    def with_environment(self, value: Iterable[tuple[str, str]]) -> SpawnOptions:
        require(value, "value")
        pairs = tuple((name, val) for name, val in value)
        for name, val in pairs:
            if not isinstance(name, str) or not isinstance(val, str):
                raise ArgumentError(
                    "value",
                    f"Environment entries must be pairs of str, got {(name, val)!r}.",
                )
        if not self.environment and not pairs:
            return self
        return replace(self, environment=pairs)

    def add_environment(self, name: str, value: str) -> SpawnOptions:
        require_non_empty(name, "name")
        require(value, "value")
        return self.with_environment((*self.environment, (name, value)))

    def clear_environment(self) -> SpawnOptions:
        return self.with_environment(())

    def set_environment(self, name: str, value: str | None) -> SpawnOptions:
        options = self.unset_environment(name)
        return options if value is None else options.add_environment(name, value)

    def unset_environment(self, name: str) -> SpawnOptions:
        require_non_empty(name, "name")
        if not any(_same_name(key, name) for key, _ in self.environment):
            return self
        return self.with_environment(
            (key, value) for key, value in self.environment if not _same_name(key, name)
        )

    def environment_dict(self) -> dict[str, str]:
        """Resolve the pairs to a mapping where later duplicates win."""

        resolved: dict[str, str] = {}
        for name, value in self.environment:
            if ENVIRONMENT_NAMES_IGNORE_CASE:
                for existing in [key for key in resolved if _same_name(key, name)]:
                    del resolved[existing]
            resolved[name] = value
        return resolved

    # -- arguments --------------------------------------------------------------

    def with_arguments(self, value: ProgramArguments) -> SpawnOptions:
        require(value, "value")
        if value is self.arguments or (not value and not self.arguments):
            return self
        return replace(self, arguments=value)

    def add_argument(self, *values: str) -> SpawnOptions:
        return self.add_arguments(values)

    def add_arguments(self, values: Iterable[str]) -> SpawnOptions:
        require(values, "values")
        return self.with_arguments(self.arguments.extend(values))

    def clear_arguments(self) -> SpawnOptions:
        return self.with_arguments(ProgramArguments.EMPTY)

    def set_command_line(self, value: str) -> SpawnOptions:
        return self.with_arguments(ProgramArguments.parse(value))

    # -- application ------------------------------------------------------------

    def update(self, target: StartTarget) -> None:
        """Apply the working directory and replace the target's environment."""

        require(target, "target")
        target.working_directory = self.working_directory
        environment = target.environment
        environment.clear()
        environment.update(self.environment_dict())


@dataclass(slots=True)
class ProcessStartInfo:
    """Everything needed to hand one program launch to `subprocess.Popen`."""

    file_name: str
    arguments: str = ""
    working_directory: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    create_no_window: bool = True

    def popen_args(self, os_name: str | None = None) -> str | list[str]:
        if (os_name or os.name) == "nt":
            command = join_command_line([self.file_name])
            return f"{command} {self.arguments}" if self.arguments else command
        return [self.file_name, *split_command_line(self.arguments)]
