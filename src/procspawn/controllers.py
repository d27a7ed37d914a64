"""CLI controller for spawn and command-line commands."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from procspawn.arguments import ProgramArguments, join_command_line, split_command_line
from procspawn.config import Settings
from procspawn.options import SpawnOptions
from procspawn.spawner import SysSpawner

STDERR_PREFIX = "[stderr] "


@dataclass(slots=True)
class RunCommand:
    """Input for the run CLI command."""

    path: str
    args: tuple[str, ...] = ()
    working_directory: str | None = None
    environment: tuple[tuple[str, str], ...] = ()
    unset: tuple[str, ...] = ()
    clear_environment: bool = False
    show_stderr: bool = True


@dataclass(slots=True)
class SplitCommand:
    """Input for the split CLI command."""

    line: str


@dataclass(slots=True)
class JoinCommand:
    """Input for the join CLI command."""

    args: tuple[str, ...]


class SpawnCliController:
    """CLI controller for process spawning operations."""

    def run(self, command: RunCommand) -> Iterator[str]:
        """Run a program, yielding its output lines as they arrive."""

        settings = Settings.from_env()
        options = _build_options(command)
        spawner = SysSpawner(settings.spawner)
        stderr_map = (lambda line: STDERR_PREFIX + line) if command.show_stderr else None
        with spawner.spawn(command.path, options, lambda line: line, stderr_map) as lines:
            yield from lines

    def split(self, command: SplitCommand) -> Iterator[str]:
        """Show how a command line breaks into arguments."""

        yield from split_command_line(command.line)

    def join(self, command: JoinCommand) -> Iterator[str]:
        """Quote arguments into one command line."""

        yield join_command_line(command.args)


def _build_options(command: RunCommand) -> SpawnOptions:
    options = SpawnOptions.create().with_arguments(ProgramArguments.from_list(command.args))
    if command.working_directory is not None:
        options = options.with_working_directory(command.working_directory)
    if command.clear_environment:
        options = options.clear_environment()
    for name in command.unset:
        options = options.unset_environment(name)
    for name, value in command.environment:
        options = options.set_environment(name, value)
    return options
