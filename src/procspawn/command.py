"""Reusable, immutable spawn commands with chainable option mutators."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

from procspawn.arguments import ProgramArguments, as_arguments
from procspawn.errors import require
from procspawn.options import SpawnOptions
from procspawn.spawner import Spawner, SysSpawner, abandon_on_drop

T = TypeVar("T")
K = TypeVar("K")

ArgumentsLike = ProgramArguments | str | Sequence[str]


@dataclass(frozen=True, slots=True)
class SpawnCommand(Generic[T]):
    """A program, its options and line selectors; iterating runs it.

    Every iteration starts a fresh invocation, so one command can be run
    many times and from many threads.
    """

    spawner: Spawner
    path: str
    options: SpawnOptions
    stdout_map: Callable[[str], T] | None
    stderr_map: Callable[[str], T] | None

    def with_options(self, options: SpawnOptions) -> SpawnCommand[T]:
        require(options, "options")
        return self if options is self.options else replace(self, options=options)

    def add_argument(self, *values: str) -> SpawnCommand[T]:
        return self.with_options(self.options.add_argument(*values))

    def add_arguments(self, values: Iterable[str]) -> SpawnCommand[T]:
        return self.with_options(self.options.add_arguments(values))

    def clear_arguments(self) -> SpawnCommand[T]:
        return self.with_options(self.options.clear_arguments())

    def set_command_line(self, value: str) -> SpawnCommand[T]:
        return self.with_options(self.options.set_command_line(value))

    def clear_environment(self) -> SpawnCommand[T]:
        return self.with_options(self.options.clear_environment())

    def add_environment(self, name: str, value: str) -> SpawnCommand[T]:
        return self.with_options(self.options.add_environment(name, value))

    def set_environment(self, name: str, value: str | None) -> SpawnCommand[T]:
        return self.with_options(self.options.set_environment(name, value))

    def unset_environment(self, name: str) -> SpawnCommand[T]:
        return self.with_options(self.options.unset_environment(name))

    def working_directory(self, value: str) -> SpawnCommand[T]:
        return self.with_options(self.options.with_working_directory(value))

    def __iter__(self) -> Iterator[T]:
        lines = self.spawner.spawn(self.path, self.options, self.stdout_map, self.stderr_map)
        return abandon_on_drop(iter(lines))


def spawn_command(
    path: str,
    args: ArgumentsLike,
    stdout_map: Callable[[str], T] | None,
    stderr_map: Callable[[str], T] | None,
    spawner: Spawner | None = None,
) -> SpawnCommand[T]:
    require(path, "path")
    return SpawnCommand(
        spawner=spawner or SysSpawner(),
        path=path,
        options=SpawnOptions.create().with_arguments(as_arguments(args)),
        stdout_map=stdout_map,
        stderr_map=stderr_map,
    )


def spawn_output(
    path: str,
    args: ArgumentsLike,
    spawner: Spawner | None = None,
) -> SpawnCommand[str]:
    """Command yielding standard output lines only; stderr is drained and dropped."""

    return spawn_command(path, args, lambda line: line, None, spawner)


def spawn_tagged(
    path: str,
    args: ArgumentsLike,
    stdout_key: K,
    stderr_key: K,
    spawner: Spawner | None = None,
) -> SpawnCommand[tuple[K, str]]:
    """Command yielding ``(key, line)`` pairs that tell the two streams apart."""

    return spawn_command(
        path,
        args,
        lambda line: (stdout_key, line),
        lambda line: (stderr_key, line),
        spawner,
    )
