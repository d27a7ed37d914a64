"""Shared test fixtures."""

from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import pytest

from procspawn.arguments import ProgramArguments
from procspawn.options import SpawnOptions

PYTHON = sys.executable


def python_args(code: str, *extra: str) -> ProgramArguments:
    """Arguments running ``code`` with the test interpreter."""

    return ProgramArguments.of("-c", textwrap.dedent(code), *extra)


@dataclass
class FakeSpawner:
    """Spawner returning canned (stream, line) pairs instead of running anything."""

    lines: list[tuple[str, str]] = field(default_factory=list)
    calls: list[tuple[str, SpawnOptions]] = field(default_factory=list)

    def spawn(
        self,
        path: str,
        options: SpawnOptions,
        stdout_map: Callable[[str], object] | None,
        stderr_map: Callable[[str], object] | None,
    ) -> Iterator[object]:
        self.calls.append((path, options))
        for stream, line in self.lines:
            selector = stdout_map if stream == "stdout" else stderr_map
            if selector is not None:
                yield selector(line)


@pytest.fixture()
def fake_spawner() -> FakeSpawner:
    return FakeSpawner(lines=[("stdout", "output"), ("stderr", "error")])


@pytest.fixture()
def python_options(tmp_path) -> SpawnOptions:
    """Options with the current environment and a scratch working directory."""

    return SpawnOptions.create().with_working_directory(str(tmp_path))
