"""Spawn programs and stream their output as one ordered sequence."""

from procspawn.arguments import (
    ProgramArguments,
    as_arguments,
    join_command_line,
    split_command_line,
)
from procspawn.command import SpawnCommand, spawn_command, spawn_output, spawn_tagged
from procspawn.errors import (
    ArgumentError,
    ProcessExitError,
    ProcessStartError,
    SpawnError,
    StreamReadError,
)
from procspawn.options import ProcessStartInfo, SpawnOptions
from procspawn.spawner import SpawnInvocation, Spawner, SpawnState, SysSpawner, spawn

__version__ = "0.1.0"

__all__ = [
    "ArgumentError",
    "ProcessExitError",
    "ProcessStartError",
    "ProcessStartInfo",
    "ProgramArguments",
    "SpawnCommand",
    "SpawnError",
    "SpawnInvocation",
    "SpawnOptions",
    "SpawnState",
    "Spawner",
    "StreamReadError",
    "SysSpawner",
    "__version__",
    "as_arguments",
    "join_command_line",
    "spawn",
    "spawn_command",
    "spawn_output",
    "spawn_tagged",
    "split_command_line",
]
