"""CLI entrypoint for procspawn."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import rich_click as click

from procspawn import __version__
from procspawn.controllers import JoinCommand, RunCommand, SpawnCliController, SplitCommand
from procspawn.errors import ProcessExitError, SpawnError

click.rich_click.USE_MARKDOWN = True
SPAWN_CONTROLLER = SpawnCliController()


@click.group()
@click.version_option(version=__version__, prog_name="procspawn")
def procspawn() -> None:
    """Run programs and stream their output."""


def _parse_env(
    _ctx: click.Context,
    _param: click.Parameter,
    values: tuple[str, ...],
) -> tuple[tuple[str, str], ...]:
    pairs: list[tuple[str, str]] = []
    for value in values:
        name, sep, text = value.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"Expected NAME=VALUE, got {value!r}.")
        pairs.append((name, text))
    return tuple(pairs)


@procspawn.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option(
    "--cwd",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for the program.",
)
@click.option(
    "--env",
    "environment",
    multiple=True,
    callback=_parse_env,
    help="Set NAME=VALUE in the program environment. Can be repeated.",
)
@click.option("--unset", multiple=True, help="Remove a variable from the environment.")
@click.option("--clear-env", is_flag=True, default=False, help="Start from an empty environment.")
@click.option(
    "--stderr/--no-stderr",
    "show_stderr",
    default=True,
    show_default=True,
    help="Include standard error lines, prefixed with [stderr].",
)
@click.argument("path")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(  # noqa: PLR0913
    cwd: Path | None,
    environment: tuple[tuple[str, str], ...],
    unset: tuple[str, ...],
    clear_env: bool,
    show_stderr: bool,
    path: str,
    args: tuple[str, ...],
) -> None:
    """Run PATH with ARGS and print its output lines."""

    try:
        _emit_lines(
            SPAWN_CONTROLLER.run(
                RunCommand(
                    path=path,
                    args=args,
                    working_directory=str(cwd) if cwd is not None else None,
                    environment=environment,
                    unset=unset,
                    clear_environment=clear_env,
                    show_stderr=show_stderr,
                ),
            ),
        )
    except ProcessExitError as error:
        exception = click.ClickException(str(error))
        exception.exit_code = _exit_status(error.exit_code)
        raise exception from error
    except SpawnError as error:
        raise click.ClickException(str(error)) from error


@procspawn.command("split")
@click.argument("line")
def split(line: str) -> None:
    """Print each argument of a command LINE on its own line."""

    _emit_lines(SPAWN_CONTROLLER.split(SplitCommand(line=line)))


@procspawn.command("join", context_settings={"ignore_unknown_options": True})
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def join(args: tuple[str, ...]) -> None:
    """Quote ARGS into a single command line."""

    _emit_lines(SPAWN_CONTROLLER.join(JoinCommand(args=args)))


def _exit_status(exit_code: int) -> int:
    """Shell-style status: a child killed by signal N exits with 128 + N."""
    return 128 - exit_code if exit_code < 0 else exit_code


def _emit_lines(lines: Iterable[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    procspawn()
