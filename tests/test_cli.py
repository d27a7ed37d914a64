from __future__ import annotations

import os
import signal
import sys

import allure
import pytest
from click.testing import CliRunner

from procspawn import __version__
from procspawn.main import procspawn

pytestmark = [
    allure.epic("Process Spawning"),
    allure.feature("CLI"),
]


def _flat(output: str) -> str:
    """Collapse whitespace and panel borders so wrapped error text can be matched."""
    return " ".join(output.replace("\u2502", " ").split())


def test_version() -> None:
    assert __version__


def test_version_option() -> None:
    runner = CliRunner()
    result = runner.invoke(procspawn, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_split_prints_one_argument_per_line() -> None:
    result = CliRunner().invoke(procspawn, ["split", 'a "b c" d\\"e'])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["a", "b c", 'd"e']


def test_join_quotes_arguments() -> None:
    result = CliRunner().invoke(procspawn, ["join", "a", "b c", 'say "hi"'])

    assert result.exit_code == 0
    assert result.output.strip() == 'a "b c" "say \\"hi\\""'


def test_run_streams_output(tmp_path) -> None:
    code = "import os, sys; print(os.environ['GREETING']); print('oops', file=sys.stderr)"
    result = CliRunner().invoke(
        procspawn,
        ["run", "--cwd", str(tmp_path), "--env", "GREETING=hello", sys.executable, "-c", code],
    )

    assert result.exit_code == 0, result.output
    assert "hello" in result.output.splitlines()
    assert "[stderr] oops" in result.output


def test_run_without_stderr() -> None:
    code = "import sys; print('kept'); print('oops', file=sys.stderr)"
    result = CliRunner().invoke(procspawn, ["run", "--no-stderr", sys.executable, "-c", code])

    assert result.exit_code == 0
    assert "[stderr]" not in result.output
    assert "kept" in result.output


def test_run_propagates_child_exit_code() -> None:
    code = "import sys; print('partial'); sys.exit(3)"
    result = CliRunner().invoke(procspawn, ["run", sys.executable, "-c", code])

    assert result.exit_code == 3
    assert "partial" in result.output
    assert "non-zero exit code 3" in _flat(result.output)


def test_run_reports_start_failure(tmp_path) -> None:
    result = CliRunner().invoke(procspawn, ["run", str(tmp_path / "missing-program")])

    assert result.exit_code == 1
    assert "failed to start" in _flat(result.output)


def test_run_rejects_malformed_env() -> None:
    result = CliRunner().invoke(procspawn, ["run", "--env", "NOVALUE", sys.executable])

    assert result.exit_code == 2
    assert "NAME=VALUE" in _flat(result.output)


@pytest.mark.skipif(os.name == "nt", reason="POSIX signals")
def test_run_maps_signal_death_to_shell_status() -> None:
    code = "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"
    result = CliRunner().invoke(procspawn, ["run", sys.executable, "-c", code])

    assert result.exit_code == 128 + signal.SIGTERM
