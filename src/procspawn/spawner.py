"""Run an external program and stream its output lines as one sequence.

Each invocation runs four independent units: the child process, one reader
thread per output stream and an exit watcher. Readers push mapped lines onto
a single queue; the watcher waits for the process to exit, joins both readers
and only then pushes the one terminal item (completion or error). The
consumer pulls from that queue, so any error surfaces after every line that
was produced before it.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
import weakref
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import IO, Generic, Protocol, TypeVar

from procspawn.arguments import ProgramArguments, as_arguments
from procspawn.config import Settings, SpawnerSettings
from procspawn.errors import ProcessExitError, ProcessStartError, StreamReadError, require
from procspawn.options import ProcessStartInfo, SpawnOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DONE = object()
_PUT_POLL_SECONDS = 0.1


@dataclass(slots=True)
class _Failure:
    error: BaseException


class SpawnState(str, Enum):
    """Lifecycle of one spawn invocation."""

    RUNNING = "running"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


_TERMINAL_STATES = frozenset({SpawnState.COMPLETED, SpawnState.FAILED, SpawnState.ABANDONED})


class Spawner(Protocol):
    """Protocol implemented by process spawners."""

    def spawn(
        self,
        path: str,
        options: SpawnOptions,
        stdout_map: Callable[[str], T] | None,
        stderr_map: Callable[[str], T] | None,
    ) -> Iterator[T]:
        """Start ``path`` and return its mapped output lines."""


class SpawnInvocation(Generic[T]):
    """One running program and the ordered sequence of its output.

    Iterating yields mapped stdout and stderr lines until the program exits.
    A non-zero exit or a failed read is raised at the position where it
    occurred; nothing follows it. Closing the invocation early abandons it.
    """

    def __init__(
        self,
        process: subprocess.Popen[str],
        *,
        path: str,
        stdout_map: Callable[[str], T] | None,
        stderr_map: Callable[[str], T] | None,
        settings: SpawnerSettings,
    ) -> None:
        self._process = process
        self._path = path
        self._settings = settings
        self._pid = process.pid
        self._state = SpawnState.RUNNING
        self._channel: queue.Queue[object] = queue.Queue(maxsize=settings.channel_max_size)
        self._abandoned = threading.Event()
        self._state_lock = threading.Lock()
        self._error_lock = threading.Lock()
        self._error: BaseException | None = None

        assert process.stdout is not None and process.stderr is not None
        self._readers = [
            self._start_thread(self._read_stream, process.stdout, "stdout", stdout_map),
            self._start_thread(self._read_stream, process.stderr, "stderr", stderr_map),
        ]
        self._watcher = self._start_thread(self._watch_exit)

    def _start_thread(self, target: Callable[..., None], *args: object) -> threading.Thread:
        name = f"procspawn-{self._pid}-{args[1] if args else 'exit'}"
        thread = threading.Thread(target=target, args=args, daemon=True, name=name)
        thread.start()
        return thread

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def path(self) -> str:
        return self._path

    @property
    def state(self) -> SpawnState:
        return self._state

    @property
    def exit_code(self) -> int | None:
        return self._process.returncode

    # -- producers ---------------------------------------------------------------

    def _put(self, item: object) -> None:
        while not self._abandoned.is_set():
            try:
                self._channel.put(item, timeout=_PUT_POLL_SECONDS)
            except queue.Full:
                continue
            return

    def _record_error(self, error: BaseException) -> None:
        with self._error_lock:
            if self._error is None:
                self._error = error

    def _read_stream(
        self,
        stream: IO[str],
        name: str,
        selector: Callable[[str], T] | None,
    ) -> None:
        try:
            with stream:
                for raw in stream:
                    if selector is None or self._abandoned.is_set():
                        continue
                    line = raw[:-1] if raw.endswith("\n") else raw
                    try:
                        value = selector(line)
                    except Exception as error:  # noqa: BLE001
                        self._record_error(error)
                        # keep draining so the child never blocks on a full pipe
                        selector = None
                        continue
                    self._put(value)
        except (OSError, ValueError) as error:
            self._record_error(
                StreamReadError(self._path, pid=self._pid, stream=name, reason=str(error)),
            )

    def _watch_exit(self) -> None:
        terminal: object = _DONE
        try:
            with self._process as process:
                returncode = process.wait()
                with self._state_lock:
                    if self._state is SpawnState.RUNNING:
                        self._state = SpawnState.DRAINING
                for reader in self._readers:
                    reader.join()
            logger.debug(
                "Process %s (pid %d) exited with code %d", self._path, self._pid, returncode,
            )
            error = self._error
            if error is None and returncode != 0:
                error = ProcessExitError(self._path, pid=self._pid, exit_code=returncode)
            if error is not None:
                terminal = _Failure(error)
        except Exception as error:  # noqa: BLE001
            terminal = _Failure(error)
        finally:
            self._put(terminal)

    # -- consumer ----------------------------------------------------------------

    def __iter__(self) -> SpawnInvocation[T]:
        return self

    def __next__(self) -> T:
        if self._state in _TERMINAL_STATES or self._abandoned.is_set():
            raise StopIteration
        item = self._channel.get()
        if item is _DONE:
            self._finish(SpawnState.COMPLETED)
            raise StopIteration
        if isinstance(item, _Failure):
            self._finish(SpawnState.FAILED)
            raise item.error
        return item  # type: ignore[return-value]

    def _finish(self, state: SpawnState) -> None:
        with self._state_lock:
            self._state = state
        self._watcher.join()

    def close(self) -> None:
        """Abandon the invocation; the child is terminated unless configured otherwise."""

        with self._state_lock:
            if self._state in _TERMINAL_STATES:
                return
            self._state = SpawnState.ABANDONED
            self._abandoned.set()
        logger.debug("Process %s (pid %d) abandoned by consumer", self._path, self._pid)
        if self._settings.terminate_on_abandon:
            grace_seconds = self._settings.terminate_grace_seconds
            _terminate_process(self._process, grace_seconds)
            # descendants may still hold the pipes open
            self._watcher.join(timeout=grace_seconds + 1.0)

    def __enter__(self) -> SpawnInvocation[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class SysSpawner:
    """Spawner backed by `subprocess.Popen` and reader threads."""

    def __init__(self, settings: SpawnerSettings | None = None) -> None:
        self._settings = settings or Settings.from_env().spawner

    @property
    def settings(self) -> SpawnerSettings:
        return self._settings

    def spawn(
        self,
        path: str,
        options: SpawnOptions,
        stdout_map: Callable[[str], T] | None,
        stderr_map: Callable[[str], T] | None,
    ) -> SpawnInvocation[T]:
        require(path, "path")
        require(options, "options")

        start_info = ProcessStartInfo(file_name=path, arguments=str(options.arguments))
        options.update(start_info)
        process = _start_process(start_info, self._settings)
        logger.debug("Started %s (pid %d) in %s", path, process.pid, start_info.working_directory)
        return SpawnInvocation(
            process,
            path=path,
            stdout_map=stdout_map,
            stderr_map=stderr_map,
            settings=self._settings,
        )


def _start_process(
    start_info: ProcessStartInfo,
    settings: SpawnerSettings,
) -> subprocess.Popen[str]:
    creationflags = 0
    if start_info.create_no_window:
        creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    try:
        return subprocess.Popen(  # noqa: S603
            start_info.popen_args(),
            cwd=start_info.working_directory,
            env=start_info.environment,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding=settings.encoding,
            errors=settings.encoding_errors,
            creationflags=creationflags,
        )
    except (OSError, ValueError) as error:
        raise ProcessStartError(start_info.file_name, str(error)) from error


def _terminate_process(process: subprocess.Popen[str], grace_seconds: float) -> None:
    if process.poll() is not None:
        return
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        logger.warning("Process %d ignored termination, killing it", process.pid)
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=grace_seconds)


def _identity(line: str) -> str:
    return line


def spawn(  # noqa: PLR0913
    path: str,
    args: ProgramArguments | str | list[str] | tuple[str, ...],
    options: SpawnOptions | None = None,
    stdout_map: Callable[[str], T] | None = _identity,  # type: ignore[assignment]
    stderr_map: Callable[[str], T] | None = None,
    *,
    spawner: Spawner | None = None,
) -> Iterator[T]:
    """Start ``path`` with ``args`` and return its mapped output lines.

    ``args`` replaces any arguments carried by ``options``; options default
    to a snapshot of the current working directory and environment. Start
    errors raise here. Closing or dropping the returned iterator abandons the
    invocation.
    """

    arguments = as_arguments(args)
    effective = (options or SpawnOptions.create()).with_arguments(arguments)
    lines = (spawner or SysSpawner()).spawn(path, effective, stdout_map, stderr_map)
    return abandon_on_drop(lines)


def abandon_on_drop(lines: Iterator[T]) -> Iterator[T]:
    """Wrap ``lines`` so closing or discarding the wrapper also closes them.

    The wrapper is a generator; a finalizer covers one that is dropped before
    its first item is pulled, which a generator alone never cleans up.
    """

    wrapper = _closing(lines)
    close = getattr(lines, "close", None)
    if close is not None:
        weakref.finalize(wrapper, close)
    return wrapper


def _closing(lines: Iterator[T]) -> Iterator[T]:
    try:
        yield from lines
    finally:
        close = getattr(lines, "close", None)
        if close is not None:
            close()
