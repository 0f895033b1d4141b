"""Spawn child processes and supervise their lifecycle.

libspawn.command
~~~~~~~~~~~~~~~~

:func:`spawn` starts a child process and returns a :class:`Command`: a handle
that can be queried for liveness, awaited for a :class:`~libspawn.result.Result`
and used to send signals. The host never waits on the child, but every child
still alive when the host interpreter exits is sent ``SIGTERM`` by the
:class:`~libspawn.shutdown.ShutdownCoordinator`.

Examples
--------
>>> cmd = spawn("true")
>>> cmd.wait(timeout=10)
Result(code=0, signal=None)
>>> cmd.is_running()
False

>>> cmd = spawn("sleep", {"args": ["5"]})
>>> cmd.kill()
>>> cmd.wait(timeout=10)
Result(code=None, signal='SIGTERM')
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import signal as _signal
import subprocess
import threading
import typing as t

from . import exc, otel
from ._internal import trace
from .options import Options
from .result import Result
from .shutdown import get_coordinator

if t.TYPE_CHECKING:
    from collections.abc import Callable, Generator, Mapping

    from typing_extensions import TypeAlias

    from .shutdown import ShutdownCoordinator

    SignalLike: TypeAlias = t.Union[str, int, _signal.Signals]

logger = logging.getLogger(__name__)

#: Signal sent by :meth:`Command.kill` by default, and to live children at host exit
DEFAULT_SIGNAL = "SIGTERM"

_CONSTRUCT_KEY = object()


def resolve_signal(sig: SignalLike) -> _signal.Signals:
    """Return the host signal for a name such as ``"SIGKILL"`` or a number.

    Examples
    --------
    >>> resolve_signal("SIGKILL").name
    'SIGKILL'

    >>> resolve_signal(15).name
    'SIGTERM'

    >>> resolve_signal("TERM")
    Traceback (most recent call last):
    ...
    libspawn.exc.UnknownSignal: Unknown signal: TERM
    """
    if isinstance(sig, _signal.Signals):
        return sig
    if isinstance(sig, str):
        try:
            return _signal.Signals[sig]
        except KeyError:
            raise exc.UnknownSignal(sig) from None
    if isinstance(sig, int) and not isinstance(sig, bool):
        try:
            return _signal.Signals(sig)
        except ValueError:
            raise exc.UnknownSignal(sig) from None
    raise exc.UnknownSignal(sig)


class Command:
    """Represents a command running in a sub-process.

    Instances are created by :func:`spawn` only.

    Parameters
    ----------
    key : object
        Construction key private to this module.
    name : str
        The executable, for display.
    result : :class:`concurrent.futures.Future`
        Future for the command's :class:`~libspawn.result.Result`, settled by
        :func:`spawn` only. Callers receive a copy from :meth:`result`.
    on_kill : callable
        Called with the signal when :meth:`kill` is called.
    """

    def __init__(
        self,
        key: object,
        name: str,
        result: concurrent.futures.Future[Result],
        on_kill: Callable[[SignalLike], None],
    ) -> None:
        if key is not _CONSTRUCT_KEY:
            msg = "Command objects are created by libspawn.spawn()"
            raise TypeError(msg)
        self._name = name
        self._future = result
        self._on_kill = on_kill
        self._result: concurrent.futures.Future[Result] = concurrent.futures.Future()
        self._result.set_running_or_notify_cancel()
        result.add_done_callback(self._publish)

    def __repr__(self) -> str:
        if not self._future.done():
            state = "running"
        elif self._future.exception() is not None:
            state = f"failed: {self._future.exception()}"
        else:
            state = str(self._future.result())
        return f"{self.__class__.__name__}({self._name!r}, {state})"

    def __await__(self) -> Generator[t.Any, None, Result]:
        """Wait for the result from a coroutine without blocking the event loop.

        Cancelling the awaiting task does not affect the command.
        """
        return asyncio.wrap_future(self._future).__await__()

    def _publish(self, future: concurrent.futures.Future[Result]) -> None:
        try:
            if future.exception() is not None:
                self._result.set_exception(future.exception())
            else:
                self._result.set_result(future.result())
        except concurrent.futures.InvalidStateError:
            logger.debug("result future of %s was settled by a caller", self._name)

    def is_running(self) -> bool:
        """Return whether this command is still running."""
        return not self._future.done()

    def result(self) -> concurrent.futures.Future[Result]:
        """Return a future for the result of this command.

        The same future is returned on every call. If the process could not be
        started, the future holds a :exc:`~libspawn.exc.SpawnError`. Settling
        it from outside does not change the command's own state.
        """
        return self._result

    def kill(self, signal: SignalLike = DEFAULT_SIGNAL) -> None:
        """Send a signal to the underlying process.

        Does nothing once the command has terminated.

        Parameters
        ----------
        signal : str, int or :class:`signal.Signals`
            The signal to send; defaults to ``SIGTERM``.

        Raises
        ------
        :exc:`libspawn.exc.UnknownSignal`
            If the process is alive and ``signal`` is unknown to the host.
        """
        self._on_kill(signal)

    def wait(self, timeout: float | None = None) -> Result:
        """Block until the command terminates and return its result.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait. On expiry :exc:`concurrent.futures.TimeoutError`
            is raised and the command keeps running.

        Raises
        ------
        :exc:`libspawn.exc.SpawnError`
            If the process could not be started.
        """
        return self._future.result(timeout=timeout)


def _ignore_kill(signal: SignalLike) -> None:
    """Kill hook of a command whose process never started."""


def spawn(
    command: str,
    options: Options | Mapping[str, t.Any] | None = None,
    *,
    coordinator: ShutdownCoordinator | None = None,
) -> Command:
    """Spawn a child process.

    The returned :class:`Command` may be used to wait for the process result or
    to send signals to the process. This call does not block on the child.

    Parameters
    ----------
    command : str
        The executable to spawn, looked up on ``PATH``.
    options : :class:`~libspawn.options.Options` or mapping, optional
        ``args``, ``env`` and ``stdio`` for the child. A mapping is converted with
        :meth:`Options.coerce() <libspawn.options.Options.coerce>`.
    coordinator : :class:`~libspawn.shutdown.ShutdownCoordinator`, optional
        Where to register the host-exit cleanup. Defaults to the process-wide
        coordinator from :func:`~libspawn.shutdown.get_coordinator`.

    Returns
    -------
    :class:`Command`

    Raises
    ------
    :exc:`libspawn.exc.InvalidStdio`
        If the stdio configuration is invalid. Failures of the operating system
        to create the process are reported through :meth:`Command.result`.
    """
    opts = Options.coerce(options)
    if coordinator is None:
        coordinator = get_coordinator()
    argv = [command, *opts.args]
    stdin, stdout, stderr = opts.popen_stdio()
    future: concurrent.futures.Future[Result] = concurrent.futures.Future()

    with otel.start_span("libspawn.spawn", command=command) as span, trace.span(
        "spawn", command=command
    ) as trace_fields:
        logger.debug("spawning %s", command, extra={"argv": argv})
        try:
            proc = subprocess.Popen(
                argv,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                env=opts.resolved_env(),
                close_fds=True,
            )
        except OSError as error:
            spawn_error = exc.SpawnError.from_os_error(command, error)
            logger.warning("%s", spawn_error, extra={"argv": argv})
            span.set_attribute("libspawn.error", type(spawn_error).__name__)
            trace_fields["error"] = type(spawn_error).__name__
            future.set_exception(spawn_error)
            return Command(_CONSTRUCT_KEY, command, future, _ignore_kill)
        span.set_attribute("libspawn.pid", proc.pid)
        trace_fields["child_pid"] = proc.pid

    # settled by on_exit only, never cancelled
    future.set_running_or_notify_cancel()

    name = f"{command}[{proc.pid}]"
    lock = threading.Lock()
    process: subprocess.Popen[bytes] | None = proc

    def kill_on_host_exit() -> None:
        with lock:
            if process is None:
                return
            logger.debug("host exiting, sending %s to %s", DEFAULT_SIGNAL, name)
            trace.point("host_exit_kill", child=name)
            process.send_signal(resolve_signal(DEFAULT_SIGNAL))

    handle = coordinator.register(kill_on_host_exit, name=name)

    def on_exit(returncode: int) -> None:
        nonlocal process
        with lock:
            process = None
        coordinator.unregister(handle)
        result = Result.from_returncode(returncode)
        logger.debug("%s terminated: %s", name, result)
        trace.point("exit", child=name, code=result.code, signal=result.signal)
        future.set_result(result)

    def kill(signal: SignalLike) -> None:
        with lock:
            if future.done() or process is None:
                return
            signum = resolve_signal(signal)
            logger.debug("sending %s to %s", signum.name, name)
            trace.point("kill", child=name, signal=signum.name)
            process.send_signal(signum)

    def watch() -> None:
        on_exit(proc.wait())

    # daemon: a running child must not keep the host alive
    watcher = threading.Thread(
        target=watch,
        name=f"libspawn-watch-{proc.pid}",
        daemon=True,
    )
    watcher.start()

    return Command(_CONSTRUCT_KEY, command, future, kill)


__all__ = [
    "DEFAULT_SIGNAL",
    "Command",
    "resolve_signal",
    "spawn",
]
