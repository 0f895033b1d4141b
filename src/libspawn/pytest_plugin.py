"""libspawn pytest plugin."""

from __future__ import annotations

import concurrent.futures
import logging
import typing as t

import pytest

from libspawn._internal import trace
from libspawn.command import Command, spawn
from libspawn.shutdown import ShutdownCoordinator

if t.TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

#: Seconds a child gets to exit after ``SIGTERM`` at teardown before ``SIGKILL``
TEARDOWN_GRACE_SECONDS = 5.0


def pytest_terminal_summary(terminalreporter: pytest.TerminalReporter) -> None:
    """Print the lifecycle trace summary when ``LIBSPAWN_TRACE`` is set."""
    if not trace.TRACE_ENABLED:
        return
    terminalreporter.write_sep("-", "libspawn trace")
    terminalreporter.write_line(trace.summarize())


@pytest.fixture
def shutdown_coordinator(request: pytest.FixtureRequest) -> ShutdownCoordinator:
    """Return a fresh :class:`~libspawn.shutdown.ShutdownCoordinator`.

    It is run at teardown, so every child registered with it and still alive
    is sent ``SIGTERM``, as it would be at interpreter exit.

    >>> from libspawn.shutdown import ShutdownCoordinator

    >>> def test_example(shutdown_coordinator: ShutdownCoordinator) -> None:
    ...     assert len(shutdown_coordinator) == 0
    """
    coordinator = ShutdownCoordinator()

    def fin() -> None:
        ran = coordinator.run()
        if ran:
            logger.debug("signaled %d leftover child process(es)", ran)

    request.addfinalizer(fin)

    return coordinator


@pytest.fixture
def spawn_command(
    request: pytest.FixtureRequest,
    shutdown_coordinator: ShutdownCoordinator,
) -> Callable[..., Command]:
    """Return :func:`libspawn.spawn` bound to the test's coordinator.

    Commands still running at teardown are terminated and reaped.

    >>> def test_example(spawn_command) -> None:
    ...     cmd = spawn_command("sleep", {"args": ["30"]})
    ...     assert cmd.is_running()
    """
    commands: list[Command] = []

    def factory(*args: t.Any, **kwargs: t.Any) -> Command:
        kwargs.setdefault("coordinator", shutdown_coordinator)
        command = spawn(*args, **kwargs)
        commands.append(command)
        return command

    def fin() -> None:
        for command in commands:
            if not command.is_running():
                continue
            command.kill()
            try:
                command.wait(timeout=TEARDOWN_GRACE_SECONDS)
            except concurrent.futures.TimeoutError:
                logger.debug("%r ignored SIGTERM, sending SIGKILL", command)
                command.kill("SIGKILL")
                command.wait(timeout=TEARDOWN_GRACE_SECONDS)

    request.addfinalizer(fin)

    return t.cast("Callable[..., Command]", factory)
