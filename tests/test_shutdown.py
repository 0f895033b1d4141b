"""Tests for libspawn.shutdown."""

from __future__ import annotations

import logging
import threading

import pytest

from libspawn.shutdown import CleanupHandle, ShutdownCoordinator, get_coordinator


def test_register_returns_unique_handles() -> None:
    """Each registration gets its own handle."""
    coordinator = ShutdownCoordinator()
    first = coordinator.register(lambda: None)
    second = coordinator.register(lambda: None, name="named")
    assert first != second
    assert first.name == "cleanup-1"
    assert second.name == "named"
    assert first in coordinator
    assert len(coordinator) == 2


def test_unregister_is_idempotent() -> None:
    """Removing twice reports False the second time and never raises."""
    coordinator = ShutdownCoordinator()
    handle = coordinator.register(lambda: None)
    assert coordinator.unregister(handle) is True
    assert coordinator.unregister(handle) is False
    assert handle not in coordinator


def test_unregister_foreign_handle() -> None:
    """Handles from another coordinator are not removed."""
    coordinator = ShutdownCoordinator()
    other = ShutdownCoordinator()
    handle = other.register(lambda: None)
    assert coordinator.unregister(handle) is False
    assert handle in other


def test_run_calls_in_registration_order() -> None:
    """Callbacks run oldest first and are consumed."""
    coordinator = ShutdownCoordinator()
    calls: list[str] = []
    for name in ("a", "b", "c"):
        coordinator.register(lambda name=name: calls.append(name), name=name)
    assert coordinator.pending() == ["a", "b", "c"]

    assert coordinator.run() == 3
    assert calls == ["a", "b", "c"]
    assert len(coordinator) == 0
    assert coordinator.run() == 0
    assert calls == ["a", "b", "c"]


def test_removed_callback_never_runs() -> None:
    """An unregistered callback is skipped by run()."""
    coordinator = ShutdownCoordinator()
    calls: list[str] = []
    handle = coordinator.register(lambda: calls.append("removed"))
    coordinator.register(lambda: calls.append("kept"))
    coordinator.unregister(handle)
    coordinator.run()
    assert calls == ["kept"]


def test_unregister_after_run() -> None:
    """Deregistering a handle that run() consumed is harmless."""
    coordinator = ShutdownCoordinator()
    handle = coordinator.register(lambda: None)
    coordinator.run()
    assert coordinator.unregister(handle) is False


def test_failing_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    """A raising callback does not stop the others."""
    coordinator = ShutdownCoordinator()
    calls: list[str] = []

    def explode() -> None:
        msg = "boom"
        raise RuntimeError(msg)

    coordinator.register(explode, name="explode")
    coordinator.register(lambda: calls.append("after"))

    with caplog.at_level(logging.ERROR, logger="libspawn.shutdown"):
        assert coordinator.run() == 2

    assert calls == ["after"]
    assert "shutdown callback explode failed" in caplog.text


def test_callback_may_unregister_itself() -> None:
    """Callbacks run outside the registry lock."""
    coordinator = ShutdownCoordinator()
    handles: list[CleanupHandle] = []
    results: list[bool] = []
    handles.append(
        coordinator.register(lambda: results.append(coordinator.unregister(handles[0])))
    )
    coordinator.run()
    assert results == [False]


def test_concurrent_registration() -> None:
    """Registrations from many threads are all kept."""
    coordinator = ShutdownCoordinator()
    handles: list[CleanupHandle] = []
    lock = threading.Lock()

    def register_many() -> None:
        for _ in range(100):
            handle = coordinator.register(lambda: None)
            with lock:
                handles.append(handle)

    threads = [threading.Thread(target=register_many) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(coordinator) == 800
    assert len({handle.id for handle in handles}) == 800


def test_get_coordinator_is_shared() -> None:
    """The process-wide coordinator is a singleton."""
    assert get_coordinator() is get_coordinator()
    assert isinstance(get_coordinator(), ShutdownCoordinator)


def test_run_skips_callbacks_of_other_process(monkeypatch: pytest.MonkeyPatch) -> None:
    """Callbacks inherited through fork belong to the parent and never run."""
    coordinator = ShutdownCoordinator()
    calls: list[str] = []
    coordinator.register(lambda: calls.append("parent"), name="parent")

    monkeypatch.setattr("libspawn.shutdown.os.getpid", lambda: -1)
    coordinator.register(lambda: calls.append("child"), name="child")

    assert coordinator.run() == 1
    assert calls == ["child"]
    assert len(coordinator) == 0


def test_close_runs_late_registrations(caplog: pytest.LogCaptureFixture) -> None:
    """Callbacks registered after close() run at once instead of never."""
    coordinator = ShutdownCoordinator()
    calls: list[str] = []
    coordinator.register(lambda: calls.append("early"))

    assert coordinator.closed is False
    assert coordinator.close() == 1
    assert coordinator.closed is True

    with caplog.at_level(logging.WARNING, logger="libspawn.shutdown"):
        handle = coordinator.register(lambda: calls.append("late"), name="late")

    assert calls == ["early", "late"]
    assert handle not in coordinator
    assert coordinator.unregister(handle) is False
    assert "shutdown already ran, running callback late now" in caplog.text
