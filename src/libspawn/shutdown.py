"""Host-exit cleanup coordination.

libspawn.shutdown
~~~~~~~~~~~~~~~~~

A :class:`ShutdownCoordinator` holds the cleanup callbacks that must run when the
host interpreter exits, such as signaling children that are still alive. Each
:class:`~libspawn.command.Command` registers one callback and removes it when its
child exits, so a callback is removed exactly once: by whichever of the child's
exit or the host's exit happens first.

The process-wide coordinator from :func:`get_coordinator` runs via :mod:`atexit`.
Callbacks belong to the process that registered them: a forked copy of the host
never runs its parent's callbacks.
"""

from __future__ import annotations

import atexit
import dataclasses
import itertools
import logging
import os
import threading
import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CleanupHandle:
    """Token returned by :meth:`ShutdownCoordinator.register`."""

    id: int
    name: str


class ShutdownCoordinator:
    """Registry of callbacks to run once when the host shuts down.

    Examples
    --------
    >>> coordinator = ShutdownCoordinator()
    >>> calls = []
    >>> handle = coordinator.register(lambda: calls.append("a"), name="a")
    >>> _ = coordinator.register(lambda: calls.append("b"), name="b")
    >>> coordinator.pending()
    ['a', 'b']

    Removing a handle is idempotent:

    >>> coordinator.unregister(handle)
    True
    >>> coordinator.unregister(handle)
    False

    Running consumes every remaining callback:

    >>> coordinator.run()
    1
    >>> calls
    ['b']
    >>> len(coordinator)
    0
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._callbacks: dict[CleanupHandle, tuple[int, Callable[[], object]]] = {}
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._callbacks

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(pending={len(self)})"

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has run."""
        return self._closed

    def register(
        self,
        callback: Callable[[], object],
        *,
        name: str | None = None,
    ) -> CleanupHandle:
        """Add ``callback`` to run at shutdown and return its handle.

        Once the coordinator is closed there is no later shutdown to wait for,
        so ``callback`` runs immediately and the returned handle is already
        spent.
        """
        with self._lock:
            handle_id = next(self._ids)
            handle = CleanupHandle(id=handle_id, name=name or f"cleanup-{handle_id}")
            closed = self._closed
            if not closed:
                self._callbacks[handle] = (os.getpid(), callback)
        if closed:
            logger.warning(
                "shutdown already ran, running callback %s now", handle.name
            )
            _invoke(handle, callback)
        else:
            logger.debug("registered shutdown callback %s", handle.name)
        return handle

    def unregister(self, handle: CleanupHandle) -> bool:
        """Remove ``handle``. Return ``False`` if it was already removed or run."""
        with self._lock:
            removed = self._callbacks.pop(handle, None) is not None
        if removed:
            logger.debug("unregistered shutdown callback %s", handle.name)
        return removed

    def pending(self) -> list[str]:
        """Return the names of the registered callbacks, oldest first."""
        with self._lock:
            return [handle.name for handle in self._callbacks]

    def run(self) -> int:
        """Run and remove every registered callback. Return how many ran.

        Callbacks run outside the registry lock, so they may register or
        unregister freely. A callback that raises is logged and does not stop
        the remaining ones. Callbacks registered by another process, i.e.
        inherited through :func:`os.fork`, are dropped without running.
        """
        pid = os.getpid()
        with self._lock:
            callbacks = list(self._callbacks.items())
            self._callbacks.clear()

        ran = 0
        for handle, (owner, callback) in callbacks:
            if owner != pid:
                logger.debug(
                    "skipping shutdown callback %s of process %d", handle.name, owner
                )
                continue
            _invoke(handle, callback)
            ran += 1
        return ran

    def close(self) -> int:
        """Run every callback, then run later registrations immediately.

        Return how many callbacks ran.
        """
        with self._lock:
            self._closed = True
        return self.run()

    def _after_fork_in_child(self) -> None:
        # the parent's threads may have held the lock at fork time
        self._lock = threading.Lock()
        self._callbacks.clear()


def _invoke(handle: CleanupHandle, callback: Callable[[], object]) -> None:
    logger.debug("running shutdown callback %s", handle.name)
    try:
        callback()
    except Exception:
        logger.exception("shutdown callback %s failed", handle.name)


_coordinator: ShutdownCoordinator | None = None
_coordinator_lock = threading.Lock()


def get_coordinator() -> ShutdownCoordinator:
    """Return the process-wide coordinator, closed automatically at interpreter exit.

    A forked child starts with an empty registry.

    Examples
    --------
    >>> get_coordinator() is get_coordinator()
    True
    """
    global _coordinator
    with _coordinator_lock:
        if _coordinator is None:
            _coordinator = ShutdownCoordinator()
            atexit.register(_coordinator.close)
            os.register_at_fork(after_in_child=_coordinator._after_fork_in_child)
        return _coordinator


__all__ = [
    "CleanupHandle",
    "ShutdownCoordinator",
    "get_coordinator",
]
