"""Provide exceptions used by libspawn.

libspawn.exc
~~~~~~~~~~~~

Notes
-----
Exceptions in this module inherit from :exc:`LibSpawnException`. A signaled or
non-zero exit is *not* an error: it is reported as a
:class:`~libspawn.result.Result`.
"""

from __future__ import annotations

import typing as t


class LibSpawnException(Exception):
    """Base exception for all libspawn errors."""


class SpawnError(LibSpawnException):
    """Raised when the operating system declines to create the child process.

    The original :exc:`OSError` is kept as ``__cause__``.

    Examples
    --------
    >>> err = SpawnError("frobnicate", errno=13, strerror="Permission denied")
    >>> str(err)
    'Could not spawn frobnicate: Permission denied'
    >>> err.errno
    13
    """

    def __init__(
        self,
        command: str,
        errno: int | None = None,
        strerror: str | None = None,
        *args: object,
    ) -> None:
        self.command = command
        self.errno = errno
        self.strerror = strerror
        message = f"Could not spawn {command}"
        if strerror:
            message += f": {strerror}"
        super().__init__(message)

    @classmethod
    def from_os_error(cls, command: str, error: OSError) -> SpawnError:
        """Return the most specific :exc:`SpawnError` for ``error``.

        Examples
        --------
        >>> err = SpawnError.from_os_error(
        ...     "nope", FileNotFoundError(2, "No such file or directory")
        ... )
        >>> type(err).__name__
        'CommandNotFound'
        >>> isinstance(err, SpawnError)
        True
        """
        error_cls: type[SpawnError] = cls
        if isinstance(error, FileNotFoundError):
            error_cls = CommandNotFound
        elif isinstance(error, PermissionError):
            error_cls = CommandPermissionDenied
        spawn_error = error_cls(command, errno=error.errno, strerror=error.strerror)
        spawn_error.__cause__ = error
        return spawn_error


class CommandNotFound(SpawnError):
    """Raised when the executable does not exist."""


class CommandPermissionDenied(SpawnError):
    """Raised when the executable cannot be run by the host process."""


class UnknownSignal(LibSpawnException, ValueError):
    """Raised when a signal name or number is unknown to the host."""

    def __init__(self, signal: t.Any | None = None, *args: object) -> None:
        self.signal = signal
        super().__init__(f"Unknown signal: {signal!s}")


class InvalidStdio(LibSpawnException, ValueError):
    """Raised when a stdio configuration cannot be applied to a child process."""

    def __init__(self, value: t.Any | None = None, reason: str | None = None) -> None:
        self.value = value
        message = f"Invalid stdio configuration: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class WaitTimeout(LibSpawnException):
    """Raised when a function times out waiting for a condition."""
