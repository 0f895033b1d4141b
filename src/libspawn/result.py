"""Termination outcome of a child process."""

from __future__ import annotations

import dataclasses
import signal as _signal


@dataclasses.dataclass(frozen=True)
class Result:
    """Describe how a command terminated.

    Parameters
    ----------
    code : int, optional
        The exit code, or ``None`` if the command did not exit normally.
    signal : str, optional
        The name of the signal that killed the command, or ``None``.

    Examples
    --------
    >>> Result(code=0, signal=None)
    Result(code=0, signal=None)

    >>> print(Result(code=None, signal="SIGTERM"))
    Result(code=None, signal=SIGTERM)

    >>> Result(0, None) == Result(code=0, signal=None)
    True
    """

    code: int | None
    signal: str | None

    def __str__(self) -> str:
        return f"Result(code={self.code}, signal={self.signal})"

    @classmethod
    def from_returncode(cls, returncode: int) -> Result:
        """Build a :class:`Result` from a :attr:`subprocess.Popen.returncode`.

        Negative return codes mean the child was killed by signal ``-returncode``.

        Examples
        --------
        >>> Result.from_returncode(0)
        Result(code=0, signal=None)

        >>> Result.from_returncode(3)
        Result(code=3, signal=None)

        >>> Result.from_returncode(-15)
        Result(code=None, signal='SIGTERM')
        """
        if returncode >= 0:
            return cls(code=returncode, signal=None)
        try:
            name = _signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return cls(code=None, signal=name)
