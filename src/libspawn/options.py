"""Configuration for a spawned command.

libspawn.options
~~~~~~~~~~~~~~~~

:class:`Options` normalizes the ``args``, ``env`` and ``stdio`` settings handed to
:func:`libspawn.spawn` and translates them into :class:`subprocess.Popen`
arguments.
"""

from __future__ import annotations

import dataclasses
import os
import subprocess
import typing as t
from collections.abc import Mapping, Sequence

from typing_extensions import Literal, TypeAlias

from .exc import InvalidStdio

#: Stream mode names understood by :class:`Options`
StdioMode: TypeAlias = Literal["ignore", "inherit"]

if t.TYPE_CHECKING:
    #: A single stream: mode name, ``None`` (inherit), fd or file-like object
    StdioStream: TypeAlias = t.Union[StdioMode, None, int, t.IO[t.Any]]
    #: One stream setting for all three, or ``(stdin, stdout, stderr)``
    StdioConfig: TypeAlias = t.Union[StdioStream, Sequence[StdioStream]]
    #: What :func:`subprocess.Popen` accepts for each stream
    _FILE: TypeAlias = t.Union[None, int, t.IO[t.Any]]

_STREAM_NAMES = ("stdin", "stdout", "stderr")


def _resolve_stream(value: t.Any) -> _FILE:
    """Translate one stream setting into a :class:`subprocess.Popen` argument.

    Examples
    --------
    >>> _resolve_stream("ignore") == subprocess.DEVNULL
    True
    >>> _resolve_stream("inherit") is None
    True
    >>> _resolve_stream(2)
    2
    """
    if value is None or value == "inherit":
        return None
    if value == "ignore":
        return subprocess.DEVNULL
    if value == "pipe":
        raise InvalidStdio(value, "commands do not expose their streams")
    if isinstance(value, str):
        raise InvalidStdio(value, "unknown stream mode")
    if isinstance(value, bool):
        raise InvalidStdio(value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidStdio(value, "file descriptors must be non-negative")
        return value
    if callable(getattr(value, "fileno", None)):
        return t.cast("t.IO[t.Any]", value)
    raise InvalidStdio(value)


@dataclasses.dataclass(frozen=True)
class Options:
    """Options for an executed command.

    Attributes
    ----------
    args : sequence of str, optional
        Command line arguments, not including the executable. ``None`` means
        no arguments.
    env : mapping, optional
        Command environment. ``None`` inherits the host's environment as it is
        at the time of the spawn.
    stdio : str, int, file object or sequence of three
        IO configuration for the child's stdin, stdout and stderr. A single
        value applies to all three streams. Defaults to ``"ignore"``, which is
        also used when ``None`` is given. Use ``"inherit"`` to share the host's
        streams.

    Examples
    --------
    >>> Options()
    Options(args=(), env=None, stdio='ignore')

    >>> Options(args=["-c", "exit 3"]).args
    ('-c', 'exit 3')

    >>> Options(args=None, stdio=None)
    Options(args=(), env=None, stdio='ignore')

    >>> Options(stdio="pipe")
    Traceback (most recent call last):
    ...
    libspawn.exc.InvalidStdio: Invalid stdio configuration: 'pipe' (commands do not expose their streams)
    """

    args: Sequence[str] | None = ()
    env: Mapping[str, str] | None = None
    stdio: StdioConfig = "ignore"

    def __post_init__(self) -> None:
        if self.args is None:
            object.__setattr__(self, "args", ())
        if self.stdio is None:
            object.__setattr__(self, "stdio", "ignore")
        if isinstance(self.args, (str, bytes)):
            msg = "args must be a sequence of strings, not a single string"
            raise TypeError(msg)
        object.__setattr__(self, "args", tuple(str(arg) for arg in self.args))
        if self.env is not None:
            object.__setattr__(self, "env", dict(self.env))
        if isinstance(self.stdio, list):
            object.__setattr__(self, "stdio", tuple(self.stdio))
        # validate eagerly so spawn() fails before a process exists
        self.popen_stdio()

    @classmethod
    def coerce(cls, options: Options | Mapping[str, t.Any] | None = None) -> Options:
        """Return ``options`` as an :class:`Options` instance.

        Examples
        --------
        >>> Options.coerce(None)
        Options(args=(), env=None, stdio='ignore')

        >>> Options.coerce({"args": ["5"]}).args
        ('5',)

        >>> Options.coerce({"argv": ["5"]})
        Traceback (most recent call last):
        ...
        TypeError: Unknown command options: argv
        """
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        unknown = sorted(set(options) - _OPTION_KEYS)
        if unknown:
            msg = f"Unknown command options: {', '.join(unknown)}"
            raise TypeError(msg)
        return cls(**options)

    def resolved_env(self) -> dict[str, str]:
        """Return the environment for the child.

        Examples
        --------
        >>> Options(env={"A": "1"}).resolved_env()
        {'A': '1'}

        >>> Options().resolved_env() == dict(os.environ)
        True
        """
        if self.env is None:
            return dict(os.environ)
        return dict(self.env)

    def popen_stdio(self) -> tuple[_FILE, _FILE, _FILE]:
        """Return ``(stdin, stdout, stderr)`` arguments for :class:`subprocess.Popen`.

        Examples
        --------
        >>> Options().popen_stdio() == (subprocess.DEVNULL,) * 3
        True

        >>> Options(stdio=["ignore", "inherit", 2]).popen_stdio()[1:]
        (None, 2)
        """
        stdio = self.stdio
        if isinstance(stdio, (str, int)) or hasattr(stdio, "fileno"):
            stream = _resolve_stream(stdio)
            return stream, stream, stream
        if not isinstance(stdio, Sequence) or len(stdio) != len(_STREAM_NAMES):
            raise InvalidStdio(stdio, "expected one value or one per stream")
        stdin, stdout, stderr = (_resolve_stream(value) for value in stdio)
        return stdin, stdout, stderr


_OPTION_KEYS = frozenset(f.name for f in dataclasses.fields(Options))
