"""libspawn, spawn and supervise child processes without leaving orphans."""

from .__about__ import (
    __author__,
    __copyright__,
    __description__,
    __email__,
    __license__,
    __package_name__,
    __title__,
    __version__,
)
from .command import Command, spawn
from .exc import (
    CommandNotFound,
    CommandPermissionDenied,
    LibSpawnException,
    SpawnError,
    UnknownSignal,
)
from .options import Options
from .result import Result
from .shutdown import ShutdownCoordinator, get_coordinator

__all__ = (
    "Command",
    "CommandNotFound",
    "CommandPermissionDenied",
    "LibSpawnException",
    "Options",
    "Result",
    "ShutdownCoordinator",
    "SpawnError",
    "UnknownSignal",
    "__author__",
    "__copyright__",
    "__description__",
    "__email__",
    "__license__",
    "__package_name__",
    "__title__",
    "__version__",
    "get_coordinator",
    "spawn",
)
