"""Metadata for libspawn package."""

from __future__ import annotations

__title__ = "libspawn"
__package_name__ = "libspawn"
__version__ = "0.1.0"
__description__ = "Spawn and supervise child processes, never leaving orphans behind"
__email__ = "maintainers@libspawn.dev"
__author__ = "libspawn contributors"
__github__ = "https://github.com/libspawn/libspawn"
__docs__ = "https://github.com/libspawn/libspawn#readme"
__tracker__ = "https://github.com/libspawn/libspawn/issues"
__pypi__ = "https://pypi.org/project/libspawn/"
__license__ = "MIT"
__copyright__ = "Copyright 2026- libspawn contributors"
