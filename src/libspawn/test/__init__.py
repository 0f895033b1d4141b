"""Helpers for testing code built on libspawn."""

from __future__ import annotations

from .retry import retry_until

__all__ = ["retry_until"]
