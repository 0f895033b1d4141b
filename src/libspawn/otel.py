"""OpenTelemetry helpers for libspawn.

Spans go through the OpenTelemetry API, which records nothing until the
application installs an SDK tracer provider.
"""

from __future__ import annotations

import contextlib
import typing as t

from opentelemetry import trace

from .__about__ import __version__

#: Instrumentation scope name for spans emitted by libspawn
TRACER_NAME = "libspawn"


def get_tracer() -> trace.Tracer:
    """Return the libspawn tracer from the active tracer provider.

    Examples
    --------
    >>> from libspawn.otel import get_tracer
    >>> _ = get_tracer()
    """
    return trace.get_tracer(TRACER_NAME, __version__)


@contextlib.contextmanager
def start_span(name: str, **attributes: t.Any) -> t.Iterator[trace.Span]:
    """Start a span named ``name``; ``None`` attribute values are dropped.

    Examples
    --------
    >>> from libspawn.otel import start_span
    >>> with start_span("libspawn.test", command="true") as span:
    ...     span.set_attribute("libspawn.pid", 1)
    """
    attrs = {
        f"libspawn.{key}": value for key, value in attributes.items() if value is not None
    }
    with get_tracer().start_as_current_span(name, attributes=attrs) as span:
        yield span


__all__ = [
    "TRACER_NAME",
    "get_tracer",
    "start_span",
]
