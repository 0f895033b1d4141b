"""Lightweight JSONL tracing of child process lifecycles.

Enable with ``LIBSPAWN_TRACE=1``. Events are appended to
``LIBSPAWN_TRACE_PATH`` (default: ``libspawn-trace.jsonl`` in the temp dir).

Note
----
This is an internal API not covered by versioning policy.
"""

from __future__ import annotations

import contextlib
import contextvars
import itertools
import json
import os
import pathlib
import tempfile
import threading
import time
import typing as t

TRACE_PATH = os.getenv(
    "LIBSPAWN_TRACE_PATH",
    str(pathlib.Path(tempfile.gettempdir()) / "libspawn-trace.jsonl"),
)


def _env_flag(name: str) -> bool:
    value = os.getenv(name)
    if value is None:
        return False
    return value not in {"", "0", "false", "False", "no", "NO"}


TRACE_ENABLED = _env_flag("LIBSPAWN_TRACE")
TRACE_RESET = _env_flag("LIBSPAWN_TRACE_RESET")

_TRACE_STACK: contextvars.ContextVar[tuple[int, ...]] = contextvars.ContextVar(
    "libspawn_trace_stack", default=()
)
_TRACE_COUNTER = itertools.count(1)
_WRITE_LOCK = threading.Lock()


def reset_trace(path: str | None = None) -> None:
    if not TRACE_ENABLED:
        return
    target = path or TRACE_PATH
    with pathlib.Path(target).open("w", encoding="utf-8") as handle:
        handle.write("")


def _write_event(event: dict[str, t.Any]) -> None:
    event["pid"] = os.getpid()
    event["thread"] = threading.get_ident()
    line = json.dumps(event, sort_keys=False, default=str)
    # watcher threads write concurrently with the caller
    with _WRITE_LOCK, pathlib.Path(TRACE_PATH).open("a", encoding="utf-8") as handle:
        handle.write(line)
        handle.write("\n")


@contextlib.contextmanager
def span(name: str, **fields: t.Any) -> t.Iterator[dict[str, t.Any]]:
    """Time the enclosed block. Fields added to the yielded dict are recorded."""
    extra: dict[str, t.Any] = {}
    if not TRACE_ENABLED:
        yield extra
        return
    span_id = next(_TRACE_COUNTER)
    stack = _TRACE_STACK.get()
    parent_id = stack[-1] if stack else None
    _TRACE_STACK.set((*stack, span_id))
    start_ns = time.perf_counter_ns()
    try:
        yield extra
    finally:
        duration_ns = time.perf_counter_ns() - start_ns
        _TRACE_STACK.set(stack)
        event = {
            "event": name,
            "span_id": span_id,
            "parent_id": parent_id,
            "depth": len(stack),
            "start_ns": start_ns,
            "duration_ns": duration_ns,
        }
        event.update(fields)
        event.update(extra)
        _write_event(event)


def point(name: str, **fields: t.Any) -> None:
    if not TRACE_ENABLED:
        return
    event = {"event": name, "point": True, "ts_ns": time.perf_counter_ns()}
    event.update(fields)
    _write_event(event)


def summarize(path: str | None = None, limit: int = 20) -> str:
    """Summarize recorded spans and points by event name."""
    target = path or TRACE_PATH
    if not pathlib.Path(target).exists():
        return "libspawn trace: no data collected"

    totals: dict[str, dict[str, int]] = {}
    points: dict[str, int] = {}

    with pathlib.Path(target).open(encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            name = str(event.get("event", "unknown"))
            if event.get("point"):
                points[name] = points.get(name, 0) + 1
                continue
            duration = int(event.get("duration_ns", 0))
            entry = totals.setdefault(name, {"count": 0, "total_ns": 0, "max_ns": 0})
            entry["count"] += 1
            entry["total_ns"] += duration
            entry["max_ns"] = max(entry["max_ns"], duration)

    if not totals and not points:
        return "libspawn trace: no data collected"

    sorted_totals = sorted(
        totals.items(), key=lambda item: item[1]["total_ns"], reverse=True
    )
    lines = ["libspawn trace summary (ns):"]
    for name, stats in sorted_totals[:limit]:
        avg = stats["total_ns"] // max(stats["count"], 1)
        lines.append(
            f"- {name}: count={stats['count']} total={stats['total_ns']} avg={avg} "
            f"max={stats['max_ns']}"
        )
    if points:
        lines.append("libspawn trace events:")
        lines.extend(f"- {name}: count={count}" for name, count in sorted(points.items()))
    return "\n".join(lines)


if TRACE_ENABLED and TRACE_RESET:
    reset_trace()
