#!/usr/bin/env python
"""Demonstration of supervising child processes from asyncio code.

Shows awaiting a command, running several concurrently, and composing a
timeout with ``kill()``.
"""

from __future__ import annotations

import asyncio
import sys
import time

from libspawn import Result, spawn


async def demo_await() -> None:
    """Demo: await a single command."""
    print("=" * 60)
    print("Demo 1: Await a command")
    print("=" * 60)

    result: Result = await spawn("true")
    print(f"true -> {result}")
    result = await spawn("false")
    print(f"false -> {result}")


async def demo_concurrent() -> None:
    """Demo: several sleeps finish in roughly the time of one."""
    print("\n" + "=" * 60)
    print("Demo 2: Concurrent commands")
    print("=" * 60)

    start = time.perf_counter()
    results = await asyncio.gather(
        *(spawn("sleep", {"args": ["0.5"]}) for _ in range(4)),
    )
    elapsed = time.perf_counter() - start
    print(f"{len(results)} commands finished in {elapsed:.2f}s")


async def demo_timeout() -> None:
    """Demo: kill a command that outlives its deadline."""
    print("\n" + "=" * 60)
    print("Demo 3: Timeout composed by the caller")
    print("=" * 60)

    cmd = spawn("sleep", {"args": ["30"]})
    try:
        await asyncio.wait_for(cmd, timeout=0.5)
    except asyncio.TimeoutError:
        print("deadline passed, sending SIGTERM")
        cmd.kill()
    print(f"sleep -> {await cmd}")


async def demo_missing() -> None:
    """Demo: spawn failures surface through the result."""
    print("\n" + "=" * 60)
    print("Demo 4: Missing executable")
    print("=" * 60)

    cmd = spawn("libspawn-demo-does-not-exist")
    print(f"running: {cmd.is_running()}")
    print(f"error: {cmd.result().exception()}")


async def main() -> int:
    await demo_await()
    await demo_concurrent()
    await demo_timeout()
    await demo_missing()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
