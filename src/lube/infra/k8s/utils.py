"""Bridge between the synchronous CLI and the async core."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Drive ``coro`` to completion from synchronous code.

    Without a running event loop in this thread the coroutine gets a fresh
    loop. Inside a running loop it gets a fresh loop on a worker thread,
    since a running loop cannot be re-entered.

    Example:
        outcomes = run_sync(orchestrator.deploy_directory(Path("bundle")))
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="lube-run-sync") as pool:
        return pool.submit(asyncio.run, coro).result()
