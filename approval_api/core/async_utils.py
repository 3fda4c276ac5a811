from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Coroutine, Generic, Sequence, TypeVar

import anyio

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one task in a settled fan-out: exactly one of value/error is set."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Run an async coroutine from sync code without asyncio.run in request threads.

    - In FastAPI sync endpoints, uses anyio.from_thread.run to execute on the main loop.
    - Falls back to anyio.run when no AnyIO worker thread is available (e.g., CLI/tests).
    - Raises if called from an async context in the same thread (use await instead).
    """

    async def _runner() -> T:
        if timeout is not None:
            with anyio.fail_after(timeout):
                return await coro
        return await coro

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return anyio.run(_runner)
        raise RuntimeError("run_async called from async context; use await instead")


async def gather_settled(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    *,
    timeout: float | None = None,
) -> list[Settled[T]]:
    """
    Run every task concurrently and collect one Settled per task, in input order.

    A failing task never cancels its siblings. With ``timeout`` set, a task that
    does not finish in time is recorded as a TimeoutError instead of hanging the
    whole group.
    """
    results: list[Settled[T]] = [Settled() for _ in tasks]

    async def _run(index: int, task: Callable[[], Awaitable[T]]) -> None:
        try:
            if timeout is not None:
                with anyio.fail_after(timeout):
                    results[index].value = await task()
            else:
                results[index].value = await task()
        except Exception as exc:  # collected, reported by the caller
            results[index].error = exc

    async with anyio.create_task_group() as tg:
        for index, task in enumerate(tasks):
            tg.start_soon(_run, index, task)

    return results
