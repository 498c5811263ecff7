"""
Periodic background tasks tied to the FastAPI lifespan.

A failing run is logged and skipped; the loop keeps going until cancelled
at shutdown.
"""
import asyncio
from typing import Awaitable, Callable, List

from fastapi import FastAPI

from ..logging_config import StructuredLogger

_TASKS_STATE_KEY = "_mapto_periodic_tasks"


def start_periodic_task(
    app: FastAPI,
    *,
    name: str,
    interval_seconds: float,
    func: Callable[[], Awaitable[None]],
    logger: StructuredLogger,
    wait_first: bool = True,
) -> asyncio.Task:
    """Run ``func`` every ``interval_seconds`` and register the task on app.state."""
    tasks = getattr(app.state, _TASKS_STATE_KEY, None)
    if tasks is None:
        tasks = []
        setattr(app.state, _TASKS_STATE_KEY, tasks)

    async def _runner() -> None:
        if wait_first:
            await asyncio.sleep(float(interval_seconds))

        while True:
            try:
                await func()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Periodic task {name} failed", error=e, task=name)

            await asyncio.sleep(float(interval_seconds))

    task = asyncio.create_task(_runner(), name=name)
    tasks.append(task)
    return task


async def stop_periodic_tasks(app: FastAPI, *, logger: StructuredLogger) -> None:
    """Cancel every registered periodic task and wait for them to finish."""
    tasks: List[asyncio.Task] = getattr(app.state, _TASKS_STATE_KEY, None)
    if not tasks:
        return

    for task in tasks:
        task.cancel()

    try:
        await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        setattr(app.state, _TASKS_STATE_KEY, [])
        logger.info("Periodic tasks stopped", count=len(tasks))
