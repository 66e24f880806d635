"""Bounded parallel task runner."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Optional

from updatekit.download.cancellation import CancellationToken
from updatekit.errors import OperationCancelledError

LOGGER = logging.getLogger(__name__)

Task = Callable[[], None]


def run_bounded(
    task_count: int,
    max_workers: int,
    task_factory: Callable[[int], Task],
    token: Optional[CancellationToken] = None,
) -> BaseException | None:
    """Run ``task_count`` tasks with at most ``max_workers`` at a time.

    Tasks are dispatched in index order. Every task is attempted even after
    one fails; the first error to surface is returned once all have finished.

    Passing a ``token`` lets the caller stop waiting: once it is triggered,
    tasks not yet started are dropped and running ones are abandoned to
    finish in the background. The first error seen so far is returned, or
    OperationCancelledError when there is none.
    """
    if task_count <= 0:
        return None

    workers = max(1, min(max_workers, task_count))
    first_error: BaseException | None = None
    stopped: Future = Future()
    on_cancel = stopped.set_result
    if token is not None:
        token.add_callback(on_cancel)

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="part")
    futures: Dict[Future, int] = {}
    pending: set = set()
    try:
        for index in range(task_count):
            if stopped.done():
                break
            try:
                task = task_factory(index)
            except Exception as exc:
                LOGGER.debug("Cannot create task %d: %s", index, exc)
                if first_error is None:
                    first_error = exc
                continue
            futures[executor.submit(task)] = index

        pending = set(futures)
        while pending and not stopped.done():
            done, _ = wait(pending | {stopped}, return_when=FIRST_COMPLETED)
            for future in done:
                if future is stopped:
                    continue
                pending.discard(future)
                error = future.exception()
                if error is None:
                    continue
                LOGGER.debug("Task %d failed: %s", futures[future], error)
                if first_error is None:
                    first_error = error

        if stopped.done() and (pending or len(futures) < task_count):
            LOGGER.debug("Abandoning %d running tasks: %s", len(pending), stopped.result())
            if first_error is None:
                first_error = OperationCancelledError(stopped.result())
    finally:
        if token is not None:
            token.remove_callback(on_cancel)
        executor.shutdown(wait=not pending, cancel_futures=bool(pending))

    return first_error
