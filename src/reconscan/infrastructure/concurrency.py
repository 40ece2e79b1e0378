"""Bounded-concurrency primitives shared by every scanner.

A ``WorkerPool`` is the asyncio rendition of the classic job-channel /
N-workers / result-channel shape: both queues are bounded, ``close()``
closes the job queue, waits for in-flight workers, then closes the result
queue. Consumers must keep draining ``results()`` while the pool shuts
down, otherwise workers blocked on a full result queue never finish.
"""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from reconscan.core.exceptions import AggregateError, PoolClosedError
from reconscan.core.logging import get_logger

TJob = TypeVar("TJob")
TResult = TypeVar("TResult")
T = TypeVar("T")
R = TypeVar("R")

WorkerFunc = Callable[[int, TJob], Awaitable[TResult | None]]

_CLOSE: Any = object()

logger = get_logger("concurrency")


class WorkerPool(Generic[TJob, TResult]):
    """Pool of workers consuming a bounded job queue."""

    def __init__(self, workers: int = 10, buffer_size: int = 0) -> None:
        if workers <= 0:
            workers = 10
        if buffer_size <= 0:
            buffer_size = workers * 2

        self.workers = workers
        self.buffer_size = buffer_size
        self._jobs: asyncio.Queue[Any] = asyncio.Queue(maxsize=buffer_size)
        self._results: asyncio.Queue[Any] = asyncio.Queue(maxsize=buffer_size)
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = asyncio.Event()
        self._closing = False

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def closed(self) -> bool:
        return self._closing

    def start(self, fn: WorkerFunc[TJob, TResult]) -> None:
        """Start the workers. fn receives the worker index and the job."""
        if self._tasks:
            raise RuntimeError("Worker pool already started")
        self._tasks = [
            asyncio.create_task(self._worker(worker_id, fn), name=f"worker-{worker_id}")
            for worker_id in range(self.workers)
        ]

    async def _worker(self, worker_id: int, fn: WorkerFunc[TJob, TResult]) -> None:
        while not self._stopped.is_set():
            job = await self._jobs.get()
            try:
                if job is _CLOSE:
                    return
                if self._stopped.is_set():
                    continue

                try:
                    result = await fn(worker_id, job)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.debug("worker_job_failed", worker=worker_id, error=str(e))
                    continue

                if result is not None and not self._stopped.is_set():
                    await self._results.put(result)
            finally:
                self._jobs.task_done()

    async def submit(self, job: TJob) -> None:
        """Queue a job, waiting for space in the job queue."""
        if self._closing or self._stopped.is_set():
            raise PoolClosedError("Cannot submit to a closed worker pool")
        await self._jobs.put(job)

    def try_submit(self, job: TJob) -> bool:
        """Queue a job without waiting; False when the queue is full or closed."""
        if self._closing or self._stopped.is_set():
            return False
        try:
            self._jobs.put_nowait(job)
        except asyncio.QueueFull:
            return False
        return True

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._jobs.join()

    async def close(self) -> None:
        """Close the job queue, wait for the workers, then close the result queue."""
        if self._closing:
            return
        self._closing = True

        if not self._stopped.is_set():
            for _ in self._tasks:
                await self._jobs.put(_CLOSE)

        await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._stopped.is_set():
            self._discard(self._results)
        await self._results.put(_CLOSE)

    def cancel(self) -> None:
        """Stop claiming jobs and abandon pending result delivery."""
        self._stopped.set()
        for task in self._tasks:
            task.cancel()
        # Unblock any producer waiting for space in the job queue.
        self._discard(self._jobs, task_done=True)

    @staticmethod
    def _discard(queue: asyncio.Queue[Any], task_done: bool = False) -> None:
        while True:
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if task_done:
                queue.task_done()

    async def results(self) -> AsyncIterator[TResult]:
        """Iterate results until the pool is closed."""
        while True:
            item = await self._results.get()
            if item is _CLOSE:
                return
            yield item

    async def _feed(self, jobs: Iterable[TJob] | AsyncIterable[TJob]) -> None:
        try:
            if isinstance(jobs, AsyncIterable):
                async for job in jobs:
                    await self.submit(job)
            else:
                for job in jobs:
                    await self.submit(job)
        finally:
            if not self._stopped.is_set():
                await self.close()

    async def stream(
        self,
        jobs: Iterable[TJob] | AsyncIterable[TJob],
        fn: WorkerFunc[TJob, TResult],
    ) -> AsyncIterator[TResult]:
        """Feed jobs, run the workers, and yield results as they complete.

        Leaving the iteration early (including by cancellation) stops the
        workers and the feeder before returning.
        """
        self.start(fn)
        feeder = asyncio.create_task(self._feed(jobs), name="feeder")
        finished = False
        try:
            async for result in self.results():
                yield result
            finished = True
            await feeder
        finally:
            if not finished:
                self.cancel()
                feeder.cancel()
                await asyncio.gather(feeder, return_exceptions=True)
                await self.close()

    async def __aenter__(self) -> "WorkerPool[TJob, TResult]":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is not None:
            self.cancel()
        await self.close()


class Semaphore:
    """Counting semaphore with a non-blocking acquire."""

    def __init__(self, n: int) -> None:
        if n <= 0:
            raise ValueError("Semaphore size must be positive")
        self._slots: asyncio.Queue[None] = asyncio.Queue(maxsize=n)

    @property
    def in_use(self) -> int:
        return self._slots.qsize()

    async def acquire(self) -> None:
        await self._slots.put(None)

    def release(self) -> None:
        self._slots.get_nowait()

    def try_acquire(self) -> bool:
        try:
            self._slots.put_nowait(None)
        except asyncio.QueueFull:
            return False
        return True

    async def __aenter__(self) -> "Semaphore":
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.release()


class WaitGroup:
    """Counter of outstanding tasks that can be awaited until it reaches zero."""

    def __init__(self) -> None:
        self._count = 0
        self._zero = asyncio.Event()
        self._zero.set()

    @property
    def count(self) -> int:
        return self._count

    def add(self, delta: int = 1) -> None:
        self._count += delta
        if self._count < 0:
            raise ValueError("WaitGroup counter went negative")
        if self._count == 0:
            self._zero.set()
        else:
            self._zero.clear()

    def done(self) -> None:
        self.add(-1)

    async def wait(self) -> None:
        await self._zero.wait()


class ErrorPolicy(str, Enum):
    """How concurrent helpers report failures."""

    FIRST = "first"  # raise the first failure, skip jobs not yet started
    COLLECT = "collect"  # run everything, raise AggregateError with all failures


def _raise_errors(errors: list[BaseException], policy: ErrorPolicy) -> None:
    if not errors:
        return
    if policy is ErrorPolicy.FIRST:
        raise errors[0]
    raise AggregateError(errors)


async def parallel_map(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    workers: int = 0,
    policy: ErrorPolicy = ErrorPolicy.FIRST,
) -> list[R]:
    """Apply fn to every item with bounded concurrency, keeping input order."""
    items = list(items)
    if not items:
        return []
    if workers <= 0:
        workers = len(items)

    results: list[Any] = [None] * len(items)
    errors: list[BaseException] = []
    semaphore = Semaphore(workers)

    async def run(index: int, item: T) -> None:
        async with semaphore:
            if errors and policy is ErrorPolicy.FIRST:
                return
            try:
                results[index] = await fn(item)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                errors.append(e)

    await asyncio.gather(*(run(i, item) for i, item in enumerate(items)))
    _raise_errors(errors, policy)
    return results


async def fan_out(
    *fns: Callable[[], Awaitable[Any]],
    policy: ErrorPolicy = ErrorPolicy.FIRST,
) -> None:
    """Run independent coroutine factories concurrently and wait for all."""
    outcomes = await asyncio.gather(*(fn() for fn in fns), return_exceptions=True)
    errors = [o for o in outcomes if isinstance(o, Exception)]
    for outcome in outcomes:
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
    _raise_errors(errors, policy)
