import asyncio
import contextlib
import logging
from typing import Optional

from lecture_summary.schemas.summary import SummaryJob
from lecture_summary.services.summary.orchestrator import SummaryJobRunner
from lecture_summary.utils.errors import JobQueueClosedError
from lecture_summary.utils.metrics import summary_job_queue_depth, summary_jobs_in_flight


class SummaryJobQueue:
    """
    In-process FIFO of summary jobs consumed by a fixed pool of worker tasks.

    Nothing is persisted: jobs still queued when the drain timeout expires
    are lost.
    """

    def __init__(self, runner: SummaryJobRunner, workers: int = 4, maxsize: int = 0):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._runner = runner
        self._worker_count = workers
        self._queue: asyncio.Queue[SummaryJob] = asyncio.Queue(maxsize=maxsize)
        self._workers: list[asyncio.Task] = []
        self._blocked_puts: set[asyncio.Future] = set()
        self._closed = False

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Spawns the worker tasks. Must be called from a running event loop."""
        if self._workers:
            return
        self._closed = False
        loop = asyncio.get_running_loop()
        self._workers = [
            loop.create_task(self._work(index), name=f"summary-worker-{index}")
            for index in range(self._worker_count)
        ]
        logging.info(f"Started {self._worker_count} summary workers")

    async def enqueue(self, job: SummaryJob) -> None:
        """
        Adds a job to the queue, waiting for space if the queue is bounded and full.

        Raises:
            JobQueueClosedError: If the queue is shutting down.
        """
        if self._closed:
            raise JobQueueClosedError("Summary job queue is shut down")
        if self._queue.full():
            # stop() cancels blocked puts so callers are not stranded
            put = asyncio.ensure_future(self._queue.put(job))
            self._blocked_puts.add(put)
            try:
                await put
            except asyncio.CancelledError:
                if self._closed and put.cancelled():
                    raise JobQueueClosedError("Summary job queue is shut down")
                raise
            finally:
                self._blocked_puts.discard(put)
        else:
            self._queue.put_nowait(job)
        summary_job_queue_depth.set(self._queue.qsize())
        logging.info(
            f"[{job.lecture_id}]: Summary job queued from {job.trigger} "
            f"(queue depth {self._queue.qsize()})"
        )

    async def join(self) -> None:
        """Waits until every queued job has been processed."""
        await self._queue.join()

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stops accepting jobs, drains the queue for up to `timeout` seconds, then
        cancels the workers.
        """
        self._closed = True
        for put in list(self._blocked_puts):
            put.cancel()
        if self._workers:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logging.warning(
                    f"Summary queue did not drain within {timeout}s; "
                    f"dropping {self._queue.qsize()} queued job(s)"
                )

        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        for worker in workers:
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        summary_job_queue_depth.set(self._queue.qsize())

    async def _work(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            summary_job_queue_depth.set(self._queue.qsize())
            summary_jobs_in_flight.inc()
            try:
                await self._runner.run(job)
            except Exception:
                logging.exception(
                    f"[{job.lecture_id}]: Summary worker {index} crashed on a job"
                )
            finally:
                summary_jobs_in_flight.dec()
                self._queue.task_done()
