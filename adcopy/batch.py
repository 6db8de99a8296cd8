"""Fan generation jobs out in bounded groups with per-job retry."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from adcopy.config import BatchConfig
from adcopy.schema import GenerationOutcome, GenerationRequest

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"

Worker = Callable[[GenerationRequest], Awaitable[GenerationOutcome]]
ProgressCallback = Callable[[int, int], None]


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchJob:
    id: str
    row_index: int
    options: GenerationRequest
    retries: int = 0
    status: JobStatus = JobStatus.PENDING
    result: Optional[GenerationOutcome] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    successful: List[BatchJob] = field(default_factory=list)
    failed: List[BatchJob] = field(default_factory=list)
    total_time_ms: int = 0
    cache_hits: int = 0


@dataclass(frozen=True)
class _Attempt:
    """What one job's retry loop produced."""

    outcome: Optional[GenerationOutcome]
    error: Optional[str]
    retries: int


def chunk(items: Sequence, size: int) -> List[list]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchProcessor:
    """Run jobs group by group: concurrent inside a group, sequential across groups."""

    def __init__(self, cfg: Optional[BatchConfig] = None) -> None:
        self.cfg = cfg or BatchConfig()
        self._active: Dict[str, BatchJob] = {}
        self._tasks: Dict[str, "asyncio.Task[_Attempt]"] = {}

    async def process_batch(
        self,
        jobs: Sequence[Tuple[int, GenerationRequest]],
        worker: Worker,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        start = time.monotonic()
        total = len(jobs)
        size = max(1, self.cfg.batch_size)
        batch_jobs = [
            BatchJob(id=f"job_{row_index}_{uuid.uuid4().hex[:8]}", row_index=row_index, options=opts)
            for row_index, opts in jobs
        ]
        groups = chunk(batch_jobs, size)
        logger.info("batch: %d job(s) in %d group(s)", total, len(groups))

        result = BatchResult()
        for i, group in enumerate(groups):
            logger.debug("batch: group %d/%d (%d jobs)", i + 1, len(groups), len(group))
            tasks = []
            for job in group:
                job.status = JobStatus.PROCESSING
                task = asyncio.ensure_future(self._run_with_retry(job.id, job.options, worker))
                self._active[job.id] = job
                self._tasks[job.id] = task
                tasks.append(task)

            settled = await asyncio.gather(*tasks, return_exceptions=True)

            for job, outcome in zip(group, settled):
                self._active.pop(job.id, None)
                self._tasks.pop(job.id, None)
                self._settle(job, outcome)
                if job.status == JobStatus.COMPLETED:
                    result.successful.append(job)
                    if job.result is not None and job.result.cache_hit:
                        result.cache_hits += 1
                else:
                    result.failed.append(job)

            if on_progress is not None:
                on_progress(min((i + 1) * size, total), total)

            if i < len(groups) - 1:
                await asyncio.sleep(self.cfg.group_pause_seconds)

        result.total_time_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "batch: done, %d ok / %d failed, %d cache hit(s), %d ms",
            len(result.successful),
            len(result.failed),
            result.cache_hits,
            result.total_time_ms,
        )
        return result

    async def _run_with_retry(
        self, job_id: str, request: GenerationRequest, worker: Worker
    ) -> _Attempt:
        """Call *worker*, retrying on exceptions with a linearly growing delay.

        A returned outcome, successful or not, ends the loop: only raised
        exceptions are treated as transient.
        """
        max_retries = self.cfg.max_retries
        last_error = "Job processing failed"
        for attempt in range(max_retries + 1):
            if attempt:
                await asyncio.sleep(self.cfg.retry_delay_seconds * attempt)
            try:
                outcome = await worker(request)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                last_error = str(exc) or type(exc).__name__
                if attempt < max_retries:
                    logger.warning(
                        "batch: job %s failed, retrying (%d/%d): %s",
                        job_id,
                        attempt + 1,
                        max_retries,
                        last_error,
                    )
                continue
            return _Attempt(outcome=outcome, error=None, retries=attempt)

        logger.error("batch: job %s failed after %d retries: %s", job_id, max_retries, last_error)
        return _Attempt(outcome=None, error=last_error, retries=max_retries)

    @staticmethod
    def _settle(job: BatchJob, settled: Union[_Attempt, BaseException]) -> None:
        if job.status == JobStatus.FAILED:
            # Cancelled while in flight; cancel_job already recorded it.
            return
        if isinstance(settled, asyncio.CancelledError):
            job.status = JobStatus.FAILED
            job.error = CANCELLED_MESSAGE
            return
        if isinstance(settled, BaseException):
            job.status = JobStatus.FAILED
            job.error = str(settled) or type(settled).__name__
            return

        job.retries = settled.retries
        job.result = settled.outcome
        if settled.outcome is not None and settled.outcome.success:
            job.status = JobStatus.COMPLETED
        else:
            job.status = JobStatus.FAILED
            job.error = settled.error or (settled.outcome.error if settled.outcome else None)

    # ── Inspection / cancellation ─────────────────────────────────────────────

    def get_active_jobs(self) -> List[BatchJob]:
        return list(self._active.values())

    def get_job_status(self, job_id: str) -> Optional[BatchJob]:
        return self._active.get(job_id)

    def cancel_job(self, job_id: str) -> bool:
        job = self._active.get(job_id)
        if job is None or job.status != JobStatus.PROCESSING:
            return False
        job.status = JobStatus.FAILED
        job.error = CANCELLED_MESSAGE
        del self._active[job_id]
        task = self._tasks.pop(job_id, None)
        if task is not None:
            task.cancel()
        logger.warning("batch: job %s cancelled", job_id)
        return True

    def cancel_all_jobs(self) -> int:
        ids = list(self._active)
        cancelled = sum(1 for job_id in ids if self.cancel_job(job_id))
        logger.info("batch: cancelled %d active job(s)", cancelled)
        return cancelled

    def stats(self) -> dict:
        return {
            "active_jobs": len(self._active),
            "batch_size": self.cfg.batch_size,
            "max_retries": self.cfg.max_retries,
        }
