"""Tests for adcopy/batch.py: grouping, retry, progress and cancellation."""

from __future__ import annotations

import asyncio

import pytest

from adcopy.batch import CANCELLED_MESSAGE, BatchProcessor, JobStatus, chunk
from adcopy.config import BatchConfig
from adcopy.schema import (
    AdGroupInfo,
    CampaignInfo,
    ClientProfile,
    GeneratedContent,
    GenerationOutcome,
    GenerationRequest,
)

pytestmark = pytest.mark.anyio


def _request(name: str = "Groupe") -> GenerationRequest:
    return GenerationRequest(
        model="mock:test",
        client=ClientProfile(id="acme"),
        campaign=CampaignInfo(name="Soldes"),
        ad_group=AdGroupInfo(name=name),
    )


def _jobs(n: int):
    return [(i + 1, _request(f"Groupe {i + 1}")) for i in range(n)]


def _ok(cache_hit: bool = False) -> GenerationOutcome:
    return GenerationOutcome(
        success=True,
        content=GeneratedContent(titles=["Titre"], descriptions=["Description"]),
        cache_hit=cache_hit,
    )


def _processor(**cfg) -> BatchProcessor:
    base = dict(batch_size=3, max_retries=2, retry_delay_seconds=0.0, group_pause_seconds=0.0)
    base.update(cfg)
    return BatchProcessor(BatchConfig(**base))


async def _always_ok(request):
    return _ok()


class TestProcessBatch:
    async def test_all_jobs_succeed(self):
        result = await _processor().process_batch(_jobs(7), _always_ok)
        assert len(result.successful) == 7
        assert result.failed == []
        assert sorted(j.row_index for j in result.successful) == list(range(1, 8))
        assert all(j.status == JobStatus.COMPLETED for j in result.successful)

    async def test_job_ids(self):
        result = await _processor().process_batch(_jobs(2), _always_ok)
        ids = [j.id for j in result.successful]
        assert ids[0].startswith("job_1_")
        assert len(set(ids)) == 2

    async def test_progress_reported_per_group(self):
        seen = []
        await _processor().process_batch(
            _jobs(7), _always_ok, on_progress=lambda done, total: seen.append((done, total))
        )
        assert seen == [(3, 7), (6, 7), (7, 7)]

    async def test_group_size_bounds_concurrency(self):
        running = 0
        peak = 0

        async def worker(request):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            running -= 1
            return _ok()

        await _processor(batch_size=2).process_batch(_jobs(5), worker)
        assert peak == 2

    async def test_groups_run_in_order(self):
        order = []

        async def worker(request):
            order.append(request.ad_group.name)
            return _ok()

        await _processor(batch_size=2).process_batch(_jobs(4), worker)
        assert set(order[:2]) == {"Groupe 1", "Groupe 2"}
        assert set(order[2:]) == {"Groupe 3", "Groupe 4"}

    async def test_cache_hits_counted(self):
        async def worker(request):
            return _ok(cache_hit=request.ad_group.name == "Groupe 2")

        result = await _processor().process_batch(_jobs(3), worker)
        assert result.cache_hits == 1

    async def test_empty_batch(self):
        result = await _processor().process_batch([], _always_ok)
        assert result.successful == [] and result.failed == []


class TestRetry:
    async def test_exception_is_retried(self):
        calls = 0

        async def worker(request):
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RuntimeError("timeout")
            return _ok()

        result = await _processor(batch_size=1).process_batch(_jobs(1), worker)
        assert len(result.successful) == 1
        assert result.successful[0].retries == 2

    async def test_retries_exhausted(self):
        async def worker(request):
            raise RuntimeError("service down")

        result = await _processor(max_retries=1).process_batch(_jobs(2), worker)
        assert len(result.failed) == 2
        assert result.failed[0].error == "service down"
        assert result.failed[0].status == JobStatus.FAILED

    async def test_failed_outcome_is_not_retried(self):
        calls = 0

        async def worker(request):
            nonlocal calls
            calls += 1
            return GenerationOutcome(success=False, error="Validation failed: x")

        result = await _processor().process_batch(_jobs(1), worker)
        assert calls == 1
        assert result.failed[0].error == "Validation failed: x"

    async def test_one_failure_does_not_stop_others(self):
        async def worker(request):
            if request.ad_group.name == "Groupe 2":
                raise RuntimeError("bad row")
            return _ok()

        result = await _processor(max_retries=0).process_batch(_jobs(4), worker)
        assert len(result.successful) == 3
        assert [j.row_index for j in result.failed] == [2]


class TestCancellation:
    async def test_cancel_job(self):
        processor = _processor()
        release = asyncio.Event()

        async def worker(request):
            await release.wait()
            return _ok()

        run = asyncio.ensure_future(processor.process_batch(_jobs(2), worker))
        while len(processor.get_active_jobs()) < 2:
            await asyncio.sleep(0)

        target = next(j for j in processor.get_active_jobs() if j.row_index == 1)
        assert processor.get_job_status(target.id) is target
        assert processor.cancel_job(target.id) is True
        release.set()
        result = await run

        assert [j.row_index for j in result.failed] == [1]
        assert result.failed[0].error == CANCELLED_MESSAGE
        assert [j.row_index for j in result.successful] == [2]

    async def test_cancel_unknown_job(self):
        assert _processor().cancel_job("job_404") is False

    async def test_cancel_all_jobs(self):
        processor = _processor()
        never = asyncio.Event()

        async def worker(request):
            await never.wait()

        run = asyncio.ensure_future(processor.process_batch(_jobs(3), worker))
        while len(processor.get_active_jobs()) < 3:
            await asyncio.sleep(0)

        assert processor.cancel_all_jobs() == 3
        result = await run
        assert len(result.failed) == 3
        assert all(j.error == CANCELLED_MESSAGE for j in result.failed)
        assert processor.get_active_jobs() == []


class TestHelpers:
    async def test_chunk(self):
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunk([], 3) == []

    async def test_stats(self):
        stats = _processor(batch_size=4).stats()
        assert stats == {"active_jobs": 0, "batch_size": 4, "max_retries": 2}
