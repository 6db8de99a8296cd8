"""De-duplicate rapid repeat invocations of the same logical operation.

While a call registered under a key is in flight, later callers with the
same key await that call instead of starting a new one. Once it has
finished, further calls under the key are rejected with
:class:`ThrottledError` until the key's delay has elapsed.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from adcopy.config import ThrottleConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThrottledError(RuntimeError):
    """Raised when a key is called again too soon after its last call finished."""

    def __init__(self, key: str, remaining_seconds: float) -> None:
        self.key = key
        self.remaining_seconds = remaining_seconds
        wait = max(1, math.ceil(remaining_seconds))
        super().__init__(f"Please wait {wait} more second(s) before retrying")


@dataclass
class ThrottledCall:
    key: str
    started_at: float
    task: "asyncio.Task[Any]"
    resolved_at: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.resolved_at is not None


class ClickThrottler:
    def __init__(
        self,
        cfg: Optional[ThrottleConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cfg = cfg or ThrottleConfig()
        self._clock = clock
        self._calls: Dict[str, ThrottledCall] = {}

    async def throttled_call(
        self,
        key: str,
        fn: Callable[[], Awaitable[T]],
        delay: Optional[float] = None,
    ) -> T:
        delay = self.cfg.default_delay_seconds if delay is None else delay
        now = self._clock()
        self._cleanup(now)

        existing = self._calls.get(key)
        if existing is not None and not existing.resolved:
            logger.debug("throttle: joining in-flight call %s", key)
            return await asyncio.shield(existing.task)

        if existing is not None and now - existing.resolved_at < delay:
            remaining = delay - (now - existing.resolved_at)
            logger.debug("throttle: rejecting %s, %.2fs remaining", key, remaining)
            raise ThrottledError(key, remaining)

        task = asyncio.ensure_future(fn())
        call = ThrottledCall(key=key, started_at=now, task=task)
        self._calls[key] = call

        def _mark_resolved(_: "asyncio.Future[Any]") -> None:
            call.resolved_at = self._clock()

        task.add_done_callback(_mark_resolved)
        return await asyncio.shield(task)

    def _cleanup(self, now: float) -> None:
        max_age = self.cfg.max_age_seconds
        stale = [
            key
            for key, call in self._calls.items()
            if now - (call.resolved_at if call.resolved else call.started_at) > max_age
        ]
        for key in stale:
            del self._calls[key]

    # ── Specialised wrappers ──────────────────────────────────────────────────

    async def throttle_content_generation(
        self, sheet_id: str, client_id: str, fn: Callable[[], Awaitable[T]]
    ) -> T:
        return await self.throttled_call(
            f"content_{sheet_id}_{client_id}", fn, self.cfg.content_delay_seconds
        )

    async def throttle_sheet_save(self, sheet_id: str, fn: Callable[[], Awaitable[T]]) -> T:
        return await self.throttled_call(f"save_{sheet_id}", fn, self.cfg.save_delay_seconds)

    async def throttle_client_analysis(
        self, client_id: str, fn: Callable[[], Awaitable[T]]
    ) -> T:
        return await self.throttled_call(
            f"analysis_{client_id}", fn, self.cfg.analysis_delay_seconds
        )

    # ── State ─────────────────────────────────────────────────────────────────

    def is_call_active(self, key: str) -> bool:
        call = self._calls.get(key)
        return call is not None and not call.resolved

    def get_active_calls(self) -> List[str]:
        return [key for key, call in self._calls.items() if not call.resolved]

    def cancel_call(self, key: str) -> bool:
        call = self._calls.get(key)
        if call is None or call.resolved:
            return False
        call.task.cancel()
        del self._calls[key]
        logger.info("throttle: cancelled %s", key)
        return True

    def cancel_all_calls(self) -> int:
        keys = self.get_active_calls()
        for key in keys:
            self.cancel_call(key)
        return len(keys)

    def stats(self) -> dict:
        now = self._clock()
        calls = list(self._calls.values())
        return {
            "total_calls": len(calls),
            "active_calls": sum(1 for c in calls if not c.resolved),
            "resolved_calls": sum(1 for c in calls if c.resolved),
            "oldest_call_age_seconds": max((now - c.started_at for c in calls), default=0.0),
        }
