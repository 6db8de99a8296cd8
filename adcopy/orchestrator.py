"""Top-level generation flow: sheet rows in, patched and saved sheet out.

Call order for one row:

1. throttle: reject double clicks on the same sheet/row
2. ensure_layout: locate (or append) the title/description columns
3. cache lookup: skip the LLM when an equivalent request was served
4. generate: prompt → provider → validate/correct, up to N attempts
5. patch + save: write the row (never protected columns), persist sheet

Nothing here raises to the caller: every failure comes back as a
``RowResult`` / ``BatchOutcome`` with ``success=False``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from adcopy.batch import BatchProcessor, ProgressCallback
from adcopy.cache import CacheManager, make_cache_key
from adcopy.config import AppConfig
from adcopy.connectors.base import BaseSheetStore
from adcopy.history import append_generation
from adcopy.industries import normalize_industry
from adcopy.mappers import (
    ColumnMap,
    RowOptions,
    apply_content_to_row,
    ensure_layout,
    protected_indices,
    to_generation_request,
)
from adcopy.prompt_builder import PromptBuilder, PromptVariables, build_messages
from adcopy.providers.base import BaseProvider, CompletionRequest, split_model
from adcopy.providers.retrying import BudgetExceededError
from adcopy.providers.router import UnknownProviderError
from adcopy.schema import (
    BatchOutcome,
    ContentMetadata,
    GeneratedContent,
    GenerationOutcome,
    GenerationRequest,
    RowResult,
    SheetValues,
)
from adcopy.throttle import ClickThrottler, ThrottledError
from adcopy.validator import ResponseValidator, ValidationResult, ValidationRules

logger = logging.getLogger(__name__)

RowInput = Union[RowOptions, GenerationRequest]

# Errors that another attempt cannot fix.
_FATAL_PROVIDER_ERRORS = (BudgetExceededError, UnknownProviderError)


class AttemptState(str, Enum):
    PENDING = "pending"
    BUILDING_PROMPT = "building-prompt"
    AWAITING_LLM = "awaiting-llm"
    VALIDATING = "validating"
    RETRY = "retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed-after-retries"


class GenerationOrchestrator:
    def __init__(
        self,
        cfg: AppConfig,
        provider: BaseProvider,
        store: BaseSheetStore,
        cache: Optional[CacheManager] = None,
        throttler: Optional[ClickThrottler] = None,
        batch: Optional[BatchProcessor] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        history_path: Optional[str] = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider
        self.store = store
        self.cache = cache if cache is not None else CacheManager(cfg.cache)
        self.throttler = throttler or ClickThrottler(cfg.throttle)
        self.batch = batch or BatchProcessor(cfg.batch)
        self.prompt_builder = prompt_builder or PromptBuilder(cfg.generation)
        self.validator = ResponseValidator()
        self.protected = protected_indices(cfg.sheet.protected_columns)
        self.history_path = history_path

    # ─────────────────────────────────────────────────────────────────────────
    # Single row
    # ─────────────────────────────────────────────────────────────────────────

    async def generate_and_save_content(
        self,
        options: RowInput,
        sheet_id: str,
        row_index: int,
        current_sheet_data: SheetValues,
    ) -> RowResult:
        key = f"single_{sheet_id}_{row_index}"
        try:
            return await self.throttler.throttled_call(
                key,
                lambda: self._generate_and_save(options, sheet_id, row_index, current_sheet_data),
                self.cfg.throttle.content_delay_seconds,
            )
        except ThrottledError as exc:
            return RowResult(success=False, row_index=row_index, error=str(exc))

    async def _generate_and_save(
        self,
        options: RowInput,
        sheet_id: str,
        row_index: int,
        current_sheet_data: SheetValues,
    ) -> RowResult:
        logger.info("generating row %d of sheet %s", row_index, sheet_id)
        try:
            sheet = _copy_sheet(current_sheet_data)
            if row_index <= 0 or row_index >= len(sheet):
                return RowResult(
                    success=False,
                    row_index=row_index,
                    error=f"Row {row_index} is not a data row of sheet {sheet_id}",
                )
            request = self._to_request(options)
            cmap = self._layout(sheet)

            outcome = await self.generate_content(request)
            if not outcome.success or outcome.content is None:
                logger.error("row %d failed: %s", row_index, outcome.error)
                return RowResult(
                    success=False,
                    row_index=row_index,
                    error=outcome.error or "Content generation failed",
                )

            apply_content_to_row(sheet, row_index, outcome.content, cmap, self.protected)
            if not await self.store.save_sheet_data(sheet_id, sheet):
                return RowResult(
                    success=False,
                    row_index=row_index,
                    error=f"Failed to save sheet {sheet_id}",
                )

            self._record_history(sheet_id, row_index, request, outcome)
            logger.info("row %d of sheet %s saved", row_index, sheet_id)
            return RowResult(success=True, row_index=row_index, updated_sheet_data=sheet)

        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("row %d of sheet %s failed: %s", row_index, sheet_id, exc)
            return RowResult(success=False, row_index=row_index, error=str(exc) or type(exc).__name__)

    # ─────────────────────────────────────────────────────────────────────────
    # Multiple rows
    # ─────────────────────────────────────────────────────────────────────────

    async def generate_content_for_multiple_rows(
        self,
        rows: Sequence[Tuple[int, RowInput]],
        sheet_id: str,
        current_sheet_data: SheetValues,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        indices = "-".join(str(i) for i in sorted(idx for idx, _ in rows))
        key = f"batch_{sheet_id}_{indices}"
        try:
            return await self.throttler.throttled_call(
                key,
                lambda: self._generate_batch(rows, sheet_id, current_sheet_data, on_progress),
                self.cfg.throttle.content_delay_seconds,
            )
        except ThrottledError as exc:
            return BatchOutcome(
                success=False,
                results=[RowResult(success=False, row_index=i, error=str(exc)) for i, _ in rows],
            )

    async def _generate_batch(
        self,
        rows: Sequence[Tuple[int, RowInput]],
        sheet_id: str,
        current_sheet_data: SheetValues,
        on_progress: Optional[ProgressCallback],
    ) -> BatchOutcome:
        start = time.monotonic()
        logger.info("batch generation of %d row(s) for sheet %s", len(rows), sheet_id)
        try:
            sheet = _copy_sheet(current_sheet_data)
            cmap = self._layout(sheet)

            rejected: List[RowResult] = []
            jobs: List[Tuple[int, GenerationRequest]] = []
            for row_index, options in rows:
                if row_index <= 0 or row_index >= len(sheet):
                    rejected.append(
                        RowResult(
                            success=False,
                            row_index=row_index,
                            error=f"Row {row_index} is not a data row of sheet {sheet_id}",
                        )
                    )
                else:
                    jobs.append((row_index, self._to_request(options)))

            batch_result = await self.batch.process_batch(jobs, self.generate_content, on_progress)

            for job in batch_result.successful:
                apply_content_to_row(sheet, job.row_index, job.result.content, cmap, self.protected)

            # One write for the whole batch.
            if batch_result.successful and not await self.store.save_sheet_data(sheet_id, sheet):
                error = f"Failed to save batch results to sheet {sheet_id}"
                logger.error(error)
                return BatchOutcome(
                    success=False,
                    results=rejected
                    + [RowResult(success=False, row_index=i, error=error) for i, _ in jobs],
                    total_time_ms=_elapsed_ms(start),
                    cache_hits=batch_result.cache_hits,
                )

            results = list(rejected)
            for job in batch_result.successful:
                self._record_history(sheet_id, job.row_index, job.options, job.result)
                results.append(
                    RowResult(success=True, row_index=job.row_index, updated_sheet_data=sheet)
                )
            for job in batch_result.failed:
                error = job.error or (job.result.error if job.result else None) or "Unknown error"
                results.append(RowResult(success=False, row_index=job.row_index, error=error))

            order = {idx: n for n, (idx, _) in enumerate(rows)}
            results.sort(key=lambda r: order.get(r.row_index, len(order)))

            logger.info(
                "batch for sheet %s: %d ok, %d failed, %d cache hit(s)",
                sheet_id,
                len(batch_result.successful),
                len(batch_result.failed) + len(rejected),
                batch_result.cache_hits,
            )
            return BatchOutcome(
                success=True,
                results=results,
                total_time_ms=_elapsed_ms(start),
                cache_hits=batch_result.cache_hits,
            )

        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("batch for sheet %s failed: %s", sheet_id, exc)
            message = str(exc) or type(exc).__name__
            return BatchOutcome(
                success=False,
                results=[RowResult(success=False, row_index=i, error=message) for i, _ in rows],
                total_time_ms=_elapsed_ms(start),
            )

    # ─────────────────────────────────────────────────────────────────────────
    # Generation with retry
    # ─────────────────────────────────────────────────────────────────────────

    async def generate_content(self, request: GenerationRequest) -> GenerationOutcome:
        """Produce validated content for *request*, from cache when possible."""
        states: List[str] = [AttemptState.PENDING.value]
        cache_key = make_cache_key(request)
        cached = self.cache.get(cache_key)
        if cached is not None:
            states.append(AttemptState.SUCCEEDED.value)
            return GenerationOutcome(
                success=True, content=cached, cache_hit=True, attempts=0, states=states
            )

        gen = self.cfg.generation
        start = time.monotonic()
        provider_name, model_name = split_model(request.model, self.cfg.provider.name)
        variables = self._prompt_variables(request)
        previous_errors: List[str] = []
        last_error = "All generation attempts failed"
        attempt = 0

        for attempt in range(1, gen.max_attempts + 1):
            final = attempt == gen.max_attempts
            if attempt > 1:
                states.append(AttemptState.RETRY.value)

            states.append(AttemptState.BUILDING_PROMPT.value)
            prompt = self.prompt_builder.build(variables, previous_errors=previous_errors)

            states.append(AttemptState.AWAITING_LLM.value)
            try:
                raw = await self.provider.complete(
                    CompletionRequest(
                        provider=provider_name,
                        model=model_name,
                        messages=build_messages(prompt),
                        max_tokens=request.max_tokens,
                        temperature=request.temperature,
                    )
                )
            except asyncio.CancelledError:
                raise
            except _FATAL_PROVIDER_ERRORS as exc:
                last_error = str(exc)
                logger.error("attempt %d: %s", attempt, last_error)
                break
            except Exception as exc:
                last_error = str(exc) or type(exc).__name__
                logger.warning("attempt %d/%d failed: %s", attempt, gen.max_attempts, last_error)
                if not final:
                    await asyncio.sleep(gen.retry_delay_seconds * attempt)
                continue

            states.append(AttemptState.VALIDATING.value)
            rules = ValidationRules.from_config(
                gen, self.cfg.validation, auto_correct=True, allow_partial_results=final
            )
            result = self.validator.validate_and_correct(raw, rules)
            content = self._accept(result, final)
            if content is None:
                previous_errors = result.error_messages
                last_error = "Validation failed: " + ", ".join(previous_errors)
                logger.warning(
                    "attempt %d/%d rejected (%d errors, %d warnings)",
                    attempt,
                    gen.max_attempts,
                    len(result.errors),
                    len(result.warnings),
                )
                continue

            if not result.meets_quality_threshold:
                logger.warning(
                    "quality score %.2f below threshold %.2f", result.score, rules.quality_threshold
                )
            content.metadata = ContentMetadata(
                model=request.model,
                industry=normalize_industry(request.effective_industry),
                validation_score=result.score,
                processing_time_ms=_elapsed_ms(start),
                retry_count=attempt - 1,
            )
            states.append(AttemptState.SUCCEEDED.value)
            self.cache.set(cache_key, content)
            return GenerationOutcome(
                success=True, content=content, attempts=attempt, states=states
            )

        states.append(AttemptState.FAILED.value)
        logger.error("generation failed after retries: %s", last_error)
        return GenerationOutcome(
            success=False, error=last_error, attempts=attempt, states=states
        )

    def _accept(self, result: ValidationResult, final: bool) -> Optional[GeneratedContent]:
        """Pick the content an attempt may keep, or None to retry.

        Before the last attempt only complete content is kept; the last
        attempt also keeps partial corrected content.
        """
        gen = self.cfg.generation
        content = result.best_content if result.is_valid else result.corrected_content
        if content is None:
            return None
        titles = list(content.titles)[: gen.required_titles]
        descriptions = list(content.descriptions)[: gen.required_descriptions]
        if not titles or not descriptions:
            return None
        complete = (
            len(titles) == gen.required_titles
            and len(descriptions) == gen.required_descriptions
        )
        if not complete and not (final and result.is_valid):
            return None
        return GeneratedContent(titles=titles, descriptions=descriptions)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _to_request(self, options: RowInput) -> GenerationRequest:
        if isinstance(options, GenerationRequest):
            return options
        return to_generation_request(options, self.cfg)

    def _layout(self, sheet: SheetValues) -> ColumnMap:
        gen = self.cfg.generation
        return ensure_layout(
            sheet,
            gen.required_titles,
            gen.required_descriptions,
            self.protected,
            self.cfg.sheet.title_header,
            self.cfg.sheet.description_header,
        )

    @staticmethod
    def _prompt_variables(request: GenerationRequest) -> PromptVariables:
        return PromptVariables(
            client_context=request.client.context_text(),
            campaign_context=request.campaign.context or request.campaign.name,
            ad_group_name=request.ad_group.name,
            keywords=", ".join(request.ad_group.keywords),
            industry=request.effective_industry,
            target_persona=request.effective_persona,
        )

    def _record_history(
        self,
        sheet_id: str,
        row_index: int,
        request: GenerationRequest,
        outcome: Optional[GenerationOutcome],
    ) -> None:
        if not self.history_path or outcome is None or outcome.content is None:
            return
        try:
            append_generation(
                self.history_path,
                sheet_id=sheet_id,
                row_index=row_index,
                request=request,
                content=outcome.content,
                cache_hit=outcome.cache_hit,
            )
        except OSError as exc:
            logger.warning("could not write history entry: %s", exc)


def _copy_sheet(values: SheetValues) -> SheetValues:
    return [list(row) for row in values]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
