"""Parse, validate and auto-correct raw LLM ad-copy responses.

The validator never raises on malformed input: every problem is reported
through the returned :class:`ValidationResult`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from adcopy.config import GenerationConfig, ValidationConfig
from adcopy.schema import ContentMetadata, GeneratedContent

logger = logging.getLogger(__name__)

CTA_WORDS = (
    "découvrez",
    "profitez",
    "contactez",
    "demandez",
    "réservez",
    "achetez",
    "commandez",
)

# Score penalty per error category.
_ERROR_PENALTIES = {
    "structure": 0.3,
    "length": 0.1,
    "content": 0.2,
    "format": 0.05,
}
_WARNING_PENALTY = 0.02
_STRUCTURE_BONUS = 0.1

_FENCED_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_TITLES_DESCRIPTIONS_RE = re.compile(r"\{.*\"titles\".*\"descriptions\".*\}", re.DOTALL)
_GREEDY_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def char_count(text: str) -> int:
    """Return the character count, spaces included.

    Every Unicode code point counts as one character, which is how Google
    Ads counts accented French text::

        char_count("Découvrez")  # → 9
    """
    return len(text)


@dataclass
class ValidationRules:
    max_title_length: int = 30
    max_description_length: int = 90
    min_description_length: int = 55
    required_titles_count: int = 15
    required_descriptions_count: int = 4
    strict_mode: bool = True
    auto_correct: bool = True
    quality_threshold: float = 0.7
    allow_partial_results: bool = False

    @classmethod
    def from_config(
        cls, gen_cfg: GenerationConfig, val_cfg: ValidationConfig, **overrides: Any
    ) -> "ValidationRules":
        rules = cls(
            max_title_length=gen_cfg.max_title_chars,
            max_description_length=gen_cfg.max_description_chars,
            min_description_length=gen_cfg.min_description_chars,
            required_titles_count=gen_cfg.required_titles,
            required_descriptions_count=gen_cfg.required_descriptions,
            strict_mode=val_cfg.strict_mode,
            auto_correct=val_cfg.auto_correct,
            quality_threshold=val_cfg.quality_threshold,
            allow_partial_results=val_cfg.allow_partial_results,
        )
        for key, value in overrides.items():
            setattr(rules, key, value)
        return rules


@dataclass
class ValidationError:
    type: str  # structure | length | content | format
    field: str  # title | description
    message: str
    index: Optional[int] = None
    value: Optional[str] = None


@dataclass
class ValidationWarning:
    type: str  # quality | length | count | duplicate | cta
    message: str


@dataclass
class ValidationResult:
    is_valid: bool
    score: float
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    corrected_content: Optional[GeneratedContent] = None
    suggestions: List[str] = field(default_factory=list)
    content: Optional[GeneratedContent] = None
    quality_threshold: float = 0.7

    @property
    def best_content(self) -> Optional[GeneratedContent]:
        """Corrected content when a correction ran, else the parsed content."""
        return self.corrected_content or self.content

    @property
    def meets_quality_threshold(self) -> bool:
        return self.score >= self.quality_threshold

    @property
    def error_messages(self) -> List[str]:
        return [e.message for e in self.errors]


# ─────────────────────────────────────────────────────────────────────────────
# JSON extraction
# ─────────────────────────────────────────────────────────────────────────────


def _try_json(text: str) -> Any:
    try:
        return json.loads(text.strip())
    except (json.JSONDecodeError, ValueError):
        return None


def extract_json(raw: Any) -> Any:
    """Return the first JSON value found in *raw*, or ``None``.

    Tries, in order: the whole text, a fenced ```json block, the span from
    the first ``{`` around ``"titles"`` / ``"descriptions"`` to the last
    ``}``, and finally the widest ``{...}`` substring.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None

    data = _try_json(raw)
    if data is not None:
        return data

    for pattern in (_FENCED_RE, _TITLES_DESCRIPTIONS_RE, _GREEDY_OBJECT_RE):
        match = pattern.search(raw)
        if not match:
            continue
        candidate = match.group(1) if match.groups() else match.group(0)
        data = _try_json(candidate)
        if data is not None:
            return data
    return None


def extract_titles_and_descriptions(raw: str) -> Dict[str, List[str]]:
    """Best-effort extraction with no validation at all."""
    data = extract_json(raw)
    if not isinstance(data, dict):
        return {"titles": [], "descriptions": []}
    titles = data.get("titles")
    descriptions = data.get("descriptions")
    return {
        "titles": titles if isinstance(titles, list) else [],
        "descriptions": descriptions if isinstance(descriptions, list) else [],
    }


def validate_quickly(raw: str) -> bool:
    """True when *raw* is plain JSON carrying both arrays."""
    data = _try_json(raw) if isinstance(raw, str) else None
    return (
        isinstance(data, dict)
        and isinstance(data.get("titles"), list)
        and isinstance(data.get("descriptions"), list)
    )


# ─────────────────────────────────────────────────────────────────────────────
# Validator
# ─────────────────────────────────────────────────────────────────────────────


class ResponseValidator:
    def __init__(self, rules: Optional[ValidationRules] = None):
        self.rules = rules or ValidationRules()

    def validate_and_correct(
        self, raw: str, rules: Optional[ValidationRules] = None
    ) -> ValidationResult:
        rules = rules or self.rules

        data = extract_json(raw)
        if data is None:
            return self._failure(rules, "No valid JSON found in response")
        if not isinstance(data, dict):
            return self._failure(rules, "Data is not an object")

        structure_errors = self._check_structure(data)
        if structure_errors:
            return self._finish(rules, data, structure_errors, [], None, None)

        titles: List[Any] = data["titles"]
        descriptions: List[Any] = data["descriptions"]

        errors: List[ValidationError] = []
        warnings: List[ValidationWarning] = []

        for i, title in enumerate(titles):
            self._check_item(title, i, "title", rules, errors, warnings)
        for i, desc in enumerate(descriptions):
            self._check_item(desc, i, "description", rules, errors, warnings)

        if self._has_duplicates(titles):
            warnings.append(ValidationWarning("duplicate", "Duplicate titles detected"))
        if self._has_duplicates(descriptions):
            warnings.append(ValidationWarning("duplicate", "Duplicate descriptions detected"))

        self._check_count(titles, rules.required_titles_count, "title", rules, errors, warnings)
        self._check_count(
            descriptions, rules.required_descriptions_count, "description", rules, errors, warnings
        )

        parsed: Optional[GeneratedContent] = None
        if all(isinstance(t, str) for t in titles) and all(isinstance(d, str) for d in descriptions):
            parsed = GeneratedContent(
                titles=[t.strip() for t in titles],
                descriptions=[d.strip() for d in descriptions],
            )

        corrected: Optional[GeneratedContent] = None
        fixable = any(w.type in ("length", "count") for w in warnings)
        if rules.auto_correct and (errors or fixable):
            corrected = self._auto_correct(titles, descriptions, rules)

        return self._finish(rules, data, errors, warnings, corrected, parsed)

    # ── Checks ────────────────────────────────────────────────────────────────

    @staticmethod
    def _check_structure(data: Dict[str, Any]) -> List[ValidationError]:
        errors: List[ValidationError] = []
        if not isinstance(data.get("titles"), list):
            errors.append(
                ValidationError("structure", "title", "Missing or invalid titles array")
            )
        if not isinstance(data.get("descriptions"), list):
            errors.append(
                ValidationError("structure", "description", "Missing or invalid descriptions array")
            )
        return errors

    @staticmethod
    def _check_item(
        item: Any,
        index: int,
        kind: str,
        rules: ValidationRules,
        errors: List[ValidationError],
        warnings: List[ValidationWarning],
    ) -> None:
        label = kind.capitalize()
        if not isinstance(item, str) or not item.strip():
            errors.append(
                ValidationError("content", kind, f"{label} is empty or not a string", index)
            )
            return

        text = item.strip()
        length = char_count(text)
        max_len = rules.max_title_length if kind == "title" else rules.max_description_length

        if length > max_len:
            message = f"{label} {index + 1} too long: {length} chars (max: {max_len})"
            if rules.strict_mode:
                errors.append(ValidationError("length", kind, message, index, item))
            else:
                warnings.append(ValidationWarning("length", message))
        elif kind == "description" and length < rules.min_description_length:
            warnings.append(
                ValidationWarning(
                    "quality",
                    f"Description {index + 1} is short: {length} chars "
                    f"(recommended: {rules.min_description_length}+)",
                )
            )

        if kind == "title":
            if length < 10:
                warnings.append(ValidationWarning("quality", f"Title {index + 1} is very short"))
            if not any(c.isalpha() for c in text):
                warnings.append(ValidationWarning("quality", f"Title {index + 1} has no letters"))
        else:
            lowered = text.lower()
            if not any(word in lowered for word in CTA_WORDS):
                warnings.append(
                    ValidationWarning(
                        "cta", f"Description {index + 1} may lack a clear call-to-action"
                    )
                )

    @staticmethod
    def _has_duplicates(items: List[Any]) -> bool:
        keys = [i.strip().lower() for i in items if isinstance(i, str)]
        return len(set(keys)) != len(keys)

    @staticmethod
    def _check_count(
        items: List[Any],
        required: int,
        kind: str,
        rules: ValidationRules,
        errors: List[ValidationError],
        warnings: List[ValidationWarning],
    ) -> None:
        if len(items) == required:
            return
        message = f"Wrong {kind} count: {len(items)} instead of {required}"
        if rules.strict_mode:
            errors.append(ValidationError("length", kind, message))
        else:
            warnings.append(ValidationWarning("count", message))

    # ── Correction ────────────────────────────────────────────────────────────

    @staticmethod
    def _correct_list(items: List[Any], max_len: int, required: int) -> List[str]:
        """Filter, trim, truncate, dedupe, then slice. Never pads."""
        out: List[str] = []
        seen = set()
        for item in items:
            if not isinstance(item, str):
                continue
            text = item.strip()
            if not text:
                continue
            if char_count(text) > max_len:
                text = text[:max_len].strip()
            key = text.lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(text)
        return out[:required]

    def _auto_correct(
        self, titles: List[Any], descriptions: List[Any], rules: ValidationRules
    ) -> GeneratedContent:
        return GeneratedContent(
            titles=self._correct_list(
                titles, rules.max_title_length, rules.required_titles_count
            ),
            descriptions=self._correct_list(
                descriptions, rules.max_description_length, rules.required_descriptions_count
            ),
            metadata=ContentMetadata(model="corrected"),
        )

    # ── Scoring and result assembly ───────────────────────────────────────────

    @staticmethod
    def score(
        data: Any, errors: List[ValidationError], warnings: List[ValidationWarning]
    ) -> float:
        value = 1.0
        for err in errors:
            value -= _ERROR_PENALTIES.get(err.type, 0.0)
        value -= _WARNING_PENALTY * len(warnings)
        if (
            isinstance(data, dict)
            and isinstance(data.get("titles"), list)
            and isinstance(data.get("descriptions"), list)
        ):
            value += _STRUCTURE_BONUS
        return max(0.0, min(1.0, value))

    @staticmethod
    def suggestions(
        errors: List[ValidationError], warnings: List[ValidationWarning]
    ) -> List[str]:
        out: List[str] = []
        if any(e.type == "length" for e in errors) or any(w.type == "length" for w in warnings):
            out.append("Consider shorter, more impactful phrases")
        if any(w.type == "cta" for w in warnings):
            out.append('Add clear calls-to-action like "Découvrez", "Contactez", "Profitez"')
        if any(w.type == "duplicate" for w in warnings):
            out.append("Ensure all titles and descriptions are unique")
        if any(e.type == "structure" for e in errors):
            out.append("Verify the JSON format matches the required structure")
        return out

    def _finish(
        self,
        rules: ValidationRules,
        data: Any,
        errors: List[ValidationError],
        warnings: List[ValidationWarning],
        corrected: Optional[GeneratedContent],
        parsed: Optional[GeneratedContent],
    ) -> ValidationResult:
        score = self.score(data, errors, warnings)
        if corrected is not None:
            corrected.metadata.validation_score = score
        is_valid = not errors or (corrected is not None and rules.allow_partial_results)
        result = ValidationResult(
            is_valid=is_valid,
            score=score,
            errors=errors,
            warnings=warnings,
            corrected_content=corrected,
            suggestions=self.suggestions(errors, warnings),
            content=parsed,
            quality_threshold=rules.quality_threshold,
        )
        logger.debug(
            "validation: valid=%s score=%.2f errors=%d warnings=%d corrected=%s",
            is_valid,
            score,
            len(errors),
            len(warnings),
            corrected is not None,
        )
        return result

    def _failure(self, rules: ValidationRules, message: str) -> ValidationResult:
        errors = [ValidationError("structure", "title", message)]
        return ValidationResult(
            is_valid=False,
            score=0.0,
            errors=errors,
            suggestions=self.suggestions(errors, []),
            quality_threshold=rules.quality_threshold,
        )


def validate_and_correct(raw: str, rules: Optional[ValidationRules] = None) -> ValidationResult:
    return ResponseValidator(rules).validate_and_correct(raw)


def format_validation_report(result: ValidationResult) -> str:
    """Render a short human-readable summary of *result*."""
    lines = [
        f"Status: {'VALID' if result.is_valid else 'INVALID'} (score {result.score:.2f})"
    ]
    if result.errors:
        lines.append(f"Errors ({len(result.errors)}):")
        lines.extend(f"  - [{e.type}] {e.message}" for e in result.errors)
    if result.warnings:
        lines.append(f"Warnings ({len(result.warnings)}):")
        lines.extend(f"  - {w.message}" for w in result.warnings)
    if result.corrected_content is not None:
        c = result.corrected_content
        lines.append(
            f"Auto-corrected: {len(c.titles)} titles, {len(c.descriptions)} descriptions"
        )
    if result.suggestions:
        lines.append("Suggestions:")
        lines.extend(f"  - {s}" for s in result.suggestions)
    return "\n".join(lines)
