"""Load and validate config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml


@dataclass
class GenerationConfig:
    required_titles: int = 15
    required_descriptions: int = 4
    max_title_chars: int = 30
    max_description_chars: int = 90
    min_description_chars: int = 55
    max_attempts: int = 3  # full generate → validate loops per row
    retry_delay_seconds: float = 1.0  # multiplied by the attempt number
    temperature: float = 0.7
    max_tokens: int = 2000
    default_model: str = "anthropic:claude-sonnet-4-5-20250929"


@dataclass
class ValidationConfig:
    strict_mode: bool = True
    auto_correct: bool = True
    quality_threshold: float = 0.7
    allow_partial_results: bool = False


@dataclass
class CacheConfig:
    """Two-tier content cache (in-process + SQLite)."""

    enabled: bool = True
    memory_ttl_seconds: float = 30 * 60
    memory_max_entries: int = 100
    durable_ttl_seconds: float = 2 * 60 * 60
    durable_max_entries: int = 500
    path: str = "cache/content_cache.db"


@dataclass
class ThrottleConfig:
    default_delay_seconds: float = 2.0
    content_delay_seconds: float = 3.0
    save_delay_seconds: float = 1.0
    analysis_delay_seconds: float = 5.0
    max_age_seconds: float = 10 * 60


@dataclass
class BatchConfig:
    batch_size: int = 5
    max_retries: int = 2
    retry_delay_seconds: float = 1.0
    group_pause_seconds: float = 0.5


@dataclass
class SheetConfig:
    # Character-count summary columns sitting between the title columns.
    protected_columns: List[str] = field(
        default_factory=lambda: [
            "E", "G", "I", "K", "M", "O", "Q", "S",
            "U", "W", "Y", "AA", "AC", "AE", "AG",
        ]
    )
    title_header: str = "Titre"
    description_header: str = "Description"


@dataclass
class ProviderConfig:
    name: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 2000


@dataclass
class BudgetConfig:
    """Hard caps to control live API spending."""

    max_calls_per_run: int = 50  # total complete() calls; 0 = unlimited


@dataclass
class RetryConfig:
    """Exponential-backoff settings for live API calls."""

    max_api_retries: int = 3
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 60.0


@dataclass
class ClientsConfig:
    path: str = "data/clients.jsonl"


@dataclass
class HistoryConfig:
    enabled: bool = True
    path: str = "data/history.jsonl"


@dataclass
class AppConfig:
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    sheet: SheetConfig = field(default_factory=SheetConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    retry_api: RetryConfig = field(default_factory=RetryConfig)
    clients: ClientsConfig = field(default_factory=ClientsConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    p = Path(path)
    raw: dict = {}
    if p.exists():
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    return AppConfig(
        generation=GenerationConfig(**raw.get("generation", {})),
        validation=ValidationConfig(**raw.get("validation", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        throttle=ThrottleConfig(**raw.get("throttle", {})),
        batch=BatchConfig(**raw.get("batch", {})),
        sheet=SheetConfig(**raw.get("sheet", {})),
        provider=ProviderConfig(**raw.get("provider", {})),
        budget=BudgetConfig(**raw.get("budget", {})),
        retry_api=RetryConfig(**raw.get("retry_api", {})),
        clients=ClientsConfig(**raw.get("clients", {})),
        history=HistoryConfig(**raw.get("history", {})),
    )
