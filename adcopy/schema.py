"""Internal data model shared by the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

SheetValues = List[List[str]]


@dataclass
class ClientProfile:
    id: str
    name: str = ""
    industry: Optional[str] = None
    target_persona: Optional[str] = None
    business_context: str = ""
    specifics: str = ""
    editorial_guidelines: str = ""

    def context_text(self) -> str:
        """Business context, specifics and guidelines as one prompt block."""
        parts = [self.business_context, self.specifics, self.editorial_guidelines]
        return "\n".join(p for p in parts if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "industry": self.industry,
            "target_persona": self.target_persona,
            "business_context": self.business_context,
            "specifics": self.specifics,
            "editorial_guidelines": self.editorial_guidelines,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientProfile":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            industry=data.get("industry") or None,
            target_persona=data.get("target_persona") or None,
            business_context=str(data.get("business_context", "") or ""),
            specifics=str(data.get("specifics", "") or ""),
            editorial_guidelines=str(data.get("editorial_guidelines", "") or ""),
        )


@dataclass(frozen=True)
class CampaignInfo:
    name: str
    context: str = ""


@dataclass(frozen=True)
class AdGroupInfo:
    name: str
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed to generate the copy for one ad group."""

    model: str
    client: ClientProfile
    campaign: CampaignInfo
    ad_group: AdGroupInfo
    industry: Optional[str] = None
    target_persona: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2000

    @property
    def effective_industry(self) -> Optional[str]:
        return self.industry or self.client.industry

    @property
    def effective_persona(self) -> Optional[str]:
        return self.target_persona or self.client.target_persona


@dataclass
class ContentMetadata:
    model: str = ""
    industry: str = "default"
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    validation_score: float = 0.0
    processing_time_ms: int = 0
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "industry": self.industry,
            "timestamp": self.timestamp,
            "validation_score": self.validation_score,
            "processing_time_ms": self.processing_time_ms,
            "retry_count": self.retry_count,
        }


@dataclass
class GeneratedContent:
    titles: List[str]
    descriptions: List[str]
    metadata: ContentMetadata = field(default_factory=ContentMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "titles": list(self.titles),
            "descriptions": list(self.descriptions),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedContent":
        meta = data.get("metadata") or {}
        return cls(
            titles=[str(t) for t in data.get("titles", [])],
            descriptions=[str(d) for d in data.get("descriptions", [])],
            metadata=ContentMetadata(
                model=str(meta.get("model", "")),
                industry=str(meta.get("industry", "default")),
                timestamp=str(meta.get("timestamp", "")),
                validation_score=float(meta.get("validation_score", 0.0)),
                processing_time_ms=int(meta.get("processing_time_ms", 0)),
                retry_count=int(meta.get("retry_count", 0)),
            ),
        )


@dataclass
class GenerationOutcome:
    """Result of generating content for one request (never raised, always returned)."""

    success: bool
    content: Optional[GeneratedContent] = None
    error: Optional[str] = None
    cache_hit: bool = False
    attempts: int = 0
    states: List[str] = field(default_factory=list)


@dataclass
class RowResult:
    success: bool
    row_index: int = -1
    updated_sheet_data: Optional[SheetValues] = None
    error: Optional[str] = None


@dataclass
class BatchOutcome:
    success: bool
    results: List[RowResult] = field(default_factory=list)
    total_time_ms: int = 0
    cache_hits: int = 0
