"""Mapping utilities between spreadsheet rows and the internal request model."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from adcopy.config import AppConfig
from adcopy.schema import (
    AdGroupInfo,
    CampaignInfo,
    ClientProfile,
    GeneratedContent,
    GenerationRequest,
    SheetValues,
)

logger = logging.getLogger(__name__)

NOT_FOUND = -1

TITLE_MARKERS = ("titre", "headline")
DESCRIPTION_MARKERS = ("description", "desc")

# Columns A-C of the campaign sheet template.
CAMPAIGN_COL = 0
AD_GROUP_COL = 1
KEYWORDS_COL = 2


# ─────────────────────────────────────────────────────────────────────────────
# Column letters
# ─────────────────────────────────────────────────────────────────────────────


def column_letter(index: int) -> str:
    """0 → ``A``, 25 → ``Z``, 26 → ``AA``."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    letters = ""
    n = index
    while n >= 0:
        letters = chr(ord("A") + n % 26) + letters
        n = n // 26 - 1
    return letters


def column_index(letter: str) -> int:
    """``A`` → 0, ``AA`` → 26."""
    s = letter.strip().upper()
    if not s or not s.isalpha():
        raise ValueError(f"invalid column letter: {letter!r}")
    n = 0
    for ch in s:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def protected_indices(letters: Iterable[str]) -> Set[int]:
    return {column_index(l) for l in letters}


# ─────────────────────────────────────────────────────────────────────────────
# Header analysis
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class ColumnMap:
    headers: List[str]
    title_columns: List[int] = field(default_factory=list)
    description_columns: List[int] = field(default_factory=list)

    def title_column(self, n: int) -> int:
        """Sheet index of the n-th title (0-based), or ``NOT_FOUND``."""
        return self.title_columns[n] if n < len(self.title_columns) else NOT_FOUND

    def description_column(self, n: int) -> int:
        return self.description_columns[n] if n < len(self.description_columns) else NOT_FOUND

    def missing_titles(self, required: int) -> int:
        return max(0, required - len(self.title_columns))

    def missing_descriptions(self, required: int) -> int:
        return max(0, required - len(self.description_columns))

    def needs_extension(self, required_titles: int, required_descriptions: int) -> bool:
        return bool(
            self.missing_titles(required_titles) or self.missing_descriptions(required_descriptions)
        )


def map_columns(headers: Sequence[str], protected: Iterable[int] = ()) -> ColumnMap:
    """Locate title and description columns by case-insensitive substring match.

    Title markers win over description markers. Protected indices are
    never reported, whatever their header says.
    """
    skip = set(protected)
    cmap = ColumnMap(headers=[str(h) for h in headers])
    for index, header in enumerate(cmap.headers):
        if index in skip:
            continue
        lowered = header.lower()
        if any(m in lowered for m in TITLE_MARKERS):
            cmap.title_columns.append(index)
        elif any(m in lowered for m in DESCRIPTION_MARKERS):
            cmap.description_columns.append(index)
    logger.debug(
        "sheet structure: %d columns, %d title, %d description",
        len(cmap.headers),
        len(cmap.title_columns),
        len(cmap.description_columns),
    )
    return cmap


def _append_header(headers: List[str], label: str, protected: Set[int]) -> int:
    while len(headers) in protected:
        headers.append("")
    headers.append(label)
    return len(headers) - 1


def extend_headers(
    headers: List[str],
    cmap: ColumnMap,
    required_titles: int,
    required_descriptions: int,
    protected: Iterable[int] = (),
    title_label: str = "Titre",
    description_label: str = "Description",
) -> ColumnMap:
    """Append missing ``Titre N`` / ``Description N`` headers in place.

    Existing columns are never moved or removed. Protected indices that
    fall in the new range get an empty header and stay unused.
    """
    skip = set(protected)
    titles = list(cmap.title_columns)
    descriptions = list(cmap.description_columns)

    for _ in range(cmap.missing_titles(required_titles)):
        titles.append(_append_header(headers, f"{title_label} {len(titles) + 1}", skip))
    for _ in range(cmap.missing_descriptions(required_descriptions)):
        descriptions.append(
            _append_header(headers, f"{description_label} {len(descriptions) + 1}", skip)
        )

    added = (len(titles) - len(cmap.title_columns), len(descriptions) - len(cmap.description_columns))
    if any(added):
        logger.info(
            "sheet extended: +%d title, +%d description columns (%d total)",
            added[0],
            added[1],
            len(headers),
        )
    return ColumnMap(
        headers=list(headers), title_columns=titles, description_columns=descriptions
    )


def ensure_layout(
    sheet: SheetValues,
    required_titles: int,
    required_descriptions: int,
    protected: Iterable[int] = (),
    title_label: str = "Titre",
    description_label: str = "Description",
) -> ColumnMap:
    """Analyse the header row of *sheet*, widening it in place if needed."""
    skip = set(protected)
    if not sheet:
        sheet.append([])
    cmap = map_columns(sheet[0], skip)
    if not cmap.needs_extension(required_titles, required_descriptions):
        return cmap
    return extend_headers(
        sheet[0],
        cmap,
        required_titles,
        required_descriptions,
        skip,
        title_label,
        description_label,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Row patching
# ─────────────────────────────────────────────────────────────────────────────


def apply_content_to_row(
    sheet: SheetValues,
    row_index: int,
    content: GeneratedContent,
    cmap: ColumnMap,
    protected: Iterable[int] = (),
) -> List[str]:
    """Write *content* into ``sheet[row_index]`` in place and return the row.

    The row is padded to the header width first. Protected columns keep
    their value even when a mapped index coincides with one.
    """
    skip = set(protected)
    while len(sheet) <= row_index:
        sheet.append([])

    width = len(sheet[0]) if sheet else 0
    row = list(sheet[row_index])
    if len(row) < width:
        row.extend([""] * (width - len(row)))

    pairs = list(zip(cmap.title_columns, content.titles)) + list(
        zip(cmap.description_columns, content.descriptions)
    )
    for col, text in pairs:
        if col in skip:
            continue
        if col >= len(row):
            row.extend([""] * (col + 1 - len(row)))
        row[col] = text

    sheet[row_index] = row
    return row


# ─────────────────────────────────────────────────────────────────────────────
# Loosely-typed call options → GenerationRequest
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class RowOptions:
    """Per-row generation inputs as collected from a sheet or the CLI."""

    model: str
    client_context: str = ""
    campaign_context: str = ""
    ad_group_context: str = ""
    keywords: List[str] = field(default_factory=list)
    industry: Optional[str] = None
    target_persona: Optional[str] = None
    client: Optional[ClientProfile] = None


def split_keywords(raw: str) -> List[str]:
    """Split a keyword cell on commas, semicolons or newlines."""
    parts = raw.replace(";", ",").replace("\n", ",").split(",")
    return [p.strip() for p in parts if p.strip()]


def to_generation_request(opts: RowOptions, cfg: Optional[AppConfig] = None) -> GenerationRequest:
    cfg = cfg or AppConfig()
    client = opts.client or ClientProfile(
        id="adhoc-client",
        name="Ad-hoc client",
        industry=opts.industry,
        target_persona=opts.target_persona,
        business_context=opts.client_context,
    )
    return GenerationRequest(
        model=opts.model or cfg.generation.default_model,
        client=client,
        campaign=CampaignInfo(name=opts.campaign_context, context=opts.campaign_context),
        ad_group=AdGroupInfo(name=opts.ad_group_context, keywords=tuple(opts.keywords)),
        industry=opts.industry,
        target_persona=opts.target_persona,
        temperature=cfg.generation.temperature,
        max_tokens=cfg.generation.max_tokens,
    )


def row_options_from_sheet(
    sheet: SheetValues,
    row_index: int,
    model: str,
    client: Optional[ClientProfile] = None,
    industry: Optional[str] = None,
    target_persona: Optional[str] = None,
) -> RowOptions:
    """Read campaign / ad group / top keywords from columns A-C of a row."""
    if row_index <= 0 or row_index >= len(sheet):
        raise IndexError(f"row {row_index} is not a data row of this sheet")
    row = sheet[row_index]

    def cell(i: int) -> str:
        return str(row[i]).strip() if i < len(row) else ""

    return RowOptions(
        model=model,
        client_context=client.context_text() if client else "",
        campaign_context=cell(CAMPAIGN_COL),
        ad_group_context=cell(AD_GROUP_COL),
        keywords=split_keywords(cell(KEYWORDS_COL)),
        industry=industry or (client.industry if client else None),
        target_persona=target_persona or (client.target_persona if client else None),
        client=client,
    )

