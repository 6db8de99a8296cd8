"""Generation history: one JSONL line per successfully generated row.

JSONL schema::

    {
      "date":        "2026-10-19T09:00:00+00:00",   # ISO-8601 UTC
      "sheet_id":    "1AbC...",
      "row_index":   3,
      "client_id":   "acme",
      "campaign":    "Soldes d'été",
      "ad_group":    "Chaussures running",
      "keywords":    ["chaussures running", "marathon"],
      "cache_hit":   false,
      "content": {
        "titles":       ["...", ...],
        "descriptions": ["...", ...],
        "metadata":     {"model": "...", "validation_score": 0.92, ...}
      }
    }
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import pandas as pd

from adcopy.schema import GeneratedContent, GenerationRequest


def append_generation(
    history_path: str | Path,
    *,
    sheet_id: str,
    row_index: int,
    request: GenerationRequest,
    content: GeneratedContent,
    cache_hit: bool = False,
) -> None:
    """Append one JSONL line to the history log."""
    p = Path(history_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    entry = {
        "date":      datetime.now(timezone.utc).isoformat(),
        "sheet_id":  sheet_id,
        "row_index": row_index,
        "client_id": request.client.id,
        "campaign":  request.campaign.name,
        "ad_group":  request.ad_group.name,
        "keywords":  list(request.ad_group.keywords),
        "cache_hit": cache_hit,
        "content":   content.to_dict(),
    }
    with open(p, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")


def load_history(history_path: str | Path) -> List[Dict]:
    p = Path(history_path)
    if not p.exists():
        return []
    entries: List[Dict] = []
    with open(p, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                entries.append(json.loads(line))
    return entries


def recent_generations(entries: List[Dict], n: int = 20) -> pd.DataFrame:
    """Return a summary DataFrame of the last *n* generations, newest first."""
    rows = []
    for e in reversed(entries[-n:]):
        content = e.get("content") or {}
        meta = content.get("metadata") or {}
        rows.append({
            "date":      (e.get("date") or "")[:19],
            "sheet_id":  e.get("sheet_id", ""),
            "row":       e.get("row_index"),
            "client":    e.get("client_id", ""),
            "ad_group":  e.get("ad_group", ""),
            "titles#":   len(content.get("titles", [])),
            "descs#":    len(content.get("descriptions", [])),
            "score":     meta.get("validation_score"),
            "model":     meta.get("model", ""),
            "cache":     "✅" if e.get("cache_hit") else "—",
        })
    return pd.DataFrame(
        rows,
        columns=["date", "sheet_id", "row", "client", "ad_group",
                 "titles#", "descs#", "score", "model", "cache"],
    )
