"""Tests for adcopy/history.py: generation log and summary."""

from __future__ import annotations

import json

from adcopy.history import append_generation, load_history, recent_generations
from adcopy.schema import (
    AdGroupInfo,
    CampaignInfo,
    ClientProfile,
    ContentMetadata,
    GeneratedContent,
    GenerationRequest,
)


def _request(ad_group: str = "Running") -> GenerationRequest:
    return GenerationRequest(
        model="anthropic:claude-x",
        client=ClientProfile(id="acme"),
        campaign=CampaignInfo(name="Soldes"),
        ad_group=AdGroupInfo(name=ad_group, keywords=("running", "marathon")),
    )


def _content() -> GeneratedContent:
    return GeneratedContent(
        titles=["T1", "T2"],
        descriptions=["D1"],
        metadata=ContentMetadata(model="anthropic:claude-x", validation_score=0.92),
    )


def _append(path, row_index=1, ad_group="Running", cache_hit=False):
    append_generation(
        path,
        sheet_id="sheet-1",
        row_index=row_index,
        request=_request(ad_group),
        content=_content(),
        cache_hit=cache_hit,
    )


class TestHistoryLog:
    def test_missing_file(self, tmp_path):
        assert load_history(tmp_path / "none.jsonl") == []

    def test_append_creates_dirs_and_lines(self, tmp_path):
        path = tmp_path / "data" / "history.jsonl"
        _append(path)
        _append(path, row_index=2)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        entry = json.loads(lines[0])
        assert entry["client_id"] == "acme"
        assert entry["keywords"] == ["running", "marathon"]
        assert entry["content"]["titles"] == ["T1", "T2"]

    def test_load_round_trip(self, tmp_path):
        path = tmp_path / "history.jsonl"
        _append(path, cache_hit=True)
        entries = load_history(path)
        assert entries[0]["row_index"] == 1
        assert entries[0]["cache_hit"] is True


class TestRecentGenerations:
    def test_newest_first_and_limited(self, tmp_path):
        path = tmp_path / "history.jsonl"
        for i in range(1, 6):
            _append(path, row_index=i, ad_group=f"G{i}")
        df = recent_generations(load_history(path), n=3)
        assert list(df["row"]) == [5, 4, 3]
        assert list(df["ad_group"]) == ["G5", "G4", "G3"]

    def test_columns(self, tmp_path):
        path = tmp_path / "history.jsonl"
        _append(path)
        df = recent_generations(load_history(path))
        assert list(df.columns) == [
            "date", "sheet_id", "row", "client", "ad_group",
            "titles#", "descs#", "score", "model", "cache",
        ]
        assert df.iloc[0]["titles#"] == 2
        assert df.iloc[0]["score"] == 0.92

    def test_empty(self):
        df = recent_generations([])
        assert df.empty
        assert "score" in df.columns
