"""Tests for adcopy/clients.py: JSONL client directory."""

from __future__ import annotations

import json

import pytest

from adcopy.clients import ClientDirectory, ClientNotFoundError
from adcopy.schema import ClientProfile


def _profile(client_id: str = "acme", name: str = "Acme", **kw) -> ClientProfile:
    return ClientProfile(id=client_id, name=name, **kw)


class TestClientDirectory:
    def test_missing_file_is_empty(self, tmp_path):
        d = ClientDirectory(tmp_path / "clients.jsonl")
        assert d.list_clients() == []
        assert d.get_by_id("acme") is None

    def test_upsert_then_get(self, tmp_path):
        d = ClientDirectory(tmp_path / "data" / "clients.jsonl")
        d.upsert(_profile(industry="e-commerce", business_context="Vente de vélos"))
        got = d.get_by_id("acme")
        assert got.industry == "e-commerce"
        assert got.business_context == "Vente de vélos"

    def test_upsert_replaces(self, tmp_path):
        d = ClientDirectory(tmp_path / "clients.jsonl")
        d.upsert(_profile(name="Old"))
        d.upsert(_profile(name="New"))
        assert [p.name for p in d.list_clients()] == ["New"]
        lines = (tmp_path / "clients.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1

    def test_file_is_jsonl(self, tmp_path):
        path = tmp_path / "clients.jsonl"
        ClientDirectory(path).upsert(_profile(target_persona="Cyclistes urbains"))
        entry = json.loads(path.read_text(encoding="utf-8"))
        assert entry["id"] == "acme"
        assert entry["target_persona"] == "Cyclistes urbains"

    def test_list_sorted_by_name(self, tmp_path):
        d = ClientDirectory(tmp_path / "clients.jsonl")
        d.upsert(_profile("z", "zeta"))
        d.upsert(_profile("a", "Alpha"))
        d.upsert(_profile("m", "Mu"))
        assert [p.id for p in d.list_clients()] == ["a", "m", "z"]

    def test_require(self, tmp_path):
        d = ClientDirectory(tmp_path / "clients.jsonl")
        d.upsert(_profile())
        assert d.require("acme").name == "Acme"
        with pytest.raises(ClientNotFoundError):
            d.require("ghost")

    def test_empty_id_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            ClientDirectory(tmp_path / "clients.jsonl").upsert(_profile(""))

    def test_delete(self, tmp_path):
        d = ClientDirectory(tmp_path / "clients.jsonl")
        d.upsert(_profile())
        assert d.delete("acme") is True
        assert d.delete("acme") is False
        assert d.list_clients() == []

    def test_blank_lines_ignored(self, tmp_path):
        path = tmp_path / "clients.jsonl"
        path.write_text('\n{"id": "acme", "name": "Acme"}\n\n', encoding="utf-8")
        assert ClientDirectory(path).require("acme").industry is None


class TestClientProfile:
    def test_context_text_skips_empty_parts(self):
        p = _profile(business_context="Vélos", editorial_guidelines="Tutoiement")
        assert p.context_text() == "Vélos\nTutoiement"

    def test_dict_round_trip_normalises_blanks(self):
        p = ClientProfile.from_dict({"id": "x", "industry": "", "name": None})
        assert p.industry is None
        assert p.name == ""
