"""Client directory: client profiles stored as JSONL, one profile per line.

Each line is a :meth:`ClientProfile.to_dict` object::

    {"id": "acme", "name": "Acme", "industry": "e-commerce",
     "target_persona": "Parents actifs", "business_context": "...",
     "specifics": "", "editorial_guidelines": "Vouvoiement"}

Writing the same ``id`` again replaces the earlier profile.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from adcopy.schema import ClientProfile

logger = logging.getLogger(__name__)


class ClientNotFoundError(KeyError):
    pass


class ClientDirectory:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    # ── File helpers ──────────────────────────────────────────────────────────

    def _load(self) -> Dict[str, ClientProfile]:
        if not self.path.exists():
            return {}
        profiles: Dict[str, ClientProfile] = {}
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    profile = ClientProfile.from_dict(json.loads(line))
                    profiles[profile.id] = profile
        return profiles

    def _rewrite(self, profiles: Dict[str, ClientProfile]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            for p in profiles.values():
                f.write(json.dumps(p.to_dict(), ensure_ascii=False) + "\n")

    # ── Public API ────────────────────────────────────────────────────────────

    def get_by_id(self, client_id: str) -> Optional[ClientProfile]:
        return self._load().get(client_id)

    def require(self, client_id: str) -> ClientProfile:
        profile = self.get_by_id(client_id)
        if profile is None:
            raise ClientNotFoundError(client_id)
        return profile

    def list_clients(self) -> List[ClientProfile]:
        return sorted(self._load().values(), key=lambda p: p.name.lower() or p.id)

    def upsert(self, profile: ClientProfile) -> ClientProfile:
        if not profile.id:
            raise ValueError("client profile needs a non-empty id")
        profiles = self._load()
        profiles[profile.id] = profile
        self._rewrite(profiles)
        logger.info("saved client %s", profile.id)
        return profile

    def delete(self, client_id: str) -> bool:
        profiles = self._load()
        if profiles.pop(client_id, None) is None:
            return False
        self._rewrite(profiles)
        logger.info("deleted client %s", client_id)
        return True
