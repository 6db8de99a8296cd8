"""Mock provider for dry-run mode: no API calls, strict JSON responses."""

from __future__ import annotations

import json
import random
from typing import Iterable, List, Optional

from adcopy.providers.base import BaseProvider, CompletionRequest

# Every title is <= 30 chars and every description 55-90 chars with a CTA.
_TITLE_POOL = [
    "Découvrez nos offres",
    "Livraison rapide offerte",
    "Qualité garantie",
    "Profitez de -20% aujourd'hui",
    "Devis gratuit en 24h",
    "Experts à votre écoute",
    "Satisfaction client garantie",
    "Offre limitée, agissez vite",
    "Service personnalisé",
    "Réservez en ligne",
    "Meilleur prix du marché",
    "Commandez en 2 clics",
    "Nouveautés disponibles",
    "Conseils d'experts gratuits",
    "Résultats rapides garantis",
    "Solution simple et efficace",
    "Essai gratuit sans engagement",
    "Stock limité, commandez vite",
]

_DESC_POOL = [
    "Découvrez notre sélection et profitez de la livraison gratuite dès aujourd'hui.",
    "Contactez nos experts pour un devis gratuit et personnalisé en moins de 24h.",
    "Réservez votre créneau en ligne en quelques clics, sans frais cachés.",
    "Commandez maintenant et profitez d'une qualité garantie au meilleur prix.",
    "Demandez votre essai gratuit et découvrez une solution pensée pour vous.",
    "Achetez en toute confiance : retours gratuits pendant 30 jours.",
]


class MockProvider(BaseProvider):
    """Deterministic-ish mock returning one JSON object per call.

    ``responses`` scripts the raw text of the first calls (useful to
    exercise the validator and retry paths); once exhausted, a well-formed
    response with *num_titles* titles and *num_descriptions* descriptions
    is generated from the pools.
    """

    name = "mock"

    def __init__(
        self,
        seed: int = 42,
        responses: Optional[Iterable[str]] = None,
        num_titles: int = 15,
        num_descriptions: int = 4,
        **kwargs,
    ):
        if not isinstance(seed, int):
            seed = 42
        self._rng = random.Random(seed)
        self._scripted: List[str] = list(responses or [])
        self.num_titles = num_titles
        self.num_descriptions = num_descriptions
        # Track requests for test assertions
        self.requests: List[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        if self._scripted:
            return self._scripted.pop(0)
        return self._mock_content()

    def _mock_content(self) -> str:
        titles = self._rng.sample(_TITLE_POOL, min(self.num_titles, len(_TITLE_POOL)))
        descriptions = self._rng.sample(
            _DESC_POOL, min(self.num_descriptions, len(_DESC_POOL))
        )
        return json.dumps({"titles": titles, "descriptions": descriptions}, ensure_ascii=False)

    def stats(self) -> dict:
        return {
            "call_count": len(self.requests),
            "retry_count": 0,
            "total_tokens": 0,
            "total_input_tokens": 0,
            "total_output_tokens": 0,
        }
