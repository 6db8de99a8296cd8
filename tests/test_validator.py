"""Tests for adcopy/validator.py: JSON extraction, checks, auto-correction."""

from __future__ import annotations

import json

import pytest

from adcopy.config import GenerationConfig, ValidationConfig
from adcopy.validator import (
    ResponseValidator,
    ValidationRules,
    char_count,
    extract_json,
    extract_titles_and_descriptions,
    format_validation_report,
    validate_and_correct,
    validate_quickly,
)

# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

TITLES = [f"Offre spéciale numéro {i}" for i in range(1, 16)]
DESCRIPTIONS = [
    "Découvrez notre gamme complète de chaussures de running dès aujourd'hui.",
    "Profitez de la livraison gratuite sur toutes vos commandes en ligne.",
    "Commandez vos baskets préférées et recevez-les chez vous en 48 heures.",
    "Contactez nos conseillers pour trouver la paire idéale pour vos courses.",
]
NO_CTA = "Une sélection de chaussures de running pour tous les niveaux et budgets."
LONG_TITLE = "Un titre beaucoup trop long pour Google Ads"


def _payload(titles=None, descriptions=None) -> str:
    return json.dumps(
        {
            "titles": TITLES if titles is None else titles,
            "descriptions": DESCRIPTIONS if descriptions is None else descriptions,
        },
        ensure_ascii=False,
    )


def _validate(raw: str, **rules):
    return ResponseValidator(ValidationRules(**rules)).validate_and_correct(raw)


# ─────────────────────────────────────────────────────────────────────────────
# JSON extraction
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_block(self):
        raw = 'Voici le résultat :\n```json\n{"titles": [], "descriptions": []}\n```'
        assert extract_json(raw) == {"titles": [], "descriptions": []}

    def test_surrounding_prose(self):
        raw = 'Bien sûr ! {"titles": ["A"], "descriptions": ["B"]} Bonne campagne.'
        assert extract_json(raw) == {"titles": ["A"], "descriptions": ["B"]}

    def test_nothing_found(self):
        assert extract_json("aucun objet ici") is None

    def test_empty_and_non_string(self):
        assert extract_json("") is None
        assert extract_json(None) is None

    def test_extract_titles_and_descriptions_tolerates_garbage(self):
        assert extract_titles_and_descriptions("???") == {"titles": [], "descriptions": []}

    def test_extract_titles_and_descriptions_ignores_bad_types(self):
        out = extract_titles_and_descriptions('{"titles": "x", "descriptions": ["d"]}')
        assert out == {"titles": [], "descriptions": ["d"]}

    def test_validate_quickly(self):
        assert validate_quickly(_payload()) is True
        assert validate_quickly('{"titles": []}') is False
        assert validate_quickly("```json\n{}\n```") is False


# ─────────────────────────────────────────────────────────────────────────────
# Valid responses
# ─────────────────────────────────────────────────────────────────────────────


class TestValidResponse:
    def test_clean_payload_is_valid(self):
        result = _validate(_payload())
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.score == 1.0

    def test_clean_payload_is_not_corrected(self):
        result = _validate(_payload())
        assert result.corrected_content is None
        assert result.content.titles == TITLES
        assert result.best_content is result.content

    def test_fenced_payload_is_valid(self):
        result = _validate(f"```json\n{_payload()}\n```")
        assert result.is_valid

    def test_items_are_stripped(self):
        titles = [f"  {t}  " for t in TITLES]
        result = _validate(_payload(titles=titles))
        assert result.content.titles == TITLES

    def test_meets_quality_threshold(self):
        assert _validate(_payload()).meets_quality_threshold


# ─────────────────────────────────────────────────────────────────────────────
# Structural failures
# ─────────────────────────────────────────────────────────────────────────────


class TestStructure:
    def test_no_json(self):
        result = _validate("Je ne peux pas répondre.")
        assert not result.is_valid
        assert result.score == 0.0
        assert result.error_messages == ["No valid JSON found in response"]

    def test_not_an_object(self):
        result = _validate("[1, 2, 3]")
        assert not result.is_valid
        assert result.error_messages == ["Data is not an object"]

    def test_missing_descriptions(self):
        result = _validate(json.dumps({"titles": TITLES}))
        assert not result.is_valid
        assert "Missing or invalid descriptions array" in result.error_messages
        assert result.score == pytest.approx(0.7)

    def test_structure_suggestion(self):
        result = _validate(json.dumps({"titles": "nope", "descriptions": []}))
        assert any("JSON format" in s for s in result.suggestions)


# ─────────────────────────────────────────────────────────────────────────────
# Item checks
# ─────────────────────────────────────────────────────────────────────────────


class TestItemChecks:
    def test_long_title_is_error_in_strict_mode(self):
        titles = [LONG_TITLE] + TITLES[1:]
        result = _validate(_payload(titles=titles))
        assert not result.is_valid
        assert result.errors[0].type == "length"
        assert result.errors[0].message == "Title 1 too long: 43 chars (max: 30)"
        assert result.errors[0].index == 0

    def test_long_title_is_warning_when_not_strict(self):
        titles = [LONG_TITLE] + TITLES[1:]
        result = _validate(_payload(titles=titles), strict_mode=False)
        assert result.is_valid
        assert any(w.type == "length" for w in result.warnings)
        # Over-length warnings still trigger a correction.
        assert result.corrected_content is not None
        assert all(char_count(t) <= 30 for t in result.corrected_content.titles)

    def test_non_string_item(self):
        titles = TITLES[:3] + [42] + TITLES[4:]
        result = _validate(_payload(titles=titles))
        assert "Title is empty or not a string" in result.error_messages
        assert result.content is None

    def test_empty_item(self):
        descriptions = DESCRIPTIONS[:3] + ["   "]
        result = _validate(_payload(descriptions=descriptions))
        assert "Description is empty or not a string" in result.error_messages

    def test_missing_cta_warning(self):
        descriptions = DESCRIPTIONS[:3] + [NO_CTA]
        result = _validate(_payload(descriptions=descriptions))
        assert result.is_valid
        cta = [w for w in result.warnings if w.type == "cta"]
        assert len(cta) == 1
        assert cta[0].message == "Description 4 may lack a clear call-to-action"
        assert any("calls-to-action" in s for s in result.suggestions)

    def test_short_description_warning(self):
        descriptions = DESCRIPTIONS[:3] + ["Découvrez nos offres."]
        result = _validate(_payload(descriptions=descriptions))
        assert any("is short" in w.message for w in result.warnings)

    def test_short_title_warning(self):
        titles = ["Promo"] + TITLES[1:]
        result = _validate(_payload(titles=titles))
        assert any(w.message == "Title 1 is very short" for w in result.warnings)

    def test_duplicates_warning_and_suggestion(self):
        titles = TITLES[:14] + [TITLES[0].upper()]
        result = _validate(_payload(titles=titles))
        assert any(w.type == "duplicate" for w in result.warnings)
        assert "Ensure all titles and descriptions are unique" in result.suggestions

    def test_wrong_count_is_error_in_strict_mode(self):
        result = _validate(_payload(titles=TITLES[:10]))
        assert "Wrong title count: 10 instead of 15" in result.error_messages
        assert not result.is_valid

    def test_wrong_count_is_warning_when_not_strict(self):
        result = _validate(_payload(titles=TITLES[:10]), strict_mode=False)
        assert result.is_valid
        assert any(
            w.type == "count" and "Wrong title count" in w.message for w in result.warnings
        )

    def test_surplus_is_sliced_when_not_strict(self):
        titles = TITLES + ["Offre spéciale numéro 16", "Offre spéciale numéro 17"]
        result = _validate(_payload(titles=titles), strict_mode=False)
        assert result.is_valid
        assert result.best_content is result.corrected_content
        assert result.best_content.titles == TITLES


# ─────────────────────────────────────────────────────────────────────────────
# Auto-correction
# ─────────────────────────────────────────────────────────────────────────────


class TestAutoCorrect:
    def test_truncates_long_items(self):
        titles = [LONG_TITLE] + TITLES[1:]
        corrected = _validate(_payload(titles=titles)).corrected_content
        assert corrected.titles[0] == LONG_TITLE[:30].strip()
        assert len(corrected.titles) == 15
        assert corrected.metadata.model == "corrected"

    def test_never_pads(self):
        corrected = _validate(_payload(titles=TITLES[:10])).corrected_content
        assert len(corrected.titles) == 10

    def test_drops_non_strings_and_duplicates(self):
        titles = TITLES[:12] + [None, TITLES[1].lower(), "  "] + [LONG_TITLE]
        corrected = _validate(_payload(titles=titles)).corrected_content
        assert None not in corrected.titles
        assert len(corrected.titles) == 13
        assert len({t.lower() for t in corrected.titles}) == len(corrected.titles)

    def test_slices_extra_items(self):
        descriptions = DESCRIPTIONS + [DESCRIPTIONS[0].replace("gamme", "collection")]
        corrected = _validate(_payload(descriptions=descriptions)).corrected_content
        assert corrected.descriptions == DESCRIPTIONS

    @pytest.mark.parametrize("strict_mode", [True, False])
    def test_correcting_twice_changes_nothing(self, strict_mode):
        # both long titles truncate to the same 30 characters
        titles = [LONG_TITLE, LONG_TITLE.replace("Google", "Bing")] + TITLES[2:]
        first = _validate(_payload(titles=titles), strict_mode=strict_mode).corrected_content
        assert first.titles[0] == LONG_TITLE[:30]
        assert len(first.titles) == 14

        again = _validate(
            _payload(titles=first.titles, descriptions=first.descriptions),
            strict_mode=strict_mode,
        ).best_content
        assert again.titles == first.titles
        assert again.descriptions == first.descriptions

    def test_disabled(self):
        result = _validate(_payload(titles=TITLES[:10]), auto_correct=False)
        assert result.corrected_content is None

    def test_partial_results_make_result_valid(self):
        result = _validate(_payload(titles=TITLES[:10]), allow_partial_results=True)
        assert result.is_valid
        assert result.best_content is result.corrected_content

    def test_corrected_content_carries_score(self):
        result = _validate(_payload(titles=TITLES[:10]))
        assert result.corrected_content.metadata.validation_score == result.score


# ─────────────────────────────────────────────────────────────────────────────
# Scoring / helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestScoringAndHelpers:
    def test_score_is_clamped(self):
        titles = [123] * 15
        descriptions = [None] * 4
        result = _validate(_payload(titles=titles, descriptions=descriptions))
        assert 0.0 <= result.score <= 1.0

    def test_char_count_counts_accents_once(self):
        assert char_count("Découvrez") == 9
        assert char_count("é à ç") == 5

    def test_rules_from_config(self):
        rules = ValidationRules.from_config(
            GenerationConfig(required_titles=10, max_title_chars=25),
            ValidationConfig(strict_mode=False),
            allow_partial_results=True,
        )
        assert rules.required_titles_count == 10
        assert rules.max_title_length == 25
        assert rules.strict_mode is False
        assert rules.allow_partial_results is True

    def test_module_level_validate(self):
        assert validate_and_correct(_payload()).is_valid

    def test_report(self):
        report = format_validation_report(_validate(_payload(titles=TITLES[:10])))
        assert report.startswith("Status: INVALID")
        assert "Wrong title count" in report
        assert "Auto-corrected: 10 titles, 4 descriptions" in report
