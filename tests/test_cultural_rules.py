"""
Tests for cultural filter generation and application.
"""

from __future__ import annotations

import pytest

from cinechat.agents.cultural_rules import (
    analyze_reference_from_query,
    apply_cultural_rules,
    generate_cultural_filters,
    generate_match_explanation,
    generate_similar_intro,
    passes_cultural_filters,
)
from cinechat.agents.reference_analyzer import ProfileTable, default_profile_table
from cinechat.models import (
    CinemaIndustry,
    CinematicProfile,
    CulturalFilterRules,
    MediaType,
    ReferenceInfo,
)

from tests.conftest import make_item


def _reference(**kwargs) -> ReferenceInfo:
    fields = dict(
        id=1,
        title="Reference",
        media_type=MediaType.MOVIE,
        original_language="te",
        industry=CinemaIndustry.TOLLYWOOD,
        industry_description="Telugu cinema (Tollywood)",
        preferred_languages=["te", "hi", "ta", "kn"],
        is_indian_cinema=True,
        profile=CinematicProfile(mass_appeal_score=100),
    )
    fields.update(kwargs)
    return ReferenceInfo(**fields)


class TestGenerateFilters:

    def test_mass_indian_relaxes_language(self):
        rules = generate_cultural_filters(_reference())
        assert rules.exclude_languages == ["en"]
        assert rules.with_original_language is None
        assert rules.without_original_language == "en"
        assert rules.strict_language_match
        assert rules.region == "IN"

    def test_regular_indian_pins_language(self):
        rules = generate_cultural_filters(_reference(profile=CinematicProfile(mass_appeal_score=60)))
        assert rules.with_original_language == "te"
        assert rules.minimum_mass_appeal_score == 40

    def test_korean(self):
        info = _reference(
            original_language="ko", industry=CinemaIndustry.KOREAN, industry_description="Korean cinema (K-movies)",
            preferred_languages=["ko"], is_indian_cinema=False,
        )
        rules = generate_cultural_filters(info)
        assert rules.with_original_language == "ko"
        assert rules.region == "KR"
        assert "IN" in rules.exclude_countries

    def test_hollywood_is_not_strict(self):
        info = _reference(
            original_language="en", industry=CinemaIndustry.HOLLYWOOD,
            industry_description="English/Hollywood cinema", preferred_languages=["en"], is_indian_cinema=False,
        )
        rules = generate_cultural_filters(info)
        assert rules.with_original_language == "en"
        assert not rules.strict_language_match
        assert rules.exclude_languages == []


class TestPassesFilters:

    def test_excluded_language_never_passes(self):
        rules = generate_cultural_filters(_reference())
        assert not passes_cultural_filters(make_item(1, language="en", countries=("IN",)), rules)

    def test_excluded_country(self):
        rules = generate_cultural_filters(_reference())
        assert not passes_cultural_filters(make_item(1, language="hi", countries=("US",)), rules)

    def test_strict_language_set(self):
        rules = generate_cultural_filters(_reference())
        assert passes_cultural_filters(make_item(1, language="hi", countries=("IN",)), rules)
        assert not passes_cultural_filters(make_item(2, language="ml", countries=("IN",)), rules)

    def test_missing_language_fails_strict(self):
        rules = generate_cultural_filters(_reference())
        assert not passes_cultural_filters(make_item(1, language="", countries=()), rules)

    def test_loose_rules_pass_everything(self):
        assert passes_cultural_filters(make_item(1, language="fr"), CulturalFilterRules())


class TestApplyRules:

    @pytest.mark.asyncio
    async def test_no_english_for_mass_indian_reference(self, indian_catalog):
        analysis = await analyze_reference_from_query(
            indian_catalog, "movies like Baahubali", table=default_profile_table()
        )
        assert analysis is not None
        assert analysis.info.profile.mass_appeal_score == 100
        assert "en" in analysis.filters.exclude_languages

        kept = apply_cultural_rules(
            indian_catalog.items, analysis.filters, analysis.info, target=6, table=default_profile_table()
        )
        assert kept
        assert all(item.original_language != "en" for item in kept)
        assert all(item.id != 256040 for item in kept)

    def test_tags_added(self):
        info = _reference()
        rules = generate_cultural_filters(info)
        kept = apply_cultural_rules(
            [make_item(5, language="te", countries=("IN",))], rules, info, target=1, table=ProfileTable({})
        )
        assert kept[0].tags == ["Same Telugu cinema (Tollywood)"]

    def test_weak_candidates_kept_when_few_remain(self):
        info = _reference()
        rules = generate_cultural_filters(info)
        items = [
            make_item(n, language="te", countries=("IN",), vote_count=10, popularity=1.0) for n in range(10, 13)
        ]
        kept = apply_cultural_rules(items, rules, info, target=6, table=ProfileTable({}))
        assert len(kept) == 3

    def test_reference_dropped_by_id_and_media_type(self):
        info = _reference()
        rules = generate_cultural_filters(info)
        items = [
            make_item(1, language="te", countries=("IN",)),
            make_item(1, media_type=MediaType.TV, language="te", countries=("IN",)),
        ]
        kept = apply_cultural_rules(items, rules, info, target=1, table=ProfileTable({}))
        assert [i.key for i in kept] == ["tv-1"]

    @pytest.mark.asyncio
    async def test_unknown_reference(self, indian_catalog):
        assert await analyze_reference_from_query(indian_catalog, "movies like Zzyzx Road") is None

    @pytest.mark.asyncio
    async def test_no_reference_in_message(self, indian_catalog):
        assert await analyze_reference_from_query(indian_catalog, "action movies") is None
        assert indian_catalog.count("search") == 0


class TestResponseText:

    def test_intro_mentions_title(self):
        intro = generate_similar_intro(_reference(title="Baahubali"))
        assert intro.startswith("Since you loved **Baahubali**")
        assert intro.endswith(":")

    def test_explanation_mentions_exclusion(self):
        text = generate_match_explanation(_reference())
        assert "excluded English/Hollywood films" in text
        assert "strong mass appeal" in text

    def test_explanation_non_indian(self):
        info = _reference(is_indian_cinema=False, industry_description="Korean cinema (K-movies)")
        assert generate_match_explanation(info).startswith("Films from the same Korean cinema")
