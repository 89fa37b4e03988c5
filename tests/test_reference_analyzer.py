"""
Tests for reference extraction, resolution and profiling.
"""

from __future__ import annotations

import pytest

from cinechat.agents.reference_analyzer import (
    ProfileTable,
    analyze_reference,
    build_cinematic_profile,
    default_profile_table,
    determine_industry,
    extract_reference_title,
    find_best_title_match,
    find_reference_title,
    preferred_languages,
)
from cinechat.models import (
    AudienceType,
    CinemaIndustry,
    MediaType,
    NarrativeScale,
    ProductionScale,
    StarPowerTier,
    StorytellingStyle,
)

from tests.conftest import FakeCatalog, make_item

EMPTY_TABLE = ProfileTable({})


class TestExtractReferenceTitle:

    def test_movies_like(self):
        assert extract_reference_title("movies like Baahubali") == "Baahubali"

    def test_no_reference(self):
        assert extract_reference_title("I want action movies") is None

    def test_genre_is_not_a_title(self):
        assert extract_reference_title("something like horror") is None

    def test_trailing_punctuation(self):
        assert extract_reference_title("shows like Breaking Bad.") == "Breaking Bad"

    def test_trailing_kind_word(self):
        assert extract_reference_title("movies like The Dark Knight movie") == "The Dark Knight"

    def test_if_i_liked(self):
        assert extract_reference_title("if I liked Inception, what should I watch") == "Inception"

    def test_would_like_is_not_a_reference(self):
        assert extract_reference_title("I would like Inception") is None

    @pytest.mark.parametrize("junk", [None, "", "   "])
    def test_empty(self, junk):
        assert extract_reference_title(junk) is None


class TestTitleResolution:

    def test_exact_beats_substring(self):
        results = [make_item(1, "The Matrix Reloaded"), make_item(2, "The Matrix")]
        assert find_best_title_match(results, "the matrix").id == 2

    def test_falls_back_to_first(self):
        results = [make_item(1, "Alpha"), make_item(2, "Beta")]
        assert find_best_title_match(results, "gamma").id == 1

    def test_no_results(self):
        assert find_best_title_match([], "anything") is None

    @pytest.mark.asyncio
    async def test_find_movie(self, indian_catalog):
        item = await find_reference_title(indian_catalog, "Baahubali")
        assert item is not None
        assert item.id == 256040

    @pytest.mark.asyncio
    async def test_falls_through_to_tv(self):
        catalog = FakeCatalog([make_item(1, "Dark", media_type=MediaType.TV)])
        item = await find_reference_title(catalog, "Dark")
        assert item.media_type is MediaType.TV

    @pytest.mark.asyncio
    async def test_lookup_error_reads_as_not_found(self, indian_catalog):
        indian_catalog.fail.add("search")
        assert await find_reference_title(indian_catalog, "Baahubali") is None


class TestProfileTable:

    def test_alias_lookup(self):
        table = ProfileTable({"baahubali": {"mass_appeal_score": 100}}, {"bahubali": "baahubali"})
        assert table.lookup("Bahubali 2")["mass_appeal_score"] == 100
        assert "bahubali" in table
        assert len(table) == 1

    def test_whole_word_keys(self):
        table = ProfileTable({"rrr": {"mass_appeal_score": 100}})
        assert table.lookup("Terrrible Title") is None

    def test_bundled_table_loads(self):
        table = default_profile_table()
        assert "baahubali" in table
        assert table.lookup("Baahubali: The Beginning")["mass_appeal_score"] == 100


class TestCinematicProfile:

    def test_known_title_uses_table(self):
        profile = build_cinematic_profile("Baahubali: The Beginning", "", [28], 0, 0.0, True, default_profile_table())
        assert profile.mass_appeal_score == 100
        assert profile.narrative_scale is NarrativeScale.EPIC
        assert profile.production_scale is ProductionScale.MEGA_BUDGET

    def test_partial_entry_filled(self):
        table = ProfileTable({"saaho": {"mass_appeal_score": 88}})
        profile = build_cinematic_profile("Saaho", "", [28], 0, 0.0, True, table)
        assert profile.mass_appeal_score == 88
        assert profile.audience_type is AudienceType.MASS

    def test_indian_epic_heuristics(self):
        profile = build_cinematic_profile(
            "Kingdom War", "A warrior rises to protect his family.", [28, 12], 6000, 120.0, True, EMPTY_TABLE,
        )
        assert profile.narrative_scale is NarrativeScale.EPIC
        assert profile.storytelling_style is StorytellingStyle.ACTION_SPECTACLE
        assert profile.audience_type is AudienceType.MASS
        assert profile.mass_appeal_score == 100
        assert profile.production_scale is ProductionScale.MEGA_BUDGET
        assert profile.star_power_tier is StarPowerTier.REGIONAL_SUPERSTAR
        assert profile.has_hero_centric_elevation
        assert profile.has_family_drama

    def test_small_drama(self):
        profile = build_cinematic_profile("A Quiet Life", "A family drama.", [18], 100, 5.0, False, EMPTY_TABLE)
        assert profile.narrative_scale is NarrativeScale.MEDIUM
        assert profile.storytelling_style is StorytellingStyle.EMOTIONAL_DRAMA
        assert profile.mass_appeal_score == 70
        assert profile.star_power_tier is StarPowerTier.UNKNOWN
        assert "family" in profile.themes


class TestIndustry:

    def test_language_first(self):
        assert determine_industry("te", ["US"], "x", EMPTY_TABLE) is CinemaIndustry.TOLLYWOOD

    def test_country_second(self):
        assert determine_industry("", ["KR"], "x", EMPTY_TABLE) is CinemaIndustry.KOREAN

    def test_regional_title(self):
        assert determine_industry("", [], "Pokiri", EMPTY_TABLE) is CinemaIndustry.TOLLYWOOD

    def test_other(self):
        assert determine_industry("", [], "Random", EMPTY_TABLE) is CinemaIndustry.OTHER

    def test_language_families(self):
        assert preferred_languages(CinemaIndustry.TOLLYWOOD, "te") == ["te", "hi", "ta", "kn"]
        assert preferred_languages(CinemaIndustry.EUROPEAN, "fr") == ["fr", "en"]
        assert preferred_languages(CinemaIndustry.OTHER, "") == []


class TestAnalyzeReference:

    @pytest.mark.asyncio
    async def test_indian_reference(self, indian_catalog):
        item = (await indian_catalog.search(MediaType.MOVIE, "Baahubali")).items[0]
        info = await analyze_reference(indian_catalog, item, default_profile_table())
        assert info.is_indian_cinema
        assert info.industry is CinemaIndustry.TOLLYWOOD
        assert info.release_year == 2015
        assert info.profile.mass_appeal_score == 100
        assert info.preferred_languages[0] == "te"

    @pytest.mark.asyncio
    async def test_details_failure_keeps_going(self, indian_catalog):
        item = (await indian_catalog.search(MediaType.MOVIE, "Baahubali")).items[0]
        indian_catalog.fail.add("details")
        info = await analyze_reference(indian_catalog, item, default_profile_table())
        assert info.production_countries == ["IN"]
        assert info.spoken_languages == []
