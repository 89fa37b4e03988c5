"""
Tests for the intent parser.
"""

from __future__ import annotations

from datetime import date

import pytest

from cinechat.agents.intent_parser import (
    detect_era,
    detect_intent,
    detect_media_type,
    detect_min_rating,
    extract_genres,
    extract_keywords,
    extract_names,
    extract_year,
    map_moods_to_genres,
    parse_intent,
)
from cinechat.models import IntentType, MediaType


class TestDetectIntent:

    def test_greeting(self):
        intent = parse_intent("hi")
        assert intent.type is IntentType.GREETING
        assert intent.confidence == pytest.approx(0.3)

    def test_greeting_ignores_genre_text(self):
        plain = parse_intent("hi")
        with_genre = parse_intent("hi comedy")
        assert with_genre.type is IntentType.GREETING
        assert with_genre.confidence == plain.confidence
        assert with_genre.genres == [35]

    def test_greeting_keyword_needs_whole_word(self):
        intent, _ = detect_intent("something")
        assert intent is IntentType.RECOMMEND

    def test_thanks(self):
        assert parse_intent("thanks, that was helpful").type is IntentType.THANKS

    def test_trending(self):
        assert parse_intent("what's trending").type is IntentType.TRENDING

    def test_top_rated(self):
        assert parse_intent("the best top rated classics of all time").type is IntentType.TOP_RATED

    def test_similar(self):
        assert parse_intent("movies like Inception").type is IntentType.SIMILAR

    def test_watchlist(self):
        assert parse_intent("open my watchlist").type is IntentType.WATCHLIST

    def test_no_keywords_defaults_to_recommend(self):
        intent, confidence = detect_intent("zombies")
        assert intent is IntentType.RECOMMEND
        assert confidence == pytest.approx(0.3)

    def test_confidence_bounded(self):
        _, confidence = detect_intent("hi hello hey howdy greetings good morning what's up")
        assert 0.0 <= confidence <= 1.0


class TestMediaType:

    def test_movie(self):
        assert detect_media_type("a good film tonight") is MediaType.MOVIE

    def test_tv(self):
        assert detect_media_type("a series to binge") is MediaType.TV

    def test_both_when_mixed(self):
        assert detect_media_type("movies or shows") is MediaType.BOTH

    def test_both_when_silent(self):
        assert detect_media_type("something fun") is MediaType.BOTH

    def test_whole_word_only(self):
        assert detect_media_type("showtime") is MediaType.BOTH


class TestGenres:

    def test_genre_name(self):
        ids, names = extract_genres("a comedy please", MediaType.MOVIE)
        assert ids == [35]
        assert names == ["Comedy"]

    def test_quick_mood_alias_expands(self):
        ids, _ = extract_genres("make me laugh", MediaType.MOVIE)
        assert 35 in ids

    def test_tv_genre_table(self):
        ids, _ = extract_genres("some reality tv", MediaType.TV)
        assert 10764 in ids

    def test_mood_mapping(self):
        assert map_moods_to_genres(["happy"], MediaType.MOVIE) == [35]
        assert map_moods_to_genres(["scared"], MediaType.MOVIE) == [27, 53]

    def test_unknown_mood_ignored(self):
        assert map_moods_to_genres(["confused"], MediaType.MOVIE) == []


class TestEraAndYear:

    def test_latest_wins(self):
        assert detect_era("the latest 90s revival") == "latest"

    def test_decade(self):
        assert detect_era("something from the nineties") == "90s"
        assert detect_era("80s horror") == "80s"

    def test_classic(self):
        assert detect_era("a classic western") == "classic"

    def test_none(self):
        assert detect_era("a thriller") is None

    def test_year(self):
        assert extract_year("released in 1999", today=date(2024, 1, 1)) == 1999

    def test_future_year_rejected(self):
        assert extract_year("set in 2077", today=date(2024, 1, 1)) is None


class TestOtherExtractors:

    def test_rating(self):
        assert detect_min_rating("highly rated drama") == 7.0
        assert detect_min_rating("award winning film") == 7.5
        assert detect_min_rating("a drama") is None

    def test_names(self):
        actors, directors = extract_names("something starring Tom Hanks directed by Steven Spielberg")
        assert "Tom Hanks" in actors
        assert directors == ["Steven Spielberg"]

    def test_keywords_skip_stop_words(self):
        assert extract_keywords("I want to watch a heist movie with twists") == ["heist", "twists"]

    def test_keywords_capped(self):
        text = " ".join(f"word{n}" for n in range(20))
        assert len(extract_keywords(text)) == 10


class TestParseIntent:

    def test_full_parse(self):
        intent = parse_intent("Recommend a scary horror movie from the 80s")
        assert intent.type is IntentType.RECOMMEND
        assert intent.media_type is MediaType.MOVIE
        assert 27 in intent.genres
        assert "scared" in intent.moods
        assert intent.era == "80s"
        assert intent.original_text == "Recommend a scary horror movie from the 80s"
        assert intent.response_hint

    @pytest.mark.parametrize("junk", [None, 42, "", "   ", ["hi"]])
    def test_junk_input_is_unknown(self, junk):
        intent = parse_intent(junk)
        assert intent.type is IntentType.UNKNOWN
        assert intent.confidence == pytest.approx(0.3)
        assert intent.genres == []
