"""
Tests for the conversation orchestrator: full turns against the
in-memory catalog.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime

import pytest

from cinechat.agents.ambiguity import GREETING_QUESTION, extract_refinements
from cinechat.agents.reference_analyzer import default_profile_table
from cinechat.models import IntentType, MediaType, ParsedIntent
from cinechat.pipeline import (
    QUICK_ACTIONS,
    ChatOrchestrator,
    apply_refinements,
    create_error_message,
    create_user_message,
    create_welcome_message,
    generate_follow_ups,
    merge_intents,
    time_greeting,
)
from cinechat.taxonomy import GENRES

from tests.conftest import FakeCatalog, make_item


@pytest.fixture
def orchestrator(catalog) -> ChatOrchestrator:
    return ChatOrchestrator(catalog, rng=random.Random(11))


# ── Helpers ───────────────────────────────────────────────


class TestCannedMessages:

    def test_time_greeting(self):
        assert time_greeting(datetime(2024, 1, 1, 9)) == "Good morning"
        assert time_greeting(datetime(2024, 1, 1, 14)) == "Good afternoon"
        assert time_greeting(datetime(2024, 1, 1, 21)) == "Good evening"

    def test_welcome(self):
        message = create_welcome_message(datetime(2024, 1, 1, 9))
        assert message.content.startswith("Good morning!")
        assert message.metadata.source == "welcome"
        assert message.role.value == "assistant"

    def test_user_and_error(self):
        assert create_user_message("hello").role.value == "user"
        error = create_error_message("timeout")
        assert "timeout" in error.content
        assert error.metadata.error == "timeout"

    def test_quick_actions(self):
        assert len(QUICK_ACTIONS) == 8
        assert len({a.id for a in QUICK_ACTIONS}) == 8


class TestIntentMerging:

    def test_answer_fills_gaps(self):
        previous = ParsedIntent(type=IntentType.RECOMMEND, media_type=MediaType.TV, confidence=0.3)
        answer = ParsedIntent(type=IntentType.RECOMMEND, genres=[35], genre_names=["Comedy"], confidence=0.3)
        merged = merge_intents(previous, answer)
        assert merged.media_type is MediaType.TV
        assert merged.genres == [35]
        assert merged.type is IntentType.RECOMMEND

    def test_explicit_new_type_wins(self):
        merged = merge_intents(ParsedIntent(), ParsedIntent(type=IntentType.TRENDING))
        assert merged.type is IntentType.TRENDING

    def test_unknown_previous_becomes_recommend(self):
        merged = merge_intents(ParsedIntent(type=IntentType.UNKNOWN), ParsedIntent(type=IntentType.UNKNOWN))
        assert merged.type is IntentType.RECOMMEND

    def test_refinement_add_remove(self):
        previous = ParsedIntent(type=IntentType.GENRE, genres=[27, 53], media_type=MediaType.MOVIE)
        refined = apply_refinements(previous, ParsedIntent(), extract_refinements("more comedy, less horror"))
        assert refined.genres == [53, 35]
        assert refined.type is IntentType.GENRE
        assert refined.media_type is MediaType.MOVIE

    def test_refinement_newer_clears_year(self):
        previous = ParsedIntent(genres=[18], year=1994)
        refined = apply_refinements(previous, ParsedIntent(), extract_refinements("something newer"))
        assert refined.era == "latest"
        assert refined.year is None

    def test_refinement_higher_rating(self):
        refined = apply_refinements(ParsedIntent(), ParsedIntent(), extract_refinements("higher rated ones"))
        assert refined.min_rating == 7.5

    def test_follow_ups_capped(self):
        intent = ParsedIntent(type=IntentType.TRENDING, media_type=MediaType.MOVIE)
        follow_ups = generate_follow_ups(intent, random.Random(1))
        assert follow_ups == ["Show me some TV series instead", "Show me top-rated classics", "Find me something by genre"]


# ── Full turns ────────────────────────────────────────────


class TestProcessMessage:

    @pytest.mark.asyncio
    async def test_never_repeats_titles(self, orchestrator):
        seen = set()
        messages = ["action movies", "comedy movies", "action movies", "drama shows"]
        for n, text in enumerate(messages):
            response = await orchestrator.process_message(text)
            keys = {i.key for i in response.message.media}
            if n == 0:
                assert keys
            assert not keys & seen
            assert len(keys) == len(response.message.media)
            seen |= keys
        assert orchestrator.history.get_recommended_ids() == seen

    @pytest.mark.asyncio
    async def test_results_capped(self, orchestrator):
        response = await orchestrator.process_message("action movies")
        assert 0 < len(response.message.media) <= 6
        assert response.message.metadata.turn == 1
        assert response.suggested_follow_ups

    @pytest.mark.asyncio
    async def test_second_turn_mentions_fresh_picks(self, orchestrator):
        await orchestrator.process_message("action movies")
        response = await orchestrator.process_message("action movies")
        if response.message.media:
            assert "fresh picks" in response.message.content

    @pytest.mark.asyncio
    async def test_greeting(self, orchestrator):
        response = await orchestrator.process_message("hi")
        message = response.message
        assert message.metadata.intent.type is IntentType.GREETING
        assert message.content.startswith("👋 Hey there!")
        assert len(message.media) == 4
        assert all(i.media_type is MediaType.MOVIE for i in message.media)

    @pytest.mark.asyncio
    async def test_greeting_asks_onboarding_question(self, orchestrator):
        response = await orchestrator.process_message("hi")
        assert response.message.content.endswith(GREETING_QUESTION.question)
        assert response.suggested_follow_ups == [o.value for o in GREETING_QUESTION.options]
        assert response.message.media

    @pytest.mark.asyncio
    async def test_thanks_has_no_media(self, orchestrator, catalog):
        response = await orchestrator.process_message("thanks")
        assert response.message.media == []
        assert response.message.content.startswith("😊 You're welcome!")
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_vague_message_asks_then_answers(self, orchestrator):
        first = await orchestrator.process_message("something")
        assert first.message.metadata.source == "clarification"
        assert first.message.content == "What genre are you in the mood for?"
        assert first.message.media == []
        assert first.message.metadata.ambiguity_score == 1.0
        assert len(first.suggested_follow_ups) == 4
        assert set(first.suggested_follow_ups) <= {g.name for g in GENRES}

        second = await orchestrator.process_message("Comedy")
        assert second.message.metadata.source != "clarification"
        assert second.message.media
        assert all(35 in i.genre_ids for i in second.message.media)
        assert not second.message.metadata.used_fallback

    @pytest.mark.asyncio
    async def test_clarifying_answer_never_asks_again(self, orchestrator):
        await orchestrator.process_message("something")
        response = await orchestrator.process_message("What's trending?")
        assert response.message.metadata.source != "clarification"

    @pytest.mark.asyncio
    async def test_fallback_when_queries_fail(self, orchestrator, catalog):
        catalog.fail.add("discover")
        response = await orchestrator.process_message("action movies")
        message = response.message
        assert message.metadata.used_fallback
        assert message.metadata.source == "fallback"
        assert message.media
        assert message.content.startswith("I couldn't find an exact match")

    @pytest.mark.asyncio
    async def test_everything_failing_is_apologetic(self, orchestrator, catalog):
        catalog.fail.update({"discover", "trending"})
        response = await orchestrator.process_message("action movies")
        message = response.message
        assert message.media == []
        assert "I couldn't find anything matching your criteria." in message.content
        assert message.metadata.used_fallback
        assert len(orchestrator.history) == 0

    @pytest.mark.asyncio
    async def test_empty_results_fall_back(self):
        catalog = FakeCatalog([make_item(n, genres=(35,), popularity=100.0 - n) for n in range(10)])
        orchestrator = ChatOrchestrator(catalog, rng=random.Random(2))
        response = await orchestrator.process_message("I want a western movie tonight")
        assert response.message.metadata.used_fallback

    @pytest.mark.asyncio
    async def test_cultural_reference_excludes_english(self, indian_catalog):
        orchestrator = ChatOrchestrator(indian_catalog, profiles=default_profile_table(), rng=random.Random(5))
        response = await orchestrator.process_message("recommend movies like Baahubali")
        message = response.message
        assert message.metadata.reference_title == "Baahubali: The Beginning"
        assert message.metadata.source == "cultural"
        assert message.metadata.justification
        assert message.media
        assert all(i.original_language != "en" for i in message.media)
        assert all(i.id != 256040 for i in message.media)
        assert message.content.startswith("Since you loved **Baahubali: The Beginning**")

    @pytest.mark.asyncio
    async def test_unresolved_reference_becomes_similar(self, orchestrator):
        response = await orchestrator.process_message("can you recommend a thriller movie like Zzyzx Road")
        assert response.message.metadata.intent.type is IntentType.SIMILAR
        assert response.message.metadata.reference_title is None

    @pytest.mark.asyncio
    async def test_superseded_turn_is_stale(self, orchestrator, catalog):
        catalog.hold.add("discover")
        first = asyncio.create_task(orchestrator.process_message("action movies"))
        for _ in range(3):
            await asyncio.sleep(0)

        second = await orchestrator.process_message("show me trending movies this week")
        catalog.release.set()
        stale = await first

        assert stale.message.metadata.stale
        assert stale.message.content == ""
        assert stale.message.media == []
        assert second.message.media
        assert len(orchestrator.history) == len(second.message.media)

    @pytest.mark.asyncio
    async def test_reset(self, orchestrator):
        await orchestrator.process_message("action movies")
        orchestrator.reset_conversation()
        stats = orchestrator.get_stats()
        assert stats.total_recommended == 0
        assert stats.turn_count == 0
        assert orchestrator.history.get_recommended_ids() == set()

    @pytest.mark.asyncio
    async def test_watchlist(self, orchestrator, catalog):
        response = await orchestrator.process_message("can you open my saved watchlist please")
        assert response.message.media == []
        assert "watchlist" in response.message.content
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_turn_from_before_reset_is_stale(self, orchestrator, catalog):
        catalog.hold.add("discover")
        first = asyncio.create_task(orchestrator.process_message("action movies"))
        while not catalog.count("discover"):
            await asyncio.sleep(0)

        orchestrator.reset_conversation()
        second = await orchestrator.process_message("show me trending movies this week")
        catalog.release.set()
        stale = await first

        assert stale.message.metadata.stale
        assert stale.message.media == []
        assert second.message.metadata.turn == 1
        assert len(orchestrator.history) == len(second.message.media)
        assert orchestrator.get_stats().turn_count == 1

    @pytest.mark.asyncio
    async def test_fallback_overtaken_by_newer_turn(self, orchestrator, catalog):
        catalog.fail.add("discover")
        catalog.hold.add("trending")
        first = asyncio.create_task(orchestrator.process_message("action movies"))
        while not catalog.count("trending"):
            await asyncio.sleep(0)

        await orchestrator.process_message("thanks")
        catalog.release.set()
        stale = await first

        assert stale.message.metadata.stale
        assert len(orchestrator.history) == 0

    @pytest.mark.asyncio
    async def test_cultural_fallback_keeps_language_rules(self, indian_catalog):
        indian_catalog.fail.add("discover")
        orchestrator = ChatOrchestrator(indian_catalog, profiles=default_profile_table(), rng=random.Random(5))
        response = await orchestrator.process_message("recommend movies like Baahubali")
        message = response.message
        assert message.metadata.used_fallback
        assert message.media
        assert all(i.original_language != "en" for i in message.media)
        assert all(i.id != 256040 for i in message.media)
