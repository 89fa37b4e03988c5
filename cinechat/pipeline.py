"""
CineChat — Conversation Orchestrator

Design patterns:
  - Chain of Responsibility: phases execute sequentially, each passing
    results to the next
  - Strategy: fallback strategies when every query comes back empty
  - Facade: ChatOrchestrator.process_message() is the single entry point

Turn flow:
  Parse → Ambiguity gate → Reference → Queries → Parallel fetch → Dedupe
  → Cultural filter → Diversity rank → History update → Response
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple

from cinechat.agents.ambiguity import (
    GREETING_QUESTION,
    analyze_ambiguity,
    extract_refinements,
    generate_clarification_response,
    get_smart_follow_ups,
    is_refinement_request,
    is_variety_request,
)
from cinechat.agents.cultural_rules import analyze_reference_from_query, apply_cultural_rules, passes_cultural_filters
from cinechat.agents.diversity import (
    eligible_alternates,
    ensure_batch_diversity,
    get_diversity_summary,
    score_and_rank_items,
)
from cinechat.agents.fallback import FallbackProvider
from cinechat.agents.intent_parser import parse_intent
from cinechat.agents.query_builder import describe_query, generate_queries, to_discover_options
from cinechat.agents.reference_analyzer import ProfileTable, default_profile_table, extract_reference_title
from cinechat.clients import CatalogProvider
from cinechat.config import settings
from cinechat.history import RecommendationHistory
from cinechat.models import (
    CatalogPage,
    CatalogQuery,
    ChatMessage,
    ChatResponse,
    CulturalFilterRules,
    FallbackResult,
    HistoryStats,
    IntentType,
    MediaItem,
    MediaType,
    MessageMetadata,
    MessageRole,
    ParsedIntent,
    QueryKind,
    QuickAction,
    ReferenceAnalysis,
    Refinements,
)
from cinechat.taxonomy import QUICK_MOODS

logger = logging.getLogger(__name__)

CLARIFY_THRESHOLD = 0.7      # ambiguity above which the turn asks instead of answering
MAX_PAGES_PER_QUERY = 2
REFINED_MIN_RATING = 7.5

QUICK_ACTIONS: List[QuickAction] = [
    QuickAction(id="trending", label="Trending Now", icon="🔥", prompt="What's trending right now?"),
    QuickAction(id="action", label="Action Packed", icon="💥", prompt="I want something action-packed and exciting"),
    QuickAction(id="comedy", label="Make Me Laugh", icon="😂", prompt="I need something funny to watch"),
    QuickAction(id="romance", label="Romantic", icon="💕", prompt="Show me some romantic movies"),
    QuickAction(id="thriller", label="Thrilling", icon="😰", prompt="I want an intense thriller"),
    QuickAction(id="classic", label="Classic Hits", icon="🎬", prompt="Show me some classic all-time favorites"),
    QuickAction(id="scifi", label="Sci-Fi", icon="🚀", prompt="I'm in the mood for science fiction"),
    QuickAction(id="tv", label="TV Series", icon="📺", prompt="Recommend some binge-worthy TV series"),
]

_MERGEABLE = (IntentType.RECOMMEND, IntentType.MOOD, IntentType.GENRE, IntentType.UNKNOWN)
_REFINABLE = (IntentType.RECOMMEND, IntentType.MOOD, IntentType.GENRE, IntentType.SIMILAR)


# ── Canned messages ───────────────────────────────────────


def time_greeting(now: Optional[datetime] = None) -> str:
    hour = (now or datetime.now()).hour
    if hour < 12:
        return "Good morning"
    if hour < 17:
        return "Good afternoon"
    return "Good evening"


def create_welcome_message(now: Optional[datetime] = None) -> ChatMessage:
    content = (
        f"{time_greeting(now)}! 👋 I'm your personal movie & TV discovery assistant.\n\n"
        "Tell me what you're in the mood for, and I'll find the perfect thing to watch. "
        "You can say things like:\n\n"
        '• "I want something exciting"\n'
        '• "Show me romantic comedies from the 90s"\n'
        '• "What\'s trending this week?"\n'
        '• "I need a good thriller series"\n\n'
        "What are you in the mood for today?"
    )
    return ChatMessage(content=content, metadata=MessageMetadata(source="welcome"))


def create_user_message(content: str) -> ChatMessage:
    return ChatMessage(role=MessageRole.USER, content=content)


def create_error_message(error: str) -> ChatMessage:
    return ChatMessage(
        content=f"Oops! Something went wrong. {error}\n\nLet me try with some trending picks instead.",
        metadata=MessageMetadata(error=error),
    )


# ── Intent merging ────────────────────────────────────────


def merge_intents(previous: ParsedIntent, new: ParsedIntent) -> ParsedIntent:
    """Fold an answer to a clarifying question onto the intent that prompted it.

    Values stated in the new message win; anything it leaves open is
    carried over from the previous intent.
    """
    if new.type not in (IntentType.RECOMMEND, IntentType.UNKNOWN):
        kind = new.type
    elif previous.type is not IntentType.UNKNOWN:
        kind = previous.type
    else:
        kind = IntentType.RECOMMEND

    return new.model_copy(
        update={
            "type": kind,
            "media_type": new.media_type if new.media_type is not MediaType.BOTH else previous.media_type,
            "confidence": max(previous.confidence, new.confidence),
            "genres": new.genres or previous.genres,
            "genre_names": new.genre_names or previous.genre_names,
            "moods": new.moods or previous.moods,
            "era": new.era or previous.era,
            "year": new.year or previous.year,
            "min_rating": new.min_rating or previous.min_rating,
        }
    )


def apply_refinements(previous: ParsedIntent, new: ParsedIntent, refinements: Refinements) -> ParsedIntent:
    """Shift the previous request by "more X", "less Y", "newer" style cues."""
    genres: List[int] = []
    for genre_id in list(previous.genres) + list(new.genres) + refinements.add_genres:
        if genre_id not in refinements.remove_genres and genre_id not in genres:
            genres.append(genre_id)

    era = new.era or previous.era
    year = new.year or previous.year
    if refinements.prefer_newer:
        era, year = "latest", None
    elif refinements.prefer_older:
        era, year = "classic", None

    min_rating = new.min_rating or previous.min_rating
    if refinements.prefer_higher_rating:
        min_rating = max(min_rating or 0.0, REFINED_MIN_RATING)

    return new.model_copy(
        update={
            "type": previous.type if previous.type in _REFINABLE else IntentType.RECOMMEND,
            "media_type": new.media_type if new.media_type is not MediaType.BOTH else previous.media_type,
            "confidence": max(previous.confidence, new.confidence),
            "genres": genres,
            "moods": new.moods or previous.moods,
            "era": era,
            "year": year,
            "min_rating": min_rating,
        }
    )


# ── Follow-ups ────────────────────────────────────────────


def generate_follow_ups(intent: ParsedIntent, rng: Optional[random.Random] = None) -> List[str]:
    rng = rng or random.Random()
    follow_ups: List[str] = []

    if intent.media_type is MediaType.MOVIE:
        follow_ups.append("Show me some TV series instead")
    elif intent.media_type is MediaType.TV:
        follow_ups.append("Show me some movies instead")

    if intent.type is IntentType.TRENDING:
        follow_ups += ["Show me top-rated classics", "Find me something by genre"]
    elif intent.type is IntentType.TOP_RATED:
        follow_ups += ["What's trending now?", "Something from the 90s"]
    elif intent.type is IntentType.RECOMMEND:
        follow_ups += ["Something more exciting", "More emotional picks"]

    if not intent.moods:
        follow_ups.append(rng.choice(["I'm feeling adventurous", "Something relaxing", "Make me laugh"]))
    if not intent.genres:
        follow_ups.append(rng.choice(QUICK_MOODS).label)

    return follow_ups[:3]


def _dedupe(batches: Sequence[Sequence[MediaItem]]) -> List[MediaItem]:
    seen = set()
    unique: List[MediaItem] = []
    for batch in batches:
        for item in batch:
            if item.key not in seen:
                seen.add(item.key)
                unique.append(item)
    return unique


# ── Orchestrator (Facade) ─────────────────────────────────


class ChatOrchestrator:
    """One conversation: owns its history and the multi-turn context."""

    def __init__(
        self,
        catalog: CatalogProvider,
        *,
        history: Optional[RecommendationHistory] = None,
        fallback: Optional[FallbackProvider] = None,
        profiles: Optional[ProfileTable] = None,
        results_per_turn: int = settings.results_per_turn,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._catalog = catalog
        self._history = history or RecommendationHistory()
        self._rng = rng or random.Random()
        self._fallback = fallback or FallbackProvider(catalog, rng=self._rng)
        self._profiles = profiles
        self._results_per_turn = results_per_turn
        self._last_intent: Optional[ParsedIntent] = None
        self._pending: Optional[ParsedIntent] = None
        # bumped on reset so turn numbers from an earlier conversation never match
        self._generation = 0

    @property
    def history(self) -> RecommendationHistory:
        return self._history

    @property
    def profiles(self) -> ProfileTable:
        return self._profiles or default_profile_table()

    def reset_conversation(self) -> None:
        self._generation += 1
        self._history.clear()
        self._last_intent = None
        self._pending = None
        logger.info("Conversation reset")

    def get_stats(self) -> HistoryStats:
        return self._history.get_stats()

    # ── Phase helpers ─────────────────────────────────────

    def _stamp(self) -> Tuple[int, int]:
        return self._generation, self._history.current_turn

    def _stale(self, stamp: Tuple[int, int], intent: ParsedIntent) -> Optional[ChatResponse]:
        """Empty stale reply when a newer turn or a reset overtook ``stamp``."""
        if self._stamp() == stamp:
            return None
        logger.info("Turn %s superseded by %s; dropping results", stamp, self._stamp())
        return ChatResponse(
            message=ChatMessage(content="", metadata=MessageMetadata(intent=intent, stale=True, turn=stamp[1]))
        )

    def _resolve_intent(self, text: str) -> Tuple[ParsedIntent, bool]:
        """Parse and fold in the previous turn.

        Returns (intent, follows_up). ``follows_up`` is True when the
        message answers a clarifying question or refines the last request;
        such messages are never met with another question.
        """
        intent = parse_intent(text)
        pending, self._pending = self._pending, None

        if pending is not None:
            if intent.type in _MERGEABLE:
                intent = merge_intents(pending, intent)
            return intent, True
        if self._last_intent is not None and intent.type in _MERGEABLE and is_refinement_request(text):
            return apply_refinements(self._last_intent, intent, extract_refinements(text)), True
        return intent, False

    async def _fetch_page(self, query: CatalogQuery, page: int) -> CatalogPage:
        if query.kind is QueryKind.TRENDING:
            return await self._catalog.trending(query.media_type, settings.trending_window, page)
        if query.kind is QueryKind.TOP_RATED:
            return await self._catalog.top_rated(query.media_type, page)
        if query.kind is QueryKind.SEARCH:
            return await self._catalog.search(query.media_type, query.query or "", page)
        return await self._catalog.discover(query.media_type, to_discover_options(query, page))

    async def _execute(self, query: CatalogQuery) -> List[MediaItem]:
        """Up to ``fetch_limit`` items for one query, reading a second page if needed."""
        items: List[MediaItem] = []
        page_no = query.page
        for _ in range(MAX_PAGES_PER_QUERY):
            page = await self._fetch_page(query, page_no)
            items.extend(page.items)
            if len(items) >= query.fetch_limit or page.page >= page.total_pages or not page.items:
                break
            page_no = page.page + 1

        if query.kind is not QueryKind.DISCOVER:
            # list endpoints cannot filter by genre server-side
            if query.genres:
                items = [i for i in items if set(i.genre_ids) & set(query.genres)]
            if query.exclude_genres:
                items = [i for i in items if not set(i.genre_ids) & set(query.exclude_genres)]
        return items[: query.fetch_limit]

    async def _resolve_reference(self, text: str, intent: ParsedIntent) -> Optional[ReferenceAnalysis]:
        try:
            return await analyze_reference_from_query(
                self._catalog, text, prefer_movies=intent.media_type is not MediaType.TV, table=self.profiles
            )
        except Exception as exc:
            logger.warning("Reference analysis failed: %s", exc)
            return None

    async def _run_fallback(
        self,
        intent: ParsedIntent,
        was_error: bool,
        count: int,
        exclude: Set[str],
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        try:
            return await self._fallback.smart(
                genres=intent.genres,
                moods=intent.moods,
                media_type=intent.media_type,
                was_error=was_error,
                count=count,
                exclude=set(exclude),
                rules=rules,
            )
        except Exception as exc:
            logger.warning("Fallback failed: %s", exc)
            return FallbackResult(source="none")

    # ── Main entry ────────────────────────────────────────

    async def process_message(self, text: str) -> ChatResponse:
        turn = self._history.start_new_turn()
        stamp = (self._generation, turn)

        # ── Phase 1: Intent ───────────────────────────────
        intent, follows_up = self._resolve_intent(text)
        logger.info(
            "Phase 1 — Intent: %s (media=%s, confidence=%.2f, follow-up=%s)",
            intent.type.value, intent.media_type.value, intent.confidence, follows_up,
        )

        # ── Phase 2: Ambiguity gate ───────────────────────
        analysis = analyze_ambiguity(intent, self._history, self._rng)
        if (
            analysis.should_ask_follow_up
            and analysis.ambiguity_score > CLARIFY_THRESHOLD
            and not follows_up
            and not is_variety_request(intent.original_text)
        ):
            logger.info("Phase 2 — Clarifying: score=%.2f missing=%s", analysis.ambiguity_score, analysis.missing_info)
            question, options = generate_clarification_response(analysis)
            self._pending = intent
            follow_ups = [o.value for o in options] or get_smart_follow_ups(intent, self._history, self._rng)
            message = ChatMessage(
                content=question,
                metadata=MessageMetadata(
                    intent=intent, source="clarification", ambiguity_score=analysis.ambiguity_score, turn=turn
                ),
            )
            return ChatResponse(message=message, suggested_follow_ups=follow_ups)

        rules = self._history.generate_filter_rules()

        # ── Phase 3: Reference resolution ─────────────────
        reference: Optional[ReferenceAnalysis] = None
        wanted = extract_reference_title(intent.original_text)
        if wanted:
            reference = await self._resolve_reference(intent.original_text, intent)
            stale = self._stale(stamp, intent)
            if stale is not None:
                return stale
            if reference is None and intent.type in (IntentType.RECOMMEND, IntentType.UNKNOWN):
                intent = intent.model_copy(update={"type": IntentType.SIMILAR})
            logger.info("Phase 3 — Reference: %r → %s", wanted, reference.info.title if reference else None)

        # ── Phase 4: Queries ──────────────────────────────
        result = generate_queries(intent, rules, reference)
        context = result.response_context
        logger.info("Phase 4 — Queries: %s", [describe_query(q) for q in result.queries])
        self._last_intent = intent

        if not result.queries:
            message = ChatMessage(
                content="\n\n".join(p for p in (context.intro, context.explanation) if p),
                metadata=MessageMetadata(intent=intent, ambiguity_score=analysis.ambiguity_score, turn=turn),
            )
            return ChatResponse(message=message, suggested_follow_ups=generate_follow_ups(intent, self._rng))

        # ── Phase 5: Parallel fetch ───────────────────────
        outcomes = await asyncio.gather(*(self._execute(q) for q in result.queries), return_exceptions=True)
        batches: List[List[MediaItem]] = []
        failures = 0
        for query, outcome in zip(result.queries, outcomes):
            if isinstance(outcome, BaseException):
                failures += 1
                logger.warning("Query failed (%s): %s", describe_query(query), outcome)
                continue
            batches.append(outcome)

        stale = self._stale(stamp, intent)
        if stale is not None:
            return stale

        candidates = _dedupe(batches)
        logger.info("Phase 5 — Fetched %d unique candidates (%d queries failed)", len(candidates), failures)

        # ── Phase 6: Cultural filter + diversity rank ─────
        target = min(result.queries[0].limit, self._results_per_turn)
        if reference is not None and result.cultural_rules is not None:
            candidates = apply_cultural_rules(candidates, result.cultural_rules, reference.info, target, self.profiles)

        ranked = score_and_rank_items(candidates, self._history, rules, target)
        media = [s.item for s in ranked]
        media = ensure_batch_diversity(media, eligible_alternates(candidates, media, self._history, rules))
        logger.info("Phase 6 — Ranked %d items: %s", len(media), get_diversity_summary(ranked))

        # ── Phase 7: Fallback ─────────────────────────────
        used_fallback = False
        fallback: Optional[FallbackResult] = None
        if not media:
            used_fallback = True
            fallback = await self._run_fallback(
                intent, failures == len(result.queries), target, rules.exclude_ids, result.cultural_rules
            )
            stale = self._stale(stamp, intent)
            if stale is not None:
                return stale
            media = [i for i in fallback.items if i.key not in rules.exclude_ids]
            if result.cultural_rules is not None:
                media = [i for i in media if passes_cultural_filters(i, result.cultural_rules)]
            logger.info("Phase 7 — Fallback (%s): %d items", fallback.source, len(media))

        # ── Phase 8: History + response ───────────────────
        if media:
            self._history.add_recommendations(media)

        if not media:
            content = (
                f"{context.intro}\n\nI couldn't find anything matching your criteria. {context.follow_up}"
            ).strip()
        elif used_fallback:
            content = (
                "I couldn't find an exact match, but here are some recommendations you might enjoy:"
                f"\n\n{fallback.explanation if fallback else context.follow_up}"
            )
        else:
            content = "\n\n".join(p for p in (context.intro, context.explanation) if p)

        if rules.exclude_ids and media:
            content += f"\n\n_These are fresh picks - avoiding {len(rules.exclude_ids)} titles I already recommended._"

        if analysis.ambiguity_score > 0.3:
            follow_ups = get_smart_follow_ups(intent, self._history, self._rng) or generate_follow_ups(intent, self._rng)
        else:
            follow_ups = generate_follow_ups(intent, self._rng)

        if intent.type is IntentType.GREETING:
            content += f"\n\n{GREETING_QUESTION.question}"
            follow_ups = [o.value for o in GREETING_QUESTION.options]

        message = ChatMessage(
            content=content,
            media=media,
            metadata=MessageMetadata(
                intent=intent,
                query_type=result.queries[0].kind,
                source="fallback" if used_fallback else result.queries[0].source.value,
                reference_title=reference.info.title if reference else None,
                justification=result.cultural_rules.match_justification_template if result.cultural_rules else None,
                ambiguity_score=analysis.ambiguity_score,
                used_fallback=used_fallback,
                turn=turn,
            ),
        )
        logger.info("Turn %d complete: %d items, source=%s", turn, len(media), message.metadata.source)
        return ChatResponse(message=message, suggested_follow_ups=follow_ups)
