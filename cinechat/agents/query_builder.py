"""
CineChat — Query Generator

Takes a ParsedIntent (plus history-derived FilterRules and optional
cultural rules) and builds the catalog queries for this turn, together
with the intro / explanation / follow-up text of the reply.

Design patterns:
  - Dispatch Table: one builder per IntentType
  - Builder: CatalogQuery objects carry everything the executor needs
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from cinechat.agents.cultural_rules import (
    PAN_INDUSTRY_MASS_APPEAL,
    generate_match_explanation,
    generate_similar_intro,
)
from cinechat.agents.intent_parser import map_moods_to_genres
from cinechat.models import (
    CatalogQuery,
    DiscoverOptions,
    FilterRules,
    IntentType,
    MediaType,
    ParsedIntent,
    QueryKind,
    QueryResult,
    QuerySource,
    ReferenceAnalysis,
    ResponseContext,
)
from cinechat.taxonomy import era_range, genre_names

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 6
INTRO_LIMIT = 4
DIVERSITY_MULTIPLIER = 3
LIST_MULTIPLIER = 2
CULTURAL_MULTIPLIER = 4
MAX_SECONDARY_LANGUAGES = 2
TOP_RATED_FLOOR = 8.0
SIMILAR_FLOOR = 7.0


# ── Helpers ───────────────────────────────────────────────


def _media_types(media_type: MediaType) -> List[MediaType]:
    return [MediaType.MOVIE, MediaType.TV] if media_type is MediaType.BOTH else [media_type]


def _unique(values: Sequence[int]) -> List[int]:
    return list(dict.fromkeys(values))


def cooldown_genres(rules: Optional[FilterRules]) -> List[int]:
    if not rules:
        return []
    return [genre_id for genre_id, turns in rules.cooldown_genres.items() if turns > 0]


def _excluded(rules: Optional[FilterRules], keep: Sequence[int] = ()) -> List[int]:
    """Cooldown genres, minus any genre the user explicitly asked for."""
    return [g for g in cooldown_genres(rules) if g not in keep]


def _multiplier(rules: Optional[FilterRules], factor: int) -> int:
    return factor if rules is not None else 1


def _era_years(intent: ParsedIntent) -> Optional[Tuple[int, int]]:
    return era_range(intent.era)


# ── Builders per intent ───────────────────────────────────


def _recommendation_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    genres = list(intent.genres)
    if intent.moods:
        genres = _unique(genres + map_moods_to_genres(intent.moods, intent.media_type))

    on_cooldown = set(cooldown_genres(rules))
    if rules and genres:
        available = [g for g in genres if g not in on_cooldown]
        if available:
            genres = available
        else:
            logger.debug("All requested genres on cooldown; ignoring cooldown this turn")

    year_range = _era_years(intent)
    if year_range is None and rules and rules.exclude_ids and rules.preferred_eras:
        year_range = era_range(rules.preferred_eras[0])

    min_rating = intent.min_rating
    max_rating = None
    if rules:
        low, high = rules.preferred_rating_range
        if low > 0:
            min_rating = low
        if high < 10:
            max_rating = high

    queries = [
        CatalogQuery(
            kind=QueryKind.DISCOVER,
            media_type=media,
            genres=genres,
            # mood expansion yields several alternative genres, not a conjunction
            match_any_genre=bool(intent.moods),
            exclude_genres=[g for g in on_cooldown if g not in genres],
            year=intent.year,
            year_range=year_range,
            min_rating=min_rating,
            max_rating=max_rating,
            sort_by="popularity.desc",
            limit=DEFAULT_LIMIT,
            source=QuerySource.MOOD if intent.moods else QuerySource.GENRE,
            fetch_multiplier=_multiplier(rules, DIVERSITY_MULTIPLIER),
        )
        for media in _media_types(intent.media_type)
    ]

    names = genre_names(genres, intent.media_type)[:3]
    parts = []
    if intent.moods:
        parts.append(f"Based on your {' and '.join(intent.moods)} mood")
    if names:
        parts.append(f"in the {', '.join(names)} {'genres' if len(names) > 1 else 'genre'}")
    if intent.era:
        parts.append(f"from the {'latest releases' if intent.era == 'latest' else intent.era}")

    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro=intent.response_hint,
            explanation=" ".join(parts) or "Here are some picks I think you'll enjoy!",
            follow_up="Would you like me to find something more specific? Just tell me what you're in the mood for!",
        ),
        filter_rules=rules,
    )


def _search_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    text = " ".join(intent.keywords) or intent.original_text
    queries = [
        CatalogQuery(kind=QueryKind.SEARCH, media_type=media, query=text, limit=DEFAULT_LIMIT, source=QuerySource.SEARCH)
        for media in _media_types(intent.media_type)
    ]
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro="Here's what I found:",
            explanation=f'Searching for "{text}"',
            follow_up="Is this what you were looking for? I can help narrow it down!",
        ),
        filter_rules=rules,
    )


def _trending_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    queries = [
        CatalogQuery(
            kind=QueryKind.TRENDING,
            media_type=media,
            genres=list(intent.genres),
            exclude_genres=_excluded(rules, intent.genres),
            limit=DEFAULT_LIMIT,
            source=QuerySource.TRENDING,
            fetch_multiplier=_multiplier(rules, LIST_MULTIPLIER),
        )
        for media in _media_types(intent.media_type)
    ]
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro="🔥 Here's what's trending right now:",
            explanation="These are the most popular titles everyone's watching!",
            follow_up="Want me to filter by genre or show you all-time favorites instead?",
        ),
        filter_rules=rules,
    )


def _top_rated_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    year_range = _era_years(intent)
    # The plain top-rated list cannot be filtered; constrained requests go through discover.
    kind = QueryKind.DISCOVER if (intent.genres or year_range) else QueryKind.TOP_RATED
    queries = [
        CatalogQuery(
            kind=kind,
            media_type=media,
            genres=list(intent.genres),
            exclude_genres=_excluded(rules, intent.genres),
            year_range=year_range,
            min_rating=TOP_RATED_FLOOR,
            sort_by="vote_average.desc",
            limit=DEFAULT_LIMIT,
            source=QuerySource.TOP_RATED,
            fetch_multiplier=_multiplier(rules, LIST_MULTIPLIER),
        )
        for media in _media_types(intent.media_type)
    ]
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro="⭐ Here are some of the highest-rated titles:",
            explanation="These are critically acclaimed and fan favorites!",
            follow_up="Looking for something specific? Tell me a genre or mood!",
        ),
        filter_rules=rules,
    )


def _similar_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    queries = [
        CatalogQuery(
            kind=QueryKind.DISCOVER,
            media_type=media,
            genres=list(intent.genres),
            exclude_genres=_excluded(rules, intent.genres),
            min_rating=SIMILAR_FLOOR,
            sort_by="popularity.desc",
            limit=DEFAULT_LIMIT,
            source=QuerySource.SIMILAR,
            fetch_multiplier=_multiplier(rules, LIST_MULTIPLIER),
        )
        for media in _media_types(intent.media_type)
    ]
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro="Based on what you mentioned, you might enjoy:",
            explanation="These have a similar vibe and style!",
            follow_up="Tell me more about what you liked and I can find even better matches!",
        ),
        filter_rules=rules,
    )


def _genre_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    queries = [
        CatalogQuery(
            kind=QueryKind.DISCOVER,
            media_type=media,
            genres=list(intent.genres),
            exclude_genres=_excluded(rules, intent.genres),
            min_rating=intent.min_rating,
            sort_by="popularity.desc",
            limit=DEFAULT_LIMIT,
            source=QuerySource.GENRE,
            fetch_multiplier=_multiplier(rules, LIST_MULTIPLIER),
        )
        for media in _media_types(intent.media_type)
    ]
    names = genre_names(intent.genres, intent.media_type)
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro=f"Here are some great {' & '.join(names)} picks:" if names else intent.response_hint,
            explanation=f"Popular titles in {', '.join(names) or 'this genre'}",
            follow_up="Want me to filter by year or rating?",
        ),
        filter_rules=rules,
    )


def _watchlist_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    return QueryResult(
        response_context=ResponseContext(
            intro="📋 Your watchlist lives on your profile page.",
            explanation="I can't read saved titles from here, but I can help you pick what to add next.",
            follow_up="Want me to suggest something based on your mood?",
        ),
        filter_rules=rules,
    )


def _greeting_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    return QueryResult(
        queries=[
            CatalogQuery(kind=QueryKind.TRENDING, media_type=MediaType.MOVIE, limit=INTRO_LIMIT, source=QuerySource.TRENDING)
        ],
        response_context=ResponseContext(
            intro="👋 Hey there! I'm your movie discovery assistant.",
            explanation="Here's what's popular right now to get you started:",
            follow_up="Tell me what you're in the mood for and I'll find the perfect watch!",
        ),
        filter_rules=rules,
    )


def _thanks_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    return QueryResult(
        response_context=ResponseContext(
            intro="😊 You're welcome!",
            explanation="I'm glad I could help you find something to watch.",
            follow_up="Feel free to ask whenever you need more recommendations!",
        ),
        filter_rules=rules,
    )


def _unknown_queries(intent: ParsedIntent, rules: Optional[FilterRules]) -> QueryResult:
    queries = [
        CatalogQuery(kind=QueryKind.TRENDING, media_type=media, limit=INTRO_LIMIT, source=QuerySource.TRENDING)
        for media in (MediaType.MOVIE, MediaType.TV)
    ]
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro="I'd love to help you find something great to watch!",
            explanation="Here's what's popular right now:",
            follow_up="Try telling me your mood, a genre you like, or an actor you enjoy!",
        ),
        filter_rules=rules,
    )


_Builder = Callable[[ParsedIntent, Optional[FilterRules]], QueryResult]

_BUILDERS: Dict[IntentType, _Builder] = {
    IntentType.RECOMMEND: _recommendation_queries,
    IntentType.MOOD: _recommendation_queries,
    IntentType.SEARCH: _search_queries,
    IntentType.EXPLAIN: _search_queries,
    IntentType.COMPARE: _search_queries,
    IntentType.TRENDING: _trending_queries,
    IntentType.TOP_RATED: _top_rated_queries,
    IntentType.SIMILAR: _similar_queries,
    IntentType.GENRE: _genre_queries,
    IntentType.WATCHLIST: _watchlist_queries,
    IntentType.GREETING: _greeting_queries,
    IntentType.THANKS: _thanks_queries,
    IntentType.UNKNOWN: _unknown_queries,
}


# ── Cultural ("like X") queries ───────────────────────────


def cultural_queries(
    intent: ParsedIntent,
    reference: ReferenceAnalysis,
    rules: Optional[FilterRules] = None,
) -> QueryResult:
    """Primary query under the hard language rules, plus related-language queries."""
    info, cultural = reference.info, reference.filters
    media = intent.media_type if intent.media_type is not MediaType.BOTH else cultural.reference_media_type
    genres = list(intent.genres) or cultural.reference_genres[:3]

    excluded_languages = list(cultural.exclude_languages)
    if cultural.without_original_language and cultural.without_original_language not in excluded_languages:
        excluded_languages.append(cultural.without_original_language)

    if cultural.with_original_language:
        languages = [cultural.with_original_language]
    else:
        languages = [lang for lang in cultural.preferred_languages if lang not in excluded_languages]

    base = dict(
        kind=QueryKind.DISCOVER,
        media_type=media,
        genres=genres,
        match_any_genre=True,
        exclude_genres=_excluded(rules, genres),
        exclude_original_languages=excluded_languages,
        region=cultural.region,
        sort_by="popularity.desc",
        limit=DEFAULT_LIMIT,
        source=QuerySource.CULTURAL,
    )
    queries = [CatalogQuery(original_languages=languages, fetch_multiplier=CULTURAL_MULTIPLIER, **base)]

    relaxed = (
        cultural.with_original_language is None
        and cultural.reference_profile.mass_appeal_score >= PAN_INDUSTRY_MASS_APPEAL
    )
    if relaxed:
        related = [lang for lang in languages if lang != info.original_language][:MAX_SECONDARY_LANGUAGES]
        queries.extend(
            CatalogQuery(original_languages=[lang], fetch_multiplier=LIST_MULTIPLIER, **base) for lang in related
        )

    logger.info("Cultural queries for %r: %d (languages=%s)", info.title, len(queries), languages)
    return QueryResult(
        queries=queries,
        response_context=ResponseContext(
            intro=generate_similar_intro(info),
            explanation=generate_match_explanation(info),
            follow_up=f"Want more like {info.title}, or should I mix in something different?",
        ),
        filter_rules=rules,
        cultural_rules=cultural,
    )


# ── Public API ────────────────────────────────────────────


def generate_queries(
    intent: ParsedIntent,
    rules: Optional[FilterRules] = None,
    reference: Optional[ReferenceAnalysis] = None,
) -> QueryResult:
    if reference is not None:
        return cultural_queries(intent, reference, rules)
    result = _BUILDERS[intent.type](intent, rules)
    logger.debug("Generated %d queries for %s", len(result.queries), intent.type.value)
    return result


def to_discover_options(query: CatalogQuery, page: Optional[int] = None) -> DiscoverOptions:
    return DiscoverOptions(
        genres=query.genres,
        exclude_genres=query.exclude_genres,
        match_any_genre=query.match_any_genre,
        year=query.year,
        year_range=query.year_range,
        min_rating=query.min_rating,
        max_rating=query.max_rating,
        sort_by=query.sort_by,
        original_languages=query.original_languages,
        exclude_original_languages=query.exclude_original_languages,
        region=query.region,
        page=page or query.page,
    )


def describe_query(query: CatalogQuery) -> str:
    """One-line summary used in log messages."""
    parts = [query.kind.value, query.media_type.value]
    if query.query:
        parts.append(f"q={query.query!r}")
    if query.genres:
        parts.append(f"genres={query.genres}")
    if query.original_languages:
        parts.append(f"lang={'|'.join(query.original_languages)}")
    return " ".join(parts)
