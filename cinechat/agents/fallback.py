"""
CineChat — Fallback Provider

Rule-based results for turns where every primary query came back empty
or failed. Trending titles are cached briefly; every strategy drops
titles the conversation has already shown and, for "like X" requests,
titles the reference's cultural rules exclude.

Design patterns:
  - Strategy: trending / genre / mood / top-rated / surprise / cultural
  - Cache Aside: trending pool refreshed at most once per TTL
  - Chain of Responsibility: smart selector tries cultural, mood, genre,
    then trending
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Iterable, List, Optional, Sequence, Set

from cinechat.agents.cultural_rules import passes_cultural_filters
from cinechat.agents.intent_parser import MOOD_TO_QUICK_MOODS
from cinechat.clients import CatalogProvider
from cinechat.config import settings
from cinechat.models import CulturalFilterRules, DiscoverOptions, FallbackResult, MediaItem, MediaType
from cinechat.taxonomy import find_quick_mood, genre_names

logger = logging.getLogger(__name__)


def _per_type(media_type: MediaType, count: int) -> int:
    return (count + 1) // 2 if media_type is MediaType.BOTH else count


def _media_types(media_type: MediaType) -> List[MediaType]:
    return [MediaType.MOVIE, MediaType.TV] if media_type is MediaType.BOTH else [media_type]


def _keep(
    items: Iterable[MediaItem],
    exclude: Set[str],
    rules: Optional[CulturalFilterRules] = None,
) -> List[MediaItem]:
    if rules is None:
        return [i for i in items if i.key not in exclude]
    reference = (rules.reference_id, rules.reference_media_type)
    return [
        i for i in items
        if i.key not in exclude and (i.id, i.media_type) != reference and passes_cultural_filters(i, rules)
    ]


class FallbackProvider:
    """Fallback strategies over a CatalogProvider."""

    def __init__(
        self,
        catalog: CatalogProvider,
        *,
        cache_ttl: float = settings.fallback_cache_ttl_seconds,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._catalog = catalog
        self._ttl = cache_ttl
        self._rng = rng or random.Random()
        self._movies: List[MediaItem] = []
        self._shows: List[MediaItem] = []
        self._cached_at = 0.0

    # ── Trending cache ────────────────────────────────────

    async def _refresh(self) -> None:
        if self._movies and time.time() - self._cached_at < self._ttl:
            return
        movies, shows = await asyncio.gather(
            self._catalog.trending(MediaType.MOVIE, settings.trending_window),
            self._catalog.trending(MediaType.TV, settings.trending_window),
            return_exceptions=True,
        )
        if isinstance(movies, BaseException) or isinstance(shows, BaseException):
            error = movies if isinstance(movies, BaseException) else shows
            logger.warning("Fallback trending refresh failed: %s", error)
            return
        self._movies, self._shows = movies.items, shows.items
        self._cached_at = time.time()

    def invalidate(self) -> None:
        self._movies, self._shows, self._cached_at = [], [], 0.0

    # ── Strategies ────────────────────────────────────────

    async def trending(
        self,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        await self._refresh()
        exclude = exclude or set()
        movies = _keep(self._movies, exclude, rules)
        shows = _keep(self._shows, exclude, rules)
        items = movies[: (count + 1) // 2] + shows[: count // 2]
        if len(items) < count:
            # one side ran short; top up from the other
            chosen = {i.key for i in items}
            items += [i for i in movies + shows if i.key not in chosen][: count - len(items)]
        return FallbackResult(items=items[:count], source="trending", explanation="Here's what's popular right now:")

    async def genre(
        self,
        genre_ids: Sequence[int],
        media_type: MediaType = MediaType.BOTH,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        exclude = exclude or set()
        options = DiscoverOptions(genres=list(genre_ids), sort_by="popularity.desc")
        items: List[MediaItem] = []
        try:
            for media in _media_types(media_type):
                page = await self._catalog.discover(media, options)
                items.extend(_keep(page.items, exclude, rules)[: _per_type(media_type, count)])
        except Exception as exc:
            logger.warning("Genre fallback failed (%s); using trending", exc)
            return await self.trending(count, exclude, rules)

        names = genre_names(genre_ids, media_type)[:3]
        return FallbackResult(
            items=items[:count],
            source="genre",
            explanation=f"Popular {' & '.join(names)} picks:" if names else "Popular picks:",
        )

    async def mood(
        self,
        mood_id: str,
        media_type: MediaType = MediaType.BOTH,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        preset = find_quick_mood(mood_id, media_type)
        if preset is None or not preset.genres:
            return await self.trending(count, exclude, rules)
        result = await self.genre(preset.genres, media_type, count, exclude, rules)
        if result.source != "genre":
            return result
        return result.model_copy(update={"source": "mood", "explanation": f"{preset.icon} {preset.description}"})

    async def top_rated(
        self,
        media_type: MediaType = MediaType.BOTH,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        exclude = exclude or set()
        items: List[MediaItem] = []
        try:
            for media in _media_types(media_type):
                page = await self._catalog.top_rated(media)
                items.extend(_keep(page.items, exclude, rules)[: _per_type(media_type, count)])
        except Exception as exc:
            logger.warning("Top-rated fallback failed (%s); using trending", exc)
            return await self.trending(count, exclude, rules)
        return FallbackResult(
            items=items[:count], source="top_rated", explanation="⭐ All-time favorites you shouldn't miss:"
        )

    async def surprise(
        self,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        await self._refresh()
        pool = _keep(self._movies + self._shows, exclude or set(), rules)
        self._rng.shuffle(pool)
        return FallbackResult(items=pool[:count], source="surprise", explanation="🎲 Here's a random selection for you:")

    async def cultural(
        self,
        rules: CulturalFilterRules,
        media_type: MediaType = MediaType.BOTH,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
    ) -> FallbackResult:
        """Popular titles in the reference's languages, ignoring genre and profile."""
        exclude = exclude or set()
        if rules.with_original_language:
            languages = [rules.with_original_language]
        else:
            languages = list(rules.preferred_languages)
        options = DiscoverOptions(
            original_languages=languages,
            exclude_original_languages=list(rules.exclude_languages),
            region=rules.region,
            sort_by="popularity.desc",
        )
        items: List[MediaItem] = []
        try:
            for media in _media_types(media_type):
                page = await self._catalog.discover(media, options)
                items.extend(_keep(page.items, exclude, rules)[: _per_type(media_type, count)])
        except Exception as exc:
            logger.warning("Cultural fallback failed (%s); using trending", exc)
            return await self.trending(count, exclude, rules)

        if not items:
            return await self.trending(count, exclude, rules)
        label = rules.reference_title or "your pick"
        return FallbackResult(
            items=items[:count], source="cultural", explanation=f"Popular titles from the same cinema as {label}:"
        )

    async def smart(
        self,
        *,
        genres: Sequence[int] = (),
        moods: Sequence[str] = (),
        media_type: MediaType = MediaType.BOTH,
        was_error: bool = False,
        count: int = 6,
        exclude: Optional[Set[str]] = None,
        rules: Optional[CulturalFilterRules] = None,
    ) -> FallbackResult:
        """Pick the strategy that best fits what the user asked for."""
        if was_error:
            return await self.trending(count, exclude, rules)

        if rules is not None:
            return await self.cultural(rules, media_type, count, exclude)

        for mood in moods:
            for mood_id in MOOD_TO_QUICK_MOODS.get(mood, ()):
                if find_quick_mood(mood_id, media_type) is not None:
                    return await self.mood(mood_id, media_type, count, exclude)

        if genres:
            return await self.genre(genres, media_type, count, exclude)
        return await self.trending(count, exclude)
