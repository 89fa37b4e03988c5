"""
CineChat — Recommendation History

Per-conversation state: every item already recommended plus the rolling
genre / era / popularity counters derived from it.

Design patterns:
  - Session Object: one instance per conversation, passed explicitly to
    every component (no module-level singleton)
  - Derived View: FilterRules are recomputed from the log on demand
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Set, Union

from cinechat.matching import FRANCHISE_MATCHER, TextMatcher
from cinechat.models import FilterRules, HistoryStats, MediaItem, RecommendedItem
from cinechat.taxonomy import HISTORY_ERAS, era_from_year

logger = logging.getLogger(__name__)

COOLDOWN_TURNS = 3          # window (in turns) for the recent-genre count
MAX_SAME_GENRE = 2          # recent count at which a genre enters cooldown
SIMILARITY_THRESHOLD = 0.7  # below this no similarity penalty applies
SIMILARITY_WINDOW = 2       # turns looked back for similarity / variety

HIGH_RATING = 7.5
MEDIUM_RATING = 6.0

Comparable = Union[RecommendedItem, MediaItem]


def _year_of(item: Comparable) -> Optional[int]:
    return item.release_year


class RecommendationHistory:
    """Append-only log of recommended titles for one conversation."""

    def __init__(self, franchise_matcher: TextMatcher = FRANCHISE_MATCHER) -> None:
        self._franchises = franchise_matcher
        self._items: List[RecommendedItem] = []
        self._keys: Set[str] = set()
        self._turn = 0
        self._genre_counts: Counter = Counter()
        self._era_counts: Counter = Counter()
        self._popularity = {"high": 0, "medium": 0, "low": 0}

    # ── Turn bookkeeping ──────────────────────────────────

    def start_new_turn(self) -> int:
        """Advance the turn counter. Call exactly once per user message."""
        self._turn += 1
        return self._turn

    @property
    def current_turn(self) -> int:
        return self._turn

    @property
    def items(self) -> List[RecommendedItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    # ── Mutation ──────────────────────────────────────────

    def add_recommendations(self, items: List[MediaItem]) -> None:
        for item in items:
            entry = RecommendedItem(
                id=item.id,
                media_type=item.media_type,
                title=item.title,
                genre_ids=list(item.genre_ids),
                release_year=item.release_year,
                vote_average=item.vote_average,
                turn_index=self._turn,
            )
            self._items.append(entry)
            self._keys.add(entry.key)

            self._genre_counts.update(entry.genre_ids)
            if entry.release_year:
                self._era_counts[era_from_year(entry.release_year)] += 1

            if entry.vote_average >= HIGH_RATING:
                self._popularity["high"] += 1
            elif entry.vote_average >= MEDIUM_RATING:
                self._popularity["medium"] += 1
            else:
                self._popularity["low"] += 1

        logger.debug("History turn %d: +%d items (total %d)", self._turn, len(items), len(self._items))

    def clear(self) -> None:
        self._items = []
        self._keys = set()
        self._turn = 0
        self._genre_counts = Counter()
        self._era_counts = Counter()
        self._popularity = {"high": 0, "medium": 0, "low": 0}

    # ── Queries ───────────────────────────────────────────

    def was_recommended(self, item_id: int, media_type: str) -> bool:
        media = getattr(media_type, "value", media_type)
        return f"{media}-{item_id}" in self._keys

    def get_recommended_ids(self) -> Set[str]:
        return set(self._keys)

    def _recent(self, window: int) -> List[RecommendedItem]:
        start = self._turn - window
        return [i for i in self._items if i.turn_index >= start]

    def get_recent_genres(self) -> Dict[int, int]:
        """Genre counts inside the cooldown window."""
        counts: Counter = Counter()
        for item in self._recent(COOLDOWN_TURNS):
            counts.update(item.genre_ids)
        return dict(counts)

    def get_recent_franchises(self) -> List[str]:
        found: List[str] = []
        for item in self._recent(COOLDOWN_TURNS):
            for franchise in self._franchises.match(item.title):
                if franchise not in found:
                    found.append(franchise)
        return found

    def _last_seen_turn(self, genre_id: int) -> int:
        return max((i.turn_index for i in self._items if genre_id in i.genre_ids), default=0)

    # ── Similarity ────────────────────────────────────────

    def calculate_similarity(self, seen: Comparable, candidate: Comparable) -> float:
        """Weighted similarity in [0, 1] between a history entry and a candidate."""
        if seen.id == candidate.id and seen.media_type == candidate.media_type:
            return 1.0

        score = 0.0
        factors = 0.0

        union = set(seen.genre_ids) | set(candidate.genre_ids)
        if union:
            overlap = set(seen.genre_ids) & set(candidate.genre_ids)
            score += len(overlap) / len(union) * 0.4
            factors += 0.4

        year_a, year_b = _year_of(seen), _year_of(candidate)
        if year_a and year_b:
            if era_from_year(year_a) == era_from_year(year_b):
                score += 0.2
            factors += 0.2

        diff = abs(seen.vote_average - candidate.vote_average)
        if diff < 0.5:
            score += 0.2
        elif diff < 1:
            score += 0.1
        factors += 0.2

        shared = set(self._franchises.match(seen.title)) & set(self._franchises.match(candidate.title))
        if shared:
            score += 0.2
        factors += 0.2

        return score / factors if factors else 0.0

    def get_similarity_penalty(self, item: MediaItem) -> float:
        """Max similarity against the last two turns, or 0 below the threshold."""
        best = 0.0
        for seen in self._recent(SIMILARITY_WINDOW):
            best = max(best, self.calculate_similarity(seen, item))
        return best if best > SIMILARITY_THRESHOLD else 0.0

    # ── Derived rules ─────────────────────────────────────

    def generate_filter_rules(self) -> FilterRules:
        cooldown: Dict[int, int] = {}
        for genre_id, count in self.get_recent_genres().items():
            if count >= MAX_SAME_GENRE:
                elapsed = self._turn - self._last_seen_turn(genre_id)
                cooldown[genre_id] = max(1, COOLDOWN_TURNS - elapsed)

        rating_range = (0.0, 10.0)
        total = sum(self._popularity.values())
        if total:
            if self._popularity["high"] / total > 0.7:
                rating_range = (5.5, 7.5)
            elif self._popularity["low"] / total > 0.5:
                rating_range = (7.0, 10.0)

        eras = [era for era in HISTORY_ERAS if self._era_counts.get(era, 0) < 2]

        return FilterRules(
            exclude_ids=self.get_recommended_ids(),
            cooldown_genres=cooldown,
            exclude_franchises=self.get_recent_franchises(),
            preferred_rating_range=rating_range,
            preferred_eras=eras or list(HISTORY_ERAS),
        )

    def get_stats(self) -> HistoryStats:
        return HistoryStats(
            total_recommended=len(self._items),
            turn_count=self._turn,
            top_genres=self._genre_counts.most_common(5),
            era_breakdown=self._era_counts.most_common(),
        )

    def should_suggest_variety(self) -> bool:
        """True once one genre dominates (>60%) the last two turns."""
        if self._turn < 3:
            return False
        recent = self._recent(SIMILARITY_WINDOW)
        if len(recent) < 4:
            return False
        counts: Counter = Counter()
        for item in recent:
            counts.update(item.genre_ids)
        return any(count / len(recent) > 0.6 for count in counts.values())
