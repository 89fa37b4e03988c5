"""
CineChat — Diversity Scorer / Ranker

Scores candidates against the conversation history and greedily picks
the final list so one genre, era or franchise cannot take over a reply.

Design patterns:
  - Greedy Selection: re-score every remaining candidate against the
    growing selection, take the best, repeat
  - Strategy: franchise detection is a pluggable TextMatcher
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from cinechat.history import HIGH_RATING, MEDIUM_RATING, RecommendationHistory
from cinechat.matching import FRANCHISE_MATCHER, TextMatcher, detect_franchise
from cinechat.models import DiversityConfig, DiversitySummary, FilterRules, MediaItem, ScoredItem
from cinechat.taxonomy import era_from_year

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = DiversityConfig()

MIN_SELECT_SCORE = 0.2       # greedy selection stops at or below this
GENRE_PENALTY_CAP = 0.5
SATURATED_GENRE_PENALTY = 0.15
REPEATED_GENRE_PENALTY = 0.05
COOLDOWN_PENALTY_PER_TURN = 0.1
ERA_PENALTY = 0.2
FRANCHISE_PENALTY = 0.4
SIMILARITY_WEIGHT = 0.5
BATCH_FRANCHISE_PENALTY = 0.3
BATCH_OVERLAP_PENALTY = 0.2
BATCH_OVERLAP_THRESHOLD = 0.7
GENRE_FRESHNESS_BOOST = 0.1
ERA_FRESHNESS_BOOST = 0.1
HIDDEN_GEM_BOOST = 0.1


def popularity_bucket(rating: float) -> str:
    if rating >= HIGH_RATING:
        return "high"
    if rating >= MEDIUM_RATING:
        return "medium"
    return "low"


def genre_overlap(a: Sequence[int], b: Sequence[int]) -> float:
    """Jaccard overlap of two genre lists."""
    if not a or not b:
        return 0.0
    union = set(a) | set(b)
    return len(set(a) & set(b)) / len(union)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ── Scoring ───────────────────────────────────────────────


def score_item(
    item: MediaItem,
    history: RecommendationHistory,
    rules: FilterRules,
    batch: Sequence[MediaItem] = (),
    config: DiversityConfig = DEFAULT_CONFIG,
    franchises: TextMatcher = FRANCHISE_MATCHER,
) -> ScoredItem:
    """Score one candidate in [0, 1]. Already-recommended items score 0."""
    penalties: Dict[str, float] = {}
    boosts: Dict[str, float] = {}

    if item.key in rules.exclude_ids:
        penalties["repetition"] = 1.0
        return ScoredItem(item=item, diversity_score=0.0, penalties=penalties, boosts=boosts)

    score = 1.0
    era = era_from_year(item.release_year)
    franchise = detect_franchise(item.title, franchises)

    recent = history.get_recent_genres()
    genre_penalty = 0.0
    for genre_id in item.genre_ids:
        count = recent.get(genre_id, 0)
        if count >= config.max_same_genre:
            genre_penalty += SATURATED_GENRE_PENALTY
        elif count >= 2:
            genre_penalty += REPEATED_GENRE_PENALTY
        turns = rules.cooldown_genres.get(genre_id, 0)
        if turns > 0:
            genre_penalty += COOLDOWN_PENALTY_PER_TURN * turns
    penalties["genre_saturation"] = min(genre_penalty, GENRE_PENALTY_CAP)
    score -= penalties["genre_saturation"]

    era_count = dict(history.get_stats().era_breakdown).get(era, 0)
    if era_count >= config.max_same_era:
        penalties["era_saturation"] = ERA_PENALTY
        score -= ERA_PENALTY

    if franchise and franchise in rules.exclude_franchises:
        penalties["franchise"] = FRANCHISE_PENALTY
        score -= FRANCHISE_PENALTY

    penalties["similarity"] = history.get_similarity_penalty(item)
    score -= penalties["similarity"] * SIMILARITY_WEIGHT

    batch_penalty = 0.0
    for chosen in batch:
        if franchise and detect_franchise(chosen.title, franchises) == franchise:
            batch_penalty += BATCH_FRANCHISE_PENALTY
        if genre_overlap(item.genre_ids, chosen.genre_ids) > BATCH_OVERLAP_THRESHOLD:
            batch_penalty += BATCH_OVERLAP_PENALTY
    if batch_penalty:
        penalties["batch"] = batch_penalty
        score -= batch_penalty

    fresh = [g for g in item.genre_ids if recent.get(g, 0) == 0]
    if fresh:
        boosts["genre_freshness"] = GENRE_FRESHNESS_BOOST * len(fresh)
        score += boosts["genre_freshness"]

    if era in rules.preferred_eras and era_count < 2:
        boosts["era_freshness"] = ERA_FRESHNESS_BOOST
        score += ERA_FRESHNESS_BOOST

    if config.prefer_hidden_gems and 7.0 <= item.vote_average < 8.0:
        boosts["hidden_gem"] = HIDDEN_GEM_BOOST
        score += HIDDEN_GEM_BOOST

    return ScoredItem(item=item, diversity_score=_clamp(score), penalties=penalties, boosts=boosts)


def score_and_rank_items(
    items: Sequence[MediaItem],
    history: RecommendationHistory,
    rules: FilterRules,
    max_results: int = 6,
    config: DiversityConfig = DEFAULT_CONFIG,
    franchises: TextMatcher = FRANCHISE_MATCHER,
) -> List[ScoredItem]:
    """Greedy diverse selection of up to ``max_results`` candidates.

    Each round re-scores every remaining candidate against the items
    picked so far, takes the best one and removes it from the working
    set. The loop runs at most ``len(items)`` rounds.
    """
    remaining: List[MediaItem] = list(items)
    selected: List[ScoredItem] = []

    while remaining and len(selected) < max_results:
        batch = [s.item for s in selected]
        scored = [score_item(i, history, rules, batch, config, franchises) for i in remaining]
        # max() keeps the first of equal scores, so ties follow catalog order
        best_index = max(range(len(scored)), key=lambda idx: scored[idx].diversity_score)
        best = scored[best_index]
        if best.diversity_score <= MIN_SELECT_SCORE:
            logger.debug("Stopping selection: best remaining score %.2f", best.diversity_score)
            break
        selected.append(best)
        del remaining[best_index]

    return selected


# ── Batch post-processing ─────────────────────────────────


def eligible_alternates(
    candidates: Sequence[MediaItem],
    selected: Sequence[MediaItem],
    history: RecommendationHistory,
    rules: FilterRules,
    config: DiversityConfig = DEFAULT_CONFIG,
    franchises: TextMatcher = FRANCHISE_MATCHER,
) -> List[MediaItem]:
    """Unselected candidates that would still clear the selection floor."""
    chosen = {i.key for i in selected}
    return [
        c for c in candidates
        if c.key not in chosen
        and score_item(c, history, rules, selected, config, franchises).diversity_score > MIN_SELECT_SCORE
    ]


def ensure_batch_diversity(
    items: Sequence[MediaItem],
    alternates: Sequence[MediaItem],
    franchises: TextMatcher = FRANCHISE_MATCHER,
) -> List[MediaItem]:
    """Swap franchise repeats and a dominant genre out for leftover candidates."""
    result = list(items)
    used = {i.key for i in result}

    def take(predicate) -> Optional[MediaItem]:
        for alt in alternates:
            if alt.key not in used and predicate(alt):
                used.add(alt.key)
                return alt
        return None

    seen_franchises: Dict[str, int] = {}
    for index, item in enumerate(result):
        franchise = detect_franchise(item.title, franchises)
        if not franchise:
            continue
        if franchise not in seen_franchises:
            seen_franchises[franchise] = index
            continue
        alt = take(lambda a: detect_franchise(a.title, franchises) is None)
        if alt is not None:
            result[index] = alt

    counts: Dict[int, int] = {}
    for item in result:
        for genre_id in item.genre_ids[:2]:
            counts[genre_id] = counts.get(genre_id, 0) + 1

    for genre_id, count in counts.items():
        if count <= len(result) / 2:
            continue
        for index in range(len(result) - 1, -1, -1):
            if genre_id not in result[index].genre_ids:
                continue
            alt = take(lambda a: genre_id not in a.genre_ids)
            if alt is not None:
                result[index] = alt
                break

    return result


def get_diversity_summary(
    items: Sequence[ScoredItem],
    franchises: TextMatcher = FRANCHISE_MATCHER,
) -> DiversitySummary:
    if not items:
        return DiversitySummary()

    genres = {g for s in items for g in s.item.genre_ids}
    eras = {era_from_year(s.item.release_year) for s in items}

    seen = set()
    duplicates = False
    for s in items:
        franchise = detect_franchise(s.item.title, franchises)
        if franchise and franchise in seen:
            duplicates = True
            break
        if franchise:
            seen.add(franchise)

    return DiversitySummary(
        avg_score=round(sum(s.diversity_score for s in items) / len(items), 4),
        genre_spread=round(len(genres) / len(items), 4),
        era_spread=round(len(eras) / len(items), 4),
        has_franchise_duplicates=duplicates,
    )
