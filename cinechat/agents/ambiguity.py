"""
CineChat — Ambiguity Detector

Scores how under-specified a request is and proposes clarifying
questions. Also hosts the conversational helpers that read the user's
phrasing for variety / refinement cues.

Design patterns:
  - Additive Scoring: each missing piece contributes a fixed weight
  - Priority Queue: questions are ranked by a fixed priority, top 2 kept
"""

from __future__ import annotations

import logging
import random
import re
from typing import List, Optional, Tuple

from cinechat.history import RecommendationHistory
from cinechat.matching import KeywordMatcher
from cinechat.models import (
    AmbiguityAnalysis,
    ClarifyingQuestion,
    IntentType,
    MediaType,
    ParsedIntent,
    QuestionType,
    QuickOption,
    Refinements,
)
from cinechat.taxonomy import GENRES, TV_GENRES, genres_for, moods_for

logger = logging.getLogger(__name__)

AMBIGUITY_THRESHOLD = 0.6
MIN_CONFIDENCE = 0.4
MAX_QUESTIONS = 2
MIN_MISSING_TO_ASK = 2

VARIETY_KEYWORDS = (
    "different", "something else", "new", "fresh", "another", "change",
    "not like", "switch", "variety", "diverse", "mix it up", "surprise",
)
SPECIFIC_KEYWORDS = (
    "exactly", "specifically", "only", "must have", "definitely",
    "looking for", "that one", "the one with", "similar to",
)
VAGUE_KEYWORDS = (
    "something", "anything", "whatever", "idk", "don't know", "maybe",
    "i guess", "not sure", "depends", "could be", "kinda",
)
REFINEMENT_PATTERNS = (
    "but also", "with more", "with less", "but not", "and also",
    "like that but", "similar but", "same but", "maybe more",
    "less", "more", "darker", "lighter", "funnier", "scarier",
    "newer", "older", "recent", "classic",
)

_VARIETY = KeywordMatcher.from_keywords(VARIETY_KEYWORDS)
_SPECIFIC = KeywordMatcher.from_keywords(SPECIFIC_KEYWORDS)
_VAGUE = KeywordMatcher.from_keywords(VAGUE_KEYWORDS)
_REFINEMENT = KeywordMatcher.from_keywords(REFINEMENT_PATTERNS)

_SHORT_MESSAGE_WORDS = 3
_GENRE_SAMPLE = 4
_GENRE_SEEN_LIMIT = 3

# ── Fixed questions ───────────────────────────────────────
# Option values are phrases the parser understands when sent back.

_MEDIA_QUESTION = ClarifyingQuestion(
    id="media_type",
    question="Are you looking for movies or TV series?",
    options=[
        QuickOption(label="Movies", value="movies", icon="🎬"),
        QuickOption(label="TV Series", value="tv series", icon="📺"),
        QuickOption(label="Both", value="both movies and shows", icon="🎭"),
    ],
    priority=3,
)

_INTENT_QUESTION = ClarifyingQuestion(
    id="intent",
    question="I want to make sure I understand. What would you like me to do?",
    options=[
        QuickOption(label="Recommend something", value="Recommend something good", icon="🎯"),
        QuickOption(label="Show what's trending", value="What's trending?", icon="🔥"),
        QuickOption(label="Search for something specific", value="Search for a title", icon="🔍"),
        QuickOption(label="Show top-rated content", value="Show me the top rated", icon="⭐"),
    ],
    priority=5,
)

GREETING_QUESTION = ClarifyingQuestion(
    id="initial",
    question="What brings you here today?",
    options=[
        QuickOption(label="I want recommendations", value="Recommend something good", icon="🎯"),
        QuickOption(label="What's trending?", value="What's trending?", icon="🔥"),
        QuickOption(label="Surprise me!", value="Surprise me with something random", icon="🎲"),
        QuickOption(label="I'll browse myself", value="Show me the top rated", icon="👀"),
    ],
    priority=5,
)

_VARIETY_QUESTION = ClarifyingQuestion(
    id="variety",
    question="I've been recommending similar content. Would you like something different?",
    options=[
        QuickOption(label="Yes, surprise me!", value="Surprise me with something different", icon="🎲"),
        QuickOption(label="Try a different genre", value="Try a different genre", icon="🔄"),
        QuickOption(label="Keep going with similar", value="More like these", icon="👍"),
    ],
    priority=2,
)

DEFAULT_OPTIONS = [
    QuickOption(label="Show trending", value="What's trending?", icon="🔥"),
    QuickOption(label="Recommend something", value="Recommend something good", icon="🎯"),
    QuickOption(label="Surprise me", value="Surprise me with something random", icon="🎲"),
]


def _genre_question(intent: ParsedIntent, history: RecommendationHistory, rng: random.Random) -> ClarifyingQuestion:
    recent = history.get_recent_genres()
    fresh = [g for g in genres_for(intent.media_type) if recent.get(g.id, 0) < _GENRE_SEEN_LIMIT]
    picks = rng.sample(fresh, min(_GENRE_SAMPLE, len(fresh)))
    return ClarifyingQuestion(
        id="genre",
        question="What genre are you in the mood for?",
        type=QuestionType.MULTI_CHOICE,
        options=[QuickOption(label=g.name, value=g.name, icon=g.icon) for g in picks],
        priority=5,
    )


def _mood_question(intent: ParsedIntent) -> ClarifyingQuestion:
    return ClarifyingQuestion(
        id="mood",
        question="What kind of mood are you in?",
        options=[QuickOption(label=m.label, value=m.label, icon=m.icon) for m in moods_for(intent.media_type)[:5]],
        priority=4,
    )


# ── Analysis ──────────────────────────────────────────────


def analyze_ambiguity(
    intent: ParsedIntent,
    history: RecommendationHistory,
    rng: Optional[random.Random] = None,
) -> AmbiguityAnalysis:
    rng = rng or random.Random()
    text = intent.original_text.lower()
    score = 0.0
    missing: List[str] = []
    questions: List[ClarifyingQuestion] = []

    if _VAGUE.first(text):
        score += 0.2
    if _SPECIFIC.first(text):
        score -= 0.2

    if intent.media_type is MediaType.BOTH and "both" not in text and "any" not in text:
        missing.append("media_type")
        score += 0.1
        questions.append(_MEDIA_QUESTION)

    if not intent.genres and not intent.moods:
        missing.append("genre_or_mood")
        score += 0.25
        questions.append(_genre_question(intent, history, rng))

        if intent.type in (IntentType.RECOMMEND, IntentType.MOOD):
            missing.append("mood")
            score += 0.15
            questions.append(_mood_question(intent))

    if intent.confidence < MIN_CONFIDENCE:
        missing.append("intent")
        score += 0.3
        questions.append(_INTENT_QUESTION)

    if intent.type is IntentType.GREETING:
        score = 0.8
        questions.append(GREETING_QUESTION)

    if history.should_suggest_variety() and not _VARIETY.first(text):
        questions.append(_VARIETY_QUESTION)

    words = text.split()
    if len(words) <= _SHORT_MESSAGE_WORDS and intent.type not in (IntentType.GREETING, IntentType.THANKS):
        score += 0.15
        missing.append("context")

    score = max(0.0, min(1.0, score))
    questions.sort(key=lambda q: q.priority, reverse=True)

    should_ask = (
        score >= AMBIGUITY_THRESHOLD
        and bool(questions)
        and intent.type not in (IntentType.THANKS, IntentType.GREETING)
        and len(missing) >= MIN_MISSING_TO_ASK
    )
    analysis = AmbiguityAnalysis(
        is_ambiguous=score >= AMBIGUITY_THRESHOLD,
        ambiguity_score=round(score, 4),
        missing_info=missing,
        clarifying_questions=questions[:MAX_QUESTIONS],
        should_ask_follow_up=should_ask,
    )
    logger.debug("Ambiguity %.2f missing=%s ask=%s", analysis.ambiguity_score, missing, should_ask)
    return analysis


def generate_clarification_response(analysis: AmbiguityAnalysis) -> Tuple[str, List[QuickOption]]:
    """Top question text plus its quick-reply options."""
    if not analysis.clarifying_questions:
        return (
            "I'm not quite sure what you're looking for. Could you give me more details?",
            list(DEFAULT_OPTIONS),
        )
    top = analysis.clarifying_questions[0]
    return top.question, list(top.options)


# ── Phrasing cues ─────────────────────────────────────────


def is_variety_request(message: str) -> bool:
    return _VARIETY.first(message) is not None


def is_refinement_request(message: str) -> bool:
    return _REFINEMENT.first(message) is not None


_MORE = re.compile(r"more (\w+)")
_LESS = re.compile(r"less (\w+)")


def _genre_for_word(word: str) -> Optional[int]:
    for genre in GENRES + TV_GENRES:
        if word in genre.name.lower():
            return genre.id
    return None


def extract_refinements(message: str) -> Refinements:
    lower = (message or "").lower()
    result = Refinements()

    for word in _MORE.findall(lower):
        result.wants_more.append(word)
        genre_id = _genre_for_word(word)
        if genre_id is not None and genre_id not in result.add_genres:
            result.add_genres.append(genre_id)

    for word in _LESS.findall(lower):
        result.wants_less.append(word)
        genre_id = _genre_for_word(word)
        if genre_id is not None and genre_id not in result.remove_genres:
            result.remove_genres.append(genre_id)

    result.prefer_newer = any(w in lower for w in ("newer", "recent", "latest"))
    result.prefer_older = any(w in lower for w in ("older", "classic", "vintage"))
    result.prefer_higher_rating = any(w in lower for w in ("better rated", "higher rated", "top rated"))
    return result


_OPPOSITE_MOODS = {
    "happy": "Something more serious",
    "sad": "Something uplifting",
    "excited": "Something calming",
    "scared": "Something lighthearted",
    "romantic": "Something action-packed",
}


def get_smart_follow_ups(
    intent: ParsedIntent,
    history: RecommendationHistory,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Up to three suggestions nudging the user away from what dominates."""
    rng = rng or random.Random()
    stats = history.get_stats()
    suggestions: List[str] = []

    if stats.top_genres and stats.top_genres[0][1] >= 3:
        used = {genre_id for genre_id, _ in stats.top_genres}
        unused = [g for g in GENRES if g.id not in used]
        if unused:
            suggestions.append(f"Try some {rng.choice(unused).name.lower()}s")

    if stats.era_breakdown and stats.era_breakdown[0][1] >= 3:
        if stats.era_breakdown[0][0] in ("2020s", "2010s"):
            suggestions.append("Show me some classic films")
        else:
            suggestions.append("Show me something more recent")

    if intent.media_type is MediaType.MOVIE:
        suggestions.append("Switch to TV series")
    elif intent.media_type is MediaType.TV:
        suggestions.append("Show me movies instead")

    for mood in intent.moods:
        if mood in _OPPOSITE_MOODS:
            suggestions.append(_OPPOSITE_MOODS[mood])
            break

    if stats.total_recommended > 6:
        suggestions.append("Surprise me with something different")

    rng.shuffle(suggestions)
    return suggestions[:3]
