"""
CineChat — Intent Parser

Design patterns:
  - Strategy: keyword tables are evaluated through KeywordMatcher
  - Pure Function: parse_intent() has no side effects and never raises

Turns free text into a ParsedIntent: action type, media type, genres,
moods, era, explicit year, rating floor, free keywords and names.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from cinechat.matching import KeywordMatcher
from cinechat.models import IntentType, MediaType, ParsedIntent
from cinechat.taxonomy import genres_for, moods_for

logger = logging.getLogger(__name__)

# ── Keyword tables ────────────────────────────────────────

INTENT_KEYWORDS: Dict[IntentType, Tuple[str, ...]] = {
    IntentType.RECOMMEND: (
        "recommend", "suggestion", "suggest", "what should i watch", "what to watch",
        "looking for", "find me", "show me", "give me", "want to watch",
        "in the mood for", "feel like watching", "can you recommend", "any good",
        "something to watch",
    ),
    IntentType.SEARCH: (
        "search", "find", "where can i", "looking for", "is there",
        "have you heard of", "do you know", "what about",
    ),
    IntentType.EXPLAIN: (
        "what is", "tell me about", "explain", "describe", "synopsis",
        "plot", "story", "what happens in", "info about", "details",
    ),
    IntentType.SIMILAR: (
        "similar to", "like", "same as", "movies like", "shows like",
        "if i liked", "fans of", "remind me of", "vibe as", "more like",
    ),
    IntentType.COMPARE: (
        "compare", "versus", "vs", "difference between", "better than",
        "which is better", "or", "should i watch",
    ),
    IntentType.TRENDING: (
        "trending", "popular", "what's hot", "everyone watching",
        "buzz", "viral", "new releases", "just came out", "latest",
    ),
    IntentType.TOP_RATED: (
        "best", "top rated", "highest rated", "greatest", "masterpiece",
        "must watch", "essential", "classics", "all time", "legendary",
    ),
    IntentType.WATCHLIST: (
        "watchlist", "saved", "my list", "bookmarked", "queue", "watch later", "to watch",
    ),
    IntentType.MOOD: (
        "mood", "feel", "feeling", "vibe", "tone", "atmosphere",
        "something that makes me", "want to feel",
    ),
    IntentType.GENRE: ("genre", "type", "category", "kind of"),
    IntentType.GREETING: (
        "hi", "hello", "hey", "good morning", "good evening",
        "good afternoon", "what's up", "howdy", "greetings",
    ),
    IntentType.THANKS: (
        "thank", "thanks", "appreciate", "helpful", "great", "awesome",
        "perfect", "exactly what i needed",
    ),
    IntentType.UNKNOWN: (),
}

MOOD_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "happy": ("happy", "cheerful", "uplifting", "feel-good", "light", "fun", "joyful", "positive"),
    "sad": ("sad", "cry", "emotional", "tearjerker", "moving", "touching", "heartbreaking"),
    "excited": ("excited", "thrilling", "adrenaline", "action", "intense", "edge of seat", "pumped"),
    "scared": ("scared", "scary", "horror", "creepy", "terrifying", "spooky", "frightening"),
    "relaxed": ("relax", "chill", "calm", "cozy", "easy", "comfort", "laid back", "soothing"),
    "romantic": ("romantic", "love", "romance", "date night", "couple", "relationship", "sweet"),
    "curious": ("curious", "think", "mind-bending", "mystery", "puzzle", "twist", "intellectual"),
    "bored": ("bored", "something different", "exciting", "interesting", "unique", "surprising"),
    "nostalgic": ("nostalgic", "classic", "old", "retro", "vintage", "childhood", "throwback"),
    "inspired": ("inspired", "motivational", "inspirational", "uplifting story", "overcome"),
}

MEDIA_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "movie": ("movie", "film", "movies", "films", "cinema", "feature"),
    "tv": ("tv", "show", "shows", "series", "tv show", "television", "episode", "season", "binge"),
}

# Intent keywords must stand alone: "hi" must not fire on "something".
_INTENT_MATCHER = KeywordMatcher(
    {intent.value: kws for intent, kws in INTENT_KEYWORDS.items()}, whole_words=True
)
_MOOD_MATCHER = KeywordMatcher(MOOD_KEYWORDS)
_MEDIA_MATCHER = KeywordMatcher(MEDIA_KEYWORDS, whole_words=True)

# Checked in order: "latest" must win over the decade patterns.
ERA_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(new|latest|recent|this year|last year)\b", re.I), "latest"),
    (re.compile(r"\b(2020s?|twenty twenties)\b", re.I), "2020s"),
    (re.compile(r"\b(2010s?|twenty tens)\b", re.I), "2010s"),
    (re.compile(r"\b(2000s?|two thousands|noughties)\b", re.I), "2000s"),
    (re.compile(r"\b(90s|nineties|1990s?)\b", re.I), "90s"),
    (re.compile(r"\b(80s|eighties|1980s)\b", re.I), "80s"),
    (re.compile(r"\b(classic|old|vintage|retro|70s|60s)\b", re.I), "classic"),
)

_YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

RATING_PATTERNS: Tuple[Tuple[re.Pattern, float], ...] = (
    (re.compile(r"highly rated|well rated|good ratings?", re.I), 7.0),
    (re.compile(r"top rated|best rated|excellent", re.I), 8.0),
    (re.compile(r"critically acclaimed|award.?winning", re.I), 7.5),
)

_ACTOR_PATTERNS = (
    re.compile(r"(?:with|starring|featuring|acted by)\s+([A-Z][a-z]+ [A-Z][a-z]+)"),
    re.compile(r"([A-Z][a-z]+ [A-Z][a-z]+)(?=\s+(?:movie|film))"),
)
_DIRECTOR_PATTERN = re.compile(r"(?:directed by|director)\s+([A-Z][a-z]+ [A-Z][a-z]+)", re.I)

_STOP_WORDS = frozenset({
    "i", "me", "my", "a", "an", "the", "and", "or", "but", "is", "are", "was",
    "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "must", "can", "to",
    "of", "in", "for", "on", "with", "at", "by", "from", "as", "into", "about",
    "like", "want", "watch", "see", "find", "show", "movie", "movies", "film",
    "films", "tv", "series", "something", "anything", "some", "any", "that",
    "this", "what", "which", "who", "how", "when", "where", "why", "it", "its",
    "just", "really", "very", "more", "good", "great", "nice", "please", "thanks",
    "looking", "need", "give", "suggest", "recommend", "recommendation", "suggestions",
})

_MAX_KEYWORDS = 10
_PREEMPT_SCORE = 50.0
_MIN_CONFIDENCE = 0.3

# Maps parser moods onto quick-mood presets (and from there onto genres).
MOOD_TO_QUICK_MOODS: Dict[str, Tuple[str, ...]] = {
    "happy": ("laugh",),
    "sad": ("cry",),
    "excited": ("action", "bored"),
    "scared": ("scared",),
    "relaxed": ("laugh",),
    "romantic": ("romance",),
    "curious": ("think", "mystery"),
    "bored": ("bored", "surprise"),
    "nostalgic": ("cry",),
    "inspired": ("think",),
}


# ── Detectors ─────────────────────────────────────────────


def detect_intent(text: str) -> Tuple[IntentType, float]:
    """Score every intent by keyword hits; highest score wins."""
    scores: Dict[IntentType, float] = {}
    for label, matched in _INTENT_MATCHER.hits(text).items():
        intent = IntentType(label)
        scores[intent] = len(matched) * (1 / len(INTENT_KEYWORDS[intent])) * 100

    best, best_score = IntentType.RECOMMEND, 0.0
    for intent, score in scores.items():
        if score > best_score:
            best, best_score = intent, score

    for special in (IntentType.GREETING, IntentType.THANKS):
        if scores.get(special, 0.0) > _PREEMPT_SCORE:
            return special, min(scores[special] / 100, 1.0)

    confidence = min(best_score / _PREEMPT_SCORE, 1.0)
    return best, max(confidence, _MIN_CONFIDENCE)


def detect_media_type(text: str) -> MediaType:
    found = set(_MEDIA_MATCHER.match(text))
    if found == {"movie"}:
        return MediaType.MOVIE
    if found == {"tv"}:
        return MediaType.TV
    return MediaType.BOTH


def extract_genres(text: str, media_type: MediaType) -> Tuple[List[int], List[str]]:
    """Genre names and quick-mood aliases found as substrings of the text."""
    lowered = text.lower()
    genre_list = genres_for(media_type)
    by_id = {g.id: g.name for g in genre_list}
    ids: List[int] = []
    names: List[str] = []

    for genre in genre_list:
        if genre.name.lower() in lowered:
            ids.append(genre.id)
            names.append(genre.name)

    for mood in moods_for(media_type):
        if mood.label.lower() in lowered or mood.id in lowered:
            for genre_id in mood.genres:
                if genre_id in ids:
                    continue
                ids.append(genre_id)
                name = by_id.get(genre_id)
                if name and name not in names:
                    names.append(name)

    return ids, names


def extract_moods(text: str) -> List[str]:
    return _MOOD_MATCHER.match(text)


def detect_era(text: str) -> Optional[str]:
    for pattern, era in ERA_PATTERNS:
        if pattern.search(text):
            return era
    return None


def extract_year(text: str, today: Optional[date] = None) -> Optional[int]:
    latest = (today or date.today()).year + 1
    for match in _YEAR_PATTERN.finditer(text):
        year = int(match.group(0))
        if 1900 <= year <= latest:
            return year
    return None


def detect_min_rating(text: str) -> Optional[float]:
    for pattern, rating in RATING_PATTERNS:
        if pattern.search(text):
            return rating
    return None


def extract_names(text: str) -> Tuple[List[str], List[str]]:
    actors: List[str] = []
    for pattern in _ACTOR_PATTERNS:
        for name in pattern.findall(text):
            if name not in actors:
                actors.append(name)

    directors: List[str] = []
    for name in _DIRECTOR_PATTERN.findall(text):
        if name not in directors:
            directors.append(name)
    return actors, directors


def extract_keywords(text: str) -> List[str]:
    """Distinct non-stopword tokens longer than two characters, in order."""
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    seen: List[str] = []
    for word in words:
        if len(word) > 2 and word not in _STOP_WORDS and word not in seen:
            seen.append(word)
    return seen[:_MAX_KEYWORDS]


def response_hint(intent: IntentType, media_type: MediaType) -> str:
    label = {
        MediaType.BOTH: "movies and shows",
        MediaType.TV: "TV shows",
        MediaType.MOVIE: "movies",
    }[media_type]
    hints = {
        IntentType.RECOMMEND: f"Here are some {label} I think you'll enjoy:",
        IntentType.SEARCH: "Let me help you find what you're looking for:",
        IntentType.EXPLAIN: "Here's what I found about that:",
        IntentType.SIMILAR: "If you enjoyed that, you might also like:",
        IntentType.COMPARE: "Here are the titles you mentioned:",
        IntentType.TRENDING: "Here's what's trending right now:",
        IntentType.TOP_RATED: f"Here are some of the highest-rated {label}:",
        IntentType.WATCHLIST: "Your watchlist lives on your profile page.",
        IntentType.MOOD: "Based on your mood, here are some perfect picks:",
        IntentType.GENRE: "Here are some great options in that genre:",
        IntentType.GREETING: (
            f"Hello! I'm here to help you discover amazing {label}. What are you in the mood for?"
        ),
        IntentType.THANKS: "You're welcome! Let me know if you'd like more recommendations.",
        IntentType.UNKNOWN: (
            "I'd be happy to help you find something to watch. "
            "Could you tell me more about what you're looking for?"
        ),
    }
    return hints[intent]


# ── Public API ────────────────────────────────────────────


def parse_intent(message: object) -> ParsedIntent:
    """Parse one user message. Never raises; junk input reads as empty text."""
    text = message.strip() if isinstance(message, str) else ""
    if not text:
        return ParsedIntent(
            type=IntentType.UNKNOWN,
            confidence=_MIN_CONFIDENCE,
            original_text="",
            response_hint=response_hint(IntentType.UNKNOWN, MediaType.BOTH),
        )

    intent_type, confidence = detect_intent(text)
    media_type = detect_media_type(text)
    genre_ids, names = extract_genres(text, media_type)
    actors, directors = extract_names(text)

    intent = ParsedIntent(
        type=intent_type,
        media_type=media_type,
        confidence=round(confidence, 4),
        genres=genre_ids,
        genre_names=names,
        moods=extract_moods(text),
        era=detect_era(text),
        year=extract_year(text),
        min_rating=detect_min_rating(text),
        keywords=extract_keywords(text),
        actors=actors,
        directors=directors,
        original_text=text,
        response_hint=response_hint(intent_type, media_type),
    )
    logger.debug("Parsed intent %s (%.2f) media=%s genres=%s", intent.type.value, intent.confidence, media_type.value, genre_ids)
    return intent


def map_moods_to_genres(moods: Sequence[str], media_type: MediaType) -> List[int]:
    """Expand mood tags into genre ids via the quick-mood presets."""
    presets = {m.id: m for m in moods_for(media_type)}
    genre_ids: List[int] = []
    for mood in moods:
        for preset_id in MOOD_TO_QUICK_MOODS.get(mood, ()):
            preset = presets.get(preset_id)
            if preset is None:
                continue
            for genre_id in preset.genres:
                if genre_id not in genre_ids:
                    genre_ids.append(genre_id)
    return genre_ids
