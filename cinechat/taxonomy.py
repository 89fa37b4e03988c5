"""
CineChat — Genre, Mood and Era Taxonomy

Static lookup tables shared by the parser, the query generator, the
ambiguity detector and the fallback provider. Genre ids follow TMDB.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from cinechat.models import MediaType


class Genre(NamedTuple):
    id: int
    name: str
    icon: str


class QuickMood(NamedTuple):
    id: str
    label: str
    icon: str
    genres: Tuple[int, ...]
    description: str


# ── Genres ────────────────────────────────────────────────

GENRES: Tuple[Genre, ...] = (
    Genre(28, "Action", "💥"),
    Genre(12, "Adventure", "🗺️"),
    Genre(16, "Animation", "🎨"),
    Genre(35, "Comedy", "😂"),
    Genre(80, "Crime", "🔪"),
    Genre(99, "Documentary", "📹"),
    Genre(18, "Drama", "🎭"),
    Genre(10751, "Family", "👪"),
    Genre(14, "Fantasy", "🧙"),
    Genre(36, "History", "📜"),
    Genre(27, "Horror", "👻"),
    Genre(10402, "Music", "🎵"),
    Genre(9648, "Mystery", "🔍"),
    Genre(10749, "Romance", "💕"),
    Genre(878, "Science Fiction", "🚀"),
    Genre(10770, "TV Movie", "📺"),
    Genre(53, "Thriller", "😰"),
    Genre(10752, "War", "⚔️"),
    Genre(37, "Western", "🤠"),
)

TV_GENRES: Tuple[Genre, ...] = (
    Genre(10759, "Action & Adventure", "💥"),
    Genre(16, "Animation", "🎨"),
    Genre(35, "Comedy", "😂"),
    Genre(80, "Crime", "🔪"),
    Genre(99, "Documentary", "📹"),
    Genre(18, "Drama", "🎭"),
    Genre(10751, "Family", "👪"),
    Genre(10762, "Kids", "🧒"),
    Genre(9648, "Mystery", "🔍"),
    Genre(10763, "News", "📰"),
    Genre(10764, "Reality", "📺"),
    Genre(10765, "Sci-Fi & Fantasy", "🚀"),
    Genre(10766, "Soap", "💕"),
    Genre(10767, "Talk", "🎤"),
    Genre(10768, "War & Politics", "⚔️"),
    Genre(37, "Western", "🤠"),
)

# ── Quick moods ───────────────────────────────────────────

QUICK_MOODS: Tuple[QuickMood, ...] = (
    QuickMood("bored", "I feel bored", "😴", (28, 12, 878), "Action-packed adventures to wake you up"),
    QuickMood("action", "I want action", "💪", (28, 53, 80), "High-octane thrills and excitement"),
    QuickMood("laugh", "Make me laugh", "😂", (35,), "Comedies to brighten your day"),
    QuickMood("romance", "Feeling romantic", "💕", (10749, 18), "Love stories that touch the heart"),
    QuickMood("scared", "Scare me", "👻", (27, 53), "Horror and thrillers for brave souls"),
    QuickMood("think", "Make me think", "🧠", (9648, 878, 18), "Mind-bending mysteries and dramas"),
    QuickMood("cry", "Let me cry", "😢", (18, 10749), "Emotional stories that touch the soul"),
    QuickMood("surprise", "Surprise me", "🎲", (), "Random picks from top rated movies"),
)

TV_QUICK_MOODS: Tuple[QuickMood, ...] = (
    QuickMood("binge", "Binge-worthy", "📺", (18, 80, 9648), "Addictive series you can't stop watching"),
    QuickMood("action", "Action-packed", "💪", (10759, 10765), "Thrilling adventures and excitement"),
    QuickMood("laugh", "Make me laugh", "😂", (35,), "Comedies to brighten your day"),
    QuickMood("drama", "Deep dramas", "🎭", (18,), "Emotional and gripping stories"),
    QuickMood("mystery", "Mysteries", "🔍", (9648, 80), "Puzzles and whodunits"),
    QuickMood("scifi", "Sci-Fi & Fantasy", "🚀", (10765,), "Otherworldly adventures"),
    QuickMood("reality", "Reality TV", "🎬", (10764,), "Unscripted entertainment"),
    QuickMood("surprise", "Surprise me", "🎲", (), "Random picks from top rated shows"),
)

# ── Eras ──────────────────────────────────────────────────

# Order matters: history-derived preferred eras are listed newest first.
HISTORY_ERAS: Tuple[str, ...] = ("2020s", "2010s", "2000s", "90s", "80s", "classic")

_FIXED_ERAS: Dict[str, Tuple[int, int]] = {
    "2020s": (2020, 2029),
    "2010s": (2010, 2019),
    "2000s": (2000, 2009),
    "90s": (1990, 1999),
    "80s": (1980, 1989),
    "classic": (1900, 1989),
}

ERA_PRESETS: Tuple[str, ...] = ("latest",) + tuple(_FIXED_ERAS)


def era_range(era: Optional[str], today: Optional[date] = None) -> Optional[Tuple[int, int]]:
    """Return the (from, to) year range of an era preset, or None."""
    if not era:
        return None
    if era == "latest":
        year = (today or date.today()).year
        return (year - 1, year)
    return _FIXED_ERAS.get(era)


def era_from_year(year: Optional[int]) -> str:
    if year is None:
        return "unknown"
    if year >= 2020:
        return "2020s"
    if year >= 2010:
        return "2010s"
    if year >= 2000:
        return "2000s"
    if year >= 1990:
        return "90s"
    if year >= 1980:
        return "80s"
    return "classic"


# ── Lookups ───────────────────────────────────────────────


def genres_for(media_type: MediaType) -> Sequence[Genre]:
    return TV_GENRES if media_type is MediaType.TV else GENRES


def moods_for(media_type: MediaType) -> Sequence[QuickMood]:
    return TV_QUICK_MOODS if media_type is MediaType.TV else QUICK_MOODS


def find_quick_mood(mood_id: str, media_type: MediaType = MediaType.MOVIE) -> Optional[QuickMood]:
    for mood in moods_for(media_type):
        if mood.id == mood_id:
            return mood
    return None


def genre_names(genre_ids: Sequence[int], media_type: MediaType = MediaType.MOVIE) -> List[str]:
    """Resolve ids to names; ids unknown for the media type are skipped."""
    lookup = {g.id: g.name for g in genres_for(media_type)}
    if media_type is MediaType.BOTH:
        lookup.update({g.id: g.name for g in TV_GENRES if g.id not in lookup})
    return [lookup[gid] for gid in genre_ids if gid in lookup]


def all_genres() -> List[Genre]:
    """Movie genres followed by TV-only genres."""
    seen = {g.id for g in GENRES}
    return list(GENRES) + [g for g in TV_GENRES if g.id not in seen]
