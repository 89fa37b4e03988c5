"""
CineChat — Cultural Reference Analyzer

Resolves "movies like X" references against the catalog and derives a
CinematicProfile for X.

Design patterns:
  - Chain of Responsibility: ordered extraction patterns, first match wins
  - Strategy: theme / hero / industry detectors are KeywordMatchers
  - Table Lookup: well-known titles come from an external JSON table,
    everything else goes through the heuristic scorer
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from cinechat.clients import CatalogProvider
from cinechat.config import settings
from cinechat.matching import KeywordMatcher
from cinechat.models import (
    AudienceType,
    CinemaIndustry,
    CinematicProfile,
    MediaItem,
    MediaType,
    NarrativeScale,
    Pacing,
    ProductionScale,
    ReferenceInfo,
    StarPowerTier,
    StorytellingStyle,
    VisualStyle,
)
from cinechat.taxonomy import GENRES, TV_GENRES

logger = logging.getLogger(__name__)

# ── Language / industry tables ────────────────────────────

INDIAN_LANGUAGES = ("hi", "te", "ta", "ml", "kn", "bn", "mr", "pa", "gu")

LANGUAGE_TO_INDUSTRY: Dict[str, CinemaIndustry] = {
    "hi": CinemaIndustry.BOLLYWOOD,
    "te": CinemaIndustry.TOLLYWOOD,
    "ta": CinemaIndustry.KOLLYWOOD,
    "ml": CinemaIndustry.MOLLYWOOD,
    "kn": CinemaIndustry.SANDALWOOD,
    "bn": CinemaIndustry.INDIAN_OTHER,
    "mr": CinemaIndustry.INDIAN_OTHER,
    "pa": CinemaIndustry.INDIAN_OTHER,
    "gu": CinemaIndustry.INDIAN_OTHER,
    "en": CinemaIndustry.HOLLYWOOD,
    "ko": CinemaIndustry.KOREAN,
    "ja": CinemaIndustry.JAPANESE,
    "zh": CinemaIndustry.CHINESE,
    "cn": CinemaIndustry.CHINESE,
    "yue": CinemaIndustry.CHINESE,
    "de": CinemaIndustry.EUROPEAN,
    "fr": CinemaIndustry.EUROPEAN,
    "es": CinemaIndustry.EUROPEAN,
    "it": CinemaIndustry.EUROPEAN,
}

COUNTRY_TO_INDUSTRY: Dict[str, CinemaIndustry] = {
    "IN": CinemaIndustry.INDIAN_OTHER,
    "US": CinemaIndustry.HOLLYWOOD,
    "GB": CinemaIndustry.HOLLYWOOD,
    "KR": CinemaIndustry.KOREAN,
    "JP": CinemaIndustry.JAPANESE,
    "CN": CinemaIndustry.CHINESE,
    "HK": CinemaIndustry.CHINESE,
    "TW": CinemaIndustry.CHINESE,
    "DE": CinemaIndustry.EUROPEAN,
    "FR": CinemaIndustry.EUROPEAN,
    "ES": CinemaIndustry.EUROPEAN,
    "IT": CinemaIndustry.EUROPEAN,
}

INDUSTRY_DESCRIPTIONS: Dict[CinemaIndustry, str] = {
    CinemaIndustry.BOLLYWOOD: "Hindi cinema (Bollywood)",
    CinemaIndustry.TOLLYWOOD: "Telugu cinema (Tollywood)",
    CinemaIndustry.KOLLYWOOD: "Tamil cinema (Kollywood)",
    CinemaIndustry.MOLLYWOOD: "Malayalam cinema (Mollywood)",
    CinemaIndustry.SANDALWOOD: "Kannada cinema (Sandalwood)",
    CinemaIndustry.INDIAN_OTHER: "Indian regional cinema",
    CinemaIndustry.HOLLYWOOD: "English/Hollywood cinema",
    CinemaIndustry.KOREAN: "Korean cinema (K-movies)",
    CinemaIndustry.JAPANESE: "Japanese cinema",
    CinemaIndustry.CHINESE: "Chinese cinema",
    CinemaIndustry.EUROPEAN: "European cinema",
    CinemaIndustry.OTHER: "International cinema",
}

# Dubbing-friendly language families, primary language first.
_LANGUAGE_FAMILIES: Dict[CinemaIndustry, Sequence[str]] = {
    CinemaIndustry.BOLLYWOOD: ("hi", "te", "ta"),
    CinemaIndustry.TOLLYWOOD: ("te", "hi", "ta", "kn"),
    CinemaIndustry.KOLLYWOOD: ("ta", "hi", "te", "ml"),
    CinemaIndustry.MOLLYWOOD: ("ml", "hi", "ta"),
    CinemaIndustry.SANDALWOOD: ("kn", "hi", "te", "ta"),
    CinemaIndustry.INDIAN_OTHER: ("hi",) + INDIAN_LANGUAGES,
    CinemaIndustry.KOREAN: ("ko",),
    CinemaIndustry.JAPANESE: ("ja",),
    CinemaIndustry.CHINESE: ("zh", "cn", "yue"),
    CinemaIndustry.HOLLYWOOD: ("en",),
}

# ── Keyword detectors ─────────────────────────────────────

EPIC_KEYWORDS = (
    "kingdom", "empire", "king", "queen", "warrior", "battle", "war", "legend",
    "dynasty", "throne", "prince", "princess", "saga", "epic", "hero",
    "rajah", "raja", "rani", "yoddha", "sainik", "yuddh", "veera", "veer",
)
MASS_HERO_KEYWORDS = (
    "mass", "hero", "star", "blockbuster", "action", "power", "rise",
    "king", "don", "boss", "tiger", "lion", "storm", "fire", "blood",
)
PATRIOTIC_KEYWORDS = (
    "india", "desh", "nation", "army", "soldier", "war", "freedom",
    "independence", "patriot", "border", "uri", "surgical",
)
REVENGE_KEYWORDS = ("revenge", "vengeance", "badla", "justice", "kill", "blood", "enemy")
HERO_INDICATORS = (
    "hero", "legendary", "unbeatable", "invincible", "powerful",
    "mass", "superstar", "king", "emperor", "warrior", "champion",
    "rise", "becomes", "transforms", "chosen one",
)
FAMILY_WORDS = ("father", "mother", "son", "daughter")

THEME_KEYWORDS: Dict[str, Sequence[str]] = {
    "heroism": ("hero", "save", "protect"),
    "sacrifice": ("sacrifice", "give up", "die for"),
    "revenge": REVENGE_KEYWORDS,
    "love": ("love", "romance", "heart"),
    "family": ("family", "father", "mother"),
    "friendship": ("friend", "brotherhood", "bond"),
    "patriotism": PATRIOTIC_KEYWORDS,
    "rebellion": ("rebel", "fight against", "uprising"),
    "power": ("power", "rule", "control"),
    "justice": ("justice", "right", "wrong"),
    "survival": ("survive", "survival", "escape"),
    "mythology": ("myth", "god", "divine"),
    "history": ("history", "ancient", "century"),
    "crime": ("crime", "criminal", "mafia"),
    "politics": ("politic", "government", "minister"),
    "sports": ("sport", "game", "championship"),
}

# Genre ids that imply a theme even without keywords.
_GENRE_THEMES = ((10752, "patriotism"), (36, "history"), (80, "crime"), (10749, "love"))

THEME_MATCHER = KeywordMatcher(THEME_KEYWORDS)
_EPIC = KeywordMatcher.from_keywords(EPIC_KEYWORDS)
_MASS_HERO = KeywordMatcher.from_keywords(MASS_HERO_KEYWORDS)
_PATRIOTIC = KeywordMatcher.from_keywords(PATRIOTIC_KEYWORDS)
_REVENGE = KeywordMatcher.from_keywords(REVENGE_KEYWORDS)
_HERO = KeywordMatcher.from_keywords(HERO_INDICATORS)

# Titles recognised as Indian when language and country say nothing.
REGIONAL_TITLES = (
    "eega", "makkhi", "chatrapathi", "vikramarkudu", "simhadri", "pokiri",
    "gabbar singh", "temper", "ala vaikunthapurramuloo", "bheemla nayak",
    "sye raa", "krish", "akhanda", "waltair veerayya", "veera simha reddy",
    "dhruva", "arjun reddy", "kabir singh", "jersey", "dear comrade",
    "mahanati", "rangasthalam", "bharat ane nenu", "maharshi", "vakeel saab",
    "the goat", "thunivu", "varisu", "ponniyin selvan", "ps1", "ps2",
    "beast", "bigil", "sarkar", "mersal", "theri", "kaththi",
    "mankatha", "vedalam", "yennai arindhaal", "arrambam",
)

# ── Reference extraction ──────────────────────────────────

_QUOTED = r"['\"]?([^'\"]+?)['\"]?"

EXTRACTION_PATTERNS: Sequence[re.Pattern] = (
    re.compile(rf"movies?\s+like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"similar\s+to\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"films?\s+like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"shows?\s+like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"more\s+like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"recommend.*like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"something\s+like\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"(?<!would\s)(?<!'d\s)\blike\s+{_QUOTED}\s*$", re.I),
    re.compile(rf"if\s+i\s+liked?\s+{_QUOTED}(?:[,.!?]|$)", re.I),
    re.compile(rf"fans?\s+of\s+{_QUOTED}(?:[,.!?]|$)", re.I),
)

_TRAILING_PUNCT = re.compile(r"[,.!?]+$")
_TRAILING_KIND = re.compile(r"\s+(movie|film|show|series)s?$", re.I)

# Captures that are preferences, not titles ("like horror", "like something fun").
_NOT_TITLES = frozenset(
    {g.name.lower() for g in GENRES + TV_GENRES}
    | {"something", "anything", "this", "that", "it", "them", "these", "those",
       "action", "comedy", "comedies", "horror", "romance", "drama", "dramas",
       "thrillers", "movies", "films", "shows", "series"}
)


def extract_reference_title(message: str) -> Optional[str]:
    """Pull X out of "movies like X" style phrasing, or None."""
    text = (message or "").strip()
    for pattern in EXTRACTION_PATTERNS:
        match = pattern.search(text)
        if not match or not match.group(1):
            continue
        title = _TRAILING_PUNCT.sub("", match.group(1).strip()).strip()
        title = _TRAILING_KIND.sub("", title).strip()
        if len(title) >= 2 and title.lower() not in _NOT_TITLES:
            return title
    return None


# ── Catalog resolution ────────────────────────────────────


def find_best_title_match(results: Sequence[MediaItem], wanted: str) -> Optional[MediaItem]:
    """Exact, then prefix, then substring match; else the first result."""
    needle = wanted.lower().strip()
    for test in (
        lambda t: t == needle,
        lambda t: t.startswith(needle),
        lambda t: needle in t,
    ):
        for item in results:
            if test(item.title.lower()):
                return item
    return results[0] if results else None


async def find_reference_title(
    catalog: CatalogProvider,
    title: str,
    prefer_movies: bool = True,
) -> Optional[MediaItem]:
    """Search the catalog for the reference. Lookup errors read as "not found"."""
    try:
        movies = []
        if prefer_movies:
            movies = (await catalog.search(MediaType.MOVIE, title)).items
            best = find_best_title_match(movies, title)
            if best:
                return best

        shows = (await catalog.search(MediaType.TV, title)).items
        best = find_best_title_match(shows, title)
        if best:
            return best

        if prefer_movies and movies:
            return movies[0]
    except Exception as exc:
        logger.warning("Reference lookup for %r failed: %s", title, exc)
    return None


# ── Known-profile table ───────────────────────────────────


class ProfileTable:
    """Pre-profiled well-known titles, keyed by lowercase title fragment."""

    def __init__(self, profiles: Mapping[str, Mapping[str, Any]], aliases: Optional[Mapping[str, str]] = None) -> None:
        self._profiles = {k.lower(): dict(v) for k, v in profiles.items()}
        self._aliases = {k.lower(): v.lower() for k, v in (aliases or {}).items()}
        keys = list(self._profiles) + list(self._aliases)
        self._matcher = KeywordMatcher.from_keywords(keys, whole_words=True)

    @classmethod
    def from_file(cls, path: Path) -> "ProfileTable":
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        return cls(raw.get("profiles", {}), raw.get("aliases", {}))

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._profiles or key.lower() in self._aliases

    def lookup(self, title: str) -> Optional[Dict[str, Any]]:
        key = self._matcher.first(title)
        if key is None:
            return None
        key = self._aliases.get(key, key)
        return self._profiles.get(key)

    def keys(self) -> List[str]:
        return list(self._profiles)


_BUNDLED_PROFILES = Path(__file__).resolve().parent.parent / "data" / "known_profiles.json"


@lru_cache(maxsize=1)
def default_profile_table() -> ProfileTable:
    path = Path(settings.known_profiles_path) if settings.known_profiles_path else _BUNDLED_PROFILES
    table = ProfileTable.from_file(path)
    logger.info("Loaded %d known title profiles from %s", len(table), path)
    return table


def fill_profile_defaults(partial: Mapping[str, Any]) -> CinematicProfile:
    """Complete a table entry; missing fields lean toward a mass blockbuster."""
    base: Dict[str, Any] = {
        "narrative_scale": NarrativeScale.LARGE,
        "storytelling_style": StorytellingStyle.COMMERCIAL_MASALA,
        "pacing": Pacing.FAST,
        "audience_type": AudienceType.MASS,
        "mass_appeal_score": 80,
        "themes": ["heroism", "power"],
        "has_hero_centric_elevation": True,
        "production_scale": ProductionScale.BIG_BUDGET,
        "visual_style": VisualStyle.STYLIZED_ACTION,
        "has_superstar_lead": True,
        "star_power_tier": StarPowerTier.REGIONAL_SUPERSTAR,
    }
    base.update(partial)
    return CinematicProfile.model_validate(base)


# ── Heuristic profiling ───────────────────────────────────


def analyze_narrative_scale(text: str, genre_ids: Sequence[int], vote_count: int, popularity: float) -> NarrativeScale:
    if _EPIC.first(text):
        return NarrativeScale.EPIC
    if vote_count > 10000 and popularity > 100:
        return NarrativeScale.LARGE
    if (28 in genre_ids or 12 in genre_ids) and vote_count > 5000:
        return NarrativeScale.LARGE
    if 18 in genre_ids and 28 not in genre_ids:
        return NarrativeScale.MEDIUM
    if 10749 in genre_ids or 35 in genre_ids:
        return NarrativeScale.MEDIUM
    return NarrativeScale.UNKNOWN


def analyze_storytelling_style(genre_ids: Sequence[int], is_indian: bool) -> StorytellingStyle:
    action, drama = 28 in genre_ids, 18 in genre_ids
    if is_indian:
        if action and (10749 in genre_ids or 35 in genre_ids):
            return StorytellingStyle.COMMERCIAL_MASALA
        if action and not drama:
            return StorytellingStyle.ACTION_SPECTACLE
        if drama and not action:
            return StorytellingStyle.EMOTIONAL_DRAMA

    if 53 in genre_ids or 9648 in genre_ids:
        return StorytellingStyle.THRILLER_SUSPENSE
    if 35 in genre_ids and not action:
        return StorytellingStyle.COMEDY_ENTERTAINMENT
    if action or 12 in genre_ids:
        return StorytellingStyle.ACTION_SPECTACLE
    if drama:
        return StorytellingStyle.EMOTIONAL_DRAMA
    return StorytellingStyle.MIXED


def analyze_audience_type(genre_ids: Sequence[int], text: str, is_indian: bool) -> AudienceType:
    if 10751 in genre_ids or 16 in genre_ids:
        return AudienceType.FAMILY
    if any(word in text for word in ("college", "youth", "young")):
        return AudienceType.YOUTH
    if is_indian and 28 in genre_ids:
        return AudienceType.MASS
    if 99 in genre_ids or 36 in genre_ids:
        return AudienceType.NICHE
    return AudienceType.UNIVERSAL


_SCALE_BONUS = {NarrativeScale.EPIC: 25, NarrativeScale.LARGE: 15, NarrativeScale.MEDIUM: 5}
_STYLE_BONUS = {
    StorytellingStyle.COMMERCIAL_MASALA: 20,
    StorytellingStyle.ACTION_SPECTACLE: 15,
    StorytellingStyle.EMOTIONAL_DRAMA: 10,
}
_AUDIENCE_BONUS = {AudienceType.MASS: 15, AudienceType.FAMILY: 10, AudienceType.UNIVERSAL: 5}


def mass_appeal_score(
    scale: NarrativeScale,
    style: StorytellingStyle,
    audience: AudienceType,
    vote_count: int,
    popularity: float,
    is_indian: bool,
) -> int:
    score = 50
    score += _SCALE_BONUS.get(scale, 0)
    score += _STYLE_BONUS.get(style, 0)
    score += _AUDIENCE_BONUS.get(audience, 0)

    if vote_count > 20000:
        score += 10
    elif vote_count > 10000:
        score += 7
    elif vote_count > 5000:
        score += 5

    if popularity > 100:
        score += 5
    if is_indian:
        score += 5
    return min(100, max(0, score))


def detect_themes(text: str, genre_ids: Sequence[int]) -> List[str]:
    themes = THEME_MATCHER.match(text)
    for genre_id, theme in _GENRE_THEMES:
        if genre_id in genre_ids and theme not in themes:
            themes.append(theme)
    return themes


def estimate_production_scale(vote_count: int, popularity: float, scale: NarrativeScale) -> ProductionScale:
    if scale is NarrativeScale.EPIC and vote_count > 5000:
        return ProductionScale.MEGA_BUDGET
    if vote_count > 20000 and popularity > 100:
        return ProductionScale.MEGA_BUDGET
    if vote_count > 10000 or popularity > 80:
        return ProductionScale.BIG_BUDGET
    if vote_count > 2000:
        return ProductionScale.MID_BUDGET
    return ProductionScale.UNKNOWN


def estimate_visual_style(scale: NarrativeScale, style: StorytellingStyle, production: ProductionScale) -> VisualStyle:
    if scale is NarrativeScale.EPIC and production is ProductionScale.MEGA_BUDGET:
        return VisualStyle.GRAND_SPECTACLE
    if style is StorytellingStyle.ACTION_SPECTACLE:
        return VisualStyle.STYLIZED_ACTION
    if style is StorytellingStyle.EMOTIONAL_DRAMA:
        return VisualStyle.REALISTIC
    if style is StorytellingStyle.ART_HOUSE:
        return VisualStyle.ARTISTIC
    return VisualStyle.STANDARD


def estimate_star_power(vote_count: int, popularity: float, is_indian: bool) -> StarPowerTier:
    if not is_indian:
        return StarPowerTier.UNKNOWN
    if vote_count > 20000 or popularity > 150:
        return StarPowerTier.PAN_INDIA_STAR
    if vote_count > 10000 or popularity > 80:
        return StarPowerTier.REGIONAL_SUPERSTAR
    if vote_count > 5000:
        return StarPowerTier.POPULAR_ACTOR
    return StarPowerTier.UNKNOWN


def build_cinematic_profile(
    title: str,
    overview: str,
    genre_ids: Sequence[int],
    vote_count: int,
    popularity: float,
    is_indian: bool,
    table: Optional[ProfileTable] = None,
) -> CinematicProfile:
    """Known-table profile when the title matches a key, heuristics otherwise."""
    table = table if table is not None else default_profile_table()
    known = table.lookup(title)
    if known:
        logger.debug("Using known profile for %r", title)
        return fill_profile_defaults(known)

    text = f"{title} {overview}".lower()
    scale = analyze_narrative_scale(text, genre_ids, vote_count, popularity)
    style = analyze_storytelling_style(genre_ids, is_indian)
    audience = analyze_audience_type(genre_ids, text, is_indian)
    themes = detect_themes(text, genre_ids)
    production = estimate_production_scale(vote_count, popularity, scale)

    return CinematicProfile(
        narrative_scale=scale,
        storytelling_style=style,
        pacing=Pacing.FAST if scale is NarrativeScale.EPIC else Pacing.MODERATE,
        audience_type=audience,
        mass_appeal_score=mass_appeal_score(scale, style, audience, vote_count, popularity, is_indian),
        themes=themes,
        has_hero_centric_elevation=bool(_HERO.first(text)),
        has_power_fantasy="power" in themes or "revenge" in themes or bool(_MASS_HERO.first(text)),
        has_emotional_drama="family" in themes or "love" in themes or 18 in genre_ids,
        has_patriotic_elements=bool(_PATRIOTIC.first(text)) or "patriotism" in themes,
        has_romantic_subplot="love" in themes or 10749 in genre_ids,
        has_family_drama="family" in themes or any(w in text for w in FAMILY_WORDS),
        has_revenge_narrative=bool(_REVENGE.first(text)),
        production_scale=production,
        visual_style=estimate_visual_style(scale, style, production),
        has_superstar_lead=is_indian and (vote_count > 10000 or popularity > 50),
        star_power_tier=estimate_star_power(vote_count, popularity, is_indian),
    )


# ── Industry ──────────────────────────────────────────────

_REGIONAL = KeywordMatcher.from_keywords(REGIONAL_TITLES, whole_words=True)


def determine_industry(
    original_language: str,
    production_countries: Sequence[str],
    title: str,
    table: Optional[ProfileTable] = None,
) -> CinemaIndustry:
    """Language first, then production country, then known regional titles."""
    industry = LANGUAGE_TO_INDUSTRY.get((original_language or "").lower())
    if industry:
        return industry

    for country in production_countries:
        if country.upper() in COUNTRY_TO_INDUSTRY:
            return COUNTRY_TO_INDUSTRY[country.upper()]

    table = table if table is not None else default_profile_table()
    if _REGIONAL.first(title) or table.lookup(title):
        return CinemaIndustry.TOLLYWOOD
    return CinemaIndustry.OTHER


def preferred_languages(industry: CinemaIndustry, original_language: str) -> List[str]:
    if industry is CinemaIndustry.EUROPEAN:
        return [original_language, "en"]
    family = _LANGUAGE_FAMILIES.get(industry)
    if family:
        return list(dict.fromkeys(family))
    return [original_language] if original_language else []


def is_indian_cinema(original_language: str, production_countries: Sequence[str]) -> bool:
    return original_language in INDIAN_LANGUAGES or "IN" in production_countries


# ── Analysis ──────────────────────────────────────────────


async def analyze_reference(
    catalog: CatalogProvider,
    item: MediaItem,
    table: Optional[ProfileTable] = None,
) -> ReferenceInfo:
    """Profile a resolved title. A failed details call only loses country data."""
    overview = item.overview
    countries: List[str] = list(item.origin_countries)
    spoken: List[str] = []
    vote_count = item.vote_count or 0
    popularity = item.popularity or 0.0

    try:
        details = await catalog.details(item.media_type, item.id)
        overview = details.overview or overview
        countries = details.production_countries or countries
        spoken = details.spoken_languages
    except Exception as exc:
        logger.warning("Details lookup for %s failed: %s", item.key, exc)

    language = item.original_language or ""
    indian = is_indian_cinema(language, countries)
    industry = determine_industry(language, countries, item.title, table)
    profile = build_cinematic_profile(item.title, overview, item.genre_ids, vote_count, popularity, indian, table)

    info = ReferenceInfo(
        id=item.id,
        title=item.title,
        media_type=item.media_type,
        original_language=language,
        original_title=item.original_title or item.title,
        production_countries=countries,
        spoken_languages=spoken,
        genre_ids=list(item.genre_ids),
        release_year=item.release_year,
        vote_average=item.vote_average,
        vote_count=vote_count,
        popularity=popularity,
        overview=overview,
        industry=industry,
        industry_description=INDUSTRY_DESCRIPTIONS[industry],
        preferred_languages=preferred_languages(industry, language),
        is_indian_cinema=indian,
        profile=profile,
    )
    logger.info(
        "Reference %r → %s, scale=%s style=%s mass=%d",
        info.title, industry.value, profile.narrative_scale.value,
        profile.storytelling_style.value, profile.mass_appeal_score,
    )
    return info
