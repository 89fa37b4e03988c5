"""
CineChat — Pydantic Models

Shared data models and closed enumerations used across the whole
conversation engine.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ── Enumerations ─────────────────────────────────────────


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"
    BOTH = "both"


class IntentType(str, Enum):
    RECOMMEND = "recommend"
    SEARCH = "search"
    EXPLAIN = "explain"
    SIMILAR = "similar"
    COMPARE = "compare"
    TRENDING = "trending"
    TOP_RATED = "top_rated"
    WATCHLIST = "watchlist"
    MOOD = "mood"
    GENRE = "genre"
    GREETING = "greeting"
    THANKS = "thanks"
    UNKNOWN = "unknown"


class QueryKind(str, Enum):
    DISCOVER = "discover"
    SEARCH = "search"
    TRENDING = "trending"
    TOP_RATED = "top_rated"


class QuerySource(str, Enum):
    """Where a query came from. Only used to pick response text."""

    MOOD = "mood"
    GENRE = "genre"
    SEARCH = "search"
    TRENDING = "trending"
    TOP_RATED = "top_rated"
    SIMILAR = "similar"
    CULTURAL = "cultural"
    VARIETY = "variety"
    RANDOM = "random"


class NarrativeScale(str, Enum):
    EPIC = "epic"
    LARGE = "large"
    MEDIUM = "medium"
    INTIMATE = "intimate"
    UNKNOWN = "unknown"


class StorytellingStyle(str, Enum):
    COMMERCIAL_MASALA = "commercial-masala"
    ACTION_SPECTACLE = "action-spectacle"
    EMOTIONAL_DRAMA = "emotional-drama"
    THRILLER_SUSPENSE = "thriller-suspense"
    COMEDY_ENTERTAINMENT = "comedy-entertainment"
    ART_HOUSE = "art-house"
    MIXED = "mixed"


class Pacing(str, Enum):
    FAST = "fast"
    MODERATE = "moderate"
    SLOW = "slow"
    UNKNOWN = "unknown"


class AudienceType(str, Enum):
    MASS = "mass"
    FAMILY = "family"
    YOUTH = "youth"
    MATURE = "mature"
    NICHE = "niche"
    UNIVERSAL = "universal"


class ProductionScale(str, Enum):
    MEGA_BUDGET = "mega-budget"
    BIG_BUDGET = "big-budget"
    MID_BUDGET = "mid-budget"
    LOW_BUDGET = "low-budget"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return _PRODUCTION_RANK[self]


_PRODUCTION_RANK = {
    ProductionScale.UNKNOWN: 0,
    ProductionScale.LOW_BUDGET: 1,
    ProductionScale.MID_BUDGET: 2,
    ProductionScale.BIG_BUDGET: 3,
    ProductionScale.MEGA_BUDGET: 4,
}


class VisualStyle(str, Enum):
    GRAND_SPECTACLE = "grand-spectacle"
    STYLIZED_ACTION = "stylized-action"
    REALISTIC = "realistic"
    ARTISTIC = "artistic"
    STANDARD = "standard"


class StarPowerTier(str, Enum):
    PAN_INDIA_STAR = "pan-india-star"
    REGIONAL_SUPERSTAR = "regional-superstar"
    POPULAR_ACTOR = "popular-actor"
    UNKNOWN = "unknown"


class CinemaIndustry(str, Enum):
    BOLLYWOOD = "bollywood"
    TOLLYWOOD = "tollywood"
    KOLLYWOOD = "kollywood"
    MOLLYWOOD = "mollywood"
    SANDALWOOD = "sandalwood"
    INDIAN_OTHER = "indian-other"
    HOLLYWOOD = "hollywood"
    KOREAN = "korean"
    JAPANESE = "japanese"
    CHINESE = "chinese"
    EUROPEAN = "european"
    OTHER = "other"


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    OPEN = "open"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# ── Intent Parser ────────────────────────────────────────


class ParsedIntent(BaseModel):
    """Structured reading of one user message."""

    model_config = ConfigDict(frozen=True)

    type: IntentType = IntentType.RECOMMEND
    media_type: MediaType = MediaType.BOTH
    confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    genres: List[int] = Field(default_factory=list, description="Resolved genre ids")
    genre_names: List[str] = Field(default_factory=list)
    moods: List[str] = Field(default_factory=list, description="Mood tags (happy, sad, …)")
    era: Optional[str] = Field(default=None, description="Era preset key (latest, 90s, …)")
    year: Optional[int] = None
    min_rating: Optional[float] = None
    keywords: List[str] = Field(default_factory=list)
    actors: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    original_text: str = ""
    response_hint: str = ""


# ── Catalog projection ───────────────────────────────────


class MediaItem(BaseModel):
    """Catalog-agnostic projection of a movie or TV show."""

    model_config = ConfigDict(frozen=True)

    id: int
    media_type: MediaType
    title: str
    original_title: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    overview: str = ""
    release_date: Optional[str] = None
    vote_average: float = 0.0
    vote_count: Optional[int] = None
    genre_ids: List[int] = Field(default_factory=list)
    original_language: Optional[str] = None
    origin_countries: List[str] = Field(default_factory=list)
    popularity: Optional[float] = None
    tags: List[str] = Field(default_factory=list, description="Attribute / justification tags")

    @property
    def key(self) -> str:
        return f"{self.media_type.value}-{self.id}"

    @property
    def release_year(self) -> Optional[int]:
        if not self.release_date:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            return None


class CatalogPage(BaseModel):
    """Paginated result returned by every catalog provider call."""

    items: List[MediaItem] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    total_results: int = 0


class TitleDetails(BaseModel):
    """Full details for a single title, including production metadata."""

    id: int
    media_type: MediaType
    title: str
    original_title: Optional[str] = None
    overview: str = ""
    original_language: Optional[str] = None
    production_countries: List[str] = Field(default_factory=list)
    spoken_languages: List[str] = Field(default_factory=list)
    genre_ids: List[int] = Field(default_factory=list)
    release_date: Optional[str] = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0


class DiscoverOptions(BaseModel):
    genres: List[int] = Field(default_factory=list)
    exclude_genres: List[int] = Field(default_factory=list)
    match_any_genre: bool = False
    year: Optional[int] = None
    year_range: Optional[Tuple[int, int]] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    sort_by: Optional[str] = None
    original_languages: List[str] = Field(default_factory=list)
    exclude_original_languages: List[str] = Field(default_factory=list)
    region: Optional[str] = None
    page: int = 1


# ── Recommendation History ───────────────────────────────


class RecommendedItem(BaseModel):
    """History entry. Append-only."""

    model_config = ConfigDict(frozen=True)

    id: int
    media_type: MediaType
    title: str
    genre_ids: List[int] = Field(default_factory=list)
    release_year: Optional[int] = None
    vote_average: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    turn_index: int = 0

    @property
    def key(self) -> str:
        return f"{self.media_type.value}-{self.id}"


class FilterRules(BaseModel):
    """Derived fresh every turn from the history."""

    exclude_ids: Set[str] = Field(default_factory=set, description="media-id keys never re-offered")
    cooldown_genres: Dict[int, int] = Field(default_factory=dict, description="genre id → turns remaining")
    exclude_franchises: List[str] = Field(default_factory=list)
    preferred_rating_range: Tuple[float, float] = (0.0, 10.0)
    preferred_eras: List[str] = Field(default_factory=list)


class HistoryStats(BaseModel):
    total_recommended: int = 0
    turn_count: int = 0
    top_genres: List[Tuple[int, int]] = Field(default_factory=list)
    era_breakdown: List[Tuple[str, int]] = Field(default_factory=list)


# ── Cultural Reference Analyzer ──────────────────────────


class CinematicProfile(BaseModel):
    """Derived attributes of a reference title."""

    model_config = ConfigDict(frozen=True)

    narrative_scale: NarrativeScale = NarrativeScale.UNKNOWN
    storytelling_style: StorytellingStyle = StorytellingStyle.MIXED
    pacing: Pacing = Pacing.UNKNOWN
    audience_type: AudienceType = AudienceType.UNIVERSAL
    mass_appeal_score: int = Field(default=50, ge=0, le=100)
    themes: List[str] = Field(default_factory=list)
    has_hero_centric_elevation: bool = False
    has_power_fantasy: bool = False
    has_emotional_drama: bool = False
    has_patriotic_elements: bool = False
    has_romantic_subplot: bool = False
    has_family_drama: bool = False
    has_revenge_narrative: bool = False
    production_scale: ProductionScale = ProductionScale.UNKNOWN
    visual_style: VisualStyle = VisualStyle.STANDARD
    has_superstar_lead: bool = False
    star_power_tier: StarPowerTier = StarPowerTier.UNKNOWN


class ReferenceInfo(BaseModel):
    """A resolved reference title plus its cultural context."""

    id: int
    title: str
    media_type: MediaType
    original_language: str = ""
    original_title: str = ""
    production_countries: List[str] = Field(default_factory=list)
    spoken_languages: List[str] = Field(default_factory=list)
    genre_ids: List[int] = Field(default_factory=list)
    release_year: Optional[int] = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    overview: str = ""
    industry: CinemaIndustry = CinemaIndustry.OTHER
    industry_description: str = ""
    preferred_languages: List[str] = Field(default_factory=list)
    is_indian_cinema: bool = False
    profile: CinematicProfile = Field(default_factory=CinematicProfile)

    @property
    def is_hollywood(self) -> bool:
        return self.industry is CinemaIndustry.HOLLYWOOD

    @property
    def is_korean(self) -> bool:
        return self.industry is CinemaIndustry.KOREAN

    @property
    def is_japanese(self) -> bool:
        return self.industry is CinemaIndustry.JAPANESE

    @property
    def is_chinese(self) -> bool:
        return self.industry is CinemaIndustry.CHINESE


class CulturalFilterRules(BaseModel):
    """Hard and soft constraints derived from a reference profile."""

    # Language / country (hard when strict)
    preferred_languages: List[str] = Field(default_factory=list)
    exclude_languages: List[str] = Field(default_factory=list)
    strict_language_match: bool = False
    preferred_countries: List[str] = Field(default_factory=list)
    exclude_countries: List[str] = Field(default_factory=list)

    industry: CinemaIndustry = CinemaIndustry.OTHER
    industry_description: str = ""

    # Catalog query parameters
    with_original_language: Optional[str] = None
    without_original_language: Optional[str] = None
    region: Optional[str] = None

    # Profile matching
    required_narrative_scales: List[NarrativeScale] = Field(default_factory=list)
    required_storytelling_styles: List[StorytellingStyle] = Field(default_factory=list)
    required_audience_types: List[AudienceType] = Field(default_factory=list)
    minimum_mass_appeal_score: int = 40
    required_themes: List[str] = Field(default_factory=list)
    preferred_themes: List[str] = Field(default_factory=list)
    minimum_production_scale: ProductionScale = ProductionScale.UNKNOWN
    exclude_art_house: bool = False
    exclude_low_budget: bool = False

    # Reference context
    reference_title: str = ""
    reference_id: int = 0
    reference_media_type: MediaType = MediaType.MOVIE
    reference_genres: List[int] = Field(default_factory=list)
    reference_profile: CinematicProfile = Field(default_factory=CinematicProfile)
    match_justification_template: str = ""


class ReferenceAnalysis(BaseModel):
    info: ReferenceInfo
    filters: CulturalFilterRules


# ── Ambiguity Detector ───────────────────────────────────


class QuickOption(BaseModel):
    label: str
    value: str
    icon: Optional[str] = None


class ClarifyingQuestion(BaseModel):
    id: str
    question: str
    type: QuestionType = QuestionType.SINGLE_CHOICE
    options: List[QuickOption] = Field(default_factory=list)
    priority: int = Field(default=3, ge=1, le=5)


class AmbiguityAnalysis(BaseModel):
    is_ambiguous: bool = False
    ambiguity_score: float = Field(default=0.0, ge=0.0, le=1.0)
    missing_info: List[str] = Field(default_factory=list)
    clarifying_questions: List[ClarifyingQuestion] = Field(default_factory=list)
    should_ask_follow_up: bool = False


class Refinements(BaseModel):
    add_genres: List[int] = Field(default_factory=list)
    remove_genres: List[int] = Field(default_factory=list)
    prefer_newer: bool = False
    prefer_older: bool = False
    prefer_higher_rating: bool = False
    wants_more: List[str] = Field(default_factory=list)
    wants_less: List[str] = Field(default_factory=list)


# ── Diversity Scorer ─────────────────────────────────────


class DiversityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_same_genre: int = 3
    max_same_era: int = 4
    max_same_franchise: int = 1
    prefer_hidden_gems: bool = False


class ScoredItem(BaseModel):
    """A candidate with its diversity score. Only lives during ranking."""

    item: MediaItem
    diversity_score: float = Field(ge=0.0, le=1.0)
    penalties: Dict[str, float] = Field(default_factory=dict)
    boosts: Dict[str, float] = Field(default_factory=dict)


class DiversitySummary(BaseModel):
    avg_score: float = 0.0
    genre_spread: float = 0.0
    era_spread: float = 0.0
    has_franchise_duplicates: bool = False


# ── Query Generator ──────────────────────────────────────


class CatalogQuery(BaseModel):
    """One catalog lookup for a single media type."""

    kind: QueryKind = QueryKind.DISCOVER
    media_type: MediaType = MediaType.MOVIE
    genres: List[int] = Field(default_factory=list)
    exclude_genres: List[int] = Field(default_factory=list)
    match_any_genre: bool = False
    year: Optional[int] = None
    year_range: Optional[Tuple[int, int]] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    sort_by: Optional[str] = None
    query: Optional[str] = None
    page: int = 1
    limit: int = 6
    original_languages: List[str] = Field(default_factory=list)
    exclude_original_languages: List[str] = Field(default_factory=list)
    region: Optional[str] = None
    source: QuerySource = QuerySource.GENRE
    fetch_multiplier: int = 1

    @property
    def fetch_limit(self) -> int:
        return self.limit * max(self.fetch_multiplier, 1)


class ResponseContext(BaseModel):
    intro: str = ""
    explanation: str = ""
    follow_up: str = ""


class QueryResult(BaseModel):
    queries: List[CatalogQuery] = Field(default_factory=list)
    response_context: ResponseContext = Field(default_factory=ResponseContext)
    filter_rules: Optional[FilterRules] = None
    cultural_rules: Optional[CulturalFilterRules] = None


# ── Fallback Provider ────────────────────────────────────


class FallbackResult(BaseModel):
    items: List[MediaItem] = Field(default_factory=list)
    source: str = "trending"
    explanation: str = ""


# ── Orchestrator output ──────────────────────────────────


def new_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class MessageMetadata(BaseModel):
    intent: Optional[ParsedIntent] = None
    query_type: Optional[QueryKind] = None
    source: Optional[str] = None
    reference_title: Optional[str] = None
    justification: Optional[str] = None
    ambiguity_score: Optional[float] = None
    used_fallback: bool = False
    stale: bool = False
    turn: int = 0
    error: Optional[str] = None


class ChatMessage(BaseModel):
    id: str = Field(default_factory=new_message_id)
    role: MessageRole = MessageRole.ASSISTANT
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    media: List[MediaItem] = Field(default_factory=list)
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)


class ChatResponse(BaseModel):
    message: ChatMessage
    suggested_follow_ups: List[str] = Field(default_factory=list)


class QuickAction(BaseModel):
    id: str
    label: str
    icon: str
    prompt: str


# ── API Contract ─────────────────────────────────────────


class ChatRequest(BaseModel):
    message: str = Field(..., max_length=1000)
    session_id: Optional[str] = None


class ChatReply(BaseModel):
    session_id: str
    message: ChatMessage
    suggested_follow_ups: List[str] = Field(default_factory=list)


class SessionInfo(BaseModel):
    session_id: str
    stats: HistoryStats
