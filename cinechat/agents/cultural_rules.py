"""
CineChat — Cultural Filter Rules

Turns a ReferenceInfo into CulturalFilterRules and applies them to
fetched candidates.

Design patterns:
  - Rule Object: CulturalFilterRules carries hard and soft constraints
  - Filter + Sort: hard exclusions first, then a soft profile-match order
  - Template Method: justification / intro / explanation text builders
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from cinechat.agents.reference_analyzer import (
    INDIAN_LANGUAGES,
    INDUSTRY_DESCRIPTIONS,
    ProfileTable,
    analyze_reference,
    build_cinematic_profile,
    extract_reference_title,
    find_reference_title,
)
from cinechat.clients import CatalogProvider
from cinechat.models import (
    AudienceType,
    CinematicProfile,
    CulturalFilterRules,
    MediaItem,
    NarrativeScale,
    ProductionScale,
    ReferenceAnalysis,
    ReferenceInfo,
    StorytellingStyle,
)

logger = logging.getLogger(__name__)

# ── Looser-than-detected requirement sets ─────────────────

_SCALES: Dict[NarrativeScale, List[NarrativeScale]] = {
    NarrativeScale.EPIC: [NarrativeScale.EPIC, NarrativeScale.LARGE],
    NarrativeScale.LARGE: [NarrativeScale.EPIC, NarrativeScale.LARGE],
    NarrativeScale.MEDIUM: [NarrativeScale.MEDIUM, NarrativeScale.LARGE],
    NarrativeScale.INTIMATE: [NarrativeScale.INTIMATE, NarrativeScale.MEDIUM],
}
_ANY_SCALE = [NarrativeScale.EPIC, NarrativeScale.LARGE, NarrativeScale.MEDIUM]

_STYLES: Dict[StorytellingStyle, List[StorytellingStyle]] = {
    StorytellingStyle.COMMERCIAL_MASALA: [StorytellingStyle.COMMERCIAL_MASALA, StorytellingStyle.ACTION_SPECTACLE],
    StorytellingStyle.ACTION_SPECTACLE: [StorytellingStyle.ACTION_SPECTACLE, StorytellingStyle.COMMERCIAL_MASALA],
    StorytellingStyle.EMOTIONAL_DRAMA: [StorytellingStyle.EMOTIONAL_DRAMA, StorytellingStyle.COMMERCIAL_MASALA],
    StorytellingStyle.THRILLER_SUSPENSE: [StorytellingStyle.THRILLER_SUSPENSE],
    StorytellingStyle.COMEDY_ENTERTAINMENT: [StorytellingStyle.COMEDY_ENTERTAINMENT, StorytellingStyle.COMMERCIAL_MASALA],
    StorytellingStyle.ART_HOUSE: [StorytellingStyle.ART_HOUSE],
}
_ANY_STYLE = [
    StorytellingStyle.COMMERCIAL_MASALA,
    StorytellingStyle.ACTION_SPECTACLE,
    StorytellingStyle.EMOTIONAL_DRAMA,
]

_AUDIENCES: Dict[AudienceType, List[AudienceType]] = {
    AudienceType.MASS: [AudienceType.MASS, AudienceType.UNIVERSAL],
    AudienceType.FAMILY: [AudienceType.FAMILY, AudienceType.UNIVERSAL],
    AudienceType.YOUTH: [AudienceType.YOUTH, AudienceType.MASS],
    AudienceType.MATURE: [AudienceType.MATURE],
    AudienceType.NICHE: [AudienceType.NICHE],
}
_ANY_AUDIENCE = [AudienceType.MASS, AudienceType.FAMILY, AudienceType.UNIVERSAL]

# Mass appeal at which the single-language restriction is relaxed.
PAN_INDUSTRY_MASS_APPEAL = 85


def minimum_mass_appeal(score: int) -> int:
    if score >= 90:
        return 75
    if score >= 80:
        return 65
    if score >= 70:
        return 55
    return 40


def minimum_production_scale(scale: ProductionScale) -> ProductionScale:
    if scale is ProductionScale.MEGA_BUDGET:
        return ProductionScale.BIG_BUDGET
    if scale is ProductionScale.BIG_BUDGET:
        return ProductionScale.MID_BUDGET
    return ProductionScale.UNKNOWN


def build_justification_template(info: ReferenceInfo) -> str:
    profile = info.profile
    parts = [f"Same {info.industry_description}"]
    if profile.narrative_scale is NarrativeScale.EPIC:
        parts.append("epic storytelling scale")
    elif profile.narrative_scale is NarrativeScale.LARGE:
        parts.append("large-scale production")
    if profile.has_hero_centric_elevation:
        parts.append("hero-centric elevation")
    if profile.has_power_fantasy:
        parts.append("power fantasy narrative")
    if profile.has_patriotic_elements:
        parts.append("patriotic elements")
    if profile.storytelling_style is StorytellingStyle.COMMERCIAL_MASALA:
        parts.append("commercial masala entertainment")
    elif profile.storytelling_style is StorytellingStyle.ACTION_SPECTACLE:
        parts.append("action spectacle")
    return " • ".join(parts)


# ── Rule generation ───────────────────────────────────────


def generate_cultural_filters(info: ReferenceInfo) -> CulturalFilterRules:
    """Treat the reference as a strict template for what may be recommended."""
    profile = info.profile
    rules = CulturalFilterRules(
        preferred_languages=list(info.preferred_languages),
        strict_language_match=info.is_indian_cinema,
        industry=info.industry,
        industry_description=INDUSTRY_DESCRIPTIONS[info.industry],
        required_narrative_scales=_SCALES.get(profile.narrative_scale, _ANY_SCALE),
        required_storytelling_styles=_STYLES.get(profile.storytelling_style, _ANY_STYLE),
        required_audience_types=_AUDIENCES.get(profile.audience_type, _ANY_AUDIENCE),
        minimum_mass_appeal_score=minimum_mass_appeal(profile.mass_appeal_score),
        required_themes=profile.themes[:3],
        preferred_themes=list(profile.themes),
        minimum_production_scale=minimum_production_scale(profile.production_scale),
        exclude_art_house=(
            profile.storytelling_style is not StorytellingStyle.ART_HOUSE and profile.mass_appeal_score > 60
        ),
        exclude_low_budget=profile.production_scale in (ProductionScale.MEGA_BUDGET, ProductionScale.BIG_BUDGET),
        reference_title=info.title,
        reference_id=info.id,
        reference_media_type=info.media_type,
        reference_genres=list(info.genre_ids),
        reference_profile=profile,
        match_justification_template=build_justification_template(info),
    )

    if info.is_indian_cinema:
        rules.preferred_countries = ["IN"]
        rules.exclude_languages = ["en"]
        rules.exclude_countries = ["US", "GB"]
        rules.strict_language_match = True
        rules.with_original_language = info.original_language or None
        if profile.mass_appeal_score >= PAN_INDUSTRY_MASS_APPEAL:
            rules.with_original_language = None
            rules.without_original_language = "en"
    elif info.is_korean:
        rules.preferred_countries = ["KR"]
        rules.exclude_countries = ["US", "GB", "IN"]
        rules.exclude_languages = ["en"]
        rules.with_original_language = "ko"
        rules.strict_language_match = True
    elif info.is_japanese:
        rules.preferred_countries = ["JP"]
        rules.exclude_countries = ["US", "GB"]
        rules.exclude_languages = ["en"]
        rules.with_original_language = "ja"
        rules.strict_language_match = True
    elif info.is_chinese:
        rules.preferred_countries = ["CN", "HK", "TW"]
        rules.exclude_languages = ["en"]
        rules.with_original_language = "zh"
        rules.strict_language_match = True
    elif info.is_hollywood:
        rules.with_original_language = "en"
        rules.strict_language_match = False

    if rules.preferred_countries:
        rules.region = rules.preferred_countries[0]

    logger.info(
        "Cultural rules for %r: industry=%s strict=%s langs=%s exclude=%s min_mass=%d",
        info.title, info.industry.value, rules.strict_language_match,
        rules.preferred_languages, rules.exclude_languages, rules.minimum_mass_appeal_score,
    )
    return rules


# ── Candidate filtering ───────────────────────────────────


def passes_cultural_filters(item: MediaItem, rules: CulturalFilterRules) -> bool:
    """Hard constraints. A title in an excluded language never passes."""
    language = (item.original_language or "").lower()
    if language and language in rules.exclude_languages:
        return False
    if rules.without_original_language and language == rules.without_original_language:
        return False
    if any(c in rules.exclude_countries for c in item.origin_countries):
        return False
    if rules.strict_language_match:
        allowed = set(rules.preferred_languages)
        if rules.with_original_language:
            allowed.add(rules.with_original_language)
        if not language or (allowed and language not in allowed):
            return False
    return True


def candidate_profile(item: MediaItem, table: Optional[ProfileTable] = None) -> CinematicProfile:
    indian = (item.original_language or "") in INDIAN_LANGUAGES or "IN" in item.origin_countries
    return build_cinematic_profile(
        item.title, item.overview, item.genre_ids, item.vote_count or 0, item.popularity or 0.0, indian, table
    )


def cultural_match_score(profile: CinematicProfile, rules: CulturalFilterRules) -> float:
    """Share of the soft requirements a candidate profile meets, in [0, 1]."""
    checks = [
        profile.narrative_scale in rules.required_narrative_scales,
        profile.storytelling_style in rules.required_storytelling_styles,
        profile.audience_type in rules.required_audience_types,
        profile.mass_appeal_score >= rules.minimum_mass_appeal_score,
        profile.production_scale.rank >= rules.minimum_production_scale.rank,
        not rules.required_themes or bool(set(profile.themes) & set(rules.required_themes)),
    ]
    if rules.exclude_art_house and profile.storytelling_style is StorytellingStyle.ART_HOUSE:
        checks.append(False)
    if rules.exclude_low_budget:
        checks.append(profile.production_scale is not ProductionScale.LOW_BUDGET)
    return sum(checks) / len(checks)


def apply_cultural_rules(
    items: Sequence[MediaItem],
    rules: CulturalFilterRules,
    info: ReferenceInfo,
    target: int,
    table: Optional[ProfileTable] = None,
) -> List[MediaItem]:
    """Hard-filter, drop low-appeal titles when enough remain, order by match."""
    reference_key = (rules.reference_id, rules.reference_media_type)
    kept = [
        i for i in items
        if (i.id, i.media_type) != reference_key and passes_cultural_filters(i, rules)
    ]
    profiles = {i.key: candidate_profile(i, table) for i in kept}

    strong = [i for i in kept if profiles[i.key].mass_appeal_score >= rules.minimum_mass_appeal_score]
    if len(strong) >= target:
        kept = strong

    kept.sort(key=lambda i: cultural_match_score(profiles[i.key], rules), reverse=True)
    logger.debug("Cultural filter: %d → %d candidates", len(items), len(kept))

    return [
        i.model_copy(update={"tags": list(i.tags) + [generate_match_justification(info, i)]})
        for i in kept
    ]


# ── Response text ─────────────────────────────────────────

_ACTION_GENRES = {28, 12, 53}
_DRAMA_GENRES = {18, 10749}


def generate_similar_intro(info: ReferenceInfo) -> str:
    profile = info.profile
    parts = [f"Since you loved **{info.title}**"]
    desc = info.industry_description
    if info.is_indian_cinema:
        if profile.narrative_scale is NarrativeScale.EPIC and profile.mass_appeal_score >= 90:
            parts.append(
                f"I'm looking for {desc} blockbusters with the same epic scale, mass-hero appeal, and grand storytelling"
            )
        elif profile.has_hero_centric_elevation and profile.has_power_fantasy:
            parts.append(f"here are similar {desc} films with powerful hero-centric narratives and mass appeal")
        elif profile.storytelling_style is StorytellingStyle.EMOTIONAL_DRAMA:
            parts.append(f"these {desc} films share similar emotional depth and storytelling")
        else:
            parts.append(f"check out these {desc} films with a similar vibe")
    elif info.is_korean:
        parts.append("here are Korean films with similar intensity and storytelling")
    elif info.is_japanese:
        parts.append("here are Japanese films with a similar aesthetic and narrative")
    else:
        parts.append("here are films that match its style and appeal")
    return ", ".join(parts) + ":"


def generate_match_justification(info: ReferenceInfo, item: MediaItem) -> str:
    """Short "why this matches" tag, at most three parts."""
    profile = info.profile
    reasons: List[str] = []
    language = item.original_language or ""

    if language and language == info.original_language:
        reasons.append(f"Same {info.industry_description}")
    elif language in INDIAN_LANGUAGES and info.is_indian_cinema:
        reasons.append("Indian cinema")

    genres, ref_genres = set(item.genre_ids), set(info.genre_ids)
    if (
        genres & _ACTION_GENRES
        and ref_genres & _ACTION_GENRES
        and profile.storytelling_style is StorytellingStyle.ACTION_SPECTACLE
    ):
        reasons.append("action spectacle")
    if genres & _DRAMA_GENRES and ref_genres & _DRAMA_GENRES:
        reasons.append("emotional drama")
    if profile.has_hero_centric_elevation:
        reasons.append("hero-centric narrative")
    if profile.has_power_fantasy:
        reasons.append("power fantasy")
    if profile.narrative_scale is NarrativeScale.EPIC:
        reasons.append("epic scale")

    return " • ".join(reasons[:3] or ["similar appeal"])


def generate_match_explanation(info: ReferenceInfo) -> str:
    profile = info.profile
    if not info.is_indian_cinema:
        return f"Films from the same {info.industry_description} with similar themes"

    points = [f"These are {info.industry_description} films"]
    if profile.mass_appeal_score >= PAN_INDUSTRY_MASS_APPEAL:
        points.append("with strong mass appeal")
    if profile.narrative_scale in (NarrativeScale.EPIC, NarrativeScale.LARGE):
        points.append("featuring large-scale storytelling")
    if profile.has_hero_centric_elevation:
        points.append("and hero-centric elevation")
    if profile.has_power_fantasy:
        points.append("with power fantasy elements")
    points.append("(I've excluded English/Hollywood films to match your cultural preference)")
    return " ".join(points)


# ── Pipeline entry ────────────────────────────────────────


async def analyze_reference_from_query(
    catalog: CatalogProvider,
    message: str,
    prefer_movies: bool = True,
    table: Optional[ProfileTable] = None,
) -> Optional[ReferenceAnalysis]:
    """Extract, resolve and profile a reference. None when any step comes up empty."""
    title = extract_reference_title(message)
    if not title:
        return None

    item = await find_reference_title(catalog, title, prefer_movies)
    if item is None:
        logger.info("Reference %r not found in catalog", title)
        return None

    info = await analyze_reference(catalog, item, table)
    return ReferenceAnalysis(info=info, filters=generate_cultural_filters(info))
