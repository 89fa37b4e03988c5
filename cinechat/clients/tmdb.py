"""
CineChat — TMDB Client

Design patterns:
  - Repository: abstracts TMDB API behind a clean interface
  - Singleton: shared httpx client with connection pooling
  - Cache Aside: in-memory TTL cache to avoid redundant API calls
  - Retry with Backoff: exponential backoff on rate limits / failures
  - Semaphore: bounded concurrent requests

Async HTTP client for TMDB API v3 plus the translation between TMDB
payloads and the catalog-agnostic models.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from cinechat.config import settings
from cinechat.models import CatalogPage, DiscoverOptions, MediaItem, MediaType, TitleDetails

logger = logging.getLogger(__name__)

# ── Simple in-memory cache ────────────────────────────────

_cache: Dict[str, Tuple[float, Any]] = {}
_TRENDING_CACHE_TTL = 600  # trending moves faster than discover


def _cache_key(path: str, params: dict) -> str:
    raw = f"{path}:{json.dumps(params, sort_keys=True)}"
    return hashlib.md5(raw.encode()).hexdigest()


def _get_cached(key: str, ttl: float) -> Optional[Any]:
    if key in _cache:
        ts, val = _cache[key]
        if time.time() - ts < ttl:
            return val
        del _cache[key]
    return None


def _set_cached(key: str, val: Any) -> None:
    _cache[key] = (time.time(), val)


def clear_cache() -> None:
    _cache.clear()


# ── Shared client ─────────────────────────────────────────

_client: Optional[httpx.AsyncClient] = None


async def get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=settings.tmdb_base_url,
            headers=settings.tmdb_headers,
            timeout=httpx.Timeout(connect=10.0, read=settings.tmdb_timeout_seconds, write=10.0, pool=10.0),
        )
    return _client


async def close_client() -> None:
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


# ── Rate-limited request with exponential backoff ─────────

_RATE_SEMAPHORE = asyncio.Semaphore(settings.tmdb_max_concurrency)
_MAX_RETRIES = 3


async def _request(
    method: str,
    path: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    cache_ttl: Optional[float] = settings.tmdb_cache_ttl_seconds,
) -> Dict[str, Any]:
    """Execute an HTTP request against TMDB with retry + cache."""
    params = {"language": settings.tmdb_language, **(params or {})}
    ckey = _cache_key(path, params)

    if cache_ttl:
        cached = _get_cached(ckey, cache_ttl)
        if cached is not None:
            logger.debug("TMDB cache HIT: %s", path)
            return cached

    client = await get_client()

    for attempt in range(1, _MAX_RETRIES + 1):
        async with _RATE_SEMAPHORE:
            try:
                resp = await client.request(method, path, params=params)
                if resp.status_code == 429:
                    wait = float(resp.headers.get("Retry-After", 2 ** attempt))
                    logger.warning("TMDB rate-limited, waiting %.1fs", wait)
                    await asyncio.sleep(wait)
                    continue
                resp.raise_for_status()
                data = resp.json()
                if cache_ttl:
                    _set_cached(ckey, data)
                return data
            except httpx.HTTPStatusError:
                raise
            except httpx.HTTPError as exc:
                if attempt == _MAX_RETRIES:
                    raise
                wait = 2 ** attempt
                logger.warning("TMDB request error (attempt %d/%d): %s – retrying in %ds", attempt, _MAX_RETRIES, exc, wait)
                await asyncio.sleep(wait)

    raise RuntimeError(f"TMDB request to {path} still rate-limited after {_MAX_RETRIES} attempts")


# ── Payload translation ───────────────────────────────────


def to_media_item(raw: Dict[str, Any], media_type: MediaType) -> MediaItem:
    """Project a TMDB movie / TV result onto MediaItem."""
    if media_type is MediaType.BOTH:
        media_type = MediaType(raw.get("media_type", "movie"))
    is_tv = media_type is MediaType.TV
    title = raw.get("name") if is_tv else raw.get("title")
    original = raw.get("original_name") if is_tv else raw.get("original_title")
    released = raw.get("first_air_date") if is_tv else raw.get("release_date")
    return MediaItem(
        id=raw["id"],
        media_type=media_type,
        title=title or original or "Untitled",
        original_title=original,
        poster_path=raw.get("poster_path"),
        backdrop_path=raw.get("backdrop_path"),
        overview=raw.get("overview") or "",
        release_date=released or None,
        vote_average=raw.get("vote_average") or 0.0,
        vote_count=raw.get("vote_count"),
        genre_ids=raw.get("genre_ids") or [g["id"] for g in raw.get("genres", [])],
        original_language=raw.get("original_language"),
        origin_countries=raw.get("origin_country") or [],
        popularity=raw.get("popularity"),
    )


def to_page(data: Dict[str, Any], media_type: MediaType) -> CatalogPage:
    items: List[MediaItem] = []
    for raw in data.get("results", []):
        if media_type is MediaType.BOTH and raw.get("media_type") not in ("movie", "tv"):
            continue  # people in /trending/all
        items.append(to_media_item(raw, media_type))
    return CatalogPage(
        items=items,
        page=data.get("page", 1),
        total_pages=data.get("total_pages", 1),
        total_results=data.get("total_results", len(items)),
    )


def to_details(data: Dict[str, Any], media_type: MediaType) -> TitleDetails:
    is_tv = media_type is MediaType.TV
    countries = [c["iso_3166_1"] for c in data.get("production_countries", [])]
    if is_tv and not countries:
        countries = list(data.get("origin_country", []))
    return TitleDetails(
        id=data["id"],
        media_type=media_type,
        title=(data.get("name") if is_tv else data.get("title")) or "Untitled",
        original_title=data.get("original_name") if is_tv else data.get("original_title"),
        overview=data.get("overview") or "",
        original_language=data.get("original_language"),
        production_countries=countries,
        spoken_languages=[s["iso_639_1"] for s in data.get("spoken_languages", [])],
        genre_ids=[g["id"] for g in data.get("genres", [])],
        release_date=(data.get("first_air_date") if is_tv else data.get("release_date")) or None,
        vote_average=data.get("vote_average") or 0.0,
        vote_count=data.get("vote_count") or 0,
        popularity=data.get("popularity") or 0.0,
    )


def build_discover_params(media_type: MediaType, options: DiscoverOptions) -> Dict[str, Any]:
    """Translate DiscoverOptions into /discover query parameters."""
    date_key = "first_air_date" if media_type is MediaType.TV else "primary_release_date"
    params: Dict[str, Any] = {
        "include_adult": "false",
        "page": options.page,
        "vote_count.gte": 50,
    }
    if options.genres:
        joiner = "|" if options.match_any_genre else ","
        params["with_genres"] = joiner.join(str(g) for g in options.genres)
    if options.exclude_genres:
        params["without_genres"] = ",".join(str(g) for g in options.exclude_genres)
    if options.year:
        params[f"{date_key}.gte"] = f"{options.year}-01-01"
        params[f"{date_key}.lte"] = f"{options.year}-12-31"
    elif options.year_range:
        start, end = options.year_range
        params[f"{date_key}.gte"] = f"{start}-01-01"
        params[f"{date_key}.lte"] = f"{end}-12-31"
    if options.min_rating is not None:
        params["vote_average.gte"] = options.min_rating
        params["vote_count.gte"] = 100
    if options.max_rating is not None:
        params["vote_average.lte"] = options.max_rating
    if options.sort_by:
        params["sort_by"] = options.sort_by
    if options.original_languages:
        params["with_original_language"] = "|".join(options.original_languages)
    if options.region and media_type is MediaType.MOVIE:
        params["region"] = options.region
    return params


def _drop_languages(page: CatalogPage, excluded: List[str]) -> CatalogPage:
    """TMDB has no without_original_language filter; apply it locally."""
    if not excluded:
        return page
    kept = [i for i in page.items if (i.original_language or "") not in excluded]
    return page.model_copy(update={"items": kept})


# ── Public helpers ────────────────────────────────────────


async def trending(media_type: MediaType, window: str = "week", page: int = 1) -> CatalogPage:
    path = f"/trending/{'all' if media_type is MediaType.BOTH else media_type.value}/{window}"
    data = await _request("GET", path, {"page": page}, cache_ttl=_TRENDING_CACHE_TTL)
    return to_page(data, media_type)


async def top_rated(media_type: MediaType, page: int = 1) -> CatalogPage:
    data = await _request("GET", f"/{media_type.value}/top_rated", {"page": page})
    return to_page(data, media_type)


async def search(media_type: MediaType, query: str, page: int = 1) -> CatalogPage:
    path = "/search/multi" if media_type is MediaType.BOTH else f"/search/{media_type.value}"
    data = await _request("GET", path, {"query": query, "page": page, "include_adult": "false"})
    return to_page(data, media_type)


async def discover(media_type: MediaType, options: DiscoverOptions) -> CatalogPage:
    params = build_discover_params(media_type, options)
    data = await _request("GET", f"/discover/{media_type.value}", params)
    return _drop_languages(to_page(data, media_type), options.exclude_original_languages)


async def details(media_type: MediaType, item_id: int) -> TitleDetails:
    data = await _request("GET", f"/{media_type.value}/{item_id}")
    return to_details(data, media_type)
