"""
Shared fixtures: an in-memory catalog and MediaItem helpers.
"""

from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Optional, Sequence, Set

import pytest

from cinechat.models import CatalogPage, DiscoverOptions, MediaItem, MediaType, TitleDetails

PAGE_SIZE = 20


def make_item(
    item_id: int,
    title: Optional[str] = None,
    *,
    media_type: MediaType = MediaType.MOVIE,
    genres: Sequence[int] = (28,),
    year: Optional[int] = 2015,
    rating: float = 7.0,
    language: str = "en",
    countries: Sequence[str] = ("US",),
    popularity: float = 50.0,
    vote_count: int = 1000,
    overview: str = "",
) -> MediaItem:
    return MediaItem(
        id=item_id,
        media_type=media_type,
        title=title or f"Title {item_id}",
        overview=overview,
        release_date=f"{year}-06-15" if year else None,
        vote_average=rating,
        vote_count=vote_count,
        genre_ids=list(genres),
        original_language=language,
        origin_countries=list(countries),
        popularity=popularity,
    )


class FakeCatalog:
    """CatalogProvider over a fixed list of items. No network.

    ``fail`` names methods that raise; ``hold`` names methods that wait
    on ``release`` before answering.
    """

    def __init__(self, items: Sequence[MediaItem] = ()) -> None:
        self.items: List[MediaItem] = list(items)
        self.calls: List[tuple] = []
        self.fail: Set[str] = set()
        self.hold: Set[str] = set()
        self.release = asyncio.Event()

    async def _enter(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        if name in self.hold:
            await self.release.wait()
        if name in self.fail:
            raise RuntimeError(f"{name} unavailable")

    def _of(self, media_type: MediaType) -> List[MediaItem]:
        if media_type is MediaType.BOTH:
            return list(self.items)
        return [i for i in self.items if i.media_type is media_type]

    @staticmethod
    def _page(items: List[MediaItem], page: int) -> CatalogPage:
        start = (page - 1) * PAGE_SIZE
        total_pages = max(1, -(-len(items) // PAGE_SIZE))
        return CatalogPage(
            items=items[start:start + PAGE_SIZE],
            page=page,
            total_pages=total_pages,
            total_results=len(items),
        )

    async def trending(self, media_type: MediaType, window: str = "week", page: int = 1) -> CatalogPage:
        await self._enter("trending", media_type, page)
        ranked = sorted(self._of(media_type), key=lambda i: i.popularity or 0, reverse=True)
        return self._page(ranked, page)

    async def top_rated(self, media_type: MediaType, page: int = 1) -> CatalogPage:
        await self._enter("top_rated", media_type, page)
        ranked = sorted(self._of(media_type), key=lambda i: i.vote_average, reverse=True)
        return self._page(ranked, page)

    async def search(self, media_type: MediaType, query: str, page: int = 1) -> CatalogPage:
        await self._enter("search", media_type, query, page)
        needle = query.lower()
        found = [i for i in self._of(media_type) if needle in i.title.lower() or i.title.lower() in needle]
        return self._page(found, page)

    async def discover(self, media_type: MediaType, options: DiscoverOptions) -> CatalogPage:
        await self._enter("discover", media_type, options)
        found = []
        for item in self._of(media_type):
            genres = set(item.genre_ids)
            if options.genres:
                wanted = set(options.genres)
                if options.match_any_genre and not genres & wanted:
                    continue
                if not options.match_any_genre and not wanted <= genres:
                    continue
            if genres & set(options.exclude_genres):
                continue
            if options.original_languages and item.original_language not in options.original_languages:
                continue
            if item.original_language in options.exclude_original_languages:
                continue
            if options.min_rating is not None and item.vote_average < options.min_rating:
                continue
            if options.max_rating is not None and item.vote_average > options.max_rating:
                continue
            year = item.release_year
            if options.year and year != options.year:
                continue
            if options.year_range and not (year and options.year_range[0] <= year <= options.year_range[1]):
                continue
            found.append(item)
        found.sort(key=lambda i: i.popularity or 0, reverse=True)
        return self._page(found, options.page)

    async def details(self, media_type: MediaType, item_id: int) -> TitleDetails:
        await self._enter("details", media_type, item_id)
        for item in self._of(media_type):
            if item.id == item_id:
                return TitleDetails(
                    id=item.id,
                    media_type=item.media_type,
                    title=item.title,
                    overview=item.overview,
                    original_language=item.original_language,
                    production_countries=list(item.origin_countries),
                    spoken_languages=[item.original_language or ""],
                    genre_ids=list(item.genre_ids),
                    release_date=item.release_date,
                    vote_average=item.vote_average,
                    vote_count=item.vote_count or 0,
                    popularity=item.popularity or 0.0,
                )
        raise KeyError(item_id)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


_GENRE_CYCLE = ((28,), (28, 12), (35,), (18,), (53, 80), (878, 12), (27,), (10749, 18), (80, 18), (16, 10751))
_YEARS = (2022, 2018, 2012, 2005, 1997, 1985, 2021, 2015)


def build_library(movies: int = 60, shows: int = 30) -> List[MediaItem]:
    """A varied library: mixed genres, decades and mid-range ratings."""
    items: List[MediaItem] = []
    for n in range(movies):
        items.append(
            make_item(
                1000 + n,
                f"Movie {n}",
                genres=_GENRE_CYCLE[n % len(_GENRE_CYCLE)],
                year=_YEARS[n % len(_YEARS)],
                rating=6.0 + (n % 14) / 10,
                popularity=500.0 - n,
            )
        )
    for n in range(shows):
        items.append(
            make_item(
                5000 + n,
                f"Show {n}",
                media_type=MediaType.TV,
                genres=((18,), (35,), (10759,), (9648, 80), (10765,))[n % 5],
                year=_YEARS[n % len(_YEARS)],
                rating=6.0 + (n % 14) / 10,
                popularity=300.0 - n,
            )
        )
    return items


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(build_library())


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def indian_catalog() -> FakeCatalog:
    """Telugu/Hindi/Tamil epics next to very popular English action films."""
    items: List[MediaItem] = [
        make_item(
            256040, "Baahubali: The Beginning", genres=(28, 12, 18), year=2015, rating=7.5,
            language="te", countries=("IN",), popularity=90.0, vote_count=2500,
            overview="A warrior prince rises to claim the kingdom and battle a tyrant.",
        ),
    ]
    languages = ("te", "hi", "ta", "kn", "ml")
    for n in range(25):
        items.append(
            make_item(
                7000 + n, f"Regional Epic {n}", genres=((28, 18), (28, 12), (18,), (28, 53), (12, 14))[n % 5],
                year=2010 + n % 12, rating=6.5 + (n % 10) / 10, language=languages[n % len(languages)],
                countries=("IN",), popularity=80.0 - n, vote_count=1500,
                overview="A hero rises against a powerful enemy to protect his family and kingdom.",
            )
        )
    for n in range(25):
        items.append(
            make_item(
                9000 + n, f"Blockbuster {n}", genres=((28, 12), (28, 18), (12, 14))[n % 3],
                year=2012 + n % 10, rating=7.0, language="en", countries=("US",),
                popularity=900.0 - n, vote_count=9000,
                overview="A hero rises against a powerful enemy in an epic battle.",
            )
        )
    return FakeCatalog(items)
