"""
Tests for the TMDB client: parameter building, payload translation and
the public helpers with ``_request`` stubbed out.
"""

from __future__ import annotations

import pytest

from cinechat.clients import CatalogProvider, TMDBCatalog, tmdb
from cinechat.models import DiscoverOptions, MediaType

MOVIE_RAW = {
    "id": 27205,
    "title": "Inception",
    "original_title": "Inception",
    "overview": "A thief who steals corporate secrets...",
    "release_date": "2010-07-15",
    "vote_average": 8.4,
    "vote_count": 35000,
    "genre_ids": [28, 878, 12],
    "original_language": "en",
    "popularity": 120.5,
    "poster_path": "/inception.jpg",
}

TV_RAW = {
    "id": 1396,
    "name": "Breaking Bad",
    "original_name": "Breaking Bad",
    "first_air_date": "2008-01-20",
    "vote_average": 8.9,
    "genre_ids": [18, 80],
    "origin_country": ["US"],
    "original_language": "en",
}


class TestBuildDiscoverParams:

    def test_all_genres(self):
        params = tmdb.build_discover_params(MediaType.MOVIE, DiscoverOptions(genres=[28, 12]))
        assert params["with_genres"] == "28,12"
        assert params["include_adult"] == "false"

    def test_any_genre(self):
        params = tmdb.build_discover_params(MediaType.MOVIE, DiscoverOptions(genres=[28, 12], match_any_genre=True))
        assert params["with_genres"] == "28|12"

    def test_year_range_tv(self):
        params = tmdb.build_discover_params(MediaType.TV, DiscoverOptions(year_range=(1990, 1999)))
        assert params["first_air_date.gte"] == "1990-01-01"
        assert params["first_air_date.lte"] == "1999-12-31"

    def test_single_year_beats_range(self):
        params = tmdb.build_discover_params(MediaType.MOVIE, DiscoverOptions(year=2001, year_range=(1990, 1999)))
        assert params["primary_release_date.gte"] == "2001-01-01"

    def test_rating_raises_vote_floor(self):
        params = tmdb.build_discover_params(MediaType.MOVIE, DiscoverOptions(min_rating=7.0, max_rating=9.0))
        assert params["vote_average.gte"] == 7.0
        assert params["vote_average.lte"] == 9.0
        assert params["vote_count.gte"] == 100

    def test_languages_and_region(self):
        options = DiscoverOptions(original_languages=["te", "hi"], exclude_genres=[99], region="IN")
        movie = tmdb.build_discover_params(MediaType.MOVIE, options)
        assert movie["with_original_language"] == "te|hi"
        assert movie["without_genres"] == "99"
        assert movie["region"] == "IN"
        assert "region" not in tmdb.build_discover_params(MediaType.TV, options)


class TestTranslation:

    def test_movie(self):
        item = tmdb.to_media_item(MOVIE_RAW, MediaType.MOVIE)
        assert item.key == "movie-27205"
        assert item.release_year == 2010
        assert item.genre_ids == [28, 878, 12]

    def test_tv(self):
        item = tmdb.to_media_item(TV_RAW, MediaType.TV)
        assert item.title == "Breaking Bad"
        assert item.release_year == 2008
        assert item.origin_countries == ["US"]

    def test_multi_skips_people(self):
        data = {
            "results": [
                dict(MOVIE_RAW, media_type="movie"),
                {"id": 1, "name": "Someone", "media_type": "person"},
                dict(TV_RAW, media_type="tv"),
            ],
            "page": 1,
            "total_pages": 1,
            "total_results": 3,
        }
        page = tmdb.to_page(data, MediaType.BOTH)
        assert [i.key for i in page.items] == ["movie-27205", "tv-1396"]

    def test_details(self):
        data = {
            "id": 256040,
            "title": "Baahubali: The Beginning",
            "original_language": "te",
            "production_countries": [{"iso_3166_1": "IN", "name": "India"}],
            "spoken_languages": [{"iso_639_1": "te"}, {"iso_639_1": "hi"}],
            "genres": [{"id": 28, "name": "Action"}],
            "release_date": "2015-07-10",
        }
        details = tmdb.to_details(data, MediaType.MOVIE)
        assert details.production_countries == ["IN"]
        assert details.spoken_languages == ["te", "hi"]
        assert details.genre_ids == [28]

    def test_tv_details_use_origin_country(self):
        details = tmdb.to_details({"id": 1, "name": "Dark", "origin_country": ["DE"]}, MediaType.TV)
        assert details.production_countries == ["DE"]


@pytest.fixture
def fake_request(monkeypatch):
    calls = []

    async def _request(method, path, params=None, *, cache_ttl=None):
        calls.append((path, params or {}))
        results = [dict(MOVIE_RAW), dict(MOVIE_RAW, id=2, original_language="hi")]
        return {"results": results, "page": 1, "total_pages": 3, "total_results": 2}

    monkeypatch.setattr("cinechat.clients.tmdb._request", _request)
    return calls


class TestHelpers:

    @pytest.mark.asyncio
    async def test_trending_path(self, fake_request):
        page = await tmdb.trending(MediaType.MOVIE, "day")
        assert fake_request[0][0] == "/trending/movie/day"
        assert page.total_pages == 3

    @pytest.mark.asyncio
    async def test_search_multi(self, fake_request):
        await tmdb.search(MediaType.BOTH, "dune")
        path, params = fake_request[0]
        assert path == "/search/multi"
        assert params["query"] == "dune"

    @pytest.mark.asyncio
    async def test_discover_drops_excluded_languages(self, fake_request):
        page = await tmdb.discover(MediaType.MOVIE, DiscoverOptions(exclude_original_languages=["en"]))
        assert [i.id for i in page.items] == [2]
        assert fake_request[0][0] == "/discover/movie"

    @pytest.mark.asyncio
    async def test_catalog_adapter(self, fake_request):
        catalog = TMDBCatalog()
        assert isinstance(catalog, CatalogProvider)
        page = await catalog.top_rated(MediaType.TV)
        assert fake_request[0][0] == "/tv/top_rated"
        assert len(page.items) == 2


class TestCache:

    def test_key_is_stable(self):
        assert tmdb._cache_key("/x", {"a": 1, "b": 2}) == tmdb._cache_key("/x", {"b": 2, "a": 1})

    def test_expiry(self):
        tmdb.clear_cache()
        tmdb._set_cached("k", {"v": 1})
        assert tmdb._get_cached("k", ttl=60) == {"v": 1}
        assert tmdb._get_cached("k", ttl=0) is None
        assert "k" not in tmdb._cache
