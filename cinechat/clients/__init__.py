"""
CineChat — Catalog Provider Interface

Design patterns:
  - Adapter: TMDBCatalog adapts the TMDB module functions to the
    CatalogProvider protocol the engine depends on
  - Dependency Injection: the orchestrator receives any object that
    satisfies CatalogProvider (tests pass an in-memory fake)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cinechat.clients import tmdb
from cinechat.config import settings
from cinechat.models import CatalogPage, DiscoverOptions, MediaType, TitleDetails


@runtime_checkable
class CatalogProvider(Protocol):
    """Read-only title catalog. Every listing call returns a CatalogPage."""

    async def trending(self, media_type: MediaType, window: str = "week", page: int = 1) -> CatalogPage:
        ...

    async def top_rated(self, media_type: MediaType, page: int = 1) -> CatalogPage:
        ...

    async def search(self, media_type: MediaType, query: str, page: int = 1) -> CatalogPage:
        ...

    async def discover(self, media_type: MediaType, options: DiscoverOptions) -> CatalogPage:
        ...

    async def details(self, media_type: MediaType, item_id: int) -> TitleDetails:
        ...


class TMDBCatalog:
    """CatalogProvider backed by the TMDB v3 API."""

    async def trending(self, media_type: MediaType, window: str = settings.trending_window, page: int = 1) -> CatalogPage:
        return await tmdb.trending(media_type, window, page)

    async def top_rated(self, media_type: MediaType, page: int = 1) -> CatalogPage:
        return await tmdb.top_rated(media_type, page)

    async def search(self, media_type: MediaType, query: str, page: int = 1) -> CatalogPage:
        return await tmdb.search(media_type, query, page)

    async def discover(self, media_type: MediaType, options: DiscoverOptions) -> CatalogPage:
        return await tmdb.discover(media_type, options)

    async def details(self, media_type: MediaType, item_id: int) -> TitleDetails:
        return await tmdb.details(media_type, item_id)

    async def aclose(self) -> None:
        await tmdb.close_client()
