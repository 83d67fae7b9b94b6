from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artdex_api.db.models import Artist, ArtistUrl
from artdex_api.domain.source_sites import LookupKey, SourceSiteRegistry
from artdex_api.observability import metrics

logger = logging.getLogger(__name__)


class ArtistStore(Protocol):
    async def find_active_by_normalized_url(self, key: str) -> list[Artist]:
        ...

    async def find_active_by_url_prefix(self, key: str) -> list[Artist]:
        ...


class SqlAlchemyArtistStore:
    def __init__(self, db: AsyncSession, *, limit: int = 20) -> None:
        self._db = db
        self._limit = limit

    def _active_artists_query(self, url_filter):
        return (
            select(Artist)
            .where(
                Artist.is_active.is_(True),
                Artist.id.in_(select(ArtistUrl.artist_id).where(url_filter)),
            )
            .order_by(Artist.name.asc())
        )

    async def find_active_by_normalized_url(self, key: str) -> list[Artist]:
        query = self._active_artists_query(ArtistUrl.normalized_url == key).limit(self._limit)
        return list((await self._db.scalars(query)).all())

    async def find_active_by_url_prefix(self, key: str) -> list[Artist]:
        query = self._active_artists_query(
            ArtistUrl.normalized_url.startswith(key, autoescape=True)
        )
        # LIKE is case-insensitive on some backends; paths must compare case-sensitively.
        matched: list[Artist] = []
        for artist in await self._db.scalars(query):
            if any(url.normalized_url.startswith(key) for url in artist.urls):
                matched.append(artist)
                if len(matched) >= self._limit:
                    break
        return matched


def _is_host_root(normalized_url: str) -> bool:
    return normalized_url.count("/") == 3


def _unique_by_name(artists: Iterable[Artist], limit: int) -> list[Artist]:
    by_id: dict[int, Artist] = {}
    for artist in artists:
        by_id.setdefault(artist.id, artist)
    return sorted(by_id.values(), key=lambda artist: artist.name)[:limit]


async def find_artists_by_key(
    key: LookupKey,
    *,
    store: ArtistStore,
    limit: int = 20,
) -> list[Artist]:
    if not key.match_prefix:
        found: list[Artist] = []
        for url in key.urls:
            found.extend(await store.find_active_by_normalized_url(url))
        return _unique_by_name(found, limit)

    for url in key.urls:
        exact = await store.find_active_by_normalized_url(url)
        if exact:
            return _unique_by_name(exact, limit)
        if key.exact_host_root and _is_host_root(url):
            continue
        under = await store.find_active_by_url_prefix(url)
        if under:
            return _unique_by_name(under, limit)
    return []


async def find_artists(
    source_url: str,
    *,
    registry: SourceSiteRegistry,
    store: ArtistStore,
    limit: int = 20,
) -> list[Artist]:
    """Artists whose URLs identify the creator of ``source_url``.

    The first site that recognizes the URL is authoritative: when it finds nobody
    the weaker strategies are not consulted. Unknown URLs yield an empty list.
    """
    site = registry.site_for(source_url)
    if site is None:
        metrics.finder_lookup_total.labels(site="none", outcome="unrecognized").inc()
        return []

    key = await site.match(source_url)
    if key is None:
        metrics.finder_lookup_total.labels(site=site.name, outcome="no_key").inc()
        return []

    artists = await find_artists_by_key(key, store=store, limit=limit)
    metrics.finder_lookup_total.labels(
        site=site.name, outcome="hit" if artists else "miss"
    ).inc()
    logger.debug(
        "artist_finder_lookup",
        extra={"site": site.name, "source_url": source_url, "artist_ids": [a.id for a in artists]},
    )
    return artists
