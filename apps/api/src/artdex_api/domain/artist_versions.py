from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum
from functools import partial
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artdex_api.db.models import Artist, ArtistVersion
from artdex_api.observability import metrics
from artdex_api.time import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtistSnapshot:
    """The versioned fields of an artist; URLs are signed and sorted."""

    name: str
    other_names: tuple[str, ...]
    group_name: str | None
    urls: tuple[str, ...]
    is_banned: bool


def snapshot_artist(artist: Artist) -> ArtistSnapshot:
    return ArtistSnapshot(
        name=artist.name,
        other_names=tuple(artist.other_names or ()),
        group_name=artist.group_name,
        urls=tuple(sorted(str(url) for url in artist.urls)),
        is_banned=bool(artist.is_banned),
    )


def snapshot_version(version: ArtistVersion) -> ArtistSnapshot:
    return ArtistSnapshot(
        name=version.name,
        other_names=tuple(version.other_names or ()),
        group_name=version.group_name,
        urls=tuple(version.urls or ()),
        is_banned=bool(version.is_banned),
    )


def version_from_snapshot(
    artist_id: int,
    snapshot: ArtistSnapshot,
    *,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
) -> ArtistVersion:
    return ArtistVersion(
        artist_id=artist_id,
        name=snapshot.name,
        other_names=list(snapshot.other_names),
        group_name=snapshot.group_name,
        urls=list(snapshot.urls),
        is_banned=snapshot.is_banned,
        updater_id=updater_id,
        created_at=now,
        updated_at=now,
    )


class VersionWrite(StrEnum):
    SKIP = "skip"
    APPEND = "append"
    AMEND = "amend"


class MergePolicy(Protocol):
    def __call__(
        self,
        previous: ArtistVersion,
        *,
        updater_id: uuid.UUID | None,
        now: dt.datetime,
    ) -> bool:
        ...


def should_merge_version(
    previous: ArtistVersion,
    *,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    window: dt.timedelta,
) -> bool:
    if updater_id is None or previous.updater_id != updater_id:
        return False
    return as_utc(now) - as_utc(previous.updated_at) < window


def merge_window_policy(window: dt.timedelta) -> MergePolicy:
    return partial(should_merge_version, window=window)


def never_merge(
    previous: ArtistVersion,
    *,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
) -> bool:
    return False


def plan_version_write(
    previous: ArtistVersion | None,
    snapshot: ArtistSnapshot,
    *,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy,
) -> VersionWrite:
    if previous is None:
        return VersionWrite.APPEND
    if snapshot_version(previous) == snapshot:
        return VersionWrite.SKIP
    if merge_policy(previous, updater_id=updater_id, now=now):
        return VersionWrite.AMEND
    return VersionWrite.APPEND


class VersionStore(Protocol):
    async def latest(self, artist_id: int) -> ArtistVersion | None:
        ...

    async def append(self, version: ArtistVersion) -> ArtistVersion:
        ...

    async def amend_latest(self, version: ArtistVersion) -> ArtistVersion:
        ...


class SqlAlchemyVersionStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def latest(self, artist_id: int) -> ArtistVersion | None:
        return await self._db.scalar(
            select(ArtistVersion)
            .where(ArtistVersion.artist_id == artist_id)
            .order_by(ArtistVersion.id.desc())
            .limit(1)
        )

    async def append(self, version: ArtistVersion) -> ArtistVersion:
        self._db.add(version)
        await self._db.flush()
        return version

    async def amend_latest(self, version: ArtistVersion) -> ArtistVersion:
        latest = await self.latest(version.artist_id)
        if latest is None:
            raise RuntimeError(f"No version to amend for artist {version.artist_id}.")
        latest.name = version.name
        latest.other_names = list(version.other_names)
        latest.group_name = version.group_name
        latest.urls = list(version.urls)
        latest.is_banned = version.is_banned
        latest.updated_at = version.updated_at
        await self._db.flush()
        return latest

    async def get(self, version_id: int) -> ArtistVersion | None:
        return await self._db.get(ArtistVersion, version_id)

    async def list_for_artist(self, artist_id: int) -> list[ArtistVersion]:
        query = (
            select(ArtistVersion)
            .where(ArtistVersion.artist_id == artist_id)
            .order_by(ArtistVersion.id.asc())
        )
        return list((await self._db.scalars(query)).all())


async def record_artist_version(
    *,
    store: VersionStore,
    artist: Artist,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy,
) -> tuple[VersionWrite, ArtistVersion | None]:
    previous = await store.latest(artist.id)
    snapshot = snapshot_artist(artist)
    decision = plan_version_write(
        previous,
        snapshot,
        updater_id=updater_id,
        now=now,
        merge_policy=merge_policy,
    )
    metrics.artist_version_write_total.labels(decision=decision.value).inc()
    if decision == VersionWrite.SKIP:
        return decision, None

    version = version_from_snapshot(artist.id, snapshot, updater_id=updater_id, now=now)
    if decision == VersionWrite.AMEND:
        version = await store.amend_latest(version)
    else:
        version = await store.append(version)
    logger.info(
        "artist_version_recorded",
        extra={"artist_id": artist.id, "version_id": version.id, "decision": decision.value},
    )
    return decision, version
