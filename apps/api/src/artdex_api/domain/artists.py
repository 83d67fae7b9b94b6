from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artdex_api.db.models import Artist, ArtistUrl, ArtistVersion
from artdex_api.domain.artist_finder import SqlAlchemyArtistStore, find_artists
from artdex_api.domain.artist_names import name_errors, normalize_name, normalize_other_names
from artdex_api.domain.artist_urls import ArtistUrlToken, UrlSetDiff, diff_url_set, parse_url_string, url_errors
from artdex_api.domain.artist_versions import (
    MergePolicy,
    SqlAlchemyVersionStore,
    merge_window_policy,
    record_artist_version,
    snapshot_artist,
)
from artdex_api.domain.errors import AppError, FieldErrors, add_field_error, artist_invalid
from artdex_api.domain.illustration_resolvers import IllustrationResolver
from artdex_api.domain.source_sites import default_source_sites
from artdex_api.observability.ops import observe_operation
from artdex_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtistChanges:
    """Fields to assign on save; ``None`` leaves a field untouched.

    ``group_name=""`` clears the group. ``url_string`` replaces the whole URL set.
    """

    name: str | None = None
    other_names: str | Sequence[str] | None = None
    group_name: str | None = None
    url_string: str | Sequence[str] | None = None
    is_banned: bool | None = None
    is_active: bool | None = None


def default_merge_policy(settings: Settings | None = None) -> MergePolicy:
    settings = settings or get_settings()
    return merge_window_policy(dt.timedelta(seconds=settings.version_merge_window_seconds))


async def get_artist(db: AsyncSession, artist_id: int) -> Artist:
    artist = await db.get(Artist, artist_id)
    if artist is None:
        raise AppError(code="artist_not_found", message="Artist not found", status_code=404)
    return artist


async def _name_taken(db: AsyncSession, name: str, artist_id: int | None) -> bool:
    query = select(Artist.id).where(Artist.name == name)
    if artist_id is not None:
        query = query.where(Artist.id != artist_id)
    return (await db.scalar(query.limit(1))) is not None


async def _apply_url_diff(
    db: AsyncSession,
    artist: Artist,
    diff: UrlSetDiff[ArtistUrl],
    now: dt.datetime,
) -> None:
    if diff.removed:
        # Removed rows must be gone before re-adding the same normalized URL with a new flag.
        artist.urls = [entry for entry in diff.entries if isinstance(entry, ArtistUrl)]
        await db.flush()

    records: list[ArtistUrl] = []
    for position, entry in enumerate(diff.entries):
        if isinstance(entry, ArtistUrlToken):
            record = ArtistUrl(
                url=entry.url,
                normalized_url=entry.normalized_url,
                is_active=entry.is_active,
                created_at=now,
                updated_at=now,
            )
        else:
            record = entry
        if record.position != position:
            record.position = position
            record.updated_at = now
        records.append(record)
    artist.urls = records


async def save_artist(
    *,
    db: AsyncSession,
    artist: Artist,
    changes: ArtistChanges,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy | None = None,
    validate: bool = True,
) -> ArtistVersion | None:
    """Validate and assign ``changes``, then record a version if anything versioned changed.

    Nothing is written when validation fails. ``validate=False`` skips field
    validation and is reserved for data-repair tooling.
    """
    is_new = artist.id is None
    errors: FieldErrors = {}

    name = normalize_name(changes.name) if changes.name is not None else (artist.name or "")
    if validate and (is_new or name != artist.name):
        for message in name_errors(name):
            add_field_error(errors, "name", message)
        if name and await _name_taken(db, name, artist.id):
            add_field_error(errors, "name", f"'{name}' has already been taken")

    other_names = normalize_other_names(
        changes.other_names if changes.other_names is not None else artist.other_names,
        name=name,
    )

    group_name = artist.group_name
    if changes.group_name is not None:
        group_name = normalize_name(changes.group_name) or None
        if validate and group_name:
            for message in name_errors(group_name):
                add_field_error(errors, "group_name", message)

    diff: UrlSetDiff[ArtistUrl] | None = None
    if changes.url_string is not None:
        existing = [] if is_new else list(artist.urls)
        diff = diff_url_set(existing, parse_url_string(changes.url_string))
        if validate:
            # Entries kept from before are not revalidated, so legacy rows survive until replaced.
            for message in url_errors(diff.added):
                add_field_error(errors, "urls.url", message)

    if errors:
        raise artist_invalid(errors)

    before = None if is_new else (snapshot_artist(artist), artist.is_active)

    artist.name = name
    artist.other_names = other_names
    artist.group_name = group_name
    if changes.is_banned is not None:
        artist.is_banned = changes.is_banned
    if changes.is_active is not None:
        artist.is_active = changes.is_active

    if is_new:
        artist.created_at = now
        artist.updated_at = now
        if artist.is_active is None:
            artist.is_active = True
        if artist.is_banned is None:
            artist.is_banned = False
        artist.urls = []
        db.add(artist)
    if diff is not None:
        await _apply_url_diff(db, artist, diff, now)

    if before is not None and before != (snapshot_artist(artist), artist.is_active):
        artist.updated_at = now
    await db.flush()

    _decision, version = await record_artist_version(
        store=SqlAlchemyVersionStore(db),
        artist=artist,
        updater_id=updater_id,
        now=now,
        merge_policy=merge_policy or default_merge_policy(),
    )
    return version


async def create_artist(
    *,
    db: AsyncSession,
    changes: ArtistChanges,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy | None = None,
    validate: bool = True,
) -> Artist:
    async with observe_operation("artist_create"):
        artist = Artist()
        await save_artist(
            db=db,
            artist=artist,
            changes=changes,
            updater_id=updater_id,
            now=now,
            merge_policy=merge_policy,
            validate=validate,
        )
        await db.commit()
        logger.info("artist_created", extra={"artist_id": artist.id, "artist_name": artist.name})
        return artist


async def update_artist(
    *,
    db: AsyncSession,
    artist_id: int,
    changes: ArtistChanges,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy | None = None,
    validate: bool = True,
) -> Artist:
    async with observe_operation("artist_update", attributes={"artist.id": artist_id}):
        artist = await get_artist(db, artist_id)
        await save_artist(
            db=db,
            artist=artist,
            changes=changes,
            updater_id=updater_id,
            now=now,
            merge_policy=merge_policy,
            validate=validate,
        )
        await db.commit()
        return artist


async def revert_artist(
    *,
    db: AsyncSession,
    artist_id: int,
    version_id: int,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    merge_policy: MergePolicy | None = None,
) -> Artist:
    async with observe_operation(
        "artist_revert",
        attributes={"artist.id": artist_id, "artist.version_id": version_id},
    ):
        artist = await get_artist(db, artist_id)
        version = await SqlAlchemyVersionStore(db).get(version_id)
        if version is None:
            raise AppError(
                code="artist_version_not_found",
                message="Artist version not found",
                status_code=404,
            )
        if version.artist_id != artist.id:
            raise AppError(
                code="artist_version_mismatch",
                message="You cannot revert to a previous version of another artist",
                status_code=400,
            )

        await save_artist(
            db=db,
            artist=artist,
            changes=ArtistChanges(
                name=version.name,
                other_names=list(version.other_names or []),
                group_name=version.group_name or "",
                url_string=list(version.urls or []),
                is_banned=version.is_banned,
            ),
            updater_id=updater_id,
            now=now,
            merge_policy=merge_policy,
        )
        await db.commit()
        logger.info(
            "artist_reverted",
            extra={"artist_id": artist.id, "version_id": version.id},
        )
        return artist


async def set_artist_flags(
    *,
    db: AsyncSession,
    artist_id: int,
    updater_id: uuid.UUID | None,
    now: dt.datetime,
    is_banned: bool | None = None,
    is_active: bool | None = None,
    merge_policy: MergePolicy | None = None,
) -> Artist:
    """Ban/unban and delete/undelete. Tag and moderation side effects live elsewhere."""
    return await update_artist(
        db=db,
        artist_id=artist_id,
        changes=ArtistChanges(is_banned=is_banned, is_active=is_active),
        updater_id=updater_id,
        now=now,
        merge_policy=merge_policy,
        validate=False,
    )


async def ban_artist(*, db: AsyncSession, artist_id: int, **kwargs) -> Artist:
    return await set_artist_flags(db=db, artist_id=artist_id, is_banned=True, **kwargs)


async def unban_artist(*, db: AsyncSession, artist_id: int, **kwargs) -> Artist:
    return await set_artist_flags(db=db, artist_id=artist_id, is_banned=False, **kwargs)


async def delete_artist(*, db: AsyncSession, artist_id: int, **kwargs) -> Artist:
    """Soft delete: the artist and its URLs stay, but lookups no longer return it."""
    return await set_artist_flags(db=db, artist_id=artist_id, is_active=False, **kwargs)


async def undelete_artist(*, db: AsyncSession, artist_id: int, **kwargs) -> Artist:
    return await set_artist_flags(db=db, artist_id=artist_id, is_active=True, **kwargs)


async def list_artist_versions(db: AsyncSession, artist_id: int) -> list[ArtistVersion]:
    await get_artist(db, artist_id)
    return await SqlAlchemyVersionStore(db).list_for_artist(artist_id)


async def list_group_members(db: AsyncSession, artist: Artist) -> list[Artist]:
    query = (
        select(Artist)
        .where(Artist.group_name == artist.name, Artist.is_active.is_(True))
        .order_by(Artist.name.asc())
    )
    return list((await db.scalars(query)).all())


async def find_artists_for_source(
    *,
    db: AsyncSession,
    source_url: str,
    resolver: IllustrationResolver,
    settings: Settings | None = None,
) -> list[Artist]:
    settings = settings or get_settings()
    async with observe_operation("artist_finder"):
        registry = default_source_sites(
            resolver, timeout=settings.illustration_resolver_timeout_seconds
        )
        return await find_artists(
            source_url,
            registry=registry,
            store=SqlAlchemyArtistStore(db, limit=settings.finder_max_results),
            limit=settings.finder_max_results,
        )
