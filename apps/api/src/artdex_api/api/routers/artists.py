from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from artdex_api.api.schemas import (
    ArtistCreateRequest,
    ArtistMembersResponse,
    ArtistPublic,
    ArtistResponse,
    ArtistRevertRequest,
    ArtistsResponse,
    ArtistUpdateRequest,
    ArtistUrlPublic,
    ArtistVersionPublic,
    ArtistVersionsResponse,
)
from artdex_api.auth.deps import UpdaterId
from artdex_api.db.models import Artist, ArtistVersion
from artdex_api.db.session import DbSessionDep
from artdex_api.domain.artists import (
    ArtistChanges,
    ban_artist,
    create_artist,
    default_merge_policy,
    delete_artist,
    find_artists_for_source,
    get_artist,
    list_artist_versions,
    list_group_members,
    revert_artist,
    unban_artist,
    undelete_artist,
    update_artist,
)
from artdex_api.domain.illustration_resolvers import IllustrationResolverDep
from artdex_api.settings import Settings, get_settings
from artdex_api.time import UtcNow, get_utcnow

router = APIRouter(prefix="/v1/artists", tags=["artists"])

SettingsDep = Annotated[Settings, Depends(get_settings)]
NowDep = Annotated[UtcNow, Depends(get_utcnow)]


def artist_to_public(artist: Artist) -> ArtistPublic:
    return ArtistPublic(
        id=artist.id,
        name=artist.name,
        other_names=list(artist.other_names or []),
        group_name=artist.group_name,
        is_active=artist.is_active,
        is_banned=artist.is_banned,
        urls=[
            ArtistUrlPublic(
                id=url.id,
                url=url.url,
                normalized_url=url.normalized_url,
                is_active=url.is_active,
            )
            for url in artist.urls
        ],
        url_string=artist.url_string,
        created_at=artist.created_at,
        updated_at=artist.updated_at,
    )


def version_to_public(version: ArtistVersion) -> ArtistVersionPublic:
    return ArtistVersionPublic(
        id=version.id,
        artist_id=version.artist_id,
        name=version.name,
        other_names=list(version.other_names or []),
        group_name=version.group_name,
        urls=list(version.urls or []),
        is_banned=version.is_banned,
        updater_id=version.updater_id,
        created_at=version.created_at,
        updated_at=version.updated_at,
    )


@router.get("/finder", response_model=ArtistsResponse)
async def find_artists_by_source(
    db: DbSessionDep,
    settings: SettingsDep,
    resolver: IllustrationResolverDep,
    url: str = Query(min_length=1),
) -> ArtistsResponse:
    artists = await find_artists_for_source(
        db=db,
        source_url=url,
        resolver=resolver,
        settings=settings,
    )
    return ArtistsResponse(artists=[artist_to_public(artist) for artist in artists])


@router.post("", response_model=ArtistResponse, status_code=status.HTTP_201_CREATED)
async def create(
    body: ArtistCreateRequest,
    db: DbSessionDep,
    settings: SettingsDep,
    updater_id: UpdaterId,
    now: NowDep,
) -> ArtistResponse:
    artist = await create_artist(
        db=db,
        changes=ArtistChanges(
            name=body.name,
            other_names=body.other_names,
            group_name=body.group_name,
            url_string=body.url_string,
            is_banned=body.is_banned,
        ),
        updater_id=updater_id,
        now=now(),
        merge_policy=default_merge_policy(settings),
    )
    return ArtistResponse(artist=artist_to_public(artist))


@router.get("/{artist_id}", response_model=ArtistResponse)
async def show(artist_id: int, db: DbSessionDep) -> ArtistResponse:
    return ArtistResponse(artist=artist_to_public(await get_artist(db, artist_id)))


@router.patch("/{artist_id}", response_model=ArtistResponse)
async def update(
    artist_id: int,
    body: ArtistUpdateRequest,
    db: DbSessionDep,
    settings: SettingsDep,
    updater_id: UpdaterId,
    now: NowDep,
) -> ArtistResponse:
    artist = await update_artist(
        db=db,
        artist_id=artist_id,
        changes=ArtistChanges(
            name=body.name,
            other_names=body.other_names,
            group_name=body.group_name,
            url_string=body.url_string,
        ),
        updater_id=updater_id,
        now=now(),
        merge_policy=default_merge_policy(settings),
    )
    return ArtistResponse(artist=artist_to_public(artist))


async def _flag_response(
    operation: Callable[..., Awaitable[Artist]],
    artist_id: int,
    db: DbSessionDep,
    settings: Settings,
    updater_id: UpdaterId,
    now: UtcNow,
) -> ArtistResponse:
    artist = await operation(
        db=db,
        artist_id=artist_id,
        updater_id=updater_id,
        now=now(),
        merge_policy=default_merge_policy(settings),
    )
    return ArtistResponse(artist=artist_to_public(artist))


@router.delete("/{artist_id}", response_model=ArtistResponse)
async def delete(
    artist_id: int, db: DbSessionDep, settings: SettingsDep, updater_id: UpdaterId, now: NowDep
) -> ArtistResponse:
    return await _flag_response(delete_artist, artist_id, db, settings, updater_id, now)


@router.post("/{artist_id}/undelete", response_model=ArtistResponse)
async def undelete(
    artist_id: int, db: DbSessionDep, settings: SettingsDep, updater_id: UpdaterId, now: NowDep
) -> ArtistResponse:
    return await _flag_response(undelete_artist, artist_id, db, settings, updater_id, now)


@router.post("/{artist_id}/ban", response_model=ArtistResponse)
async def ban(
    artist_id: int, db: DbSessionDep, settings: SettingsDep, updater_id: UpdaterId, now: NowDep
) -> ArtistResponse:
    return await _flag_response(ban_artist, artist_id, db, settings, updater_id, now)


@router.post("/{artist_id}/unban", response_model=ArtistResponse)
async def unban(
    artist_id: int, db: DbSessionDep, settings: SettingsDep, updater_id: UpdaterId, now: NowDep
) -> ArtistResponse:
    return await _flag_response(unban_artist, artist_id, db, settings, updater_id, now)


@router.get("/{artist_id}/members", response_model=ArtistMembersResponse)
async def members(artist_id: int, db: DbSessionDep) -> ArtistMembersResponse:
    artist = await get_artist(db, artist_id)
    return ArtistMembersResponse(
        member_names=[member.name for member in await list_group_members(db, artist)]
    )


@router.get("/{artist_id}/versions", response_model=ArtistVersionsResponse)
async def versions(artist_id: int, db: DbSessionDep) -> ArtistVersionsResponse:
    return ArtistVersionsResponse(
        versions=[version_to_public(version) for version in await list_artist_versions(db, artist_id)]
    )


@router.post("/{artist_id}/revert", response_model=ArtistResponse)
async def revert(
    artist_id: int,
    body: ArtistRevertRequest,
    db: DbSessionDep,
    settings: SettingsDep,
    updater_id: UpdaterId,
    now: NowDep,
) -> ArtistResponse:
    artist = await revert_artist(
        db=db,
        artist_id=artist_id,
        version_id=body.version_id,
        updater_id=updater_id,
        now=now(),
        merge_policy=default_merge_policy(settings),
    )
    return ArtistResponse(artist=artist_to_public(artist))
