from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "ok"


class ArtistUrlPublic(BaseModel):
    id: int
    url: str
    normalized_url: str
    is_active: bool


class ArtistPublic(BaseModel):
    id: int
    name: str
    other_names: list[str]
    group_name: str | None = None
    is_active: bool
    is_banned: bool
    urls: list[ArtistUrlPublic]
    url_string: str
    created_at: dt.datetime
    updated_at: dt.datetime


class ArtistResponse(BaseModel):
    artist: ArtistPublic


class ArtistsResponse(BaseModel):
    artists: list[ArtistPublic]


class ArtistCreateRequest(BaseModel):
    name: str
    other_names: str | list[str] | None = None
    group_name: str | None = None
    url_string: str | list[str] | None = Field(
        default=None,
        description="Whitespace separated URLs; prefix a URL with '-' to mark it inactive.",
    )
    is_banned: bool | None = None


class ArtistUpdateRequest(BaseModel):
    name: str | None = None
    other_names: str | list[str] | None = None
    group_name: str | None = None
    url_string: str | list[str] | None = None


class ArtistVersionPublic(BaseModel):
    id: int
    artist_id: int
    name: str
    other_names: list[str]
    group_name: str | None = None
    urls: list[str]
    is_banned: bool
    updater_id: uuid.UUID | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class ArtistVersionsResponse(BaseModel):
    versions: list[ArtistVersionPublic]


class ArtistRevertRequest(BaseModel):
    version_id: int


class ArtistMembersResponse(BaseModel):
    member_names: list[str]
