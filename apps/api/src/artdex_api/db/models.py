from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from artdex_api.domain.artist_names import NAME_MAX_LENGTH
from artdex_api.domain.artist_urls import render_url_string, signed_url
from artdex_api.time import utcnow

JsonList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Artist(Base):
    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False, unique=True, index=True)
    other_names: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    group_name: Mapped[str | None] = mapped_column(String(NAME_MAX_LENGTH), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    urls: Mapped[list[ArtistUrl]] = relationship(
        back_populates="artist",
        cascade="all, delete-orphan",
        order_by="ArtistUrl.position",
        lazy="selectin",
    )

    @property
    def url_array(self) -> list[str]:
        return [str(url) for url in self.urls]

    @property
    def url_string(self) -> str:
        return render_url_string(self.urls)

    @property
    def other_names_string(self) -> str:
        return " ".join(self.other_names or [])


class ArtistUrl(Base):
    __tablename__ = "artist_urls"
    __table_args__ = (
        UniqueConstraint("artist_id", "normalized_url", name="uq_artist_urls_artist_normalized_url"),
        Index("ix_artist_urls_normalized_url", "normalized_url"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    artist: Mapped[Artist] = relationship(back_populates="urls")

    def __str__(self) -> str:
        return signed_url(self.url, self.is_active)


class ArtistVersion(Base):
    __tablename__ = "artist_versions"
    __table_args__ = (Index("ix_artist_versions_artist_id_id", "artist_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artist_id: Mapped[int] = mapped_column(Integer, ForeignKey("artists.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    other_names: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    group_name: Mapped[str | None] = mapped_column(String(NAME_MAX_LENGTH), nullable=True)
    urls: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updater_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
