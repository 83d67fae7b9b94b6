from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

INACTIVE_PREFIX = "-"

_VALID_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_SCHEME_AND_HOST_RE = re.compile(r"^https?://([^/?#]+)", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Canonical form used for matching.

    The scheme collapses to ``http://`` and the host is lowercased; path and query
    keep their case. Every normalized URL ends with exactly one ``/``.
    """
    value = url.strip()
    match = _SCHEME_AND_HOST_RE.match(value)
    if match:
        value = f"http://{match.group(1).lower()}{value[match.end():]}"
    return value.rstrip("/") + "/"


def signed_url(url: str, is_active: bool) -> str:
    return url if is_active else f"{INACTIVE_PREFIX}{url}"


def has_valid_scheme(url: str) -> bool:
    return bool(_VALID_SCHEME_RE.match(url))


@dataclass(frozen=True)
class ArtistUrlToken:
    url: str
    normalized_url: str
    is_active: bool = True

    @classmethod
    def from_signed(cls, raw: str) -> ArtistUrlToken:
        value = raw.strip()
        is_active = True
        if value.startswith(INACTIVE_PREFIX):
            value = value[len(INACTIVE_PREFIX):]
            is_active = False
        return cls(url=value, normalized_url=normalize_url(value), is_active=is_active)

    def __str__(self) -> str:
        return signed_url(self.url, self.is_active)


def parse_url_string(text: str | Iterable[str] | None) -> list[ArtistUrlToken]:
    """Split free text into deduplicated URL tokens, keeping first-seen order.

    When the same normalized URL appears both active and inactive, the inactive
    form is kept in the position of the first occurrence.
    """
    if text is None:
        return []
    raw_tokens = text.split() if isinstance(text, str) else [part for item in text for part in item.split()]

    tokens: dict[str, ArtistUrlToken] = {}
    for raw in raw_tokens:
        token = ArtistUrlToken.from_signed(raw)
        if not token.url:
            continue
        existing = tokens.get(token.normalized_url)
        if existing is None or (existing.is_active and not token.is_active):
            tokens[token.normalized_url] = token
    return list(tokens.values())


def render_url_string(urls: Iterable[object]) -> str:
    return "\n".join(str(url) for url in urls)


def url_errors(tokens: Iterable[ArtistUrlToken]) -> list[str]:
    return [
        f"'{token.url}' must begin with http:// or https:// "
        for token in tokens
        if not has_valid_scheme(token.url)
    ]


class ArtistUrlLike(Protocol):
    url: str
    normalized_url: str
    is_active: bool


U = TypeVar("U", bound=ArtistUrlLike)


@dataclass(frozen=True)
class UrlSetDiff(Generic[U]):
    # Final ordered collection: kept existing records and the tokens to create.
    entries: list[U | ArtistUrlToken]
    added: list[ArtistUrlToken]
    removed: list[U]

    @property
    def is_noop(self) -> bool:
        return not self.added and not self.removed


def diff_url_set(existing: Sequence[U], parsed: Sequence[ArtistUrlToken]) -> UrlSetDiff[U]:
    pending: dict[tuple[str, bool], list[U]] = {}
    for record in existing:
        pending.setdefault((record.normalized_url, record.is_active), []).append(record)

    entries: list[U | ArtistUrlToken] = []
    added: list[ArtistUrlToken] = []
    kept_ids: set[int] = set()
    for token in parsed:
        candidates = pending.get((token.normalized_url, token.is_active))
        if candidates:
            record = candidates.pop(0)
            kept_ids.add(id(record))
            entries.append(record)
        else:
            added.append(token)
            entries.append(token)

    removed = [record for record in existing if id(record) not in kept_ids]
    assert_unique_normalized_urls(entries)
    return UrlSetDiff(entries=entries, added=added, removed=removed)


def assert_unique_normalized_urls(entries: Iterable[ArtistUrlLike | ArtistUrlToken]) -> None:
    seen: set[str] = set()
    for entry in entries:
        if entry.normalized_url in seen:
            raise RuntimeError(f"Duplicate normalized URL survived deduplication: {entry.normalized_url}")
        seen.add(entry.normalized_url)
