from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar
from urllib.parse import SplitResult, parse_qs, urlsplit

from artdex_api.domain.artist_urls import has_valid_scheme, normalize_url
from artdex_api.domain.illustration_resolvers import IllustrationResolver, ProviderTimeout
from artdex_api.observability import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupKey:
    """Normalized URLs to look an artist up by, most specific first.

    With ``match_prefix`` the URLs are tried one at a time and stored URLs under
    them also match; otherwise every URL is compared for equality. A bare host
    root in a key with ``exact_host_root`` only matches itself, so unrelated
    accounts on a shared host are not swept up.
    """

    site: str
    urls: tuple[str, ...]
    match_prefix: bool = False
    exact_host_root: bool = False


def split_source_url(source_url: str) -> SplitResult | None:
    value = source_url.strip()
    if not has_valid_scheme(value):
        return None
    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return None
    if not host:
        return None
    return parts


def _query_value(parts: SplitResult, name: str) -> str | None:
    values = parse_qs(parts.query).get(name)
    if not values:
        return None
    return values[0]


def _digits(value: str | None) -> str | None:
    if value and value.isdigit():
        return value
    return None


class SourceSite(ABC):
    name: ClassVar[str]

    def recognizes(self, source_url: str) -> bool:
        parts = split_source_url(source_url)
        return parts is not None and self.handles(parts)

    @abstractmethod
    def handles(self, parts: SplitResult) -> bool:
        """Whether the URL's shape belongs to this site."""

    @abstractmethod
    async def match(self, source_url: str) -> LookupKey | None:
        ...


class ResolvingSourceSite(SourceSite):
    """A site whose illustration ids must be resolved to an owner id remotely."""

    def __init__(self, resolver: IllustrationResolver, *, timeout: float = 5.0) -> None:
        self._resolver = resolver
        self._timeout = timeout

    async def resolve_owner(self, illustration_id: str) -> str | None:
        try:
            return await asyncio.wait_for(
                self._resolver.resolve_to_owner(self.name, illustration_id),
                timeout=self._timeout,
            )
        except (TimeoutError, ProviderTimeout):
            logger.warning(
                "illustration_resolver_timeout",
                extra={"site": self.name, "illustration_id": illustration_id},
            )
            metrics.illustration_resolver_timeout_total.labels(site=self.name).inc()
            return None

    @abstractmethod
    def profile_urls(self, owner_id: str) -> tuple[str, ...]:
        ...

    def owner_key(self, owner_id: str) -> LookupKey:
        return LookupKey(site=self.name, urls=self.profile_urls(owner_id))


class PixivSite(ResolvingSourceSite):
    name = "pixiv"

    _NON_IDENTIFYING_PATHS = frozenset({"", "/", "/img", "/img/"})
    _USER_RE = re.compile(r"^/(?:[a-z]{2}/)?users/(\d+)")
    _STACC_RE = re.compile(r"^/stacc/([^/]+)")
    _ARTWORK_RE = re.compile(r"^/(?:[a-z]{2}/)?(?:artworks|i)/(\d+)")
    _IMAGE_RE = re.compile(
        r"/img-(?:original|master|zip-ugoira|inf)/img/(?:\d+/){6}(\d+)(?:_|\.)"
    )
    _OLD_IMAGE_RE = re.compile(r"^/(?:img\d+/)?img/[^/]+/(?:mobile/)?(\d+)(?:_[\w-]+)?\.\w+$")

    def handles(self, parts: SplitResult) -> bool:
        host = parts.hostname or ""
        return host in {"pixiv.net", "pximg.net"} or host.endswith((".pixiv.net", ".pximg.net"))

    def profile_urls(self, owner_id: str) -> tuple[str, ...]:
        urls: list[str] = []
        for host in ("www.pixiv.net", "pixiv.net"):
            urls.extend(
                [
                    f"http://{host}/member.php?id={owner_id}/",
                    f"http://{host}/member_illust.php?id={owner_id}/",
                    f"http://{host}/users/{owner_id}/",
                    f"http://{host}/en/users/{owner_id}/",
                ]
            )
        return tuple(urls)

    def member_id(self, parts: SplitResult) -> str | None:
        path = parts.path
        if path in {"/member.php", "/member_illust.php"} and _query_value(parts, "illust_id") is None:
            return _digits(_query_value(parts, "id"))
        match = self._USER_RE.match(path)
        return match.group(1) if match else None

    def illustration_id(self, parts: SplitResult) -> str | None:
        illust_id = _digits(_query_value(parts, "illust_id"))
        if illust_id:
            return illust_id
        for pattern in (self._ARTWORK_RE, self._OLD_IMAGE_RE):
            match = pattern.match(parts.path)
            if match:
                return match.group(1)
        match = self._IMAGE_RE.search(parts.path)
        return match.group(1) if match else None

    async def match(self, source_url: str) -> LookupKey | None:
        parts = split_source_url(source_url)
        if parts is None or parts.path in self._NON_IDENTIFYING_PATHS:
            return None

        member_id = self.member_id(parts)
        if member_id:
            return self.owner_key(member_id)

        stacc = self._STACC_RE.match(parts.path)
        if stacc:
            name = stacc.group(1)
            return LookupKey(
                site=self.name,
                urls=(f"http://www.pixiv.net/stacc/{name}/", f"http://pixiv.net/stacc/{name}/"),
            )

        illust_id = self.illustration_id(parts)
        if illust_id is None:
            return None
        owner_id = await self.resolve_owner(illust_id)
        if owner_id is None:
            return None
        return self.owner_key(owner_id)


class NicoSeigaSite(ResolvingSourceSite):
    name = "nico_seiga"

    _HOSTS = frozenset({"seiga.nicovideo.jp", "lohas.nicoseiga.jp", "www.nicovideo.jp", "nicovideo.jp"})
    _USER_RE = re.compile(r"^/user/(?:illust/)?(\d+)")
    _ILLUST_RES = (
        re.compile(r"^/seiga/im(\d+)"),
        re.compile(r"^/image/source/(\d+)"),
        re.compile(r"^/priv/(?:[0-9a-f]+/)?\d+/(\d+)"),
        re.compile(r"^/o/[0-9a-f]+/\d+/(\d+)"),
        re.compile(r"^/thumb/(\d+)[a-z]?"),
    )

    def handles(self, parts: SplitResult) -> bool:
        return (parts.hostname or "") in self._HOSTS

    def profile_urls(self, owner_id: str) -> tuple[str, ...]:
        return (
            f"http://seiga.nicovideo.jp/user/illust/{owner_id}/",
            f"http://seiga.nicovideo.jp/user/{owner_id}/",
            f"http://www.nicovideo.jp/user/{owner_id}/",
        )

    def illustration_id(self, parts: SplitResult) -> str | None:
        for pattern in self._ILLUST_RES:
            match = pattern.match(parts.path)
            if match:
                return match.group(1)
        return None

    async def match(self, source_url: str) -> LookupKey | None:
        parts = split_source_url(source_url)
        if parts is None:
            return None
        user = self._USER_RE.match(parts.path)
        if user:
            return self.owner_key(user.group(1))

        illust_id = self.illustration_id(parts)
        if illust_id is None:
            return None
        owner_id = await self.resolve_owner(illust_id)
        if owner_id is None:
            return None
        return self.owner_key(owner_id)


class NijieSite(ResolvingSourceSite):
    name = "nijie"

    _MEMBER_PATHS = frozenset({"/members.php", "/members_illust.php", "/members_dojin.php"})
    _VIEW_PATHS = frozenset({"/view.php", "/view_popup.php"})
    _PICTURE_RE = re.compile(r"/nijie_picture/(?:[^/]+/)*(\d+)_\d+")

    def handles(self, parts: SplitResult) -> bool:
        host = parts.hostname or ""
        return host in {"nijie.info", "nijie.net"} or host.endswith((".nijie.info", ".nijie.net"))

    def profile_urls(self, owner_id: str) -> tuple[str, ...]:
        return (
            f"http://nijie.info/members.php?id={owner_id}/",
            f"http://nijie.info/members_illust.php?id={owner_id}/",
            f"http://www.nijie.info/members.php?id={owner_id}/",
        )

    async def match(self, source_url: str) -> LookupKey | None:
        parts = split_source_url(source_url)
        if parts is None:
            return None
        if parts.path in self._MEMBER_PATHS:
            member_id = _digits(_query_value(parts, "id"))
            return self.owner_key(member_id) if member_id else None

        picture = self._PICTURE_RE.search(parts.path)
        if picture:
            return self.owner_key(picture.group(1))

        if parts.path in self._VIEW_PATHS:
            illust_id = _digits(_query_value(parts, "id"))
            if illust_id is None:
                return None
            owner_id = await self.resolve_owner(illust_id)
            if owner_id is None:
                return None
            return self.owner_key(owner_id)
        return None


class TumblrSite(SourceSite):
    name = "tumblr"

    _RESERVED_LABELS = frozenset({"www", "media", "assets", "api", "static"})
    _RESERVED_PATHS = frozenset({"dashboard", "explore", "tagged", "search", "login", "register"})

    def blog_name(self, parts: SplitResult) -> str | None:
        host = parts.hostname or ""
        if host != "tumblr.com" and not host.endswith(".tumblr.com"):
            return None
        labels = host.split(".")
        if host in {"tumblr.com", "www.tumblr.com"}:
            segments = [segment for segment in parts.path.split("/") if segment]
            if segments[:2] == ["blog", "view"]:
                segments = segments[2:]
            if segments and segments[0].lower() not in self._RESERVED_PATHS:
                return segments[0].lower()
            return None
        if len(labels) == 3 and labels[0] not in self._RESERVED_LABELS:
            return labels[0]
        return None

    def handles(self, parts: SplitResult) -> bool:
        return self.blog_name(parts) is not None

    async def match(self, source_url: str) -> LookupKey | None:
        parts = split_source_url(source_url)
        if parts is None:
            return None
        blog = self.blog_name(parts)
        if blog is None:
            return None
        return LookupKey(
            site=self.name,
            urls=(f"http://{blog}.tumblr.com/", f"http://www.tumblr.com/{blog}/"),
            match_prefix=True,
        )


class GenericSite(SourceSite):
    """Fallback: walk up the source URL's directories looking for stored URLs."""

    name = "generic"

    _STOP_RE = re.compile(r"pixiv\.net/(?:img/)?$", re.IGNORECASE)

    def handles(self, parts: SplitResult) -> bool:
        return True

    def directory_levels(self, source_url: str) -> tuple[str, ...]:
        levels: list[str] = []
        url = normalize_url(source_url)
        while url.count("/") >= 3 and not self._STOP_RE.search(url):
            levels.append(url)
            url = url.rstrip("/").rsplit("/", 1)[0] + "/"
        return tuple(levels)

    async def match(self, source_url: str) -> LookupKey | None:
        levels = self.directory_levels(source_url)
        if not levels:
            return None
        return LookupKey(site=self.name, urls=levels, match_prefix=True, exact_host_root=True)


class SourceSiteRegistry:
    """Site strategies in priority order; the first one that recognizes a URL owns it."""

    def __init__(self, sites: Sequence[SourceSite]) -> None:
        self._sites = tuple(sites)

    @property
    def sites(self) -> tuple[SourceSite, ...]:
        return self._sites

    def site_for(self, source_url: str) -> SourceSite | None:
        for site in self._sites:
            if site.recognizes(source_url):
                return site
        return None


def default_source_sites(
    resolver: IllustrationResolver,
    *,
    timeout: float = 5.0,
) -> SourceSiteRegistry:
    return SourceSiteRegistry(
        [
            PixivSite(resolver, timeout=timeout),
            NicoSeigaSite(resolver, timeout=timeout),
            NijieSite(resolver, timeout=timeout),
            TumblrSite(),
            GenericSite(),
        ]
    )
