from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Protocol

import httpx
from fastapi import Depends

from artdex_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ProviderTimeout(Exception):
    def __init__(self, site: str, illustration_id: str) -> None:
        super().__init__(f"Timed out resolving {site} illustration {illustration_id}")
        self.site = site
        self.illustration_id = illustration_id


class IllustrationResolver(Protocol):
    async def resolve_to_owner(self, site: str, illustration_id: str) -> str | None:
        ...


class NullIllustrationResolver:
    async def resolve_to_owner(self, site: str, illustration_id: str) -> str | None:
        return None


class StaticIllustrationResolver:
    """Resolves from a fixed {site: {illustration_id: owner_id}} table."""

    def __init__(self, owners: Mapping[str, Mapping[str, str]]) -> None:
        self._owners = {
            site: {str(key): str(value) for key, value in table.items()}
            for site, table in owners.items()
        }

    @classmethod
    def from_file(cls, path: str | Path) -> StaticIllustrationResolver:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Illustration owner table must be a JSON object: {path}")
        return cls(payload)

    async def resolve_to_owner(self, site: str, illustration_id: str) -> str | None:
        return self._owners.get(site, {}).get(str(illustration_id))


class HttpIllustrationResolver:
    """Looks owners up from a JSON service: GET {base}/v1/{site}/illustrations/{id}.

    A 404 means the illustration is unknown. Timeouts raise ProviderTimeout so the
    calling site strategy can downgrade them to a miss.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._token = token
        self._transport = transport

    async def resolve_to_owner(self, site: str, illustration_id: str) -> str | None:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        url = f"{self._base_url}/v1/{site}/illustrations/{illustration_id}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, headers=headers)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(site, illustration_id) from exc
        except (httpx.HTTPError, ValueError):
            logger.warning(
                "illustration_resolver_failed",
                exc_info=True,
                extra={"site": site, "illustration_id": illustration_id, "resolver_url": url},
            )
            return None

        owner_id = payload.get("owner_id") if isinstance(payload, dict) else None
        if owner_id is None:
            return None
        return str(owner_id)


_null_resolver = NullIllustrationResolver()


@lru_cache(maxsize=4)
def _load_static_resolver(path: str) -> StaticIllustrationResolver:
    return StaticIllustrationResolver.from_file(path)


def build_illustration_resolver(settings: Settings) -> IllustrationResolver:
    mode = settings.illustration_resolver_mode
    if mode == "http":
        return HttpIllustrationResolver(
            str(settings.illustration_resolver_url),
            timeout=settings.illustration_resolver_timeout_seconds,
            token=settings.illustration_resolver_token,
        )
    if mode == "static":
        return _load_static_resolver(str(settings.illustration_resolver_static_path))
    return _null_resolver


def get_illustration_resolver(
    settings: Settings = Depends(get_settings),
) -> IllustrationResolver:
    return build_illustration_resolver(settings)


IllustrationResolverDep = Annotated[IllustrationResolver, Depends(get_illustration_resolver)]
