from __future__ import annotations

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from artdex_api.db.session import create_engine, create_schema, create_sessionmaker
from artdex_api.domain.illustration_resolvers import StaticIllustrationResolver, _load_static_resolver
from artdex_api.main import create_app
from artdex_api.settings import get_settings

ILLUSTRATION_OWNERS = {
    "pixiv": {
        "46170939": "32777",
        "46239857": "9948",
        "48788677": "8678371",
    },
    "nico_seiga": {
        "4937663": "7017777",
        "6424205": "16265470",
    },
    "nijie": {
        "218944": "236014",
        "213043": "728995",
    },
}


@pytest.fixture
def illustration_owners_path(tmp_path):
    path = tmp_path / "illustration_owners.json"
    path.write_text(json.dumps(ILLUSTRATION_OWNERS), encoding="utf-8")
    return path


@pytest.fixture
def static_resolver() -> StaticIllustrationResolver:
    return StaticIllustrationResolver(ILLUSTRATION_OWNERS)


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch, illustration_owners_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'artdex.db'}")
    monkeypatch.setenv("ILLUSTRATION_RESOLVER_MODE", "static")
    monkeypatch.setenv("ILLUSTRATION_RESOLVER_STATIC_PATH", str(illustration_owners_path))
    monkeypatch.setenv("VERSION_MERGE_WINDOW_SECONDS", "3600")
    get_settings.cache_clear()
    _load_static_resolver.cache_clear()
    create_sessionmaker.cache_clear()
    create_engine.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
    _load_static_resolver.cache_clear()


@pytest_asyncio.fixture
async def db_sessionmaker(test_settings):
    await create_schema(test_settings.database_url)
    yield create_sessionmaker(test_settings.database_url)
    await create_engine(test_settings.database_url).dispose()
    create_sessionmaker.cache_clear()
    create_engine.cache_clear()


@pytest_asyncio.fixture
async def db(db_sessionmaker):
    async with db_sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_sessionmaker):
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
