from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from artdex_api.domain.artist_finder import SqlAlchemyArtistStore, find_artists
from artdex_api.domain.illustration_resolvers import ProviderTimeout
from artdex_api.domain.source_sites import GenericSite, SourceSiteRegistry
from artdex_api.domain.artists import ArtistChanges, create_artist, find_artists_for_source
from artdex_api.time import utcnow


async def _artist(db, name: str, urls: str, *, is_active: bool = True) -> None:
    await create_artist(
        db=db,
        changes=ArtistChanges(name=name, url_string=urls, is_active=is_active),
        updater_id=None,
        now=utcnow(),
    )


async def _found(db, static_resolver, test_settings, source_url: str) -> list[str]:
    artists = await find_artists_for_source(
        db=db,
        source_url=source_url,
        resolver=static_resolver,
        settings=test_settings,
    )
    return [artist.name for artist in artists]


@pytest.mark.asyncio
async def test_finds_matches_by_url(db, static_resolver, test_settings) -> None:
    await _artist(db, "rembrandt", "http://rembrandt.com/x/test.jpg")
    await _artist(db, "subway", "http://subway.com/x/test.jpg")
    await _artist(db, "minko", "https://minko.com/x/test.jpg")

    async def found(url: str) -> list[str]:
        return await _found(db, static_resolver, test_settings, url)

    assert await found("http://rembrandt.com/x/test.jpg") == ["rembrandt"]
    assert await found("http://rembrandt.com/x/another.jpg") == ["rembrandt"]
    assert await found("http://nonexistent.com/test.jpg") == []
    assert await found("https://minko.com/x/test.jpg") == ["minko"]
    assert await found("http://minko.com/x/test.jpg") == ["minko"]


@pytest.mark.asyncio
async def test_domain_matching_is_case_insensitive(db, static_resolver, test_settings) -> None:
    await _artist(db, "bkub", "http://BKUB.example.com")
    assert await _found(db, static_resolver, test_settings, "http://bkub.example.com") == ["bkub"]


@pytest.mark.asyncio
async def test_path_prefixes_are_case_sensitive(db) -> None:
    await _artist(db, "gallery", "http://host.example.com/Gallery/a.jpg")
    store = SqlAlchemyArtistStore(db)
    assert await store.find_active_by_url_prefix("http://host.example.com/gallery/") == []
    found = await store.find_active_by_url_prefix("http://host.example.com/Gallery/")
    assert [artist.name for artist in found] == ["gallery"]


@pytest.mark.asyncio
async def test_resolves_ambiguous_prefixes(db, static_resolver, test_settings) -> None:
    await _artist(db, "bob_ross", "http://artists.com/bobross/image.jpg")
    await _artist(db, "bob", "http://artists.com/bob/image.jpg")
    assert await _found(db, static_resolver, test_settings, "http://artists.com/bob/test.jpg") == [
        "bob"
    ]


@pytest.mark.asyncio
async def test_does_not_return_duplicates(db, static_resolver, test_settings) -> None:
    await _artist(db, "warhol", "http://warhol.com/x/a/image.jpg\nhttp://warhol.com/x/b/image.jpg")
    assert await _found(db, static_resolver, test_settings, "http://warhol.com/x/test.jpg") == [
        "warhol"
    ]


@pytest.mark.asyncio
async def test_hides_deleted_artists(db, static_resolver, test_settings) -> None:
    await _artist(db, "warhol", "http://warhol.com/a/image.jpg", is_active=False)
    assert await _found(db, static_resolver, test_settings, "http://warhol.com/a/image.jpg") == []


@pytest.mark.asyncio
async def test_inactive_urls_still_identify_artists(db, static_resolver, test_settings) -> None:
    await _artist(db, "monet", "-http://monet.com/gallery/")
    assert await _found(db, static_resolver, test_settings, "http://monet.com/gallery/1.jpg") == [
        "monet"
    ]


@pytest.mark.asyncio
async def test_ignores_pixiv_image_roots(db, static_resolver, test_settings) -> None:
    await _artist(db, "yomosaka", "http://i2.pixiv.net/img18/img/evazion/14901720.png")
    await _artist(db, "niwatazumi_bf", "http://i2.pixiv.net/img18/img/evazion/14901720_big_p0.png")
    found = await _found(
        db, static_resolver, test_settings, "http://i2.pixiv.net/img28/img/kyang692/35563903.jpg"
    )
    assert found == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("source_url", "expected"),
    [
        ("http://www.pixiv.net/member_illust.php?mode=medium&illust_id=48788677", ["ryuura"]),
        ("http://i2.pixiv.net/img04/img/syounen_no_uta/46170939.jpg", ["masao"]),
        ("http://i1.pixiv.net/img01/img/bkubb/46239857_m.jpg", ["bkub"]),
        (
            "http://i2.pixiv.net/c/1200x1200/img-master/img/2014/09/25/00/57/24/46170939_p0_master1200.jpg",
            ["masao"],
        ),
        ("http://i2.pixiv.net/img-original/img/2014/09/28/21/59/44/46239857_p0.jpg", ["bkub"]),
        ("http://www.pixiv.net/member_illust.php?mode=manga_big&illust_id=46170939&page=0", ["masao"]),
        ("http://www.pixiv.net/i/46239857", ["bkub"]),
        ("http://www.pixiv.net/member_illust.php?mode=medium&illust_id=32049358", []),
    ],
)
async def test_finds_pixiv_artists(db, static_resolver, test_settings, source_url, expected) -> None:
    await _artist(db, "masao", "http://www.pixiv.net/member.php?id=32777")
    await _artist(db, "bkub", "http://www.pixiv.net/member.php?id=9948")
    await _artist(db, "ryuura", "http://www.pixiv.net/member.php?id=8678371")
    assert await _found(db, static_resolver, test_settings, source_url) == expected


@pytest.mark.asyncio
async def test_finds_nico_seiga_artists(db, static_resolver, test_settings) -> None:
    await _artist(db, "osamari", "http://seiga.nicovideo.jp/user/illust/7017777")
    await _artist(db, "hakuro109", "http://seiga.nicovideo.jp/user/illust/16265470")

    async def found(url: str) -> list[str]:
        return await _found(db, static_resolver, test_settings, url)

    assert await found("http://seiga.nicovideo.jp/seiga/im4937663") == ["osamari"]
    assert await found(
        "http://lohas.nicoseiga.jp/priv/b9ea863e691f3a648dee5582fd6911c30dc8acab/1510092103/6424205"
    ) == ["hakuro109"]
    assert await found("http://seiga.nicovideo.jp/seiga/im6605221") == []


@pytest.mark.asyncio
async def test_finds_nijie_artists(db, static_resolver, test_settings) -> None:
    await _artist(db, "evazion", "http://nijie.info/members.php?id=236014")
    await _artist(db, "728995", "http://nijie.info/members.php?id=728995")

    async def found(url: str) -> list[str]:
        return await _found(db, static_resolver, test_settings, url)

    assert await found("http://nijie.info/view.php?id=218944") == ["evazion"]
    assert await found("http://nijie.info/view.php?id=213043") == ["728995"]
    assert await found("http://nijie.info/view.php?id=157953") == []


@pytest.mark.asyncio
async def test_finds_tumblr_artists(db, static_resolver, test_settings) -> None:
    await _artist(db, "ilya_kuvshinov", "http://kuvshinov-ilya.tumblr.com")
    await _artist(db, "j.k.", "https://jdotkdot5.tumblr.com")

    async def found(url: str) -> list[str]:
        return await _found(db, static_resolver, test_settings, url)

    assert await found("http://kuvshinov-ilya.tumblr.com/post/168641755845") == ["ilya_kuvshinov"]
    assert await found("https://jdotkdot5.tumblr.com/post/168276640697") == ["j.k."]
    assert await found("https://peptosis.tumblr.com/post/168162082005") == []


@pytest.mark.asyncio
async def test_unrecognized_urls_find_nothing(db, static_resolver, test_settings) -> None:
    await _artist(db, "rembrandt", "http://rembrandt.com/")
    assert await _found(db, static_resolver, test_settings, "rembrandt.com") == []
    assert await _found(db, static_resolver, test_settings, "") == []


@pytest.mark.asyncio
async def test_shared_hosts_do_not_match_every_account(
    db, static_resolver, test_settings
) -> None:
    await _artist(db, "alice", "https://twitter.com/alice")
    await _artist(db, "bob", "https://twitter.com/bob")

    async def found(url: str) -> list[str]:
        return await _found(db, static_resolver, test_settings, url)

    assert await found("https://twitter.com/carol/status/1") == []
    assert await found("https://twitter.com/alice/status/1") == ["alice"]
    assert await found("https://twitter.com/") == []


@pytest.mark.asyncio
async def test_recognized_sites_do_not_fall_back_to_directory_matching(
    db, static_resolver, test_settings
) -> None:
    await _artist(db, "someone", "http://www.pixiv.net/i/99999")
    source_url = "http://www.pixiv.net/i/99999"

    generic_only = await find_artists(
        source_url,
        registry=SourceSiteRegistry([GenericSite()]),
        store=SqlAlchemyArtistStore(db),
    )
    assert [artist.name for artist in generic_only] == ["someone"]

    assert await _found(db, static_resolver, test_settings, source_url) == []


@pytest.mark.asyncio
async def test_prefix_limit_counts_only_case_sensitive_matches(db) -> None:
    await _artist(db, "aaa", "http://host.example.com/GALLERY/a/")
    await _artist(db, "bbb", "http://host.example.com/gallery/b/")
    store = SqlAlchemyArtistStore(db, limit=1)
    found = await store.find_active_by_url_prefix("http://host.example.com/gallery/")
    assert [artist.name for artist in found] == ["bbb"]


class _TimingOutResolver:
    async def resolve_to_owner(self, site: str, illustration_id: str) -> str | None:
        raise ProviderTimeout(site, illustration_id)


@pytest.mark.asyncio
async def test_provider_timeouts_count_one_lookup(db, test_settings) -> None:
    def lookups(outcome: str) -> float:
        return (
            REGISTRY.get_sample_value(
                "artdex_finder_lookup_total", {"site": "nijie", "outcome": outcome}
            )
            or 0.0
        )

    no_key_before = lookups("no_key")
    timeouts_before = (
        REGISTRY.get_sample_value("artdex_illustration_resolver_timeout_total", {"site": "nijie"})
        or 0.0
    )

    await _artist(db, "evazion", "http://nijie.info/members.php?id=236014")
    found = await _found(
        db, _TimingOutResolver(), test_settings, "http://nijie.info/view.php?id=218944"
    )

    assert found == []
    assert lookups("no_key") == no_key_before + 1
    assert lookups("provider_timeout") == 0.0
    assert REGISTRY.get_sample_value(
        "artdex_illustration_resolver_timeout_total", {"site": "nijie"}
    ) == timeouts_before + 1
