from __future__ import annotations

from dataclasses import dataclass

import pytest

from artdex_api.domain.artist_urls import (
    ArtistUrlToken,
    assert_unique_normalized_urls,
    diff_url_set,
    normalize_url,
    parse_url_string,
    render_url_string,
    url_errors,
)


@dataclass
class FakeUrl:
    url: str
    normalized_url: str
    is_active: bool = True


def _record(raw: str) -> FakeUrl:
    token = ArtistUrlToken.from_signed(raw)
    return FakeUrl(url=token.url, normalized_url=token.normalized_url, is_active=token.is_active)


def test_normalize_url_collapses_scheme_and_host_case() -> None:
    assert normalize_url("https://Minko.Blog.FC2.com/") == "http://minko.blog.fc2.com/"
    assert normalize_url("http://example.com/Path/To") == "http://example.com/Path/To/"
    assert normalize_url("http://example.com////") == "http://example.com/"


def test_normalize_url_is_idempotent() -> None:
    for url in ["https://www.pixiv.net/users/9948", "http://a.tumblr.com/post/1/", "ftp://x/y"]:
        once = normalize_url(url)
        assert normalize_url(once) == once


def test_parse_url_string_splits_on_whitespace_and_marks_inactive() -> None:
    tokens = parse_url_string("http://a.com/\n-http://b.com/  http://c.com/")
    assert [str(token) for token in tokens] == ["http://a.com/", "-http://b.com/", "http://c.com/"]
    assert [token.is_active for token in tokens] == [True, False, True]


def test_parse_url_string_prefers_inactive_duplicate_in_first_position() -> None:
    tokens = parse_url_string("http://a.com/ http://b.com/ -https://A.com")
    assert [str(token) for token in tokens] == ["-https://A.com", "http://b.com/"]


def test_parse_url_string_drops_plain_duplicates() -> None:
    tokens = parse_url_string(["http://warhol.com/", "https://warhol.com"])
    assert [token.url for token in tokens] == ["http://warhol.com/"]


def test_parse_url_string_ignores_bare_inactive_marker() -> None:
    assert parse_url_string("- http://a.com/") == parse_url_string("http://a.com/")


def test_render_url_string_joins_signed_urls() -> None:
    assert render_url_string(parse_url_string("-http://a.com http://b.com")) == (
        "-http://a.com\nhttp://b.com"
    )


def test_url_errors_reports_bad_scheme() -> None:
    tokens = parse_url_string("www.example.com http://ok.com/")
    assert url_errors(tokens) == ["'www.example.com' must begin with http:// or https:// "]


def test_diff_keeps_unchanged_records_by_identity() -> None:
    a = _record("http://a.com/")
    b = _record("http://b.com/")
    diff = diff_url_set([a, b], parse_url_string("http://b.com http://c.com"))

    assert diff.entries[0] is b
    assert isinstance(diff.entries[1], ArtistUrlToken)
    assert [token.url for token in diff.added] == ["http://c.com"]
    assert diff.removed == [a]


def test_diff_replaces_record_when_active_flag_flips() -> None:
    a = _record("http://a.com/")
    diff = diff_url_set([a], parse_url_string("-http://a.com/"))

    assert diff.removed == [a]
    assert [str(token) for token in diff.added] == ["-http://a.com/"]


def test_diff_of_identical_set_is_noop() -> None:
    records = [_record("http://a.com/"), _record("-http://b.com/")]
    diff = diff_url_set(records, parse_url_string("http://a.com/ -http://b.com/"))
    assert diff.is_noop
    assert diff.entries == records


def test_duplicate_normalized_urls_are_an_invariant_violation() -> None:
    with pytest.raises(RuntimeError):
        assert_unique_normalized_urls([_record("http://a.com/"), _record("-https://a.com")])


@pytest.mark.parametrize(
    "text",
    [
        "http://a.com/ -http://b.com/x http://A.com",
        "https://www.pixiv.net/users/9948\n\n-http://example.com/Gallery/",
        "",
    ],
)
def test_parse_render_parse_is_stable(text: str) -> None:
    once = parse_url_string(text)
    assert parse_url_string(render_url_string(once)) == once
