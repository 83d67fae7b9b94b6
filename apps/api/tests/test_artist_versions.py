from __future__ import annotations

import datetime as dt
import uuid

from artdex_api.db.models import ArtistVersion
from artdex_api.domain.artist_versions import (
    ArtistSnapshot,
    VersionWrite,
    merge_window_policy,
    never_merge,
    plan_version_write,
    snapshot_version,
)

NOW = dt.datetime(2026, 10, 18, 12, 0, tzinfo=dt.UTC)
UPDATER = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _snapshot(**overrides) -> ArtistSnapshot:
    fields = {
        "name": "rembrandt",
        "other_names": (),
        "group_name": None,
        "urls": ("http://rembrandt.com/",),
        "is_banned": False,
    }
    fields.update(overrides)
    return ArtistSnapshot(**fields)


def _version(snapshot: ArtistSnapshot, *, updater_id=UPDATER, updated_at=NOW) -> ArtistVersion:
    return ArtistVersion(
        artist_id=1,
        name=snapshot.name,
        other_names=list(snapshot.other_names),
        group_name=snapshot.group_name,
        urls=list(snapshot.urls),
        is_banned=snapshot.is_banned,
        updater_id=updater_id,
        created_at=updated_at,
        updated_at=updated_at,
    )


def test_first_save_appends() -> None:
    decision = plan_version_write(
        None, _snapshot(), updater_id=None, now=NOW, merge_policy=never_merge
    )
    assert decision == VersionWrite.APPEND


def test_unchanged_snapshot_skips() -> None:
    previous = _version(_snapshot())
    assert snapshot_version(previous) == _snapshot()
    decision = plan_version_write(
        previous, _snapshot(), updater_id=UPDATER, now=NOW, merge_policy=never_merge
    )
    assert decision == VersionWrite.SKIP


def test_same_updater_within_window_amends() -> None:
    policy = merge_window_policy(dt.timedelta(hours=1))
    previous = _version(_snapshot(), updated_at=NOW - dt.timedelta(minutes=10))
    decision = plan_version_write(
        previous, _snapshot(name="rembrandt_van_rijn"), updater_id=UPDATER, now=NOW, merge_policy=policy
    )
    assert decision == VersionWrite.AMEND


def test_merge_window_accepts_naive_stored_timestamps() -> None:
    policy = merge_window_policy(dt.timedelta(hours=1))
    previous = _version(_snapshot(), updated_at=(NOW - dt.timedelta(minutes=5)).replace(tzinfo=None))
    assert policy(previous, updater_id=UPDATER, now=NOW)


def test_other_updater_or_expired_window_appends() -> None:
    policy = merge_window_policy(dt.timedelta(hours=1))
    changed = _snapshot(is_banned=True)

    recent = _version(_snapshot(), updated_at=NOW - dt.timedelta(minutes=10))
    assert (
        plan_version_write(recent, changed, updater_id=uuid.uuid4(), now=NOW, merge_policy=policy)
        == VersionWrite.APPEND
    )
    assert (
        plan_version_write(recent, changed, updater_id=None, now=NOW, merge_policy=policy)
        == VersionWrite.APPEND
    )

    stale = _version(_snapshot(), updated_at=NOW - dt.timedelta(hours=2))
    assert (
        plan_version_write(stale, changed, updater_id=UPDATER, now=NOW, merge_policy=policy)
        == VersionWrite.APPEND
    )


def test_never_merge_always_appends_changes() -> None:
    previous = _version(_snapshot(), updated_at=NOW)
    decision = plan_version_write(
        previous, _snapshot(group_name="cats"), updater_id=UPDATER, now=NOW, merge_policy=never_merge
    )
    assert decision == VersionWrite.APPEND
