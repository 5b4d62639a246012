"""Tests for mention ingestion and dedup."""
from datetime import datetime, timedelta, timezone

import pytest

from brandpulse.errors import AccountInactive, NotFound, TokenExpired, UpstreamFetchError, ValidationError
from brandpulse.orchestration.ingestion import ingest_mentions, last_sync
from brandpulse.services.mention_sources import SourceRegistry
from brandpulse.services.types import FetchedMention
from brandpulse.storage.tenant_store import TenantStore

POSTED = datetime(2024, 5, 1, 10, 0)


class StaticSource:
    """Mention source returning a fixed list, or raising."""

    def __init__(self, mentions=None, error=None):
        self.mentions = mentions or []
        self.error = error
        self.calls = 0

    def fetch_mentions(self, account):
        self.calls += 1
        if self.error:
            raise self.error
        return [m.model_copy() for m in self.mentions]


def _mention(content="Great shop", author="jane", posted_at=POSTED):
    return FetchedMention(content=content, author=author, author_handle=f"@{author}", posted_at=posted_at)


def _registry(source, platform="instagram"):
    return SourceRegistry({platform: lambda: source})


def test_ingest_inserts_new_mentions(store, account):
    source = StaticSource([_mention(), _mention("Slow service", "bob")])

    result = ingest_mentions(store, _registry(source), account.id)

    assert (result.fetched, result.inserted, result.skipped) == (2, 2, 0)
    assert store.count_mentions() == 2
    assert all(m.sentiment_score is None for m in result.mentions)
    assert result.mentions[0].platform == "instagram"
    assert result.message == "Successfully ingested 2 new mentions"


def test_sequential_duplicate_ingestion(store, account):
    """Re-ingesting the same payload stores each mention once."""
    registry = _registry(StaticSource([_mention()]))

    first = ingest_mentions(store, registry, account.id)
    second = ingest_mentions(store, registry, account.id)

    assert first.inserted == 1
    assert (second.inserted, second.skipped) == (0, 1)
    assert second.message == "No new mentions found"
    assert store.count_mentions() == 1


def test_force_refresh_inserts_again(store, account):
    registry = _registry(StaticSource([_mention()]))
    ingest_mentions(store, registry, account.id)

    result = ingest_mentions(store, registry, account.id, force_refresh=True)

    assert result.inserted == 1
    assert store.count_mentions() == 2


def test_aware_timestamps_dedup(store, account):
    """An aware timestamp matches the stored naive UTC value."""
    ingest_mentions(store, _registry(StaticSource([_mention()])), account.id)

    plus_two = timezone(timedelta(hours=2))
    aware = _mention(posted_at=datetime(2024, 5, 1, 12, 0, tzinfo=plus_two))
    result = ingest_mentions(store, _registry(StaticSource([aware])), account.id)

    assert result.skipped == 1


def test_unknown_account(store):
    with pytest.raises(NotFound):
        ingest_mentions(store, _registry(StaticSource()), 9999)


def test_other_tenants_account(db, store, make_business, make_account):
    """Accounts of another tenant look exactly like missing ones."""
    other = make_account(make_business())
    source = StaticSource([_mention()])

    with pytest.raises(NotFound):
        ingest_mentions(store, _registry(source), other.id)
    assert source.calls == 0


def test_platform_mismatch(store, account):
    with pytest.raises(ValidationError):
        ingest_mentions(store, _registry(StaticSource()), account.id, platform="twitter")


def test_inactive_account(store, make_account, business):
    inactive = make_account(business, is_active=False)
    with pytest.raises(AccountInactive) as exc:
        ingest_mentions(store, _registry(StaticSource()), inactive.id)
    assert exc.value.status_code == 400


def test_expired_token(store, make_account, business):
    expired = make_account(business, token_expires_at=datetime(2024, 1, 1))
    with pytest.raises(TokenExpired) as exc:
        ingest_mentions(store, _registry(StaticSource()), expired.id, now=datetime(2024, 6, 1))
    assert exc.value.status_code == 401
    assert "reconnect" in exc.value.message


def test_unsupported_platform(store, account):
    with pytest.raises(ValidationError) as exc:
        ingest_mentions(store, SourceRegistry(), account.id)
    assert exc.value.message == "Unsupported platform"


def test_fetch_failure_writes_nothing(store, account):
    error = UpstreamFetchError("Failed to fetch mentions from instagram", details="instagram API error: 500")
    with pytest.raises(UpstreamFetchError):
        ingest_mentions(store, _registry(StaticSource(error=error)), account.id)
    assert store.count_mentions() == 0


def test_mentions_are_tenant_scoped(db, store, account, make_business):
    ingest_mentions(store, _registry(StaticSource([_mention()])), account.id)
    other_store = TenantStore(db, make_business().id)
    assert other_store.count_mentions() == 0
    assert other_store.list_mentions() == []


def test_last_sync(store, account):
    assert last_sync(store, account.id) == {"last_sync": None, "last_mention_date": None}

    ingest_mentions(store, _registry(StaticSource([_mention()])), account.id)
    info = last_sync(store, account.id)

    assert info["last_mention_date"] == POSTED.isoformat()
    assert info["last_sync"] is not None
