"""Tests for the platform mention adapters (HTTP mocked with httpx.MockTransport)."""
from datetime import datetime

import httpx
import pytest

from brandpulse.errors import UpstreamFetchError
from brandpulse.models import SocialAccount
from brandpulse.services.facebook_client import FacebookMentionSource
from brandpulse.services.instagram_client import InstagramMentionSource
from brandpulse.services.linkedin_client import LinkedInMentionSource
from brandpulse.services.mention_sources import SourceRegistry, default_registry, parse_timestamp
from brandpulse.services.x_client import XMentionSource


def _account(platform, account_id="1789"):
    return SocialAccount(id=1, tenant_id=1, platform=platform, account_id=account_id, access_token="tok")


def _routes(table):
    """MockTransport handler answering by URL path."""
    def handler(request):
        body = table.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(body):
            return body(request)
        return httpx.Response(200, json=body)
    return handler


def _client(table):
    return httpx.Client(transport=httpx.MockTransport(_routes(table)))


def test_parse_timestamp_formats():
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, 0)
    assert parse_timestamp("2024-05-01T10:00:00+0000") == datetime(2024, 5, 1, 10, 0)
    assert parse_timestamp("2024-05-01T12:00:00+02:00") == datetime(2024, 5, 1, 10, 0)


def test_instagram_comments(settings):
    source = InstagramMentionSource(settings, http=_client({
        "/1789/media": {"data": [{"id": "m1", "permalink": "https://instagram.com/p/abc"}]},
        "/m1/comments": {"data": [
            {"id": "c1", "text": "Love this!", "username": "jane", "timestamp": "2024-05-01T10:00:00+0000",
             "like_count": 4},
        ]},
    }))

    mentions = source.fetch_mentions(_account("instagram"))

    assert len(mentions) == 1
    assert mentions[0].author == "jane"
    assert mentions[0].author_handle == "@jane"
    assert mentions[0].post_url == "https://instagram.com/p/abc"
    assert mentions[0].engagement_count == 4


def test_instagram_comment_page_failure(settings):
    """A failing comment request fails the whole fetch."""
    source = InstagramMentionSource(settings, http=_client({
        "/1789/media": {"data": [{"id": "m1"}]},
    }))
    with pytest.raises(UpstreamFetchError) as exc:
        source.fetch_mentions(_account("instagram"))
    assert exc.value.status_code == 502
    assert exc.value.message == "Failed to fetch mentions from instagram"


def test_instagram_malformed_comment(settings):
    source = InstagramMentionSource(settings, http=_client({
        "/1789/media": {"data": [{"id": "m1"}]},
        "/m1/comments": {"data": [{"id": "c1", "username": "jane"}]},
    }))
    with pytest.raises(UpstreamFetchError):
        source.fetch_mentions(_account("instagram"))


def test_facebook_feed_comments(settings):
    source = FacebookMentionSource(settings, http=_client({
        "/1789/feed": {"data": [{"id": "p1", "permalink_url": "https://facebook.com/p1"}]},
        "/p1/comments": {"data": [
            {"id": "c1", "message": "Great service", "from": {"name": "Sam"},
             "created_time": "2024-05-02T08:30:00+0000"},
            {"id": "c2", "message": "Meh", "created_time": "2024-05-02T09:00:00+0000"},
        ]},
    }))

    mentions = source.fetch_mentions(_account("facebook"))

    assert [m.author for m in mentions] == ["Sam", "Facebook user"]
    assert mentions[0].posted_at == datetime(2024, 5, 2, 8, 30)


def test_x_mentions_paginated(settings):
    pages = {
        None: {
            "data": [{"id": "t1", "text": "@brand hi", "author_id": "u1", "created_at": "2024-05-01T10:00:00Z",
                      "public_metrics": {"like_count": 2, "reply_count": 1, "retweet_count": 3}}],
            "includes": {"users": [{"id": "u1", "username": "jdoe", "name": "Jane Doe"}]},
            "meta": {"next_token": "page2"},
        },
        "page2": {
            "data": [{"id": "t2", "text": "@brand thanks", "author_id": "u2", "created_at": "2024-05-01T11:00:00Z"}],
            "meta": {},
        },
    }
    seen = []

    def mentions_page(request):
        seen.append(request)
        return httpx.Response(200, json=pages[request.url.params.get("pagination_token")])

    source = XMentionSource(settings, http=_client({"/2/users/1789/mentions": mentions_page}))
    mentions = source.fetch_mentions(_account("twitter"))

    assert len(mentions) == 2
    assert mentions[0].author == "Jane Doe"
    assert mentions[0].engagement_count == 6
    assert mentions[0].post_url == "https://twitter.com/jdoe/status/t1"
    assert mentions[1].author_handle == "@user_u2"
    assert seen[0].headers["Authorization"] == "Bearer tok"


def test_x_no_mentions(settings):
    source = XMentionSource(settings, http=_client({"/2/users/1789/mentions": {"meta": {"result_count": 0}}}))
    assert source.fetch_mentions(_account("twitter")) == []


def test_x_rate_limited(settings):
    def limited(request):
        return httpx.Response(429, json={"title": "Too Many Requests"})

    source = XMentionSource(settings, http=_client({"/2/users/1789/mentions": limited}))
    with pytest.raises(UpstreamFetchError) as exc:
        source.fetch_mentions(_account("twitter"))
    assert "429" in exc.value.details


def test_linkedin_comments(settings):
    source = LinkedInMentionSource(settings, http=_client({
        "/rest/socialActions/urn:li:share:1/comments": {"elements": [
            {"message": {"text": "Congrats team"}, "actor": "urn:li:person:9", "actorName": "Alex",
             "created": {"time": 1714557600000}},
        ]},
    }))

    mentions = source.fetch_mentions(_account("linkedin", account_id="urn:li:share:1"))

    assert mentions[0].author == "Alex"
    assert mentions[0].posted_at == datetime(2024, 5, 1, 10, 0)


def test_registry_lookup(settings):
    registry = default_registry(settings)
    assert registry.platforms == ["facebook", "instagram", "linkedin", "twitter"]
    assert isinstance(registry.for_platform("twitter"), XMentionSource)
    assert registry.for_platform("tiktok") is None
    registry.close()


def test_registry_register_replaces():
    registry = SourceRegistry()
    marker = object()
    registry.register("instagram", lambda: marker)
    assert registry.for_platform("instagram") is marker
