"""Tests for quota-gated content generation."""
from datetime import date

import pytest

from brandpulse.errors import AccessDenied, QuotaExceeded
from brandpulse.orchestration.generation import current_usage, generate_posts, list_generated, month_start
from brandpulse.services.content_generator import GenerationRequest
from brandpulse.services.types import GeneratedPostDraft
from brandpulse.storage.tenant_store import TenantStore

TODAY = date(2024, 5, 15)


def test_generate_persists_drafts(store, generator):
    result = generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=3), today=TODAY)

    assert len(result["posts"]) == 3
    assert all(p["status"] == "draft" for p in result["posts"])
    assert result["posts"][0]["hashtags"] == ["#one", "#two"]
    assert result["usage"] == {"current": 3, "limit": 50, "remaining": 47}
    assert current_usage(store, TODAY) == 3
    assert store.get_usage(date(2024, 5, 1)).api_calls == 1


def test_usage_accumulates_within_month(store, generator):
    generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7), today=TODAY)
    result = generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7),
                            today=date(2024, 5, 30))

    assert result["usage"]["current"] == 14
    assert store.get_usage(month_start(TODAY)).api_calls == 2


def test_new_month_resets_usage(store, generator):
    generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7), today=TODAY)
    result = generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7),
                            today=date(2024, 6, 1))
    assert result["usage"]["current"] == 7


def test_over_quota_makes_no_generator_call(store, generator):
    """A request that would exceed the limit is rejected before the LLM is called."""
    store.add_usage(month_start(TODAY), posts_generated=45)
    store.commit()

    with pytest.raises(QuotaExceeded) as exc:
        generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7), today=TODAY)

    assert generator.calls == []
    assert exc.value.status_code == 429
    assert exc.value.to_dict() == {
        "error": "Monthly post generation limit reached", "usage": 45, "limit": 50, "tier": "starter",
    }
    assert current_usage(store, TODAY) == 45


def test_exactly_at_limit_allowed(store, generator):
    store.add_usage(month_start(TODAY), posts_generated=43)
    store.commit()

    result = generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=7), today=TODAY)

    assert result["usage"]["remaining"] == 0


def test_professional_limit(db, make_business, generator):
    store = TenantStore(db, make_business(tier="professional").id)
    store.add_usage(month_start(TODAY), posts_generated=190)
    store.commit()

    result = generate_posts(store, generator, GenerationRequest(industry="legal", post_count=10), today=TODAY)

    assert result["usage"] == {"current": 200, "limit": 200, "remaining": 0}


@pytest.mark.parametrize("status", ["inactive", "past_due", "canceled"])
def test_subscription_required(db, make_business, generator, status):
    store = TenantStore(db, make_business(status=status).id)
    with pytest.raises(AccessDenied):
        generate_posts(store, generator, GenerationRequest(industry="beauty"), today=TODAY)
    assert generator.calls == []


def test_trialing_allowed(db, make_business, generator):
    store = TenantStore(db, make_business(status="trialing").id)
    result = generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=1), today=TODAY)
    assert len(result["posts"]) == 1


def test_no_tier_has_zero_quota(db, make_business, generator):
    store = TenantStore(db, make_business(tier=None).id)
    with pytest.raises(QuotaExceeded) as exc:
        generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=1), today=TODAY)
    assert exc.value.context["limit"] == 0


def test_usage_charged_for_requested_count(store):
    """Usage grows by post_count even when fewer posts come back."""
    class ShortGenerator:
        def generate(self, request):
            return [GeneratedPostDraft(content="only one")]

    result = generate_posts(store, ShortGenerator(), GenerationRequest(industry="beauty", post_count=5), today=TODAY)

    assert len(result["posts"]) == 1
    assert result["usage"]["current"] == 5


def test_list_generated(store, generator):
    generate_posts(store, generator, GenerationRequest(industry="beauty", post_count=2), today=TODAY)
    assert len(list_generated(store)) == 2
    assert list_generated(store, status="published") == []
