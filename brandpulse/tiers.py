"""Subscription tier limits."""

from typing import Optional

# Monthly generated posts per tier
GENERATION_LIMITS = {
    "starter": 50,
    "professional": 200,
}

# Pending (status=scheduled) posts per tier
SCHEDULING_LIMITS = {
    "starter": 30,
    "professional": 100,
}


def generation_limit(tier: Optional[str]) -> int:
    return GENERATION_LIMITS.get(tier or "", 0)


def scheduling_limit(tier: Optional[str]) -> int:
    return SCHEDULING_LIMITS.get(tier or "", 0)
