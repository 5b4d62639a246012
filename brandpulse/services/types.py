from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional, List
from datetime import datetime

Platform = Literal["instagram", "facebook", "twitter", "linkedin"]
SentimentLabel = Literal["positive", "negative", "neutral"]
EngagementLevel = Literal["high", "medium", "low"]


def _require_number(value):
    # bool is an int subclass; "7" is not a number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    return float(value)


class FetchedMention(BaseModel):
    """A mention as normalized by a platform adapter, before persistence."""
    content: str
    author: str
    author_handle: Optional[str] = None
    post_url: Optional[str] = None
    posted_at: datetime
    engagement_count: int = 0


class SentimentResult(BaseModel):
    score: float = Field(ge=0, le=10)
    label: SentimentLabel
    reasoning: str
    confidence: float = Field(ge=0, le=1)

    @field_validator("score", "confidence", mode="before")
    @classmethod
    def _numeric(cls, value):
        return _require_number(value)


class GeneratedPostDraft(BaseModel):
    content: str
    hashtags: List[str] = []
    cta: Optional[str] = None
    imagePrompt: Optional[str] = None
    bestTimeToPost: str = "afternoon"
    estimatedEngagement: EngagementLevel = "medium"

    @field_validator("hashtags", mode="before")
    @classmethod
    def _hashtags_default(cls, value):
        return [] if value is None else value

    @field_validator("bestTimeToPost", mode="before")
    @classmethod
    def _time_default(cls, value):
        return value or "afternoon"

    @field_validator("estimatedEngagement", mode="before")
    @classmethod
    def _engagement_default(cls, value):
        return value or "medium"


class GeneratedBatch(BaseModel):
    posts: List[GeneratedPostDraft]
