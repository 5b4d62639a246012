"""
LLM-backed social post generation.

Builds one structured prompt from an industry preset (or a free-text custom
industry) and asks the model for exactly ``post_count`` posts as JSON.
"""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from brandpulse.errors import GenerationParseError
from brandpulse.services.anthropic_client import AnthropicClient
from brandpulse.services.llm_output import parse_llm_json
from brandpulse.services.types import GeneratedBatch, GeneratedPostDraft, Platform

logger = logging.getLogger(__name__)

Industry = Literal["beauty", "fitness", "legal", "homeware", "custom"]
Tone = Literal["professional", "casual", "inspirational", "educational"]

INDUSTRY_PRESETS = {
    "beauty": {
        "description": "Beauty, skincare, cosmetics, and wellness",
        "keywords": ["skincare", "beauty", "glow", "self-care", "makeup", "wellness"],
        "tone": "inspirational and empowering",
        "common_hashtags": ["#BeautyTips", "#SkincareRoutine", "#SelfCare", "#GlowingSkin", "#BeautyAddict"],
    },
    "fitness": {
        "description": "Fitness, health, workouts, and nutrition",
        "keywords": ["fitness", "workout", "health", "nutrition", "strength", "wellness"],
        "tone": "motivational and energetic",
        "common_hashtags": ["#FitnessMotivation", "#WorkoutRoutine", "#HealthyLiving", "#FitnessGoals", "#StayActive"],
    },
    "legal": {
        "description": "Legal services, law firm, attorney services",
        "keywords": ["legal", "law", "attorney", "rights", "justice", "consultation"],
        "tone": "professional and trustworthy",
        "common_hashtags": ["#LegalAdvice", "#KnowYourRights", "#LawFirm", "#LegalServices", "#JusticeMatters"],
    },
    "homeware": {
        "description": "Home decor, furniture, interior design, and home improvement",
        "keywords": ["home", "decor", "interior", "design", "furniture", "cozy"],
        "tone": "warm and inviting",
        "common_hashtags": ["#HomeDecor", "#InteriorDesign", "#HomeInspiration", "#CozyHome", "#DecorIdeas"],
    },
}


class GenerationRequest(BaseModel):
    """Content generation parameters."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    industry: Industry
    custom_industry: Optional[str] = None
    platform: Platform = "instagram"
    tone: Tone = "professional"
    post_count: int = Field(default=7, ge=1, le=14)
    include_hashtags: bool = True
    include_cta: bool = True

    @model_validator(mode="after")
    def _custom_needs_description(self):
        if self.industry == "custom" and not (self.custom_industry or "").strip():
            raise ValueError("custom_industry is required when industry is 'custom'")
        return self


def industry_profile(request: GenerationRequest) -> dict:
    if request.industry == "custom":
        return {
            "description": request.custom_industry.strip(),
            "keywords": [],
            "tone": request.tone,
            "common_hashtags": [],
        }
    return INDUSTRY_PRESETS[request.industry]


def build_prompt(request: GenerationRequest) -> str:
    info = industry_profile(request)
    char_limit = "280" if request.platform == "twitter" else "no strict limit, but keep concise"

    lines = [
        f"You are an expert social media content creator. Generate {request.post_count} engaging "
        f"{request.platform} posts for a {info['description']} business.",
        "",
        "Requirements:",
        f"- Platform: {request.platform}",
        f"- Tone: {request.tone}",
        f"- Character limit: {char_limit}",
        "- Each post should be unique and valuable",
        "- Include 3-5 relevant hashtags" if request.include_hashtags else "- Do not include hashtags",
        "- Include a clear call-to-action" if request.include_cta else "- No call-to-action needed",
        "",
        "Industry context:",
        f"- Keywords: {', '.join(info['keywords'])}",
        f"- Tone: {info['tone']}",
    ]
    if info["common_hashtags"]:
        lines.append(f"- Popular hashtags: {', '.join(info['common_hashtags'])}")

    lines += [
        "",
        "For each post, provide:",
        "1. The main content/caption",
        "2. Suggested hashtags (if requested)",
        "3. Call-to-action (if requested)",
        "4. A brief image/visual prompt suggestion",
        "5. Best time to post (morning/afternoon/evening)",
        "6. Estimated engagement level (high/medium/low)",
        "",
        "Generate posts that:",
        "- Are authentic and relatable",
        "- Provide value (educational, entertaining, or inspirational)",
        "- Encourage engagement (questions, polls, storytelling)",
        "- Follow current social media best practices",
        "- Are varied in content type (tips, behind-scenes, customer stories, promotions, etc.)",
        "",
        "Respond ONLY with valid JSON in this exact format:",
        "{",
        '  "posts": [',
        "    {",
        '      "content": "Post caption here...",',
        '      "hashtags": ["hashtag1", "hashtag2"],',
        '      "cta": "Call to action text",',
        '      "imagePrompt": "Description of ideal image",',
        '      "bestTimeToPost": "morning|afternoon|evening",',
        '      "estimatedEngagement": "high|medium|low"',
        "    }",
        "  ]",
        "}",
        "",
        f"Generate {request.post_count} unique, high-quality posts now.",
    ]
    return "\n".join(lines)


class ContentGenerator:
    """Calls the LLM once per request and validates the returned posts."""

    def __init__(self, llm: AnthropicClient, max_tokens: int = 4096):
        self.llm = llm
        self.max_tokens = max_tokens

    def generate(self, request: GenerationRequest) -> List[GeneratedPostDraft]:
        """
        Generate draft posts.

        Raises:
            LLMUnavailable: the API could not be reached or errored
            GenerationParseError: the reply was not the expected JSON shape
        """
        reply = self.llm.complete(build_prompt(request), self.max_tokens)

        outcome = parse_llm_json(reply, GeneratedBatch)
        if not outcome.ok:
            logger.warning(f"Unparseable generation output: {outcome.error}")
            raise GenerationParseError("Failed to parse generated content", details=outcome.error)

        posts = outcome.value.posts
        if len(posts) != request.post_count:
            logger.warning(f"Requested {request.post_count} posts, model returned {len(posts)}")
        return posts
