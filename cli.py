#!/usr/bin/env python3
"""
BrandPulse CLI Tool

Try the classifier and the post generator without running the web server.
"""

import argparse
import sys
from brandpulse.config import get_settings
from brandpulse.errors import BrandPulseError
from brandpulse.logging_config import setup_logging, get_logger
from brandpulse.services.anthropic_client import AnthropicClient
from brandpulse.services.content_generator import ContentGenerator, GenerationRequest, INDUSTRY_PRESETS
from brandpulse.services.sentiment_client import SentimentClassifier

logger = get_logger(__name__)


def classify_text(text: str) -> int:
    """Score a single piece of text and print the result."""
    settings = get_settings()
    llm = AnthropicClient(settings)
    try:
        result = SentimentClassifier(llm, max_tokens=settings.classifier_max_tokens).classify(text)
    except BrandPulseError as e:
        logger.error(f"Classification failed: {e.message}")
        return 1
    finally:
        llm.close()

    print(f"\n{'='*60}")
    print("SENTIMENT ANALYSIS")
    print(f"{'='*60}")
    print(f"Text:       {text}")
    print(f"Label:      {result.label}")
    print(f"Score:      {result.score:.1f}/10")
    print(f"Confidence: {result.confidence:.2f}")
    print(f"Reasoning:  {result.reasoning}")
    print(f"{'='*60}\n")
    return 0


def generate_drafts(industry: str, count: int, platform: str, tone: str, custom_industry: str = None) -> int:
    """Generate posts and print them. Nothing is stored and no quota is used."""
    settings = get_settings()
    try:
        request = GenerationRequest(
            industry=industry,
            custom_industry=custom_industry,
            platform=platform,
            tone=tone,
            post_count=count,
        )
    except ValueError as e:
        logger.error(f"Invalid generation request: {e}")
        return 2

    llm = AnthropicClient(settings)
    try:
        drafts = ContentGenerator(llm, max_tokens=settings.generator_max_tokens).generate(request)
    except BrandPulseError as e:
        logger.error(f"Generation failed: {e.message}")
        return 1
    finally:
        llm.close()

    for i, draft in enumerate(drafts, 1):
        print(f"\n--- Post {i}/{len(drafts)} ({draft.bestTimeToPost}, {draft.estimatedEngagement} engagement) ---")
        print(draft.content)
        if draft.hashtags:
            print(" ".join(draft.hashtags))
        if draft.cta:
            print(f"CTA: {draft.cta}")
    print()
    return 0


def create_tables() -> int:
    from brandpulse.database import init_db
    init_db()
    print("Database tables created")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="BrandPulse CLI - classify mentions and draft posts locally",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score one mention
  python cli.py classify "Loved the new menu, staff were lovely!"

  # Draft three fitness posts
  python cli.py generate --industry fitness --count 3

  # Create database tables
  python cli.py init-db
        """
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    commands = parser.add_subparsers(dest="command")

    classify = commands.add_parser("classify", help="Score the sentiment of a text")
    classify.add_argument("text", help="Text to analyze")

    generate = commands.add_parser("generate", help="Draft social posts")
    generate.add_argument("--industry", default="beauty", choices=sorted(INDUSTRY_PRESETS) + ["custom"])
    generate.add_argument("--custom-industry", help="Business description when --industry custom")
    generate.add_argument("--count", type=int, default=3, help="Number of posts (1-14)")
    generate.add_argument("--platform", default="instagram",
                          choices=["instagram", "facebook", "twitter", "linkedin"])
    generate.add_argument("--tone", default="professional",
                          choices=["professional", "casual", "inspirational", "educational"])

    commands.add_parser("init-db", help="Create database tables")

    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    if args.command == "classify":
        return classify_text(args.text)
    if args.command == "generate":
        return generate_drafts(args.industry, args.count, args.platform, args.tone, args.custom_industry)
    if args.command == "init-db":
        return create_tables()

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
