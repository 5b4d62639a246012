from typing import List
import logging

from brandpulse.models import SocialAccount
from brandpulse.services.mention_sources import MentionSource, parse_timestamp
from brandpulse.services.types import FetchedMention

logger = logging.getLogger(__name__)

MAX_PAGES = 5


class XMentionSource(MentionSource):
    """
    Mentions of the connected user via X (Twitter) API v2.

    Follows ``next_token`` pagination for at most ``MAX_PAGES`` pages.
    """

    platform = "twitter"

    def fetch_mentions(self, account: SocialAccount) -> List[FetchedMention]:
        headers = {
            "Authorization": f"Bearer {account.access_token}",
            "User-Agent": "brandpulse/1.0"
        }

        mentions = []
        next_token = None

        for _ in range(MAX_PAGES):
            params = {
                "tweet.fields": "created_at,public_metrics,author_id",
                "user.fields": "username,name",
                "expansions": "author_id",
                "max_results": 100,
            }
            if next_token:
                params["pagination_token"] = next_token

            data = self._get_json(
                f"{self.settings.x_api_url}/users/{account.account_id}/mentions",
                params=params,
                headers=headers,
            )

            # No tweets found
            if "data" not in data:
                break

            # Build user lookup map
            users_by_id = {u["id"]: u for u in data.get("includes", {}).get("users", [])}

            for tweet in data["data"]:
                try:
                    tweet_id = tweet["id"]
                    author_id = tweet.get("author_id", "")
                    user = users_by_id.get(author_id, {})
                    username = user.get("username", f"user_{author_id}")
                    metrics = tweet.get("public_metrics", {})

                    mentions.append(FetchedMention(
                        content=tweet["text"],
                        author=user.get("name") or username,
                        author_handle=f"@{username}",
                        post_url=f"https://twitter.com/{username}/status/{tweet_id}",
                        posted_at=parse_timestamp(tweet["created_at"]),
                        engagement_count=(
                            (metrics.get("like_count") or 0)
                            + (metrics.get("reply_count") or 0)
                            + (metrics.get("retweet_count") or 0)
                        ),
                    ))
                except (KeyError, ValueError) as e:
                    raise self._malformed(f"unexpected tweet payload: {e}")

            # Check for pagination
            next_token = data.get("meta", {}).get("next_token")
            if not next_token:
                break

        logger.info(f"Retrieved {len(mentions)} mentions from X for account {account.id}")
        return mentions
