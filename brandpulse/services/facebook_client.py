from typing import List
import logging

from brandpulse.models import SocialAccount
from brandpulse.services.mention_sources import MentionSource, parse_timestamp
from brandpulse.services.types import FetchedMention

logger = logging.getLogger(__name__)

FEED_LIMIT = 25


class FacebookMentionSource(MentionSource):
    """Comments on the page feed, via the Facebook Graph API."""

    platform = "facebook"

    def fetch_mentions(self, account: SocialAccount) -> List[FetchedMention]:
        base = self.settings.facebook_graph_url
        token = account.access_token

        feed = self._get_json(
            f"{base}/{account.account_id}/feed",
            params={"fields": "id,permalink_url,created_time", "limit": FEED_LIMIT, "access_token": token},
        )

        mentions = []
        for post in feed.get("data", []):
            post_id = post.get("id")
            if not post_id:
                raise self._malformed("feed item without id")
            permalink = post.get("permalink_url") or f"https://facebook.com/{post_id}"

            comments = self._get_json(
                f"{base}/{post_id}/comments",
                params={"fields": "id,message,from,created_time,like_count", "access_token": token},
            )

            for comment in comments.get("data", []):
                try:
                    sender = comment.get("from") or {}
                    mentions.append(FetchedMention(
                        content=comment["message"],
                        author=sender.get("name") or "Facebook user",
                        post_url=permalink,
                        posted_at=parse_timestamp(comment["created_time"]),
                        engagement_count=comment.get("like_count") or 0,
                    ))
                except (KeyError, ValueError) as e:
                    raise self._malformed(f"unexpected comment payload: {e}")

        logger.info(f"Retrieved {len(mentions)} comments from Facebook for account {account.id}")
        return mentions
