from typing import List
import logging

from brandpulse.models import SocialAccount
from brandpulse.services.mention_sources import MentionSource, parse_timestamp
from brandpulse.services.types import FetchedMention

logger = logging.getLogger(__name__)

MEDIA_LIMIT = 25


class InstagramMentionSource(MentionSource):
    """Comments on the account's recent media, via the Instagram Graph API."""

    platform = "instagram"

    def fetch_mentions(self, account: SocialAccount) -> List[FetchedMention]:
        base = self.settings.instagram_graph_url
        token = account.access_token

        media = self._get_json(
            f"{base}/{account.account_id}/media",
            params={"fields": "id,caption,timestamp,permalink", "limit": MEDIA_LIMIT, "access_token": token},
        )

        mentions = []
        for item in media.get("data", []):
            media_id = item.get("id")
            if not media_id:
                raise self._malformed("media item without id")
            permalink = item.get("permalink") or f"https://instagram.com/p/{media_id}"

            comments = self._get_json(
                f"{base}/{media_id}/comments",
                params={"fields": "id,text,username,timestamp,like_count", "access_token": token},
            )

            for comment in comments.get("data", []):
                try:
                    username = comment["username"]
                    mentions.append(FetchedMention(
                        content=comment["text"],
                        author=username,
                        author_handle=f"@{username}",
                        post_url=permalink,
                        posted_at=parse_timestamp(comment["timestamp"]),
                        engagement_count=comment.get("like_count") or 0,
                    ))
                except (KeyError, ValueError) as e:
                    raise self._malformed(f"unexpected comment payload: {e}")

        logger.info(f"Retrieved {len(mentions)} comments from Instagram for account {account.id}")
        return mentions
