from typing import List
import logging

from brandpulse.models import SocialAccount
from brandpulse.services.mention_sources import MentionSource, parse_epoch_millis
from brandpulse.services.types import FetchedMention

logger = logging.getLogger(__name__)


class LinkedInMentionSource(MentionSource):
    """Comments on the organization's shares, via the LinkedIn social actions API."""

    platform = "linkedin"

    def fetch_mentions(self, account: SocialAccount) -> List[FetchedMention]:
        headers = {
            "Authorization": f"Bearer {account.access_token}",
            "LinkedIn-Version": self.settings.linkedin_api_version,
            "X-Restli-Protocol-Version": "2.0.0",
        }

        data = self._get_json(
            f"{self.settings.linkedin_api_url}/socialActions/{account.account_id}/comments",
            headers=headers,
        )

        mentions = []
        for element in data.get("elements", []):
            try:
                created = element["created"]
                mentions.append(FetchedMention(
                    content=element["message"]["text"],
                    author=element.get("actorName") or element["actor"],
                    post_url=element.get("permalink") or f"https://www.linkedin.com/feed/update/{account.account_id}",
                    posted_at=parse_epoch_millis(created["time"]),
                    engagement_count=(element.get("likesSummary") or {}).get("totalLikes", 0),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise self._malformed(f"unexpected comment payload: {e}")

        logger.info(f"Retrieved {len(mentions)} comments from LinkedIn for account {account.id}")
        return mentions
