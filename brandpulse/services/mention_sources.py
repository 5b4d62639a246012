"""
Mention sources: one adapter per social platform.

Each adapter turns a connected account's credentials into normalized
``FetchedMention`` records. Any failure to fetch raises ``UpstreamFetchError``
so the caller can refuse to commit a partial result.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx

from brandpulse.clock import as_naive_utc
from brandpulse.config import Settings, get_settings
from brandpulse.errors import UpstreamFetchError
from brandpulse.models import SocialAccount
from brandpulse.services.types import FetchedMention

logger = logging.getLogger(__name__)


class MentionSource(ABC):
    """Fetch capability for a single platform."""

    platform: str = ""

    def __init__(self, settings: Optional[Settings] = None, http: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self._http = http or httpx.Client(timeout=self.settings.http_timeout_seconds)

    @abstractmethod
    def fetch_mentions(self, account: SocialAccount) -> List[FetchedMention]:
        """Return every mention currently visible for ``account``."""

    def _get_json(self, url: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> dict:
        try:
            response = self._http.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{self.platform} API error: {e.response.status_code}")
            raise UpstreamFetchError(
                f"Failed to fetch mentions from {self.platform}",
                details=f"{self.platform} API error: {e.response.status_code}",
            )
        except httpx.HTTPError as e:
            logger.error(f"{self.platform} API request failed: {e}")
            raise UpstreamFetchError(
                f"Failed to fetch mentions from {self.platform}",
                details=f"{e.__class__.__name__}",
            )
        except ValueError:
            raise UpstreamFetchError(
                f"Failed to fetch mentions from {self.platform}",
                details="response body is not JSON",
            )

    def _malformed(self, detail: str) -> UpstreamFetchError:
        return UpstreamFetchError(f"Failed to fetch mentions from {self.platform}", details=detail)

    def close(self):
        self._http.close()


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 timestamps as returned by the Graph and X APIs."""
    text = value.replace("Z", "+00:00")
    # Graph API uses +0000 without a colon
    if len(text) > 5 and text[-5] in "+-" and text[-3] != ":":
        text = f"{text[:-2]}:{text[-2:]}"
    return as_naive_utc(datetime.fromisoformat(text))


def parse_epoch_millis(value: int) -> datetime:
    return as_naive_utc(datetime.fromtimestamp(value / 1000, tz=timezone.utc))


SourceFactory = Callable[[], MentionSource]


class SourceRegistry:
    """Maps a platform tag to the adapter that serves it."""

    def __init__(self, factories: Optional[Dict[str, SourceFactory]] = None):
        self._factories: Dict[str, SourceFactory] = dict(factories or {})
        self._instances: Dict[str, MentionSource] = {}

    def register(self, platform: str, factory: SourceFactory) -> None:
        self._factories[platform] = factory
        self._instances.pop(platform, None)

    def for_platform(self, platform: str) -> Optional[MentionSource]:
        if platform not in self._instances:
            factory = self._factories.get(platform)
            if factory is None:
                return None
            self._instances[platform] = factory()
        return self._instances[platform]

    @property
    def platforms(self) -> List[str]:
        return sorted(self._factories)

    def close(self):
        for source in self._instances.values():
            source.close()
        self._instances.clear()


def default_registry(settings: Optional[Settings] = None) -> SourceRegistry:
    from brandpulse.services.facebook_client import FacebookMentionSource
    from brandpulse.services.instagram_client import InstagramMentionSource
    from brandpulse.services.linkedin_client import LinkedInMentionSource
    from brandpulse.services.x_client import XMentionSource

    settings = settings or get_settings()
    return SourceRegistry({
        "instagram": lambda: InstagramMentionSource(settings),
        "facebook": lambda: FacebookMentionSource(settings),
        "twitter": lambda: XMentionSource(settings),
        "linkedin": lambda: LinkedInMentionSource(settings),
    })
