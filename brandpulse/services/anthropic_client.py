"""
Thin client for the Anthropic Messages API.

Shared transport for the sentiment classifier and the content generator. One
call sends one user prompt and returns the concatenated text blocks of the
reply. No retries are performed here.
"""

import logging
from typing import Optional

import httpx

from brandpulse.config import Settings, get_settings
from brandpulse.errors import UpstreamError

logger = logging.getLogger(__name__)


class LLMUnavailable(UpstreamError):
    """Transport failure, non-2xx status or missing credentials."""
    status_code = 503


class AnthropicClient:

    def __init__(self, settings: Optional[Settings] = None, http: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self._http = http or httpx.Client(timeout=self.settings.http_timeout_seconds)

    def complete(self, prompt: str, max_tokens: int) -> str:
        if not self.settings.anthropic_api_key:
            raise LLMUnavailable("ANTHROPIC_API_KEY is not configured")

        headers = {
            "content-type": "application/json",
            "x-api-key": self.settings.anthropic_api_key,
            "anthropic-version": self.settings.anthropic_version,
        }
        body = {
            "model": self.settings.anthropic_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = self._http.post(self.settings.anthropic_api_url, headers=headers, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Anthropic API error: {e.response.status_code}")
            raise LLMUnavailable(f"LLM API error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Anthropic API request failed: {e}")
            raise LLMUnavailable(f"LLM API request failed: {e.__class__.__name__}")
        except ValueError:
            raise LLMUnavailable("LLM API returned a non-JSON body")

        blocks = data.get("content") or []
        return "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text")

    def close(self):
        self._http.close()
