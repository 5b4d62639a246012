"""
Batch sentiment analysis.

Three modes, one per call: a caller-supplied list of mention ids, a single ad
hoc string (no persistence), or the next batch of unscored mentions. Sentiment
is attached once; a scored mention is reported as a cache hit and never sent
to the classifier again. A failure on one mention is recorded on that item and
the rest of the batch carries on. Nothing is retried.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from brandpulse.config import Settings
from brandpulse.errors import BrandPulseError, ValidationError
from brandpulse.models import Mention
from brandpulse.orchestration.analytics import record_sentiment
from brandpulse.services.sentiment_client import SentimentClassifier
from brandpulse.services.types import SentimentResult
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50
NOT_FOUND_MESSAGE = "Mention not found or access denied"


@dataclass
class PacingPolicy:
    """
    Outbound pacing for classifier calls.

    ``max_in_flight`` calls are dispatched together, then the policy waits
    ``delay_seconds`` before the next window. Defaults to one call per 100 ms.
    """
    delay_seconds: float = 0.1
    max_in_flight: int = 1
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "PacingPolicy":
        return cls(
            delay_seconds=settings.analysis_delay_ms / 1000,
            max_in_flight=max(1, settings.analysis_max_in_flight),
        )

    def windows(self, items: Sequence) -> List[Sequence]:
        size = max(1, self.max_in_flight)
        return [items[i:i + size] for i in range(0, len(items), size)]

    def wait(self):
        if self.delay_seconds > 0:
            self.sleep(self.delay_seconds)


@dataclass
class ItemResult:
    mention_id: int
    success: bool
    cached: bool = False
    sentiment: Optional[Dict] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        body = {"mention_id": self.mention_id, "success": self.success}
        if self.success:
            body["cached"] = self.cached
            body["sentiment"] = self.sentiment
        else:
            body["error"] = self.error
        return body


@dataclass
class AnalysisReport:
    results: List[ItemResult] = field(default_factory=list)
    remaining: int = 0

    @property
    def analyzed(self) -> int:
        return sum(1 for r in self.results if r.success and not r.cached)

    @property
    def cached(self) -> int:
        return sum(1 for r in self.results if r.success and r.cached)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "analyzed": self.analyzed,
            "cached": self.cached,
            "failed": self.failed,
            "remaining": self.remaining,
        }


class SentimentAnalyzer:

    def __init__(self, store: TenantStore, classifier: SentimentClassifier,
                 pacing: Optional[PacingPolicy] = None):
        self.store = store
        self.classifier = classifier
        self.pacing = pacing or PacingPolicy()

    def analyze_text(self, text: str) -> SentimentResult:
        """Classify an ad hoc string. Errors propagate to the caller."""
        if not text or not text.strip():
            raise ValidationError("content must not be empty")
        return self.classifier.classify(text)

    def analyze_ids(self, mention_ids: Sequence[int]) -> AnalysisReport:
        """Classify the given mentions, returning cache hits for scored ones."""
        outcomes: Dict[int, ItemResult] = {}
        pending: List[Mention] = []

        for mention_id in mention_ids:
            if mention_id in outcomes or any(m.id == mention_id for m in pending):
                continue
            mention = self.store.get_mention(mention_id)
            if mention is None:
                outcomes[mention_id] = ItemResult(mention_id, success=False, error=NOT_FOUND_MESSAGE)
            elif mention.is_scored:
                outcomes[mention_id] = ItemResult(
                    mention_id, success=True, cached=True, sentiment=self._stored_sentiment(mention),
                )
            else:
                pending.append(mention)

        for item in self._classify_and_store(pending):
            outcomes[item.mention_id] = item

        ordered = []
        seen = set()
        for mention_id in mention_ids:
            if mention_id not in seen:
                seen.add(mention_id)
                ordered.append(outcomes[mention_id])
        return self._report(ordered)

    def analyze_unscored(self, batch_size: int = 10) -> AnalysisReport:
        """Classify up to ``batch_size`` unscored mentions in store order."""
        if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
            raise ValidationError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

        batch = self.store.list_unscored(batch_size)
        if not batch:
            return self._report([])

        logger.info(f"Analyzing {len(batch)} unscored mentions for tenant {self.store.tenant_id}")
        return self._report(self._classify_and_store(batch))

    def status(self) -> Dict:
        return analysis_status(self.store)

    def _classify_and_store(self, mentions: Sequence[Mention]) -> List[ItemResult]:
        results: List[ItemResult] = []
        windows = self.pacing.windows(list(mentions))

        for index, window in enumerate(windows):
            if index:
                self.pacing.wait()
            for mention, outcome in zip(window, self._classify_window(window)):
                results.append(self._persist(mention, outcome))
        return results

    def _classify_window(self, window: Sequence[Mention]) -> List:
        texts = [m.content for m in window]
        if len(texts) == 1:
            return [self._safe_classify(texts[0])]
        with ThreadPoolExecutor(max_workers=len(texts)) as pool:
            return list(pool.map(self._safe_classify, texts))

    def _safe_classify(self, text: str):
        try:
            return self.classifier.classify(text)
        except BrandPulseError as e:
            return e
        except Exception as e:
            logger.error(f"Unexpected classifier failure: {e}", exc_info=True)
            return e

    def _persist(self, mention: Mention, outcome) -> ItemResult:
        mention_id = mention.id
        if isinstance(outcome, Exception):
            logger.warning(f"Sentiment analysis failed for mention {mention_id}: {outcome}")
            return ItemResult(mention_id, success=False, error=_error_message(outcome))

        try:
            record_sentiment(self.store, mention, outcome)
        except Exception as e:
            self.store.rollback()
            logger.error(f"Failed to store sentiment for mention {mention_id}: {e}")
            return ItemResult(mention_id, success=False, error="Failed to store sentiment")

        return ItemResult(mention_id, success=True, cached=False, sentiment=outcome.model_dump())

    def _report(self, results: List[ItemResult]) -> AnalysisReport:
        report = AnalysisReport(results=results)
        # Unscored mentions this call did not attempt
        attempted_failures = sum(1 for r in results if not r.success and r.error != NOT_FOUND_MESSAGE)
        report.remaining = max(0, self.store.count_mentions(scored=False) - attempted_failures)
        return report

    @staticmethod
    def _stored_sentiment(mention: Mention) -> Dict:
        return {
            "score": mention.sentiment_score,
            "label": mention.sentiment_label,
            "reasoning": mention.sentiment_reasoning,
        }


def analysis_status(store: TenantStore) -> Dict:
    total = store.count_mentions()
    analyzed = store.count_mentions(scored=True)
    return {
        "total": total,
        "analyzed": analyzed,
        "pending": total - analyzed,
        "percentage_complete": (analyzed / total) * 100 if total else 0.0,
    }


def _error_message(error: Exception) -> str:
    if isinstance(error, BrandPulseError):
        if error.details:
            return f"{error.message}: {error.details}"
        return error.message
    return "Analysis failed"
