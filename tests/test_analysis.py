"""Tests for batch sentiment analysis."""
from datetime import datetime

import pytest

from brandpulse.config import Settings
from brandpulse.errors import ValidationError
from brandpulse.orchestration.analysis import (
    NOT_FOUND_MESSAGE, PacingPolicy, SentimentAnalyzer, analysis_status,
)
from brandpulse.services.types import FetchedMention
from brandpulse.storage.tenant_store import TenantStore


@pytest.fixture
def analyzer(store, classifier, pacing):
    policy, _ = pacing
    return SentimentAnalyzer(store, classifier, policy)


class TestUnscoredBatch:

    def test_batch_of_ten_over_fifteen(self, analyzer, add_mentions, store):
        """A batch of 10 over 15 unscored mentions returns 10 results and leaves at most 5."""
        add_mentions(15)

        report = analyzer.analyze_unscored(batch_size=10)

        assert len(report.results) == 10
        assert report.analyzed == 10
        assert report.remaining <= 5
        assert report.remaining == 5
        assert store.count_mentions(scored=True) == 10

    def test_store_order(self, analyzer, add_mentions, classifier):
        mentions = add_mentions(4)
        analyzer.analyze_unscored(batch_size=2)
        assert classifier.calls == [mentions[0].content, mentions[1].content]

    def test_empty(self, analyzer, classifier):
        report = analyzer.analyze_unscored()
        assert report.to_dict() == {"results": [], "analyzed": 0, "cached": 0, "failed": 0, "remaining": 0}
        assert classifier.calls == []

    @pytest.mark.parametrize("size", [0, 51])
    def test_batch_size_bounds(self, analyzer, size):
        with pytest.raises(ValidationError):
            analyzer.analyze_unscored(batch_size=size)

    def test_failure_does_not_abort_siblings(self, analyzer, add_mentions, store):
        add_mentions(2, prefix="ok")
        add_mentions(1, prefix="FAIL")
        add_mentions(2, prefix="also ok")

        report = analyzer.analyze_unscored(batch_size=10)

        assert (report.analyzed, report.failed) == (4, 1)
        failed = [r for r in report.results if not r.success][0]
        assert failed.error == "LLM API error: 500"
        # The failed mention stays unscored but was attempted
        assert store.count_mentions(scored=False) == 1
        assert report.remaining == 0

    def test_pacing_between_calls(self, analyzer, add_mentions, pacing):
        _, sleeps = pacing
        add_mentions(3)
        analyzer.analyze_unscored(batch_size=3)
        assert sleeps == [0.1, 0.1]


class TestMentionIds:

    def test_scores_and_persists(self, analyzer, add_mentions, store):
        mention = add_mentions(1, prefix="I love it")[0]

        report = analyzer.analyze_ids([mention.id])

        item = report.results[0]
        assert item.success and not item.cached
        assert item.sentiment["label"] == "positive"
        assert store.get_mention(mention.id).sentiment_score == 9

    def test_reanalysis_is_cached(self, analyzer, add_mentions, store, classifier):
        """A scored mention is never sent to the classifier again."""
        mention = add_mentions(1, prefix="I love it")[0]
        analyzer.analyze_ids([mention.id])
        classifier.calls.clear()

        report = analyzer.analyze_ids([mention.id])

        assert classifier.calls == []
        assert report.cached == 1
        assert report.results[0].sentiment == {"score": 9, "label": "positive", "reasoning": "enthusiastic"}
        assert store.get_mention(mention.id).sentiment_score == 9

    def test_unknown_id(self, analyzer):
        report = analyzer.analyze_ids([424242])
        assert report.results[0].to_dict() == {"mention_id": 424242, "success": False, "error": NOT_FOUND_MESSAGE}

    def test_foreign_mention(self, db, analyzer, classifier, make_business, make_account):
        other_business = make_business()
        other_store = TenantStore(db, other_business.id)
        other_account = make_account(other_business)
        foreign = other_store.add_mention(other_account, FetchedMention(
            content="someone else's", author="x", posted_at=datetime(2024, 5, 1)))
        other_store.commit()

        report = analyzer.analyze_ids([foreign.id])

        assert report.results[0].error == NOT_FOUND_MESSAGE
        assert classifier.calls == []

    def test_duplicate_ids_classified_once(self, analyzer, add_mentions, classifier):
        mention = add_mentions(1)[0]
        report = analyzer.analyze_ids([mention.id, mention.id])
        assert len(report.results) == 1
        assert len(classifier.calls) == 1

    def test_mixed_outcomes_keep_order(self, analyzer, add_mentions):
        first, second = add_mentions(2)
        analyzer.analyze_ids([first.id])

        report = analyzer.analyze_ids([999, second.id, first.id])

        assert [r.mention_id for r in report.results] == [999, second.id, first.id]
        assert (report.failed, report.analyzed, report.cached) == (1, 1, 1)


class TestAdHocText:

    def test_not_persisted(self, analyzer, store):
        result = analyzer.analyze_text("I hate waiting")
        assert result.label == "negative"
        assert store.count_mentions() == 0

    def test_empty_text(self, analyzer):
        with pytest.raises(ValidationError):
            analyzer.analyze_text("   ")


def test_status(analyzer, add_mentions, store):
    add_mentions(4)
    analyzer.analyze_unscored(batch_size=1)

    assert analysis_status(store) == {"total": 4, "analyzed": 1, "pending": 3, "percentage_complete": 25.0}


def test_status_no_mentions(store):
    assert analysis_status(store)["percentage_complete"] == 0.0


def test_concurrent_window(store, add_mentions, classifier):
    """With max_in_flight > 1 calls go out in windows and all results persist."""
    sleeps = []
    policy = PacingPolicy(delay_seconds=0.2, max_in_flight=3, sleep=sleeps.append)
    add_mentions(5)

    report = SentimentAnalyzer(store, classifier, policy).analyze_unscored(batch_size=5)

    assert report.analyzed == 5
    assert sleeps == [0.2]


def test_pacing_from_settings():
    policy = PacingPolicy.from_settings(Settings(analysis_delay_ms=250, analysis_max_in_flight=0))
    assert policy.delay_seconds == 0.25
    assert policy.max_in_flight == 1
