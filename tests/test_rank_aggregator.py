"""Tests for mention totals, rank position and sentiment buckets."""

import pytest

from app.models import BrandPrompt, DailyReport
from app.services.rank_aggregator import aggregate_rank_and_sentiment, prompt_rank, sentiment_bucket
from tests.fakes import make_result


class TestPromptRank:
    def test_brand_first(self):
        assert prompt_rank(0, [{"name": "BetaCorp", "count": 1, "position": 20}]) == 1

    def test_brand_after_competitors(self):
        comps = [{"name": "BetaCorp", "position": 5}, {"name": "Gamma", "position": 0}]
        assert prompt_rank(30, comps) == 3

    def test_no_competitor_positions(self):
        assert prompt_rank(5, []) is None
        assert prompt_rank(5, [{"name": "BetaCorp", "position": None}]) is None

    def test_brand_missing(self):
        assert prompt_rank(None, [{"name": "BetaCorp", "position": 5}]) is None
        assert prompt_rank(-1, [{"name": "BetaCorp", "position": 5}]) is None


class TestSentimentBucket:
    @pytest.mark.parametrize(
        "score,bucket",
        [(0.3, "positive"), (0.1, "neutral"), (0.0, "neutral"), (None, "neutral"), (-0.1, "neutral"), (-0.2, "negative")],
    )
    def test_thresholds(self, score, bucket):
        assert sentiment_bucket(score) == bucket


@pytest.mark.asyncio
async def test_aggregate_rank_and_sentiment(db, brand, report, prompts):
    second = BrandPrompt(brand_id=brand.id, raw_prompt="Which CRM integrates with Slack?")
    db.add(second)
    await db.flush()
    db.add_all(
        [
            make_result(
                report,
                prompts[0],
                brand_mentioned=True,
                brand_mention_count=1,
                brand_position=0,
                competitor_mentions=[{"name": "BetaCorp", "count": 1, "position": 20}],
                sentiment_score=0.3,
            ),
            make_result(
                report,
                second,
                brand_mentioned=True,
                brand_mention_count=2,
                brand_position=30,
                competitor_mentions=[{"name": "BetaCorp", "count": 1, "position": 5}],
                sentiment_score=-0.2,
            ),
            make_result(report, prompts[0], provider="google_ai_overview", status="no_result"),
        ]
    )
    await db.commit()

    result = await aggregate_rank_and_sentiment(db, report.id)

    assert result["total_mentions"] == 2
    assert result["average_position"] == 1.5
    assert result["sentiment"] == {"positive": 1, "neutral": 0, "negative": 1}
    assert result["completed_prompts"] == 2

    refreshed = await db.get(DailyReport, report.id)
    assert refreshed.total_mentions == 2
    assert refreshed.average_position == 1.5
    assert refreshed.sentiment_positive == 1
    assert refreshed.sentiment_negative == 1


@pytest.mark.asyncio
async def test_no_results_leaves_position_empty(db, report):
    result = await aggregate_rank_and_sentiment(db, report.id)
    assert result["total_mentions"] == 0
    assert result["average_position"] is None
    assert report.average_position is None
