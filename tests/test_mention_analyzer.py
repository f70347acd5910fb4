"""Tests for brand/competitor mention detection and keyword sentiment."""

from app.analysis.mention_analyzer import (
    SENTIMENT_WINDOW,
    analyze_mentions,
    find_occurrences,
    score_sentiment,
)


class TestFindOccurrences:
    def test_case_insensitive(self):
        assert find_occurrences("Acme, ACME and acme", "acme") == [0, 6, 15]

    def test_empty_inputs(self):
        assert find_occurrences("", "acme") == []
        assert find_occurrences("Acme", "") == []

    def test_overlapping_matches(self):
        assert find_occurrences("aaa", "aa") == [0, 1]


class TestBrandMention:
    def test_brand_and_competitor_found(self):
        text = "Acme is great, BetaCorp is okay"
        result = analyze_mentions(text, "Acme", ["BetaCorp"])

        assert result.mentioned is True
        assert result.mention_count == 1
        assert result.position == text.lower().index("acme")
        assert result.position == 0
        assert result.sentiment > 0
        assert len(result.competitor_mentions) == 1
        assert result.competitor_mentions[0].name == "BetaCorp"
        assert result.competitor_mentions[0].count == 1
        assert result.competitor_mentions[0].position == text.index("BetaCorp")

    def test_brand_absent(self):
        result = analyze_mentions("BetaCorp leads the market", "Acme", ["BetaCorp"])

        assert result.mentioned is False
        assert result.mention_count == 0
        assert result.position == -1
        assert result.sentiment == 0.0
        assert [c.name for c in result.competitor_mentions] == ["BetaCorp"]

    def test_multiple_mentions_counted(self):
        result = analyze_mentions("acme, Acme and ACME again", "Acme")
        assert result.mention_count == 3
        assert result.position == 0

    def test_missing_competitors_dropped(self):
        result = analyze_mentions("Acme only", "Acme", ["BetaCorp", "Gamma"])
        assert result.competitor_mentions == []

    def test_none_text(self):
        result = analyze_mentions(None, "Acme", ["BetaCorp"])
        assert result.mentioned is False
        assert result.competitor_mentions == []

    def test_competitor_dict_shape(self):
        result = analyze_mentions("BetaCorp and BetaCorp", "Acme", ["BetaCorp"])
        assert result.competitor_mentions[0].to_dict() == {"name": "BetaCorp", "count": 2, "position": 0}


class TestSentiment:
    def test_positive_words(self):
        text = "Acme is an excellent and reliable choice"
        assert score_sentiment(text, "Acme", 0) == 0.2

    def test_negative_words(self):
        text = "Acme has poor support and a terrible UI"
        assert score_sentiment(text, "Acme", 0) == -0.2

    def test_mixed_words_cancel(self):
        assert score_sentiment("Acme is great but bad at billing", "Acme", 0) == 0.0

    def test_neutral_text(self):
        assert analyze_mentions("Acme is a CRM vendor", "Acme").sentiment == 0.0

    def test_words_outside_window_ignored(self):
        text = "Acme" + " " * (SENTIMENT_WINDOW + 10) + "excellent"
        assert score_sentiment(text, "Acme", 0) == 0.0

    def test_clamped_to_one(self):
        text = "Acme " + " ".join(
            [
                "excellent great amazing outstanding superior best leading innovative",
                "reliable trusted quality effective successful popular recommend",
            ]
        )
        assert score_sentiment(text, "Acme", 0) == 1.0

    def test_each_word_counted_once(self):
        assert score_sentiment("Acme great great great", "Acme", 0) == 0.1
