"""Tests for composite score segment classification."""

import pytest

from rfm_audit.foundation.errors import ConfigurationError
from rfm_audit.foundation.rfm import RFMScore
from rfm_audit.foundation.segments import (
    UNCLASSIFIED,
    SegmentClassifier,
    SegmentRule,
)


class TestSegmentRule:
    """Test SegmentRule pattern validation and matching."""

    def test_single_pattern_string_is_wrapped(self):
        """A bare pattern string becomes a one-element tuple."""
        rule = SegmentRule("Best Customers", "555")
        assert rule.patterns == ("555",)
        assert rule.matches("555")
        assert not rule.matches("554")

    def test_wildcard_positions(self):
        """'*' matches any score in its position."""
        rule = SegmentRule("Recent", "5**")
        assert rule.matches("511")
        assert rule.matches("555")
        assert not rule.matches("455")

    def test_digit_sets(self):
        """Bracketed digit sets match any listed score."""
        rule = SegmentRule("Engaged", "[45][45]*")
        assert rule.matches("451")
        assert rule.matches("545")
        assert not rule.matches("355")

    def test_explicit_list_of_composites(self):
        """A rule may list exact composites."""
        rule = SegmentRule("Loyal Customers", ["543", "444", "435"])
        assert rule.matches("444")
        assert not rule.matches("445")

    @pytest.mark.parametrize(
        "pattern",
        ["55", "5555", "6**", "0**", "a**", "[]**", "[6]**", "", "5 5", "5**\n", "\n5**"],
    )
    def test_malformed_patterns_raise(self, pattern):
        """Patterns must have three valid positions."""
        with pytest.raises(ConfigurationError, match="Segment pattern"):
            SegmentRule("Broken", pattern)

    def test_empty_label_raises(self):
        """Labels cannot be blank."""
        with pytest.raises(ConfigurationError, match="label cannot be empty"):
            SegmentRule("  ", "555")

    def test_no_patterns_raises(self):
        """A rule needs at least one pattern."""
        with pytest.raises(ConfigurationError, match="has no patterns"):
            SegmentRule("Nobody", [])


class TestSegmentClassifier:
    """Test SegmentClassifier first-match-wins behaviour."""

    def test_first_match_wins(self):
        """Higher-priority rules win over later matching rules."""
        classifier = SegmentClassifier.from_pairs(
            [("5**", "Best Customers"), ("**1", "Lost Customers")]
        )
        assert classifier.classify("521") == "Best Customers"
        assert classifier.classify("321") == "Lost Customers"

    def test_priority_follows_caller_order(self):
        """Reversing rule order changes the winner."""
        classifier = SegmentClassifier.from_pairs(
            [("**1", "Lost Customers"), ("5**", "Best Customers")]
        )
        assert classifier.classify("521") == "Lost Customers"

    def test_unmatched_is_unclassified(self):
        """Composites matching no rule are labelled Unclassified."""
        classifier = SegmentClassifier.from_pairs([("555", "Best Customers")])
        assert classifier.classify("333") == UNCLASSIFIED == "Unclassified"

    def test_classify_accepts_all_composite_forms(self):
        """String, integer and tuple composites classify identically."""
        classifier = SegmentClassifier.from_pairs([("52*", "Match")])
        assert classifier.classify("525") == "Match"
        assert classifier.classify(525) == "Match"
        assert classifier.classify((5, 2, 5)) == "Match"

    def test_classify_scores_sets_segment(self):
        """classify_scores returns labelled copies."""
        classifier = SegmentClassifier.from_pairs([("5**", "Best Customers")])
        scores = [RFMScore("A", 5, 2, 5, "525"), RFMScore("B", 2, 3, 5, "235")]
        labelled = classifier.classify_scores(scores)

        assert [s.segment for s in labelled] == ["Best Customers", "Unclassified"]
        assert scores[0].segment is None
        assert labelled[0].composite_score == "525"

    def test_no_rules_raises(self):
        """The classifier has no built-in defaults."""
        with pytest.raises(ConfigurationError, match="At least one segment rule"):
            SegmentClassifier([])

    def test_non_rule_items_raise(self):
        """Only SegmentRule instances are accepted by the constructor."""
        with pytest.raises(ConfigurationError, match="Expected SegmentRule"):
            SegmentClassifier([("5**", "Best")])

    def test_from_pairs_rejects_malformed_pairs(self):
        """Pairs must unpack to (pattern, label)."""
        with pytest.raises(ConfigurationError, match="pairs"):
            SegmentClassifier.from_pairs([("5**", "Best", "extra")])

    def test_from_pairs_validates_patterns(self):
        """Malformed patterns are reported when the classifier is built."""
        with pytest.raises(ConfigurationError):
            SegmentClassifier.from_pairs([("5**", "Best"), ("55", "Broken")])
