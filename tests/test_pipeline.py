"""Tests for the end-to-end scoring pipeline."""

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from rfm_audit import RFMResult, score_customers
from rfm_audit.foundation.config import RFMConfig
from rfm_audit.foundation.errors import ConfigurationError, InvalidRecordError
from rfm_audit.foundation.segments import SegmentClassifier, SegmentRule
from rfm_audit.foundation.transactions import TransactionRecord

CURRENT = date(2024, 1, 1)


def _records():
    """Five customers spread across every dimension."""
    rows = [
        # customer, days before CURRENT, orders, spend per order
        ("A", 2, 6, Decimal("100")),
        ("B", 15, 4, Decimal("60")),
        ("C", 40, 3, Decimal("40")),
        ("D", 120, 2, Decimal("20")),
        ("E", 300, 1, Decimal("5")),
    ]
    records = []
    for customer_id, days_ago, orders, spend in rows:
        for n in range(orders):
            order_day = date.fromordinal(CURRENT.toordinal() - days_ago - n * 30)
            records.append(
                TransactionRecord(customer_id, order_day, spend, f"{customer_id}-{n}")
            )
    return records


class TestScoreCustomers:
    """Test score_customers orchestration."""

    def test_scores_every_customer(self):
        """Every customer gets a score in [1, 5] for each dimension."""
        result = score_customers(_records(), CURRENT)

        assert isinstance(result, RFMResult)
        assert [s.customer_id for s in result.scores] == ["A", "B", "C", "D", "E"]
        for score in result.scores:
            assert all(1 <= value <= 5 for value in score.as_tuple())
        assert result.scores[0].composite_score == "555"
        assert result.scores[-1].composite_score == "111"
        assert result.current_date == CURRENT

    def test_aggregates_are_returned(self):
        """The result exposes the aggregates behind the scores."""
        result = score_customers(_records(), CURRENT)
        a = result.aggregates[0]
        assert a.customer_id == "A"
        assert a.purchase_count == 6
        assert a.total_spend == Decimal("600.00")
        assert a.recency_days == 2

    def test_single_customer_scores_555(self):
        """One customer with any history scores 555 by default."""
        records = [
            TransactionRecord("solo", date(2023, 1, 1), "12.00", "O1"),
            TransactionRecord("solo", date(2023, 6, 1), "8.00", "O2"),
        ]
        result = score_customers(records, CURRENT)
        assert [s.composite_score for s in result.scores] == ["555"]

    def test_idempotent(self):
        """Running twice on the same input and date gives identical results."""
        first = score_customers(_records(), CURRENT)
        second = score_customers(_records(), CURRENT)
        assert first == second

    def test_empty_input_yields_empty_result(self, caplog):
        """No valid customers is not an error."""
        with caplog.at_level(logging.WARNING):
            result = score_customers([], CURRENT)
        assert result.is_empty
        assert result.scores == []
        assert result.aggregates == []
        assert "No valid customers" in caplog.text

    def test_only_anonymous_records_yields_empty_result(self):
        """Excluded records are counted even when nothing is left to score."""
        records = [TransactionRecord(None, date(2023, 1, 1), "1", "O1")]
        result = score_customers(records, CURRENT)
        assert result.is_empty
        assert result.excluded_missing_customer == 1

    def test_invalid_record_fails_fast(self):
        """The default policy fails on the first invalid record."""
        records = _records() + [TransactionRecord("F", date(2023, 1, 1), "-3", "X")]
        with pytest.raises(InvalidRecordError):
            score_customers(records, CURRENT)

    def test_skip_policy_reports_count(self):
        """The skip policy drops invalid records and reports how many."""
        records = _records() + [TransactionRecord("F", "??", "3", "X")]
        result = score_customers(records, CURRENT, RFMConfig(on_invalid_record="skip"))
        assert result.skipped_invalid == 1
        assert "F" not in {s.customer_id for s in result.scores}

    def test_segments_are_applied(self):
        """Supplied rules label every score and are tallied."""
        rules = [
            SegmentRule("Best Customers", "5**"),
            SegmentRule("Lost Customers", "**1"),
        ]
        result = score_customers(_records(), CURRENT, segments=rules)
        labels = {s.customer_id: s.segment for s in result.scores}

        assert labels["A"] == "Best Customers"
        assert labels["E"] == "Lost Customers"
        assert labels["C"] == "Unclassified"
        assert sum(result.segment_counts.values()) == 5

    def test_accepts_prebuilt_classifier(self):
        """A SegmentClassifier can be passed directly."""
        classifier = SegmentClassifier.from_pairs([("***", "Everyone")])
        result = score_customers(_records(), CURRENT, segments=classifier)
        assert result.segment_counts == {"Everyone": 5}

    def test_segment_configuration_checked_before_records(self):
        """Malformed patterns fail before any record is read."""

        def records():
            raise AssertionError("records should not be consumed")
            yield  # pragma: no cover

        with pytest.raises(ConfigurationError):
            score_customers(
                records(), CURRENT, segments=[SegmentRule("Best", "5**"), "not a rule"]
            )

    def test_without_segments_label_is_none(self):
        """Scores are unlabelled when no rules are supplied."""
        result = score_customers(_records(), CURRENT)
        assert all(s.segment is None for s in result.scores)
        assert result.segment_counts == {}

    def test_scoring_as_of_today_with_timed_orders(self):
        """Orders placed earlier on the reference date are valid input."""
        records = [
            TransactionRecord("C1", datetime(2024, 2, 1, 10, 30), "10", "O1"),
            TransactionRecord("C2", datetime(2024, 1, 20, 9, 0), "25", "O2"),
        ]
        result = score_customers(records, date(2024, 2, 1))

        assert [s.composite_score for s in result.scores] == ["553", "335"]
        assert result.aggregates[0].recency_days == 0

    def test_current_date_controls_recency(self):
        """Recency is measured from the injected current date."""
        records = [TransactionRecord("C1", datetime(2023, 12, 1), "1", "O1")]
        early = score_customers(records, datetime(2023, 12, 11))
        late = score_customers(records, datetime(2024, 3, 1))
        assert early.aggregates[0].recency_days == 10
        assert late.aggregates[0].recency_days == 91
