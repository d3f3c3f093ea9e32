"""End-to-end RFM scoring: aggregate, score, and optionally classify."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Union

from rfm_audit.foundation.aggregation import CustomerAggregate, aggregate_customers
from rfm_audit.foundation.config import RFMConfig
from rfm_audit.foundation.rfm import RFMScore, calculate_rfm_scores
from rfm_audit.foundation.segments import SegmentClassifier, SegmentRule
from rfm_audit.foundation.transactions import TransactionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RFMResult:
    """Output of a scoring run.

    Attributes
    ----------
    scores:
        One score per customer, sorted by customer_id. ``segment`` is set
        when segment rules were supplied.
    aggregates:
        Per-customer recency/frequency/monetary inputs the scores came from.
    current_date:
        Reference date used for recency.
    excluded_missing_customer:
        Records dropped because they had no customer_id.
    skipped_invalid:
        Invalid records dropped under the ``skip`` policy.
    """

    scores: list[RFMScore]
    aggregates: list[CustomerAggregate]
    current_date: Union[date, datetime]
    excluded_missing_customer: int = 0
    skipped_invalid: int = 0
    segment_counts: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.scores


def score_customers(
    records: Iterable[TransactionRecord],
    current_date: Union[date, datetime],
    config: Optional[RFMConfig] = None,
    segments: Optional[Union[SegmentClassifier, Iterable[SegmentRule]]] = None,
) -> RFMResult:
    """Score customers from raw transaction records.

    Segment rules are validated before any record is read, so a malformed
    pattern fails the run without doing work. An input with no valid
    customers yields an empty result rather than an error.

    Parameters
    ----------
    records:
        Transaction records from any input provider.
    current_date:
        Reference date for recency. Never read from the system clock.
    config:
        Validation and scoring policies.
    segments:
        Optional classifier, or rules in priority order.

    Returns
    -------
    RFMResult

    Examples
    --------
    >>> from datetime import date
    >>> records = [TransactionRecord("C1", date(2024, 1, 5), "42.50", "O1")]
    >>> result = score_customers(records, date(2024, 2, 1))
    >>> result.scores[0].composite_score
    '555'
    """
    config = config or RFMConfig()
    classifier: Optional[SegmentClassifier] = None
    if segments is not None:
        classifier = (
            segments
            if isinstance(segments, SegmentClassifier)
            else SegmentClassifier(segments)
        )

    aggregation = aggregate_customers(records, current_date, config)
    aggregates = aggregation.aggregates
    if not aggregates:
        logger.warning("No valid customers found; returning empty RFM result")
        return RFMResult(
            scores=[],
            aggregates=[],
            current_date=current_date,
            excluded_missing_customer=aggregation.excluded_missing_customer,
            skipped_invalid=aggregation.skipped_invalid,
        )

    logger.info(f"Scoring {len(aggregates)} customers (current_date={current_date})")
    scores = calculate_rfm_scores(aggregates, config)

    segment_counts: dict[str, int] = {}
    if classifier is not None:
        scores = classifier.classify_scores(scores)
        for score in scores:
            segment_counts[score.segment] = segment_counts.get(score.segment, 0) + 1
        logger.info(f"Segment distribution: {segment_counts}")

    return RFMResult(
        scores=scores,
        aggregates=aggregates,
        current_date=current_date,
        excluded_missing_customer=aggregation.excluded_missing_customer,
        skipped_invalid=aggregation.skipped_invalid,
        segment_counts=segment_counts,
    )
