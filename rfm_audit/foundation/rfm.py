"""RFM (Recency-Frequency-Monetary) quintile scoring.

Each dimension is ranked independently and split into five groups of
as-equal-as-possible size. The best group always scores 5 and the worst
scores 1:

- Recency: fewer days since the last purchase is better
- Frequency: more distinct orders is better
- Monetary: higher total spend is better

The three scores are concatenated in R-F-M order into a composite code
such as ``"525"``. Composites are ordered digits, not sums.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Sequence, Union

from rfm_audit.foundation.aggregation import CustomerAggregate
from rfm_audit.foundation.config import SCORE_BINS, RFMConfig, TiePolicy
from rfm_audit.foundation.errors import DegenerateInputError

logger = logging.getLogger(__name__)

MetricValue = Union[int, Decimal]
CompositeLike = Union[str, int, tuple[int, int, int]]


@dataclass(frozen=True)
class RFMScore:
    """RFM scores (1-5 quintiles) for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency_score:
        Recency score (1-5, where 5 = most recent)
    frequency_score:
        Frequency score (1-5, where 5 = most frequent)
    monetary_score:
        Monetary score (1-5, where 5 = highest spend)
    composite_score:
        Scores concatenated in R-F-M order (e.g., "555" for best customers)
    segment:
        Segment label, set once the score has been classified
    """

    customer_id: str
    recency_score: int
    frequency_score: int
    monetary_score: int
    composite_score: str
    segment: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("recency_score", self.recency_score),
            ("frequency_score", self.frequency_score),
            ("monetary_score", self.monetary_score),
        ]:
            if not 1 <= score_value <= SCORE_BINS:
                raise ValueError(
                    f"{score_name} must be between 1 and {SCORE_BINS}: {score_value} (customer_id={self.customer_id})"
                )
        expected = compose_score(
            self.recency_score, self.frequency_score, self.monetary_score
        )
        if self.composite_score != expected:
            raise ValueError(
                f"composite_score ({self.composite_score}) does not match r/f/m scores ({expected}) (customer_id={self.customer_id})"
            )

    def as_tuple(self) -> tuple[int, int, int]:
        """Return the scores as an (R, F, M) tuple."""
        return (self.recency_score, self.frequency_score, self.monetary_score)


def compose_score(recency_score: int, frequency_score: int, monetary_score: int) -> str:
    """Concatenate R, F and M scores into a composite code.

    >>> compose_score(5, 2, 5)
    '525'
    >>> compose_score(2, 5, 5)
    '255'
    """
    return f"{recency_score}{frequency_score}{monetary_score}"


def parse_composite(composite: CompositeLike) -> tuple[int, int, int]:
    """Convert a composite (``"525"``, ``525`` or ``(5, 2, 5)``) to an (R, F, M) tuple.

    Raises
    ------
    ValueError
        If the value does not describe three scores between 1 and 5.
    """
    if isinstance(composite, tuple):
        digits = composite
    else:
        text = str(composite).strip()
        if len(text) != 3 or not text.isdigit():
            raise ValueError(f"Composite score must have three digits: {composite!r}")
        digits = tuple(int(ch) for ch in text)

    if len(digits) != 3 or not all(
        isinstance(d, int) and not isinstance(d, bool) and 1 <= d <= SCORE_BINS
        for d in digits
    ):
        raise ValueError(
            f"Composite score must be three scores between 1 and {SCORE_BINS}: {composite!r}"
        )
    return digits[0], digits[1], digits[2]


def score_dimension(
    values: dict[str, MetricValue],
    higher_is_better: bool,
    config: Optional[RFMConfig] = None,
    dimension: str = "metric",
) -> dict[str, int]:
    """Assign a 1-5 quintile score to every customer for one metric.

    Customers are ordered best first by (metric, customer_id). The group
    index of position ``p`` among ``N`` customers is ``floor(p * 5 / N)``
    and the score is ``5 - group``. Under the shared tie policy every
    customer in a tie takes the position of the first of them.

    Parameters
    ----------
    values:
        Mapping of customer_id to metric value.
    higher_is_better:
        True for frequency and monetary, False for recency.
    config:
        Tie and single-group policies.
    dimension:
        Dimension name used in log and error messages.

    Returns
    -------
    dict[str, int]
        Mapping of customer_id to score.

    Raises
    ------
    DegenerateInputError
        The dimension has a single group and ``single_group_score`` is
        ``"error"``.

    Examples
    --------
    >>> score_dimension({"A": 10, "B": 20, "C": 30, "D": 40, "E": 50}, True)
    {'E': 5, 'D': 4, 'C': 3, 'B': 2, 'A': 1}
    """
    config = config or RFMConfig()
    n = len(values)
    if n == 0:
        return {}

    if len(set(values.values())) == 1:
        if config.single_group_score == "error":
            raise DegenerateInputError(
                f"All {n} customers share one {dimension} value; "
                "single_group_score='error' forbids scoring it"
            )
        logger.debug(
            f"Single {dimension} group for {n} customers; "
            f"assigning score {config.single_group_score}"
        )
        return {customer_id: config.single_group_score for customer_id in values}

    if higher_is_better:
        ranked = sorted(values.items(), key=lambda item: (-item[1], item[0]))
    else:
        ranked = sorted(values.items(), key=lambda item: (item[1], item[0]))

    scores: dict[str, int] = {}
    tie_start = 0
    for position, (customer_id, value) in enumerate(ranked):
        if position > 0 and value != ranked[position - 1][1]:
            tie_start = position
        rank = tie_start if config.tie_policy is TiePolicy.SHARED else position
        group = min(max(rank * SCORE_BINS // n, 0), SCORE_BINS - 1)
        scores[customer_id] = SCORE_BINS - group
    return scores


_DIMENSIONS: list[tuple[str, Callable[[CustomerAggregate], MetricValue], bool]] = [
    ("recency", lambda a: a.recency_days, False),
    ("frequency", lambda a: a.purchase_count, True),
    ("monetary", lambda a: a.total_spend, True),
]


def calculate_rfm_scores(
    aggregates: Sequence[CustomerAggregate],
    config: Optional[RFMConfig] = None,
) -> list[RFMScore]:
    """Score customer aggregates into quintiles (1-5) and build composites.

    **Parallel Processing**: The three dimensions only read the aggregates
    and write separate score maps, so for large inputs (``parallel=True``
    and at least ``parallel_threshold`` customers) they are scored on a
    thread pool and joined before composites are built. Results are
    identical to serial scoring.

    Parameters
    ----------
    aggregates:
        One aggregate per customer.
    config:
        Scoring policies (tie handling, single-group score, parallelism).

    Returns
    -------
    list[RFMScore]
        RFM scores for each customer, sorted by customer_id.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> aggregates = [
    ...     CustomerAggregate("C1", datetime(2023, 4, 1), 3, Decimal("90"), 14),
    ... ]
    >>> calculate_rfm_scores(aggregates)[0].composite_score
    '555'
    """
    if not aggregates:
        return []

    config = config or RFMConfig()
    metric_maps = [
        (name, {a.customer_id: accessor(a) for a in aggregates}, higher_is_better)
        for name, accessor, higher_is_better in _DIMENSIONS
    ]

    use_parallel = config.parallel and len(aggregates) >= config.parallel_threshold
    if use_parallel:
        workers = config.n_workers or len(metric_maps)
        logger.info(
            f"Scoring {len(aggregates)} customers on {workers} worker threads"
        )
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(score_dimension, values, higher_is_better, config, name)
                for name, values, higher_is_better in metric_maps
            ]
            recency, frequency, monetary = [f.result() for f in futures]
    else:
        recency, frequency, monetary = [
            score_dimension(values, higher_is_better, config, name)
            for name, values, higher_is_better in metric_maps
        ]

    rfm_scores: list[RFMScore] = []
    for aggregate in aggregates:
        customer_id = aggregate.customer_id
        r, f, m = recency[customer_id], frequency[customer_id], monetary[customer_id]
        rfm_scores.append(
            RFMScore(
                customer_id=customer_id,
                recency_score=r,
                frequency_score=f,
                monetary_score=m,
                composite_score=compose_score(r, f, m),
            )
        )

    # Sort by customer_id for consistency
    rfm_scores.sort(key=lambda s: s.customer_id)
    return rfm_scores
