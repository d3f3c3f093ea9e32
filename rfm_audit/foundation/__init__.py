"""Foundational building blocks for RFM scoring.

This package exposes transaction records, per-customer aggregation,
quintile scoring, and composite segment classification.
"""

from .aggregation import AggregationResult, CustomerAggregate, aggregate_customers
from .config import InvalidRecordPolicy, RFMConfig, TiePolicy
from .errors import (
    ConfigurationError,
    DegenerateInputError,
    InvalidRecordError,
    RFMError,
)
from .rfm import (
    RFMScore,
    calculate_rfm_scores,
    compose_score,
    parse_composite,
    score_dimension,
)
from .segments import UNCLASSIFIED, SegmentClassifier, SegmentRule
from .transactions import TransactionRecord, records_from_mappings

__all__ = [
    "AggregationResult",
    "CustomerAggregate",
    "aggregate_customers",
    "InvalidRecordPolicy",
    "RFMConfig",
    "TiePolicy",
    "ConfigurationError",
    "DegenerateInputError",
    "InvalidRecordError",
    "RFMError",
    "RFMScore",
    "calculate_rfm_scores",
    "compose_score",
    "parse_composite",
    "score_dimension",
    "UNCLASSIFIED",
    "SegmentClassifier",
    "SegmentRule",
    "TransactionRecord",
    "records_from_mappings",
]
