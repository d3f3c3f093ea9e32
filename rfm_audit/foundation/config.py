"""Configuration for RFM aggregation and scoring."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from rfm_audit.foundation.errors import ConfigurationError

#: Number of quantile groups every dimension is split into.
SCORE_BINS = 5


class InvalidRecordPolicy(str, Enum):
    """What to do when a transaction record fails validation."""

    RAISE = "raise"
    SKIP = "skip"


class TiePolicy(str, Enum):
    """How customers with identical metric values are ranked.

    ``SHARED`` gives every member of a tie the position of the first of
    them, so ties never straddle a quintile boundary. ``ORDINAL`` keeps
    strict positions and splits straddling ties by customer id.
    """

    SHARED = "shared"
    ORDINAL = "ordinal"


SingleGroupScore = Union[int, str]


@dataclass(frozen=True)
class RFMConfig:
    """Policy knobs for a scoring run.

    Attributes
    ----------
    allow_negative_amounts:
        Accept negative line amounts (returns/refunds). Defaults to False,
        in which case a negative amount is an invalid record.
    on_invalid_record:
        ``"raise"`` (default) fails the whole run on the first invalid
        record; ``"skip"`` drops it and reports a count.
    single_group_score:
        Score given when a dimension has a single group (one customer, or
        every customer sharing the same value): ``5`` (default), ``3``, or
        ``"error"`` to raise :class:`DegenerateInputError`.
    tie_policy:
        ``"shared"`` (default) or ``"ordinal"``; see :class:`TiePolicy`.
    parallel:
        Score the three dimensions on worker threads once the customer
        count reaches ``parallel_threshold``.
    parallel_threshold:
        Customer count at or above which parallel scoring is used.
    n_workers:
        Thread count for parallel scoring. None means one per dimension.
    """

    allow_negative_amounts: bool = False
    on_invalid_record: InvalidRecordPolicy = InvalidRecordPolicy.RAISE
    single_group_score: SingleGroupScore = 5
    tie_policy: TiePolicy = TiePolicy.SHARED
    parallel: bool = True
    parallel_threshold: int = 100_000
    n_workers: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate and normalise policy values."""
        try:
            object.__setattr__(
                self, "on_invalid_record", InvalidRecordPolicy(self.on_invalid_record)
            )
        except ValueError as exc:
            raise ConfigurationError(
                f"on_invalid_record must be one of "
                f"{[p.value for p in InvalidRecordPolicy]}: {self.on_invalid_record!r}"
            ) from exc
        try:
            object.__setattr__(self, "tie_policy", TiePolicy(self.tie_policy))
        except ValueError as exc:
            raise ConfigurationError(
                f"tie_policy must be one of {[p.value for p in TiePolicy]}: "
                f"{self.tie_policy!r}"
            ) from exc

        if isinstance(self.single_group_score, bool) or (
            self.single_group_score != "error"
            and not (
                isinstance(self.single_group_score, int)
                and self.single_group_score in (5, 3)
            )
        ):
            raise ConfigurationError(
                f"single_group_score must be 5, 3 or 'error': {self.single_group_score!r}"
            )
        if self.parallel_threshold < 0:
            raise ConfigurationError(
                f"parallel_threshold cannot be negative: {self.parallel_threshold}"
            )
        if self.n_workers is not None and self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be positive: {self.n_workers}")
