"""Exceptions raised by the RFM scoring pipeline."""

from __future__ import annotations

from typing import Optional


class RFMError(Exception):
    """Base class for all RFM scoring errors."""


class InvalidRecordError(RFMError, ValueError):
    """A transaction record failed validation.

    Attributes
    ----------
    record_index:
        Position of the offending record in the input sequence.
    reason:
        Short human readable description of the failure.
    """

    def __init__(self, reason: str, record_index: Optional[int] = None) -> None:
        self.reason = reason
        self.record_index = record_index
        if record_index is None:
            message = reason
        else:
            message = f"{reason} (record_index={record_index})"
        super().__init__(message)


class ConfigurationError(RFMError, ValueError):
    """Scoring configuration or segment rules are malformed."""


class DegenerateInputError(RFMError, ValueError):
    """A dimension has a single group and the policy forbids scoring it."""
