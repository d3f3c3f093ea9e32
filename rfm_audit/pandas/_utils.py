"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from typing import Any, Optional

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def none_if_missing(value: Any) -> Optional[Any]:
    """Map pandas missing markers (NaN, NaT, None, pd.NA) to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # Array-like cells are never treated as missing
        return value
    return value


def to_python_datetime(value: Any) -> Any:
    """Convert pandas Timestamps to datetimes; leave other values untouched."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value
