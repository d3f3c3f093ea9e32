"""Pandas DataFrame adapters for RFM scoring."""

from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Union

import pandas as pd  # type: ignore

from rfm_audit.foundation.aggregation import CustomerAggregate
from rfm_audit.foundation.config import RFMConfig
from rfm_audit.foundation.rfm import RFMScore
from rfm_audit.foundation.segments import SegmentClassifier
from rfm_audit.foundation.transactions import TransactionRecord
from rfm_audit.pipeline import score_customers
from ._utils import decimal_to_float, none_if_missing, to_python_datetime

SCORE_COLUMNS = [
    "customer_id",
    "recency_score",
    "frequency_score",
    "monetary_score",
    "composite_score",
    "segment",
]

AGGREGATE_COLUMNS = [
    "customer_id",
    "last_purchase_date",
    "purchase_count",
    "total_spend",
    "recency_days",
]


def dataframe_to_transactions(
    transactions_df: pd.DataFrame,
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    amount_col: str = "amount",
    order_id_col: Optional[str] = "order_id",
) -> List[TransactionRecord]:
    """Convert a transactions DataFrame to TransactionRecord list.

    Args:
        transactions_df: One row per line item or order
        *_col: Column name mappings for flexibility. Pass
            ``order_id_col=None`` when every row is its own order.

    Returns:
        List of TransactionRecord objects. Null customer ids, dates and
        amounts are kept as None so the aggregator can count or reject
        them under the configured policy.

    Raises:
        ValueError: If DataFrame is missing required columns

    Example:
        >>> df = pd.read_csv('transactions.csv', parse_dates=['order_date'])
        >>> records = dataframe_to_transactions(df, customer_id_col='client_id')
    """
    required_cols = [customer_id_col, order_date_col, amount_col]
    if order_id_col is not None:
        required_cols.append(order_id_col)

    missing_cols = set(required_cols) - set(transactions_df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if transactions_df.empty:
        return []

    records = []
    for row in transactions_df.to_dict("records"):
        customer_id = none_if_missing(row[customer_id_col])
        order_id = none_if_missing(row[order_id_col]) if order_id_col else None
        records.append(
            TransactionRecord(
                customer_id=None if customer_id is None else str(customer_id),
                order_date=to_python_datetime(none_if_missing(row[order_date_col])),
                amount=none_if_missing(row[amount_col]),
                order_id=None if order_id is None else str(order_id),
            )
        )
    return records


def transactions_from_sql(
    query: str,
    con: Any,
    params: Optional[Union[Sequence[Any], dict]] = None,
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    amount_col: str = "amount",
    order_id_col: Optional[str] = "order_id",
) -> List[TransactionRecord]:
    """Run a query on a caller-owned connection and convert the rows.

    The connection is neither opened nor closed here.

    Example:
        >>> import sqlite3
        >>> con = sqlite3.connect('shop.db')
        >>> records = transactions_from_sql(
        ...     "SELECT customer_id, order_id, order_date, line_total AS amount "
        ...     "FROM order_lines",
        ...     con,
        ... )
    """
    df = pd.read_sql_query(query, con, params=params, parse_dates=[order_date_col])
    return dataframe_to_transactions(
        df,
        customer_id_col=customer_id_col,
        order_date_col=order_date_col,
        amount_col=amount_col,
        order_id_col=order_id_col,
    )


def scores_to_dataframe(scores: Sequence[RFMScore]) -> pd.DataFrame:
    """Convert RFM scores to pandas DataFrame sorted by customer_id."""
    if not scores:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "recency_score": s.recency_score,
            "frequency_score": s.frequency_score,
            "monetary_score": s.monetary_score,
            "composite_score": s.composite_score,
            "segment": s.segment,
        }
        for s in scores
    ]
    df = pd.DataFrame(rows, columns=SCORE_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def aggregates_to_dataframe(aggregates: Sequence[CustomerAggregate]) -> pd.DataFrame:
    """Convert customer aggregates to pandas DataFrame sorted by customer_id."""
    if not aggregates:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    rows = [
        {
            "customer_id": a.customer_id,
            "last_purchase_date": a.last_purchase_date,
            "purchase_count": a.purchase_count,
            "total_spend": decimal_to_float(a.total_spend),
            "recency_days": a.recency_days,
        }
        for a in aggregates
    ]
    df = pd.DataFrame(rows, columns=AGGREGATE_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def score_customers_df(
    transactions_df: pd.DataFrame,
    current_date: Union[date, datetime],
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    amount_col: str = "amount",
    order_id_col: Optional[str] = "order_id",
    config: Optional[RFMConfig] = None,
    segments: Optional[SegmentClassifier] = None,
) -> pd.DataFrame:
    """Score customers from a transactions DataFrame.

    Convenience function that combines conversion, scoring and rendering.
    The result joins aggregates and scores on customer_id.

    Example:
        >>> df = pd.read_parquet('order_lines.parquet')
        >>> rfm_df = score_customers_df(df, date(2024, 6, 30))
        >>> champions = rfm_df[rfm_df['composite_score'] == '555']
    """
    records = dataframe_to_transactions(
        transactions_df,
        customer_id_col=customer_id_col,
        order_date_col=order_date_col,
        amount_col=amount_col,
        order_id_col=order_id_col,
    )
    result = score_customers(records, current_date, config=config, segments=segments)
    return aggregates_to_dataframe(result.aggregates).merge(
        scores_to_dataframe(result.scores), on="customer_id", how="outer"
    )
