"""Pandas DataFrame adapters for RFM scoring."""

from .rfm import (
    aggregates_to_dataframe,
    dataframe_to_transactions,
    score_customers_df,
    scores_to_dataframe,
    transactions_from_sql,
)

__all__ = [
    "aggregates_to_dataframe",
    "dataframe_to_transactions",
    "score_customers_df",
    "scores_to_dataframe",
    "transactions_from_sql",
]
