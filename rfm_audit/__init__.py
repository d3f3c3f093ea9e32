"""Recency-Frequency-Monetary customer scoring."""

from .pipeline import RFMResult, score_customers

__all__ = ["RFMResult", "score_customers"]
