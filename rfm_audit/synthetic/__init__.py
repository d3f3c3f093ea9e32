"""Synthetic transaction generation.

Produces realistic-but-fake line items to exercise the RFM pipeline
without accessing production data.
"""

from .generator import SyntheticConfig, generate_transactions

__all__ = ["SyntheticConfig", "generate_transactions"]
