from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
import math
import random
from typing import List, Optional

from rfm_audit.foundation.transactions import TransactionRecord


@dataclass(frozen=True)
class SyntheticConfig:
    """Configuration for the synthetic transaction generator.

    Attributes
    ----------
    n_customers: Number of customers to generate.
    mean_orders: Average number of orders per customer over the window.
    mean_lines_per_order: Average line items per order.
    mean_unit_price: Average line amount.
    price_variability: Coefficient in (0, 1] controlling price variance.
    seed: Optional RNG seed for reproducibility.
    """

    n_customers: int = 100
    mean_orders: float = 4.0
    mean_lines_per_order: float = 1.5
    mean_unit_price: float = 30.0
    price_variability: float = 0.4
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.n_customers < 0:
            raise ValueError(f"n_customers cannot be negative: {self.n_customers}")
        if self.mean_orders <= 0:
            raise ValueError(f"mean_orders must be positive: {self.mean_orders}")
        if self.mean_lines_per_order < 1:
            raise ValueError(
                f"mean_lines_per_order must be at least 1: {self.mean_lines_per_order}"
            )


def _poisson(rng: random.Random, lam: float) -> int:
    # Knuth's algorithm; fine for the small lambdas used here
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while p > limit:
        k += 1
        p *= rng.random()
    return max(0, k - 1)


def _sample_price(rng: random.Random, mean: float, variability: float) -> Decimal:
    sigma = min(max(variability, 0.01), 1.0)
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    price = math.exp(rng.normalvariate(mu, sigma))
    return Decimal(str(round(max(price, 0.01), 2)))


def generate_transactions(
    start: date,
    end: date,
    config: Optional[SyntheticConfig] = None,
) -> List[TransactionRecord]:
    """Generate line-item transactions between ``start`` and ``end`` inclusive.

    Every customer gets at least one order. Line items of an order share
    its order_id and timestamp.
    """
    if start > end:
        raise ValueError("start date must be <= end date")
    config = config or SyntheticConfig()
    rng = random.Random(config.seed)
    total_days = (end - start).days + 1

    records: List[TransactionRecord] = []
    order_seq = 1
    for i in range(config.n_customers):
        customer_id = f"C-{i + 1}"
        n_orders = 1 + _poisson(rng, max(config.mean_orders - 1, 0.01))
        for _ in range(n_orders):
            day = start + timedelta(days=rng.randrange(total_days))
            order_ts = datetime(day.year, day.month, day.day, rng.randrange(24))
            order_id = f"O-{order_seq}"
            order_seq += 1
            n_lines = 1 + _poisson(rng, max(config.mean_lines_per_order - 1, 0.01))
            for _ in range(n_lines):
                records.append(
                    TransactionRecord(
                        customer_id=customer_id,
                        order_date=order_ts,
                        amount=_sample_price(
                            rng, config.mean_unit_price, config.price_variability
                        ),
                        order_id=order_id,
                    )
                )
    return records
