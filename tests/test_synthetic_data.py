from datetime import date

import pytest

from rfm_audit.synthetic import SyntheticConfig, generate_transactions


def test_generate_transactions_basic() -> None:
    records = generate_transactions(
        date(2024, 1, 1), date(2024, 12, 31), SyntheticConfig(n_customers=50, seed=7)
    )
    assert len(records) >= 50
    assert {r.customer_id for r in records} == {f"C-{i + 1}" for i in range(50)}
    assert all(r.amount > 0 for r in records)
    assert all(date(2024, 1, 1) <= r.order_date.date() <= date(2024, 12, 31) for r in records)


def test_generation_is_reproducible() -> None:
    config = SyntheticConfig(n_customers=20, seed=123)
    first = generate_transactions(date(2024, 1, 1), date(2024, 6, 30), config)
    second = generate_transactions(date(2024, 1, 1), date(2024, 6, 30), config)
    assert first == second


def test_line_items_share_order_date() -> None:
    records = generate_transactions(
        date(2024, 1, 1),
        date(2024, 3, 31),
        SyntheticConfig(n_customers=30, mean_lines_per_order=3.0, seed=5),
    )
    by_order: dict = {}
    for r in records:
        by_order.setdefault(r.order_id, set()).add((r.customer_id, r.order_date))
    assert all(len(keys) == 1 for keys in by_order.values())
    assert len(by_order) < len(records)


def test_empty_and_invalid_inputs() -> None:
    assert generate_transactions(
        date(2024, 1, 1), date(2024, 1, 1), SyntheticConfig(n_customers=0)
    ) == []
    with pytest.raises(ValueError):
        generate_transactions(date(2024, 2, 1), date(2024, 1, 1))
    with pytest.raises(ValueError):
        SyntheticConfig(mean_orders=0)
