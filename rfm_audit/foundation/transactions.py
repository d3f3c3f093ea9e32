"""Transaction records consumed by the RFM aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Union

DateLike = Union[date, datetime, str]
AmountLike = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class TransactionRecord:
    """One purchase event (a line item or a whole order).

    Records are kept as ingested: validation happens in the aggregator so
    the caller's policy decides whether a bad record skips or fails.

    Attributes
    ----------
    customer_id:
        Opaque customer key. None or blank records are excluded from
        aggregation and counted.
    order_date:
        Date or datetime of the order. ISO-8601 strings are accepted.
    amount:
        Line amount. Negative values represent returns and are only
        accepted when the configuration allows them.
    order_id:
        Order identifier shared by line items of the same order. When
        None, the record counts as an order of its own.
    """

    customer_id: Optional[str]
    order_date: Optional[DateLike]
    amount: Optional[AmountLike]
    order_id: Optional[str] = None


def records_from_mappings(
    rows: Iterable[Mapping[str, Any]],
    customer_id_key: str = "customer_id",
    order_date_key: str = "order_date",
    amount_key: str = "amount",
    order_id_key: str = "order_id",
) -> list[TransactionRecord]:
    """Build records from dictionaries such as JSON rows or DB cursors.

    Missing keys become None so that the aggregator can report them under
    the configured policy instead of failing here.
    """
    records: list[TransactionRecord] = []
    for row in rows:
        customer_id = row.get(customer_id_key)
        order_id = row.get(order_id_key)
        records.append(
            TransactionRecord(
                customer_id=None if customer_id is None else str(customer_id),
                order_date=row.get(order_date_key),
                amount=row.get(amount_key),
                order_id=None if order_id is None else str(order_id),
            )
        )
    return records


def parse_order_date(value: Any) -> Optional[datetime]:
    """Normalise an order date to a datetime, or None if unusable.

    Dates become midnight datetimes. Strings are parsed as ISO-8601, with a
    trailing ``Z`` read as UTC.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return parse_order_date(
                datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            )
        except ValueError:
            return None
    return None


def parse_amount(value: Any) -> Optional[Decimal]:
    """Convert an amount to Decimal, or None if it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount
