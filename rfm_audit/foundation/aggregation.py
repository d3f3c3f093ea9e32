"""Aggregate raw transactions into per-customer RFM inputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from rfm_audit.foundation.config import InvalidRecordPolicy, RFMConfig
from rfm_audit.foundation.errors import InvalidRecordError
from rfm_audit.foundation.transactions import (
    TransactionRecord,
    parse_amount,
    parse_order_date,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerAggregate:
    """Recency, frequency and monetary inputs for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    last_purchase_date:
        Most recent order date for the customer
    purchase_count:
        Number of distinct orders (line items of one order count once)
    total_spend:
        Sum of line amounts, rounded to cents
    recency_days:
        Whole days from last_purchase_date to the reference date
    """

    customer_id: str
    last_purchase_date: datetime
    purchase_count: int
    total_spend: Decimal
    recency_days: int

    def __post_init__(self) -> None:
        """Validate aggregate values."""
        if self.recency_days < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency_days} (customer_id={self.customer_id})"
            )
        if self.purchase_count <= 0:
            raise ValueError(
                f"Purchase count must be positive: {self.purchase_count} (customer_id={self.customer_id})"
            )


@dataclass(frozen=True)
class AggregationResult:
    """Aggregates plus diagnostics about records that were left out."""

    aggregates: list[CustomerAggregate]
    excluded_missing_customer: int = 0
    skipped_invalid: int = 0


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def aggregate_customers(
    records: Iterable[TransactionRecord],
    current_date: Union[date, datetime],
    config: Optional[RFMConfig] = None,
) -> AggregationResult:
    """Aggregate transaction records into one :class:`CustomerAggregate` per customer.

    Parameters
    ----------
    records:
        Transaction records in any order.
    current_date:
        Reference date for recency. Always injected by the caller so runs
        are reproducible.
    config:
        Validation policy. Defaults to :class:`RFMConfig` defaults
        (negative amounts rejected, fail fast).

    Returns
    -------
    AggregationResult
        Aggregates sorted by customer_id, with counts of records excluded
        for a missing customer id and records skipped as invalid.

    Raises
    ------
    InvalidRecordError
        A record is invalid and the policy is ``raise``.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> records = [
    ...     TransactionRecord("C1", date(2023, 3, 1), Decimal("20"), order_id="O1"),
    ...     TransactionRecord("C1", date(2023, 3, 1), Decimal("5"), order_id="O1"),
    ...     TransactionRecord("C1", date(2023, 4, 1), Decimal("10"), order_id="O2"),
    ... ]
    >>> result = aggregate_customers(records, date(2023, 4, 15))
    >>> agg = result.aggregates[0]
    >>> agg.purchase_count, agg.total_spend, agg.recency_days
    (2, Decimal('35.00'), 14)
    """
    config = config or RFMConfig()
    reference = _as_datetime(current_date)
    # A plain date covers the whole of that day
    whole_day = not isinstance(current_date, datetime)

    excluded_missing_customer = 0
    skipped_invalid = 0
    customer_data: dict[str, dict] = {}

    for idx, record in enumerate(records):
        customer_id = record.customer_id
        if customer_id is None or not str(customer_id).strip():
            excluded_missing_customer += 1
            continue

        try:
            order_ts, amount = _validate_record(
                record, idx, reference, whole_day, config
            )
        except InvalidRecordError:
            if config.on_invalid_record is InvalidRecordPolicy.RAISE:
                raise
            skipped_invalid += 1
            continue

        data = customer_data.setdefault(
            customer_id,
            {
                "last_purchase_date": order_ts,
                "orders": set(),
                "total_spend": Decimal("0"),
            },
        )
        if order_ts > data["last_purchase_date"]:
            data["last_purchase_date"] = order_ts
        # Records without an order id are orders of their own
        order_key = record.order_id if record.order_id is not None else ("#", idx)
        data["orders"].add(order_key)
        data["total_spend"] += amount

    if excluded_missing_customer:
        logger.warning(
            f"Excluded {excluded_missing_customer} records with a missing customer_id"
        )
    if skipped_invalid:
        logger.warning(f"Skipped {skipped_invalid} invalid transaction records")

    aggregates: list[CustomerAggregate] = []
    for customer_id, data in customer_data.items():
        aggregates.append(
            CustomerAggregate(
                customer_id=customer_id,
                last_purchase_date=data["last_purchase_date"],
                purchase_count=len(data["orders"]),
                total_spend=data["total_spend"].quantize(
                    Decimal("0.01"), rounding=ROUND_HALF_UP
                ),
                recency_days=_recency_days(
                    reference, data["last_purchase_date"], whole_day
                ),
            )
        )

    aggregates.sort(key=lambda a: a.customer_id)
    return AggregationResult(
        aggregates=aggregates,
        excluded_missing_customer=excluded_missing_customer,
        skipped_invalid=skipped_invalid,
    )


def _recency_days(
    reference: datetime, last_purchase: datetime, whole_day: bool
) -> int:
    if whole_day:
        return (reference.date() - last_purchase.date()).days
    return (reference - last_purchase).days


def _validate_record(
    record: TransactionRecord,
    idx: int,
    reference: datetime,
    whole_day: bool,
    config: RFMConfig,
) -> tuple[datetime, Decimal]:
    order_ts = parse_order_date(record.order_date)
    if order_ts is None:
        raise InvalidRecordError(
            f"Order date is missing or unparseable: {record.order_date!r}", idx
        )
    try:
        if whole_day:
            is_future = order_ts >= reference + timedelta(days=1)
        else:
            is_future = order_ts > reference
    except TypeError as exc:
        raise InvalidRecordError(
            "Order date and current date mix timezone-aware and naive values", idx
        ) from exc
    if is_future:
        raise InvalidRecordError(
            f"Order date ({order_ts}) cannot be after current date "
            f"({reference.date() if whole_day else reference})",
            idx,
        )

    amount = parse_amount(record.amount)
    if amount is None:
        raise InvalidRecordError(
            f"Amount is missing or not numeric: {record.amount!r}", idx
        )
    if amount < 0 and not config.allow_negative_amounts:
        raise InvalidRecordError(f"Amount cannot be negative: {amount}", idx)
    return order_ts, amount
