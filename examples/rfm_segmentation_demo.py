"""RFM segmentation demo with synthetic line-item data.

This example walks through the RFM pipeline:
1. Generate synthetic line-item transactions
2. Load them into SQLite and read them back with a SQL query
3. Score recency, frequency and monetary quintiles
4. Classify composites with an example segment table
5. Preview the results with pandas
"""

import logging
import sqlite3
from datetime import date

from rfm_audit.foundation import RFMConfig, SegmentClassifier
from rfm_audit.pandas import (
    aggregates_to_dataframe,
    scores_to_dataframe,
    transactions_from_sql,
)
from rfm_audit.pipeline import score_customers
from rfm_audit.synthetic import SyntheticConfig, generate_transactions

# Example business policy; the classifier itself has no defaults.
EXAMPLE_SEGMENTS = [
    ("555", "Best Customers"),
    ("*5*", "Loyal Customers"),
    ("**5", "Big Spenders"),
    ("51*", "New Customers"),
    ("11*", "Lost Customers"),
    ("[12][45]*", "Churned Customers"),
]


def main():
    """Demonstrate the RFM scoring pipeline end to end."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("RFM Segmentation Demo")
    print("=" * 80)

    print("\n📊 Step 1: Generating synthetic transactions...")
    records = generate_transactions(
        date(2024, 1, 1),
        date(2024, 12, 31),
        SyntheticConfig(n_customers=250, seed=42),
    )
    print(f"✓ Generated {len(records):,} line items")

    print("\n🗄️  Step 2: Round-tripping through SQLite...")
    con = sqlite3.connect(":memory:")
    try:
        con.execute(
            "CREATE TABLE order_lines "
            "(customer_id TEXT, order_id TEXT, order_date TEXT, line_total TEXT)"
        )
        con.executemany(
            "INSERT INTO order_lines VALUES (?, ?, ?, ?)",
            [
                (r.customer_id, r.order_id, r.order_date.isoformat(), str(r.amount))
                for r in records
            ],
        )
        loaded = transactions_from_sql(
            "SELECT customer_id, order_id, order_date, line_total AS amount "
            "FROM order_lines",
            con,
        )
    finally:
        con.close()
    print(f"✓ Loaded {len(loaded):,} line items")

    print("\n🧮 Step 3-4: Scoring and classifying...")
    classifier = SegmentClassifier.from_pairs(EXAMPLE_SEGMENTS)
    result = score_customers(
        loaded, date(2025, 1, 1), config=RFMConfig(), segments=classifier
    )
    print(f"✓ Scored {len(result.scores)} customers")

    print("\n📈 Step 5: Preview")
    preview = aggregates_to_dataframe(result.aggregates).merge(
        scores_to_dataframe(result.scores), on="customer_id"
    )
    print(preview.head(10).to_string(index=False))
    print("\nSegment distribution:")
    for label, count in sorted(result.segment_counts.items(), key=lambda kv: -kv[1]):
        print(f"  {label:<20} {count:>5}")


if __name__ == "__main__":
    main()
