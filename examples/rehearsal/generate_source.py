#!/usr/bin/env python3
"""
Seed a SQLite source table with synthetic customer documents for rehearsals.

Each document is a JSON object containing:
- name: Synthetic display name
- ssn: Fake social security number (PII)
- contact.email: Fake email address (PII, nested)
- orders: A few order objects, some with a shipping_pii field
- created_at: ISO 8601 timestamp incrementing by seconds

Every 500th document is deliberately broken JSON so the run exercises the
quarantine path.

Usage:
    python generate_source.py              # 50,000 documents
    python generate_source.py 100000       # 100,000 documents
"""

import json
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

from ferryman.contracts import DurabilityLevel
from ferryman.stores import SqlDocumentStore


def build_document(i: int, base_timestamp: datetime) -> bytes:
    """One synthetic customer document."""
    if i % 500 == 0:
        return b'{"name": "broken'
    doc = {
        "name": f"Customer {i}",
        "ssn": f"{random.randint(100, 899):03d}-{random.randint(1, 99):02d}-{random.randint(1, 9999):04d}",
        "contact": {"email": f"customer{i}@example.invalid", "tier": random.choice(["gold", "silver", "bronze"])},
        "orders": [
            {"sku": f"SKU-{random.randint(1, 500)}", "shipping_pii": f"{i} Example Street"}
            for _ in range(random.randint(0, 3))
        ],
        "created_at": (base_timestamp + timedelta(seconds=i)).isoformat(),
    }
    return json.dumps(doc).encode("utf-8")


def generate_source(num_docs: int = 50_000, output_path: Path | None = None) -> None:
    """Write num_docs documents into the rehearsal source database."""
    if output_path is None:
        output_path = Path(__file__).parent / "source.db"

    base_timestamp = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)
    print(f"Generating {num_docs:,} documents into {output_path}...")  # noqa: T201

    with SqlDocumentStore(f"sqlite:///{output_path}") as source:
        for i in range(1, num_docs + 1):
            source.upsert(f"customer::{i:08d}", build_document(i, base_timestamp), DurabilityLevel.NONE)
            if i % 10_000 == 0:
                print(f"  {i:,} documents written...")  # noqa: T201

    print(f"Generated {num_docs:,} documents")  # noqa: T201


if __name__ == "__main__":
    num_docs = int(sys.argv[1]) if len(sys.argv) > 1 else 50_000

    if num_docs < 1 or num_docs > 1_000_000:
        print("Error: Document count must be between 1 and 1,000,000", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    generate_source(num_docs)
