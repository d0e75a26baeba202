from __future__ import annotations

import csv
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path


def generate(path: Path, rows: int = 400, start_price: float = 100.0) -> None:
    """Write a seeded random walk as timestamp,price,volume rows (hourly)."""
    random.seed(42)
    ts = datetime(2025, 1, 1, tzinfo=timezone.utc)
    price = start_price

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["timestamp", "price", "volume"])

        for _ in range(rows):
            drift = random.uniform(-0.01, 0.0105)
            price = max(1.0, price * (1 + drift))
            writer.writerow(
                [
                    ts.isoformat().replace("+00:00", "Z"),
                    f"{price:.4f}",
                    f"{random.uniform(10, 100):.4f}",
                ]
            )
            ts += timedelta(hours=1)


if __name__ == "__main__":
    out = Path("data/sample_prices.csv")
    out.parent.mkdir(parents=True, exist_ok=True)
    generate(out)
    print(f"Wrote {out}")
