"""Generate a synthetic visitor export for testing and demonstration.

Creates a few weeks of hourly counter rows with a weekday rhythm (busier
weekends, lunch and evening peaks) in the CSV layout the loader reads.
"""

import random
from datetime import date, timedelta
from pathlib import Path

import pandas as pd

OPENING_HOURS = range(10, 22)


def _hour_weight(hour: int) -> float:
    if 12 <= hour <= 13:
        return 1.6
    if 18 <= hour <= 20:
        return 1.4
    return 1.0


def generate_sample_data(
    output_path: str = "data/sample/visitors.csv",
    start: date = date(2024, 3, 4),
    days: int = 28,
    seed: int = 42,
) -> str:
    """Write a synthetic visitor export.

    Args:
        output_path: Path for the output CSV file.
        start: First day of data.
        days: Number of consecutive days to generate.
        seed: Random seed for reproducible output.

    Returns:
        Path to the generated file.
    """
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    rng = random.Random(seed)

    rows = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        day_factor = 1.5 if day.weekday() >= 5 else 1.0
        for hour in OPENING_HOURS:
            base = 20 * day_factor * _hour_weight(hour)
            entering = max(0, int(rng.gauss(base, base * 0.15)))
            leaving = max(0, int(rng.gauss(base, base * 0.15)))
            men_in = rng.randint(0, entering)
            men_out = rng.randint(0, leaving)
            rows.append(
                {
                    "timestamp": f"{day:%d/%m/%Y} {hour:02d}:00",
                    "entering_visitors": entering,
                    "leaving_visitors": leaving,
                    "entering_men": men_in,
                    "leaving_men": men_out,
                    "entering_women": entering - men_in,
                    "leaving_women": leaving - men_out,
                    "entering_groups": entering // 4,
                    "leaving_groups": leaving // 4,
                    "passersby": int(entering * rng.uniform(3.0, 5.0)),
                }
            )

    pd.DataFrame(rows).to_csv(output_path, index=False)
    return output_path


if __name__ == "__main__":
    path = generate_sample_data()
    print(f"Sample data generated: {path}")
