"""Loading of visitor counter exports.

Reads a CSV export into :class:`VisitorRecord` objects. Column names may be
snake_case or the camelCase used by the counter's own export.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from visitor_analytics.models import METRIC_FIELDS, VisitorMetrics, VisitorRecord
from visitor_analytics.utils.dates import InvalidTimestampError

logger = logging.getLogger(__name__)

CAMEL_CASE_COLUMNS: dict[str, str] = {
    "enteringVisitors": "entering_visitors",
    "leavingVisitors": "leaving_visitors",
    "enteringMen": "entering_men",
    "leavingMen": "leaving_men",
    "enteringWomen": "entering_women",
    "leavingWomen": "leaving_women",
    "enteringGroups": "entering_groups",
    "leavingGroups": "leaving_groups",
}


class DataLoadError(Exception):
    """Raised when a visitor export cannot be read or is malformed."""


@dataclass
class LoadResult:
    """Records plus the upstream error, as handed to the analysis session."""

    records: list[VisitorRecord] = field(default_factory=list)
    error: Optional[str] = None


def records_from_frame(df: pd.DataFrame) -> list[VisitorRecord]:
    """Convert a DataFrame of counter rows into visitor records.

    Missing metric columns are treated as zero; a missing ``timestamp``
    column is an error.

    Raises:
        DataLoadError: On missing timestamps, bad timestamps or negative
            or non-numeric counts.
    """
    df = df.rename(columns=CAMEL_CASE_COLUMNS)
    if "timestamp" not in df.columns:
        raise DataLoadError("Missing required column: timestamp")

    missing = [name for name in METRIC_FIELDS if name not in df.columns]
    if missing:
        logger.warning("Columns missing from export, using 0: %s", ", ".join(missing))
        for name in missing:
            df[name] = 0

    counts = df[list(METRIC_FIELDS)].apply(pd.to_numeric, errors="coerce")
    bad_rows = counts.isna().any(axis=1)
    if bad_rows.any():
        first = int(bad_rows.idxmax())
        raise DataLoadError(f"Non-numeric visitor count in row {first}")
    if (counts < 0).to_numpy().any():
        raise DataLoadError("Visitor counts must not be negative")
    counts = counts.astype(int)

    records = []
    for idx, timestamp in df["timestamp"].items():
        values = counts.loc[idx]
        try:
            records.append(
                VisitorRecord(
                    timestamp=str(timestamp).strip(),
                    metrics=VisitorMetrics(
                        **{name: int(values[name]) for name in METRIC_FIELDS}
                    ),
                )
            )
        except InvalidTimestampError as e:
            raise DataLoadError(f"Row {idx}: {e}") from e
    return records


def load_visitor_records(path: str) -> list[VisitorRecord]:
    """Read a CSV export of visitor counts.

    Args:
        path: Path to the CSV file.

    Returns:
        Visitor records in file order.

    Raises:
        DataLoadError: If the file is missing, unreadable or malformed.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise DataLoadError(f"Visitor data file not found: {path}")

    try:
        df = pd.read_csv(csv_path, dtype={"timestamp": str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Could not read visitor data {path}: {e}") from e

    records = records_from_frame(df)
    logger.info("Loaded %d visitor records from %s", len(records), path)
    return records


def load_for_session(path: str) -> LoadResult:
    """Load records, turning a failure into the session's upstream error."""
    try:
        return LoadResult(records=load_visitor_records(path))
    except DataLoadError as e:
        logger.error("Visitor data could not be loaded: %s", e)
        return LoadResult(error=str(e))
