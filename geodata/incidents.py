"""Incident CSV loading, coordinate cleaning and category filtering.

Rows are parsed one at a time so that a single malformed coordinate drops
only its own row. The working collection then excludes the (0, 0)
"no location recorded" sentinel.
"""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Iterable, Optional

import pandas as pd

from pipeline.config import IncidentColumns
from pipeline.errors import MalformedRecordError

INCIDENT_COLUMNS = ["lon", "lat", "category"]


@dataclass(frozen=True, eq=False)
class IncidentCollection:
    """Ordered incidents with lon/lat/category columns.

    Attributes:
        df: DataFrame with columns lon (float), lat (float), category (str).
        crs: CRS assumption shared with the boundary data.
        dropped_rows: Rows discarded because their coordinates didn't parse.
        zero_rows: Rows discarded by the (0, 0) filter.
    """

    df: pd.DataFrame
    crs: str = "EPSG:4326"
    dropped_rows: int = 0
    zero_rows: int = 0

    def __len__(self) -> int:
        return len(self.df)

    @property
    def empty(self) -> bool:
        return self.df.empty


def _parse_coordinate(value, name: str, row_index) -> float:
    if value is None:
        raise MalformedRecordError(f"Row {row_index}: missing {name}", row_index=row_index)
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        raise MalformedRecordError(f"Row {row_index}: non-numeric {name} {text!r}", row_index=row_index)
    if not math.isfinite(number):
        raise MalformedRecordError(f"Row {row_index}: non-finite {name} {text!r}", row_index=row_index)
    return number


def parse_incident_row(row: dict, columns: IncidentColumns = IncidentColumns(), row_index=None) -> dict:
    """Convert one raw CSV row into an incident record.

    Args:
        row: Mapping of CSV column name to raw (string) value.
        columns: Column mapping for lon/lat/category.
        row_index: Position of the row, used in error messages.

    Returns:
        dict with keys lon, lat, category.

    Raises:
        MalformedRecordError: If lon or lat is missing or not numeric.
    """
    lon = _parse_coordinate(row.get(columns.lon_col), "longitude", row_index)
    lat = _parse_coordinate(row.get(columns.lat_col), "latitude", row_index)
    category = row.get(columns.category_col)
    return {"lon": lon, "lat": lat, "category": "" if category is None else str(category)}


def drop_zero_coordinates(df: pd.DataFrame, x_col: str = "lon", y_col: str = "lat") -> pd.DataFrame:
    """Remove rows where BOTH coordinates are exactly zero.

    A row with only one zero coordinate is kept.
    """
    mask = (df[x_col] == 0) & (df[y_col] == 0)
    return df[~mask].reset_index(drop=True)


def load_incidents(
    path: str,
    columns: IncidentColumns = IncidentColumns(),
    crs: str = "EPSG:4326",
) -> IncidentCollection:
    """Load and clean incident records from a delimited file.

    Args:
        path: Path to the CSV file.
        columns: Column mapping for lon/lat/category.
        crs: CRS the coordinates are recorded in. No reprojection is done.

    Returns:
        IncidentCollection with malformed and (0, 0) rows removed.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If required columns are missing.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Incident file not found: {path}")

    raw = pd.read_csv(path, dtype=str, keep_default_na=False)

    required = {columns.lon_col, columns.lat_col, columns.category_col}
    missing = required - set(raw.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}. "
                         f"Available columns: {sorted(raw.columns.tolist())}")

    records = []
    dropped = 0
    first_error: Optional[MalformedRecordError] = None
    for idx, row in zip(raw.index, raw[[columns.lon_col, columns.lat_col, columns.category_col]].to_dict("records")):
        try:
            records.append(parse_incident_row(row, columns, row_index=idx))
        except MalformedRecordError as e:
            dropped += 1
            if first_error is None:
                first_error = e

    if dropped:
        print(f"[WARN] Dropped {dropped} malformed row(s) from {os.path.basename(path)} (first: {first_error})")

    df = pd.DataFrame.from_records(records, columns=INCIDENT_COLUMNS)
    df = df.astype({"lon": float, "lat": float, "category": str})
    before = len(df)
    df = drop_zero_coordinates(df)

    return IncidentCollection(df=df, crs=crs, dropped_rows=dropped, zero_rows=before - len(df))


def filter_categories(collection: IncidentCollection, labels: Iterable[str]) -> IncidentCollection:
    """Keep incidents whose category exactly matches one of ``labels``.

    Matching is case-sensitive with no substring or fuzzy matching. An
    empty result is valid.

    Raises:
        ValueError: If ``labels`` is empty.
    """
    wanted = set(labels)
    if not wanted:
        raise ValueError("filter_categories() needs at least one category label")
    df = collection.df[collection.df["category"].isin(wanted)].reset_index(drop=True)
    return replace(collection, df=df)


def category_counts(collection: IncidentCollection, top_n: Optional[int] = None) -> pd.Series:
    """Incident count per category, most frequent first."""
    counts = collection.df["category"].value_counts()
    return counts.head(top_n) if top_n is not None else counts
