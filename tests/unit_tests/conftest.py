"""Pytest fixtures for density map unit tests.

This module provides shared synthetic datasets (boundary files, incident
CSVs, point blobs) so every module can be tested in isolation without the
real LAPD and county files.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import geopandas as gpd
import pytest
from PIL import Image
from shapely.geometry import box

from pipeline.config import GRAND_THEFT, PETTY_THEFT

LA_BOX = (-118.67, 33.70, -118.15, 34.34)
LONG_BEACH_BOX = (-118.25, 33.72, -118.06, 33.88)


@pytest.fixture
def boundary_gdf():
    """Two-city boundary collection in EPSG:4326."""
    return gpd.GeoDataFrame(
        {"CITY_NAME": ["Los Angeles", "Long Beach"]},
        geometry=[box(*LA_BOX), box(*LONG_BEACH_BOX)],
        crs="EPSG:4326",
    )


@pytest.fixture
def boundary_file(tmp_path, boundary_gdf):
    """Boundary collection written to a GeoJSON file.

    Returns:
        str: Path to the GeoJSON file.
    """
    path = tmp_path / "cities.geojson"
    boundary_gdf.to_file(path, driver="GeoJSON")
    return str(path)


@pytest.fixture
def write_csv(tmp_path):
    """Factory writing rows (lon, lat, category) to a CSV with LAPD column names."""

    def _write(rows, name="incidents.csv"):
        path = tmp_path / name
        df = pd.DataFrame(rows, columns=["LON", "LAT", "Crm Cd Desc"])
        df.insert(0, "DR_NO", range(1, len(df) + 1))
        df.to_csv(path, index=False)
        return str(path)

    return _write


@pytest.fixture
def shoplifting_rows():
    """5 petty theft, 3 grand theft and 10 unrelated incidents inside LA."""
    rng = np.random.default_rng(7)
    lons = -118.35 + rng.normal(0, 0.03, 18)
    lats = 34.05 + rng.normal(0, 0.03, 18)
    cats = [PETTY_THEFT] * 5 + [GRAND_THEFT] * 3 + ["BURGLARY FROM VEHICLE"] * 6 + ["VANDALISM - MISDEAMEANOR ($399 OR UNDER)"] * 4
    return [(float(x), float(y), c) for x, y, c in zip(lons, lats, cats)]


@pytest.fixture
def blob_df():
    """Single Gaussian blob of 200 points around downtown LA."""
    rng = np.random.default_rng(42)
    coords = rng.normal(0, 0.02, (200, 2)) + np.array([-118.25, 34.05])
    return pd.DataFrame({"lon": coords[:, 0], "lat": coords[:, 1]})


@pytest.fixture
def two_blob_df():
    """Two distinct spatial clusters of 100 points each."""
    rng = np.random.default_rng(3)
    blob1 = rng.normal(0, 0.01, (100, 2)) + np.array([-118.40, 34.00])
    blob2 = rng.normal(0, 0.01, (100, 2)) + np.array([-118.25, 34.10])
    coords = np.vstack([blob1, blob2])
    return pd.DataFrame({"lon": coords[:, 0], "lat": coords[:, 1]})


@pytest.fixture
def inset_file(tmp_path):
    """A 64x32 RGB PNG."""
    path = tmp_path / "inset.png"
    Image.new("RGB", (64, 32), color=(200, 30, 30)).save(path)
    return str(path)
