"""Boundary polygon loading and named-region selection."""

import os

import geopandas as gpd

from pipeline.errors import NotFoundError


def load_boundaries(path: str, label_col: str = "CITY_NAME") -> gpd.GeoDataFrame:
    """Load a polygon boundary dataset (shapefile, GeoJSON, GeoPackage).

    Geometries are passed through unchanged; no validation or repair is
    performed. A dataset without CRS metadata is assumed to be lon/lat
    (EPSG:4326) and is tagged, not reprojected.

    Args:
        path: Path to the vector file.
        label_col: Column holding the region names.

    Returns:
        GeoDataFrame with the label column and geometry.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the label column is missing.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Boundary file not found: {path}")
    gdf = gpd.read_file(path)
    if label_col not in gdf.columns:
        raise ValueError(
            f"Boundary file has no '{label_col}' column. "
            f"Available columns: {sorted(c for c in gdf.columns if c != 'geometry')}"
        )
    if gdf.crs is None:
        # assume lon/lat if not present
        gdf = gdf.set_crs("EPSG:4326")
    return gdf


def select_boundary(
    boundaries: gpd.GeoDataFrame,
    name: str,
    label_col: str = "CITY_NAME",
) -> gpd.GeoDataFrame:
    """Select exactly one named region out of a boundary collection.

    Matching is exact and case-sensitive. Several rows sharing the label
    (e.g. a city split into multiple parts) are dissolved into one.

    Args:
        boundaries: Collection returned by load_boundaries().
        name: Region label to select.
        label_col: Column holding the region names.

    Returns:
        One-row GeoDataFrame whose label equals ``name``.

    Raises:
        NotFoundError: If no region carries the label.
    """
    matches = boundaries[boundaries[label_col] == name]
    if matches.empty:
        available = sorted(boundaries[label_col].dropna().astype(str).unique())
        preview = ", ".join(available[:10]) + (" ..." if len(available) > 10 else "")
        raise NotFoundError(f"No boundary labelled '{name}' in column '{label_col}'. Available: {preview}")
    if len(matches) > 1:
        matches = matches[[label_col, "geometry"]].dissolve(by=label_col, as_index=False)
    return matches.reset_index(drop=True)


def boundary_label(boundary: gpd.GeoDataFrame, label_col: str = "CITY_NAME") -> str:
    """Read the label back from a selected boundary."""
    return str(boundary[label_col].iloc[0])
