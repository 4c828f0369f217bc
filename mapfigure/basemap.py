"""Basemap tiles from an external XYZ provider via contextily."""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import contextily as ctx

from pipeline.errors import InvalidParameterError, ResourceUnavailableError


@dataclass(frozen=True, eq=False)
class Basemap:
    """Background raster plus its extent (west, east, south, north) in EPSG:4326."""

    image: np.ndarray
    extent: Tuple[float, float, float, float]


def resolve_provider(name: str):
    """Look up a tile provider by dotted name, e.g. "CartoDB.Positron"."""
    try:
        return ctx.providers.query_name(name)
    except ValueError as e:
        raise InvalidParameterError(f"Unknown basemap provider: {name}") from e


def fetch_basemap(
    bbox: Tuple[float, float, float, float],
    provider: str = "CartoDB.Positron",
    zoom="auto",
) -> Basemap:
    """Download tiles covering a lon/lat bounding box.

    The tiles come back in Web Mercator and are warped to EPSG:4326 so they
    line up with the boundary and incident coordinates. There are no
    retries; retrying is up to the caller.

    Args:
        bbox: (west, south, east, north) in degrees.
        provider: Dotted xyzservices provider name.
        zoom: Tile zoom level or "auto".

    Returns:
        Basemap with the warped image and its extent.

    Raises:
        ResourceUnavailableError: If the tile service can't be reached or
            returns unusable data.
    """
    source = resolve_provider(provider)
    west, south, east, north = bbox
    try:
        img, ext = ctx.bounds2img(west, south, east, north, zoom=zoom, source=source, ll=True)
        img, ext = ctx.warp_tiles(img, ext, t_crs="EPSG:4326")
    except Exception as e:
        raise ResourceUnavailableError(f"Basemap tiles unavailable from {provider}: {e}") from e
    return Basemap(image=np.asarray(img), extent=tuple(float(v) for v in ext))
