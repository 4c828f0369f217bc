"""Drawing helpers for the map panels.

Each helper draws onto an explicit Axes; nothing touches pyplot state.
"""

import math
from typing import Optional

import geopandas as gpd
from matplotlib import colormaps
from matplotlib.cm import ScalarMappable
from matplotlib.colors import Normalize

from density.base import DensitySurface
from mapfigure.basemap import Basemap

LEVEL_LABELS = {
    "kde": "Estimated density",
    "hexbin": "Incidents per hexagon",
    "rectbin": "Incidents per cell",
}


def draw_basemap(ax, basemap: Optional[Basemap]) -> None:
    """Draw the background raster below everything else."""
    if basemap is None:
        return
    ax.imshow(basemap.image, extent=basemap.extent, interpolation="bilinear", zorder=0)


def draw_surface(ax, surface: Optional[DensitySurface], cmap: str, alpha: float,
                 vmin: Optional[float] = None, vmax: Optional[float] = None) -> Optional[ScalarMappable]:
    """Fill the surface polygons coloured by ``level``.

    Returns:
        A ScalarMappable for a colorbar, or None when nothing was drawn.
    """
    if surface is None or surface.empty:
        return None
    polys = surface.polygons.sort_values("level", kind="stable")
    lo = float(polys["level"].min()) if vmin is None else vmin
    hi = float(polys["level"].max()) if vmax is None else vmax
    if hi <= lo:
        hi = lo + 1.0
    norm = Normalize(vmin=lo, vmax=hi)
    cm = colormaps[cmap]
    polys.plot(ax=ax, color=[cm(norm(v)) for v in polys["level"]], alpha=alpha, linewidth=0, zorder=2)
    return ScalarMappable(norm=norm, cmap=cm)


def draw_boundary(ax, boundary: Optional[gpd.GeoDataFrame], color: str, width: float) -> None:
    """Outline polygon boundaries, skipping non-polygonal rows."""
    if boundary is None or boundary.empty:
        return
    b = boundary[boundary.geometry.geom_type.isin(["Polygon", "MultiPolygon"])]
    if len(b):
        b.boundary.plot(ax=ax, color=color, linewidth=width, zorder=3)


def frame_axes(ax, boundary: Optional[gpd.GeoDataFrame], surface: Optional[DensitySurface]) -> None:
    """Limit the view to the boundary (or the surface extent) and fix the aspect.

    Incidents outside the boundary polygon are still drawn when they fall
    inside the view; nothing is clipped.
    """
    if boundary is not None and not boundary.empty:
        x0, y0, x1, y1 = boundary.total_bounds
        padx, pady = 0.02 * (x1 - x0), 0.02 * (y1 - y0)
        ax.set_xlim(x0 - padx, x1 + padx)
        ax.set_ylim(y0 - pady, y1 + pady)
    elif surface is not None and surface.extent is not None:
        x0, x1, y0, y1 = surface.extent
        ax.set_xlim(x0, x1)
        ax.set_ylim(y0, y1)
    else:
        return
    mid_lat = sum(ax.get_ylim()) / 2.0
    # degrees of longitude shrink with latitude
    if abs(mid_lat) < 90:
        ax.set_aspect(1.0 / math.cos(math.radians(mid_lat)))
