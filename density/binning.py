"""Count-per-cell density on hexagonal and rectangular grids."""

import math
import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Polygon, box

from density.base import DensityEstimator, DensitySurface

# unit hexagon, scaled by (sx, sy / 3) around each centre
_HEX_VERTICES = np.array([[.5, -.5], [.5, .5], [0., 1.], [-.5, .5], [-.5, -.5], [0., -1.]])


class HexbinDensity(DensityEstimator):
    """Hexagonal binning with ``bins`` hexagons across the x extent.

    Uses the two offset rectangular lattices of matplotlib's hexbin: every
    point is counted in the hexagon whose centre is nearest, and only
    non-empty hexagons are returned.
    """

    def __init__(self, bins: int = 40, margin: float = 0.05, **kwargs):
        super().__init__(bins=bins, margin=margin, **kwargs)
        self.method = "hexbin"

    def surface(self) -> DensitySurface:
        xy = self._require_fit()
        if len(xy) == 0:
            return self._surface(self._empty_polygons())

        xmin, xmax, ymin, ymax = self._extent()
        nx = self.bins
        ny = max(1, int(nx / math.sqrt(3)))
        sx = (xmax - xmin) / nx
        sy = (ymax - ymin) / ny

        ix = (xy[:, 0] - xmin) / sx
        iy = (xy[:, 1] - ymin) / sy
        ix1 = np.round(ix).astype(int)
        iy1 = np.round(iy).astype(int)
        ix2 = np.floor(ix).astype(int)
        iy2 = np.floor(iy).astype(int)
        d1 = (ix - ix1) ** 2 + 3.0 * (iy - iy1) ** 2
        d2 = (ix - ix2 - .5) ** 2 + 3.0 * (iy - iy2 - .5) ** 2
        on_first = d1 < d2

        counts1 = np.zeros((nx + 1, ny + 1), dtype=int)
        counts2 = np.zeros((nx, ny), dtype=int)
        np.add.at(counts1, (ix1[on_first], iy1[on_first]), 1)
        np.add.at(counts2, (np.clip(ix2[~on_first], 0, nx - 1), np.clip(iy2[~on_first], 0, ny - 1)), 1)

        offsets = _HEX_VERTICES * np.array([sx, sy / 3.0])
        levels, geoms = [], []
        for counts, shift in ((counts1, 0.0), (counts2, 0.5)):
            for i, j in zip(*np.nonzero(counts)):
                cx = xmin + (i + shift) * sx
                cy = ymin + (j + shift) * sy
                geoms.append(Polygon(offsets + np.array([cx, cy])))
                levels.append(float(counts[i, j]))

        polygons = gpd.GeoDataFrame({"level": pd.Series(levels, dtype=float)}, geometry=geoms, crs=self.crs)
        return self._surface(polygons, extent=(xmin, xmax, ymin, ymax))


class RectBinDensity(DensityEstimator):
    """Rectangular 2D histogram with ``bins`` x ``bins`` cells."""

    def __init__(self, bins: int = 40, margin: float = 0.05, **kwargs):
        super().__init__(bins=bins, margin=margin, **kwargs)
        self.method = "rectbin"

    def surface(self) -> DensitySurface:
        xy = self._require_fit()
        if len(xy) == 0:
            return self._surface(self._empty_polygons())

        xmin, xmax, ymin, ymax = self._extent()
        H, xedges, yedges = np.histogram2d(
            xy[:, 0], xy[:, 1], bins=self.bins, range=[[xmin, xmax], [ymin, ymax]]
        )
        levels, geoms = [], []
        for i, j in zip(*np.nonzero(H)):
            geoms.append(box(xedges[i], yedges[j], xedges[i + 1], yedges[j + 1]))
            levels.append(float(H[i, j]))

        polygons = gpd.GeoDataFrame({"level": pd.Series(levels, dtype=float)}, geometry=geoms, crs=self.crs)
        return self._surface(polygons, extent=(xmin, xmax, ymin, ymax))
