"""Kernel density estimation with iso-density contour polygons.

Evaluates a separable Gaussian KDE on a regular grid over the (padded)
extent of the points and extracts one set of polygons per contour level.
"""

from typing import Optional, Tuple
import numpy as np
import pandas as pd
import geopandas as gpd
from contourpy import contour_generator, FillType
from shapely.geometry import Polygon
from sklearn.neighbors import KernelDensity

from density.base import DensityEstimator, DensitySurface
from density.utils import bandwidth_nrd, check_bandwidth
from pipeline.errors import InsufficientDataError, InvalidParameterError


class KDEDensity(DensityEstimator):
    """KDE surface rendered as iso-density contour polygons.

    Args:
        bins: Number of contour levels, evenly spaced strictly between the
            minimum and maximum grid density.
        bandwidth: Kernel bandwidth as a number or an (hx, hy) pair in
            coordinate units (default: None = normal reference rule per axis).
        grid_size: Grid points per axis for evaluation (default: 100).
        margin: Fraction of the data range added around the extent (default: 0.05).
        **kwargs: Additional arguments passed to DensityEstimator.
    """

    def __init__(
        self,
        bins: int = 10,
        bandwidth=None,
        grid_size: int = 100,
        margin: float = 0.05,
        **kwargs
    ):
        super().__init__(bins=bins, margin=margin, **kwargs)
        if isinstance(grid_size, bool) or not isinstance(grid_size, (int, np.integer)) or grid_size < 2:
            raise InvalidParameterError(f"grid_size must be an integer >= 2, got {grid_size!r}")
        self.bandwidth = check_bandwidth(bandwidth)
        self.grid_size = int(grid_size)
        self.method = "kde"
        self.bandwidth_: Optional[Tuple[float, float]] = None
        self.model: Optional[KernelDensity] = None

        self.params.update({
            "bandwidth": self.bandwidth,
            "grid_size": self.grid_size,
        })

    def fit(self, df: pd.DataFrame, x_col: str = "lon", y_col: str = "lat") -> "KDEDensity":
        """Fit the KDE to the point set.

        An empty point set is accepted and produces an empty surface.

        Raises:
            InsufficientDataError: If there is 1 point, all points coincide,
                or the reference rule yields a zero bandwidth on an axis.
        """
        super().fit(df, x_col, y_col)
        xy = self.xy_
        if self.n_samples == 0:
            self.model = None
            self.bandwidth_ = None
            return self
        if self.n_samples < 2:
            raise InsufficientDataError(f"KDE needs at least 2 points, got {self.n_samples}")
        if np.all(xy == xy[0]):
            raise InsufficientDataError(
                f"All {self.n_samples} points are coincident at {tuple(xy[0])}; density is undefined"
            )

        if self.bandwidth is None:
            hx, hy = bandwidth_nrd(xy[:, 0]), bandwidth_nrd(xy[:, 1])
            if hx <= 0 or hy <= 0:
                raise InsufficientDataError(
                    "Points have no spread along one axis; pass an explicit bandwidth"
                )
        else:
            hx, hy = self.bandwidth
        self.bandwidth_ = (hx, hy)

        # separable kernel: unit bandwidth on per-axis scaled coordinates
        self.model = KernelDensity(bandwidth=1.0, kernel="gaussian")
        self.model.fit(xy / np.array([hx, hy]))
        return self

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        """Density at arbitrary (n, 2) points, in 1 / (x-unit * y-unit)."""
        if self.model is None:
            raise RuntimeError("Model not fitted. Run .fit() first.")
        hx, hy = self.bandwidth_
        log_density = self.model.score_samples(np.asarray(points, dtype=float) / np.array([hx, hy]))
        return np.exp(log_density) / (hx * hy)

    def evaluate_grid(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Evaluate the KDE on a regular grid.

        Returns:
            Tuple containing:
            - xs: 1-D x coordinates (grid_size,)
            - ys: 1-D y coordinates (grid_size,)
            - Z: Density matrix of shape (grid_size, grid_size), rows along y
        """
        xmin, xmax, ymin, ymax = self._extent()
        xs = np.linspace(xmin, xmax, self.grid_size)
        ys = np.linspace(ymin, ymax, self.grid_size)
        X, Y = np.meshgrid(xs, ys)
        Z = self.evaluate(np.column_stack([X.ravel(), Y.ravel()])).reshape(X.shape)
        return xs, ys, Z

    def contour_levels(self, Z: np.ndarray) -> np.ndarray:
        """``bins`` evenly spaced levels strictly between Z.min() and Z.max()."""
        zmin, zmax = float(Z.min()), float(Z.max())
        if not zmax > zmin:
            raise InsufficientDataError("Density grid is flat; no contour levels can be drawn")
        return np.linspace(zmin, zmax, self.bins + 2)[1:-1]

    def _contour_polygons(self, xs, ys, Z, levels):
        gen = contour_generator(xs, ys, Z, fill_type=FillType.OuterOffset)
        upper = float(Z.max()) * 2.0
        rows, geoms = [], []
        for level in levels:
            points_list, offsets_list = gen.filled(float(level), upper)
            for points, offsets in zip(points_list, offsets_list):
                rings = [points[offsets[j]:offsets[j + 1]] for j in range(len(offsets) - 1)]
                rings = [r for r in rings if len(r) >= 4]
                if not rings:
                    continue
                poly = Polygon(rings[0], holes=rings[1:])
                if poly.is_empty or poly.area <= 0:
                    continue
                rows.append(float(level))
                geoms.append(poly)
        return rows, geoms

    def surface(self) -> DensitySurface:
        """Extract iso-density contour polygons.

        Each row is the region where the density is >= its ``level``, so
        polygons for higher levels nest inside lower ones.
        """
        self._require_fit()
        if self.n_samples == 0:
            return self._surface(self._empty_polygons())

        xs, ys, Z = self.evaluate_grid()
        levels = self.contour_levels(Z)
        rows, geoms = self._contour_polygons(xs, ys, Z, levels)
        polygons = gpd.GeoDataFrame({"level": pd.Series(rows, dtype=float)}, geometry=geoms, crs=self.crs)

        return self._surface(
            polygons,
            extent=(float(xs[0]), float(xs[-1]), float(ys[0]), float(ys[-1])),
            bandwidth=self.bandwidth_,
            grid=(xs, ys, Z),
        )
