"""Base density estimator interface.

Defines the DensitySurface result type and the abstract DensityEstimator
that the hexagonal-bin, rectangular-bin and KDE estimators implement,
providing a consistent fit/surface/info interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple
import numpy as np
import pandas as pd
import geopandas as gpd

from density.utils import (
    points_array,
    padded_extent,
    check_bins,
    canonical_params_json,
    param_hash_from_json,
    HYPERPARAM_KEYS,
)
from pipeline.errors import InvalidParameterError


@dataclass(frozen=True, eq=False)
class DensitySurface:
    """Renderable density result.

    Attributes:
        polygons: GeoDataFrame of cells or contour polygons with a numeric
            ``level`` column (count per bin, or iso-density level).
        mode: Estimator mode that produced it.
        params_json: Canonical JSON of the estimator parameters.
        params_hash: 10-character hash of params_json.
        n_points: Number of input points.
        extent: (xmin, xmax, ymin, ymax) the surface was computed over.
        bandwidth: (hx, hy) used by the KDE, None for bin modes.
        grid: (xs, ys, Z) evaluation grid for the KDE, None for bin modes.
    """

    polygons: gpd.GeoDataFrame
    mode: str
    params_json: str
    params_hash: str
    n_points: int
    extent: Optional[Tuple[float, float, float, float]] = None
    bandwidth: Optional[Tuple[float, float]] = None
    grid: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None

    @property
    def empty(self) -> bool:
        return self.polygons.empty

    @property
    def levels(self) -> np.ndarray:
        return np.unique(self.polygons["level"].to_numpy(dtype=float))


class DensityEstimator(ABC):
    """Abstract base class for density estimators.

    Attributes:
        bins: Bin count per axis, or number of contour levels.
        margin: Fraction of the data range added around the extent.
        crs: CRS of the input coordinates; carried onto the output polygons.
        params: Dictionary of estimator parameters.
        n_samples: Number of points after fitting.
        data_bbox: Bounding box of the input points (minx, miny, maxx, maxy).
    """

    def __init__(self, bins: int, margin: float = 0.05, crs: str = "EPSG:4326", **params):
        if margin is None or margin < 0:
            raise InvalidParameterError(f"margin must be >= 0, got {margin!r}")
        self.bins = check_bins(bins)
        self.margin = float(margin)
        self.crs = crs
        self.params = dict(params)
        self.params.update({"bins": self.bins, "margin": self.margin})
        self.n_samples: Optional[int] = None
        self.data_bbox: Optional[Tuple[float, float, float, float]] = None
        self.xy_: Optional[np.ndarray] = None

        # Store method name (set by subclasses)
        self.method: Optional[str] = None

    def fit(self, df: pd.DataFrame, x_col: str = "lon", y_col: str = "lat") -> "DensityEstimator":
        """Store the point set; subclasses add their own checks.

        Args:
            df: DataFrame with coordinate columns.
            x_col: Name of longitude/x column (default: "lon").
            y_col: Name of latitude/y column (default: "lat").

        Returns:
            self for method chaining.
        """
        xy = points_array(df, x_col, y_col)
        self.xy_ = xy
        self.n_samples = len(xy)
        if len(xy):
            self.data_bbox = (
                float(xy[:, 0].min()), float(xy[:, 1].min()),
                float(xy[:, 0].max()), float(xy[:, 1].max()),
            )
        else:
            self.data_bbox = None
        return self

    def _require_fit(self) -> np.ndarray:
        if self.xy_ is None:
            raise RuntimeError("Estimator not fitted. Run .fit() first.")
        return self.xy_

    def _extent(self) -> Tuple[float, float, float, float]:
        return padded_extent(self._require_fit(), self.margin)

    def _empty_polygons(self) -> gpd.GeoDataFrame:
        return gpd.GeoDataFrame({"level": pd.Series([], dtype=float)}, geometry=[], crs=self.crs)

    def _surface(self, polygons: gpd.GeoDataFrame, **extra) -> DensitySurface:
        info = self.info()
        return DensitySurface(
            polygons=polygons,
            mode=self.method,
            params_json=info["params_json"],
            params_hash=info["params_hash"],
            n_points=self.n_samples or 0,
            **extra,
        )

    @abstractmethod
    def surface(self) -> DensitySurface:
        """Compute the density surface for the fitted points.

        Returns:
            DensitySurface whose polygons GeoDataFrame has columns
            ``level`` and ``geometry`` (in self.crs). Empty input yields an
            empty surface.
        """
        pass

    def info(self) -> Dict[str, Any]:
        """Return estimator information.

        Returns:
            Dictionary with method name, params, params_json, params_hash,
            crs, n_samples, data_bbox.
        """
        if self.method is None:
            raise RuntimeError("Method name not set. This should not happen.")

        include = HYPERPARAM_KEYS.get(self.method, set())
        params_json = canonical_params_json(self.method, self.params, include)

        return {
            "method": self.method,
            "params": self.params,
            "params_json": params_json,
            "params_hash": param_hash_from_json(params_json),
            "crs": self.crs,
            "n_samples": self.n_samples,
            "data_bbox": self.data_bbox,
        }
