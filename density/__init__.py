"""Unified density estimation interface for incident coordinates.

Provides a consistent interface for hexagonal binning, rectangular binning
and kernel density estimation, with reproducible parameter hashing.
"""

from typing import Iterable, Optional, Tuple

import pandas as pd

from density.base import DensityEstimator, DensitySurface
from density.binning import HexbinDensity, RectBinDensity
from density.kde import KDEDensity
from density.utils import (
    points_array,
    padded_extent,
    bandwidth_nrd,
    canonical_params_json,
    param_hash_from_json,
    HYPERPARAM_KEYS,
)
from pipeline.config import EstimatorConfig
from pipeline.errors import InvalidParameterError


def make_estimator(mode: str, **kwargs) -> DensityEstimator:
    """Factory function to create estimator instances.

    Args:
        mode: Estimator mode ("hexbin", "rectbin", or "kde").
        **kwargs: Mode-specific parameters.

    Returns:
        DensityEstimator instance.

    Raises:
        InvalidParameterError: If the mode is unknown or a parameter is out of range.

    Examples:
        >>> est = make_estimator("kde", bins=10)
        >>> est = make_estimator("hexbin", bins=40)
    """
    if mode == "kde":
        return KDEDensity(**kwargs)
    elif mode == "hexbin":
        kwargs.pop("bandwidth", None)
        kwargs.pop("grid_size", None)
        return HexbinDensity(**kwargs)
    elif mode == "rectbin":
        kwargs.pop("bandwidth", None)
        kwargs.pop("grid_size", None)
        return RectBinDensity(**kwargs)
    else:
        raise InvalidParameterError(f"Unknown mode: {mode}. Must be one of: hexbin, rectbin, kde")


def estimate_density(
    points: pd.DataFrame,
    config: EstimatorConfig,
    x_col: str = "lon",
    y_col: str = "lat",
    crs: str = "EPSG:4326",
) -> DensitySurface:
    """Fit the configured estimator and return its surface."""
    estimator = make_estimator(config.mode, crs=crs, **config.params())
    return estimator.fit(points, x_col=x_col, y_col=y_col).surface()


def shared_levels(surfaces: Iterable[DensitySurface]) -> Tuple[Optional[float], Optional[float]]:
    """Common (vmin, vmax) of ``level`` across non-empty surfaces."""
    lows, highs = [], []
    for s in surfaces:
        if s is not None and not s.empty:
            lows.append(float(s.polygons["level"].min()))
            highs.append(float(s.polygons["level"].max()))
    if not lows:
        return None, None
    return min(lows), max(highs)


__all__ = [
    "DensityEstimator",
    "DensitySurface",
    "HexbinDensity",
    "RectBinDensity",
    "KDEDensity",
    "make_estimator",
    "estimate_density",
    "shared_levels",
    "points_array",
    "padded_extent",
    "bandwidth_nrd",
    "canonical_params_json",
    "param_hash_from_json",
    "HYPERPARAM_KEYS",
]
