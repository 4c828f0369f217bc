"""Utility functions for density estimation.

Provides point validation, extent padding, the normal reference bandwidth
rule, and reproducible parameter hashing.
"""

import json
import hashlib
from typing import Tuple, Set, Dict, Any
import numpy as np
import pandas as pd

from pipeline.errors import InvalidParameterError

# Fallback half-width (degrees, ~100 m) for an axis with zero spread
MIN_PAD = 1e-3


def points_array(df: pd.DataFrame, x_col: str = "lon", y_col: str = "lat") -> np.ndarray:
    """Extract an (n, 2) float array of coordinates.

    Args:
        df: DataFrame with coordinate columns.
        x_col: Name of longitude/x column.
        y_col: Name of latitude/y column.

    Returns:
        Array of shape (n_samples, 2). Rows with a missing coordinate are
        dropped.

    Raises:
        ValueError: If a coordinate column is missing.
    """
    missing = {x_col, y_col} - set(df.columns)
    if missing:
        raise ValueError(f"Missing coordinate columns: {sorted(missing)}")
    xy = df[[x_col, y_col]].to_numpy(dtype=float)
    if len(xy) == 0:
        return xy.reshape(0, 2)
    return xy[~np.isnan(xy).any(axis=1)]


def padded_extent(xy: np.ndarray, margin: float) -> Tuple[float, float, float, float]:
    """Bounding extent of the points, widened by ``margin`` of each range.

    Args:
        xy: Array of shape (n_samples, 2), n_samples >= 1.
        margin: Fraction of the x/y range added on each side.

    Returns:
        (xmin, xmax, ymin, ymax). An axis with zero range is widened by
        MIN_PAD on each side so the extent never collapses.
    """
    lo = xy.min(axis=0)
    hi = xy.max(axis=0)
    span = hi - lo
    pad = np.where(span > 0, margin * span, MIN_PAD)
    lo = lo - pad
    hi = hi + pad
    return float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1])


def bandwidth_nrd(values: np.ndarray) -> float:
    """Normal reference bandwidth for one axis.

    h = 1.06 * min(sd, IQR / 1.34) * n^(-1/5); when the IQR is zero the
    standard deviation alone is used.

    Args:
        values: 1-D array of coordinates (n >= 2).

    Returns:
        Bandwidth in the units of ``values`` (0.0 if there is no spread).
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    sd = float(np.std(values, ddof=1))
    q75, q25 = np.percentile(values, [75, 25])
    iqr = float(q75 - q25)
    scale = min(sd, iqr / 1.34) if iqr > 0 else sd
    return 1.06 * scale * n ** (-0.2)


def check_bins(bins) -> int:
    """Validate a bin/level count.

    Raises:
        InvalidParameterError: If bins is not a positive integer.
    """
    if isinstance(bins, bool) or not isinstance(bins, (int, np.integer)) or bins <= 0:
        raise InvalidParameterError(f"bins must be a positive integer, got {bins!r}")
    return int(bins)


def check_bandwidth(bandwidth):
    """Normalise a bandwidth override to None or an (hx, hy) tuple.

    Raises:
        InvalidParameterError: If any component is not a positive number.
    """
    if bandwidth is None:
        return None
    if np.isscalar(bandwidth):
        pair = (bandwidth, bandwidth)
    else:
        pair = tuple(bandwidth)
        if len(pair) != 2:
            raise InvalidParameterError(f"bandwidth must be a number or an (x, y) pair, got {bandwidth!r}")
    for h in pair:
        if isinstance(h, bool) or not isinstance(h, (int, float, np.number)) or not np.isfinite(h) or h <= 0:
            raise InvalidParameterError(f"bandwidth must be > 0, got {bandwidth!r}")
    return float(pair[0]), float(pair[1])


HYPERPARAM_KEYS: Dict[str, Set[str]] = {
    "hexbin": {"bins", "margin"},
    "rectbin": {"bins", "margin"},
    "kde": {"bins", "bandwidth", "grid_size", "margin"},
}


def canonical_params_json(method: str, params: Dict[str, Any], include: Set[str]) -> str:
    """Create canonical JSON representation of estimator parameters.

    Args:
        method: Estimator mode ("hexbin", "rectbin", "kde").
        params: Dictionary of all parameters.
        include: Set of parameter keys to include.

    Returns:
        Canonical JSON string (sorted keys, compact separators).

    Note:
        Always includes __method__ so identical parameters for different
        modes hash differently.
    """
    filtered = {k: params[k] for k in sorted(params.keys()) if k in include}
    filtered["__method__"] = method
    return json.dumps(filtered, sort_keys=True, separators=(",", ":"))


def param_hash_from_json(params_json: str) -> str:
    """10-character SHA-1 digest of a canonical parameter JSON string."""
    return hashlib.sha1(params_json.encode()).hexdigest()[:10]
