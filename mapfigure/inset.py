"""Decorative inset image loading."""

import os
from typing import Tuple

import numpy as np
from PIL import Image

from pipeline.errors import InvalidParameterError


def load_inset(path: str, size: Tuple[int, int]) -> np.ndarray:
    """Open an image and resize it to ``size`` = (width, height) pixels.

    Returns:
        RGBA array of shape (height, width, 4).

    Raises:
        FileNotFoundError: If the image doesn't exist.
        InvalidParameterError: If the target size is not two positive ints.
    """
    if len(size) != 2 or any(int(v) != v or v <= 0 for v in size):
        raise InvalidParameterError(f"Inset size must be two positive integers, got {size!r}")
    if not os.path.exists(path):
        raise FileNotFoundError(f"Inset image not found: {path}")
    with Image.open(path) as img:
        resized = img.convert("RGBA").resize((int(size[0]), int(size[1])), Image.Resampling.LANCZOS)
    return np.asarray(resized)
