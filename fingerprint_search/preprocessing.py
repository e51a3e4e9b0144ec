"""
Image loading and region extraction.

Decoding is delegated to OpenCV. Instead of raising on unreadable files,
load_image() returns a LoadResult so callers decide what a failure means:
the index builder skips the file, the query path treats it as fatal.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """Outcome of decoding one image file."""

    path: str
    image: Optional[np.ndarray] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    def require(self) -> np.ndarray:
        """Return the decoded image or raise DecodeError."""
        if self.image is None:
            raise DecodeError(f"Could not open image file {self.path}: {self.error}")
        return self.image


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 RGB format."""
    if image_np.dtype != np.uint8:
        if image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = image_np.astype(np.uint8)
    if image_np.ndim == 2:
        image_np = cv2.cvtColor(image_np, cv2.COLOR_GRAY2RGB)
    return image_np


def load_image(path: str) -> LoadResult:
    """
    Decode an image file into an RGB uint8 array.

    Args:
        path: Path to the image file.

    Returns:
        LoadResult holding either the decoded image or an error message.
    """
    try:
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    except cv2.error as e:
        return LoadResult(path=str(path), error=str(e))

    if image is None:
        return LoadResult(path=str(path), error="unsupported or corrupt image data")

    image_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return LoadResult(path=str(path), image=normalize_image(image_rgb))


def crop_region(image_np: np.ndarray, x: int, y: int, size: int) -> np.ndarray:
    """
    Return the size x size region whose bottom-right corner is (x, y).

    The corner is exclusive, so the region spans columns [x - size, x)
    and rows [y - size, y). It is clamped to the image, which makes it
    smaller than requested when the image itself is smaller than size.
    """
    x0 = max(0, x - size)
    y0 = max(0, y - size)
    return image_np[y0:y, x0:x]
