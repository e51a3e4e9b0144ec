"""Whole-image perceptual hash."""

import imagehash
import numpy as np
from PIL import Image

_HASH_SIZE = 8


def compute_phash(image_np: np.ndarray) -> int:
    """Return the 64-bit DCT perceptual hash of an RGB uint8 image."""
    img = Image.fromarray(image_np[:, :, :3]).convert("RGB")
    return int(str(imagehash.phash(img, hash_size=_HASH_SIZE)), 16)
