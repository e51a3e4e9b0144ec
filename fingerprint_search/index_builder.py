"""
Batch index construction from a directory of images.

Every decodable file in the corpus directory contributes:
    - its whole-image perceptual hash (exact-duplicate fast path)
    - one color fingerprint per grid cell, keyed to the cell's trailing x

The grid is laid out in region_size steps from the top-left corner. Cells
along the bottom and right edges are anchored to the image border, so the
remainder strips are covered even when the image dimensions are not
multiples of region_size.
"""

import os
import logging
from collections import defaultdict
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .config import SearchConfig
from .fingerprints import compute_fingerprint
from .models import FingerprintIndex, IndexEntry
from .perceptual import compute_phash
from .preprocessing import crop_region, load_image

logger = logging.getLogger(__name__)

# Log progress every N files
PROGRESS_INTERVAL = 500


def grid_anchors(width: int, height: int, region_size: int) -> Iterator[Tuple[int, int, int]]:
    """
    Yield (x, y, marker) bottom-right crop anchors for an image.

    Interior cells and bottom-edge cells carry their own x as marker;
    right-edge cells and the bottom-right corner carry the image width.
    """
    for x in range(region_size, width, region_size):
        for y in range(region_size, height, region_size):
            yield x, y, x
        yield x, height, x
    for y in range(region_size, height, region_size):
        yield width, y, width
    yield width, height, width


def fingerprint_image(image_np: np.ndarray,
                      config: SearchConfig) -> List[Tuple[int, int]]:
    """
    Fingerprint every grid cell of a decoded image.

    Args:
        image_np: RGB uint8 image.
        config: Supplies region_size and the channel packing mode.

    Returns:
        List of (fingerprint, position_marker) pairs.
    """
    h, w = image_np.shape[:2]
    size = config.region_size
    return [
        (compute_fingerprint(crop_region(image_np, x, y, size), config.legacy_channels), marker)
        for x, y, marker in grid_anchors(w, h, size)
    ]


def build_index(image_dir: str, config: Optional[SearchConfig] = None) -> FingerprintIndex:
    """
    Build a fingerprint index from every image in a directory.

    The directory is not scanned recursively. Files are visited in sorted
    name order; files that cannot be decoded are skipped with a warning.
    When two images share a perceptual hash the later one wins.

    Args:
        image_dir: Corpus directory.
        config: Indexing configuration (defaults to SearchConfig()).

    Returns:
        The built FingerprintIndex.

    Raises:
        FileNotFoundError: If image_dir does not exist.
    """
    config = config or SearchConfig()
    if not os.path.isdir(image_dir):
        raise FileNotFoundError(f"Corpus directory not found: {image_dir}")

    filenames = sorted(
        f for f in os.listdir(image_dir)
        if os.path.isfile(os.path.join(image_dir, f))
    )

    entries = defaultdict(list)
    hashes = {}
    processed = 0
    skipped = 0

    logger.info(f"Building index from {len(filenames)} files in {image_dir}")

    for i, filename in enumerate(filenames):
        filepath = os.path.join(image_dir, filename)
        logger.debug(f"Indexing {filepath}")

        result = load_image(filepath)
        if not result.ok:
            logger.warning(f"Skipping {filename}: {result.error}")
            skipped += 1
            continue

        phash = compute_phash(result.image)
        if phash in hashes:
            logger.debug(f"Perceptual hash of {filename} replaces {hashes[phash]}")
        hashes[phash] = filepath

        for fingerprint, marker in fingerprint_image(result.image, config):
            entries[fingerprint].append(IndexEntry(filepath, marker))

        processed += 1
        if (i + 1) % PROGRESS_INTERVAL == 0:
            logger.info(f"Processed {i + 1}/{len(filenames)} files")

    index = FingerprintIndex(entries, hashes,
                             region_size=config.region_size,
                             legacy_channels=config.legacy_channels)

    logger.info(
        f"Index built: {processed} images, {len(index)} entries, "
        f"{len(index.entries)} distinct fingerprints, {skipped} skipped"
    )
    return index
