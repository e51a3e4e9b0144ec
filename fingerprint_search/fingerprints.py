"""
Region color fingerprints.

A fingerprint packs the integer mean of each of the first three channels
of a square region into 24 bits:

    (mean_a << 16) | (mean_b << 8) | mean_c

It is a deliberately coarse hash. Unrelated regions with the same average
color collide, which the offset voting in the engine tolerates.

Indexes written by earlier releases of the command-line tool packed the first channel
twice (``mean_a`` in the low byte instead of ``mean_c``). Pass
``legacy_channels=True`` to reproduce that layout when searching such an
index.
"""

import numpy as np


def compute_fingerprint(region: np.ndarray, legacy_channels: bool = False) -> int:
    """
    Compute the 24-bit color fingerprint of a pixel region.

    Args:
        region: H x W x C uint8 array with C >= 3.
        legacy_channels: Repeat channel A in the low byte.

    Returns:
        Packed fingerprint in [0, 2**24).

    Raises:
        ValueError: If the region is empty or has fewer than 3 channels.
    """
    if region.ndim != 3 or region.shape[2] < 3:
        raise ValueError(f"Fingerprint needs at least 3 channels, got shape {region.shape}")

    pixels = region.reshape(-1, region.shape[2])[:, :3]
    if pixels.shape[0] == 0:
        raise ValueError("Cannot fingerprint an empty region")

    sums = pixels.sum(axis=0, dtype=np.uint64)
    mean_a, mean_b, mean_c = (int(s) // pixels.shape[0] for s in sums)

    if legacy_channels:
        mean_c = mean_a
    return (mean_a << 16) | (mean_b << 8) | mean_c

