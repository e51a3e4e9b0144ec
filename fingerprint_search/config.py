"""
Search configuration.

All tunables live in a single immutable SearchConfig that is passed
explicitly into the builder, the engine and the scorer. Defaults are
read from the environment once, at import time:

    FP_REGION_SIZE      Side length of square fingerprint regions (50)
    FP_SAMPLES          Query regions sampled per search (5000)
    FP_SEED             Seed for the sampling generator (21)
    FP_WINDOW           Sliding-window width for scoring, in buckets (10)
    FP_LEGACY_CHANNELS  Pack channel A twice, as older indexes did (0)
"""

import os
from dataclasses import dataclass, replace

DEFAULT_REGION_SIZE = int(os.environ.get("FP_REGION_SIZE", "50"))
DEFAULT_SAMPLES = int(os.environ.get("FP_SAMPLES", "5000"))
# Fixed so that repeated searches for the same image sample identically.
DEFAULT_SEED = int(os.environ.get("FP_SEED", "21"))
DEFAULT_WINDOW = int(os.environ.get("FP_WINDOW", "10"))
DEFAULT_LEGACY_CHANNELS = os.environ.get("FP_LEGACY_CHANNELS", "0").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class SearchConfig:
    """
    Tunables for indexing and matching.

    Attributes:
        region_size: Side length in pixels of the square fingerprint regions.
        samples: Number of regions sampled from a query image.
        seed: Seed for the query sampling generator.
        window: Number of consecutive populated offset buckets summed
                when scoring a candidate.
        legacy_channels: Reproduce the legacy fingerprint packing that
                         repeats the first channel in the low byte.
    """

    region_size: int = DEFAULT_REGION_SIZE
    samples: int = DEFAULT_SAMPLES
    seed: int = DEFAULT_SEED
    window: int = DEFAULT_WINDOW
    legacy_channels: bool = DEFAULT_LEGACY_CHANNELS

    def __post_init__(self):
        if self.region_size <= 0:
            raise ValueError(f"region_size must be positive, got {self.region_size}")
        if self.samples <= 0:
            raise ValueError(f"samples must be positive, got {self.samples}")
        if self.window <= 0:
            raise ValueError(f"window must be positive, got {self.window}")

    def with_overrides(self, **overrides) -> "SearchConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
