"""
Fingerprint search engine.

Orchestrates the two-stage search pipeline:
    1. Whole-image perceptual hash lookup (exact duplicates)
    2. Random region sampling + positional-offset voting + window scoring

Stage 2 only runs when stage 1 finds nothing. Sampling uses a generator
seeded from the config, so the same query image always produces the same
samples and the same result.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional

import numpy as np

from .config import SearchConfig
from .fingerprints import compute_fingerprint
from .index_store import load_index
from .models import FingerprintIndex, MatchResult, QuerySample
from .perceptual import compute_phash
from .preprocessing import crop_region, normalize_image
from .scoring import pick_best, rank_results, score_candidates

logger = logging.getLogger(__name__)


def sample_positions(width: int, height: int, config: SearchConfig) -> np.ndarray:
    """
    Draw config.samples bottom-right crop anchors inside an image.

    x is uniform over [region_size, width] and y over [region_size, height],
    so every region_size square anchored there lies inside the image.

    Returns:
        int array of shape (n, 2) holding (x, y) rows. Empty when the image
        is smaller than region_size in either dimension.
    """
    size = config.region_size
    if width < size or height < size:
        return np.empty((0, 2), dtype=np.int64)

    rng = np.random.default_rng(config.seed)
    xs = rng.integers(size, width, size=config.samples, endpoint=True)
    ys = rng.integers(size, height, size=config.samples, endpoint=True)
    return np.stack([xs, ys], axis=1)


def sample_query(image_np: np.ndarray, config: SearchConfig) -> List[QuerySample]:
    """Fingerprint config.samples random regions of a query image."""
    h, w = image_np.shape[:2]
    positions = sample_positions(w, h, config)
    if len(positions) == 0:
        logger.warning(
            f"Query image ({w}x{h}) is smaller than the "
            f"{config.region_size}px region size, nothing to sample"
        )
        return []

    return [
        QuerySample(
            compute_fingerprint(crop_region(image_np, x, y, config.region_size),
                                config.legacy_channels),
            x,
        )
        for x, y in positions.tolist()
    ]


def accumulate_offsets(samples: Iterable[QuerySample],
                       index: FingerprintIndex) -> Dict[str, Counter]:
    """
    Build per-candidate offset histograms.

    Every index entry sharing a sample's fingerprint casts one vote for
    offset = entry.position - sample.x in that entry's image. Samples that
    match nothing contribute nothing.

    Returns:
        Mapping of image path -> Counter(offset -> votes), in order of each
        image's first vote.
    """
    histograms = defaultdict(Counter)
    for sample in samples:
        for entry in index.lookup(sample.fingerprint):
            histograms[entry.path][entry.position - sample.x] += 1
    return dict(histograms)


class SearchEngine:
    """
    Fingerprint search over a loaded index.

    The index is read-only for the engine's lifetime.
    """

    def __init__(self, index: FingerprintIndex, config: Optional[SearchConfig] = None):
        """
        Args:
            index: Built or loaded fingerprint index.
            config: Search configuration. Its region size and channel mode
                    are replaced by the index's own when they differ, since
                    fingerprints computed any other way cannot match.
        """
        config = config or SearchConfig(region_size=index.region_size,
                                        legacy_channels=index.legacy_channels)
        if (config.region_size != index.region_size
                or config.legacy_channels != index.legacy_channels):
            logger.warning(
                f"Index was built with region_size={index.region_size}, "
                f"legacy_channels={index.legacy_channels}; using those instead of "
                f"region_size={config.region_size}, legacy_channels={config.legacy_channels}"
            )
            config = config.with_overrides(region_size=index.region_size,
                                           legacy_channels=index.legacy_channels)
        self.index = index
        self.config = config

    @classmethod
    def from_file(cls, path: str, config: Optional[SearchConfig] = None) -> "SearchEngine":
        """Load a persisted index and wrap it in an engine."""
        return cls(load_index(path), config)

    def search(self, query_image: np.ndarray) -> MatchResult:
        """
        Search for a query image in the index.

        Pipeline:
            1. Perceptual hash -> exact match, if indexed
            2. Sample regions -> fingerprints -> offset histograms
            3. Sliding-window score -> best candidate

        Args:
            query_image: RGB uint8 query image.

        Returns:
            MatchResult with status "exact", "sampled" or "no_match".
        """
        query_image = normalize_image(query_image)

        exact = self.index.exact_match(compute_phash(query_image))
        if exact is not None:
            logger.info(f"Exact perceptual hash match: {exact}")
            return MatchResult(status="exact", path=exact)

        samples = sample_query(query_image, self.config)
        histograms = accumulate_offsets(samples, self.index)
        logger.debug(f"{len(samples)} samples hit {len(histograms)} candidate images")

        scores = score_candidates(histograms, self.config.window)
        ranking = rank_results(scores)
        best = pick_best(scores)

        if best is None:
            logger.info("No sampled region matched the index")
            return MatchResult(status="no_match", samples=len(samples))

        path, score = best
        logger.info(f"Search complete: {len(ranking)} candidates, best {path} ({score})")
        return MatchResult(
            status="sampled",
            path=path,
            score=score,
            samples=len(samples),
            ranking=ranking,
            histograms={p: dict(h) for p, h in histograms.items()},
        )
