"""
Offset-histogram scoring.

A true match puts many query samples at nearly the same offset between
the indexed region's trailing x and the sampled x. Each candidate is
scored by the largest vote total over any run of `window` consecutive
populated offsets, taken in ascending offset order. The window counts
buckets, not offset span: offsets that received no votes are absent and
do not break a run.

A histogram with fewer populated buckets than the window scores the sum
of all its buckets.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .config import DEFAULT_WINDOW

logger = logging.getLogger(__name__)


def window_score(histogram: Mapping[int, int], window: int = DEFAULT_WINDOW) -> int:
    """
    Compute the sliding-window score of one offset histogram.

    Args:
        histogram: Mapping of offset -> vote count.
        window: Number of consecutive populated buckets summed.

    Returns:
        Maximum window sum; 0 for an empty histogram.
    """
    if not histogram:
        return 0

    counts = np.array([histogram[k] for k in sorted(histogram)], dtype=np.int64)
    if len(counts) <= window:
        return int(counts.sum())

    cumulative = np.concatenate(([0], np.cumsum(counts)))
    sums = cumulative[window:] - cumulative[:-window]
    return int(sums.max())


def score_candidates(histograms: Mapping[str, Mapping[int, int]],
                     window: int = DEFAULT_WINDOW) -> Dict[str, int]:
    """Score every candidate, preserving the histograms' iteration order."""
    scores = {}
    for candidate, histogram in histograms.items():
        scores[candidate] = window_score(histogram, window)
        logger.debug(f"{candidate}: {scores[candidate]} "
                     f"({len(histogram)} offsets, {sum(histogram.values())} votes)")
    return scores


def rank_results(scores: Mapping[str, int]) -> List[Tuple[str, int]]:
    """
    Sort candidates by score, highest first.

    The sort is stable, so equal scores keep their original order.
    """
    return sorted(scores.items(), key=lambda item: -item[1])


def pick_best(scores: Mapping[str, int]) -> Optional[Tuple[str, int]]:
    """
    Select the best-scoring candidate from score_candidates() output.

    Ties go to the first candidate encountered.

    Returns:
        (candidate, score), or None when no candidate received a vote.
    """
    best = None
    best_score = 0
    for candidate, score in scores.items():
        if score > best_score:
            best, best_score = candidate, score
    if best is None:
        return None
    return best, best_score
