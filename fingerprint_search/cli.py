"""
fingerprint-search CLI.

This is the entry point used by:
- `python -m fingerprint_search`
- the console script `fingerprint-search` (installed via pyproject.toml)

Example
-------
fingerprint-search query.png /data/corpus --output corpus.idx
fingerprint-search crop.png /data/corpus --load-index corpus.idx -V

Exit status is 0 whenever the search ran, whether or not anything matched,
and 1 when the query image, the corpus directory or the index file could
not be read.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import SearchConfig
from .engine import SearchEngine
from .errors import FingerprintSearchError
from .index_builder import build_index
from .index_store import load_index, save_index
from .preprocessing import load_image


_PACKAGE_LOGGER = "fingerprint_search"

# Handler installed by the last _configure_logging() call
_cli_handler: Optional[logging.Handler] = None


def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    defaults = SearchConfig()
    p = argparse.ArgumentParser(
        prog="fingerprint-search",
        description=(
            "Perform an image fingerprint search in the specified directory: "
            "report the indexed image that contains the query image or a crop of it."
        ),
    )
    p.add_argument("image", help="Image file to search for.")
    p.add_argument("search_dir", help="Directory to search in (not scanned recursively).")
    p.add_argument(
        "--output", "-O",
        default="hashes",
        help="Output file for the constructed image index (default: hashes).",
    )
    p.add_argument(
        "--load-index", "-L",
        default=None,
        help="Input file for a pre-constructed image index; skips scanning search_dir.",
    )
    p.add_argument(
        "--region-size", "-RS",
        type=_positive_int,
        default=None,
        help=f"Side length of square fingerprinting regions, in pixels (default: {defaults.region_size}).",
    )
    p.add_argument(
        "--samples", "-S",
        type=_positive_int,
        default=None,
        help=f"Number of samples to take from the input image (default: {defaults.samples}).",
    )
    p.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Print debug output.",
    )
    return p.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    """Send package log records to stdout at DEBUG when verbose, else warnings to stderr."""
    global _cli_handler
    pkg_logger = logging.getLogger(_PACKAGE_LOGGER)
    if _cli_handler is not None:
        pkg_logger.removeHandler(_cli_handler)

    _cli_handler = logging.StreamHandler(sys.stdout if verbose else sys.stderr)
    _cli_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    pkg_logger.addHandler(_cli_handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run fingerprint-search.

    Returns
    -------
    int
        Process exit code (0 success).
    """
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    config = SearchConfig().with_overrides(
        region_size=args.region_size,
        samples=args.samples,
    )

    try:
        # 1) Build or load the index
        if args.load_index:
            index = load_index(args.load_index)
        else:
            index = build_index(args.search_dir, config)
            save_index(index, args.output)

        # 2) Decode the query; failure here is fatal
        query = load_image(args.image).require()

        # 3) Search
        result = SearchEngine(index, config).search(query)
    except (FingerprintSearchError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not result.matched:
        print("No matches found.")
    elif result.status == "exact":
        print(f"Exact match found: {result.path}")
    else:
        print(f"Best match: {result.path} with {result.score} matches.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
