"""Allow running the package with: `python -m fingerprint_search`.

This delegates to :func:`fingerprint_search.cli.main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
