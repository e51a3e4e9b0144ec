"""
fingerprint_search: spatial color-fingerprint image search.

Indexes a directory of images as a grid of coarse per-region color
fingerprints plus a whole-image perceptual hash, then locates a query
image (or a crop of it) in the corpus by random region sampling and
positional-offset voting.

Modules:
    engine          SearchEngine: exact-hash fast path + sampled matching
    fingerprints    24-bit region color fingerprints
    perceptual      Whole-image 64-bit perceptual hash
    preprocessing   Image decoding and region cropping
    index_builder   Corpus scan and index construction
    index_store     Versioned index serialization
    scoring         Sliding-window offset scoring
    config          SearchConfig tunables
    models          Index and result data types
    errors          Exception types
    cli             Command-line entry point
"""

__version__ = "1.0.0"
