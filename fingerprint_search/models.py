"""Data models shared across indexing, storage and matching."""

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class IndexEntry:
    """One indexed region: the image it came from and its trailing x."""

    path: str
    position: int


@dataclass(frozen=True)
class QuerySample:
    """A fingerprint sampled from the query image at trailing x."""

    fingerprint: int
    x: int


class FingerprintIndex:
    """
    Immutable fingerprint index.

    Holds the region multimap (fingerprint -> IndexEntry tuple), the
    whole-image hash map (perceptual hash -> path), and the region size
    and channel mode the fingerprints were computed with.

    Equality ignores ordering: two indexes are equal when they hold the
    same multiset of (fingerprint, path, position) triples, the same
    hash map and the same metadata.
    """

    def __init__(self,
                 entries: Mapping[int, Iterable[IndexEntry]],
                 hashes: Mapping[int, str],
                 region_size: int,
                 legacy_channels: bool = False):
        self._entries = MappingProxyType(
            {int(fp): tuple(items) for fp, items in entries.items() if items}
        )
        self._hashes = MappingProxyType({int(h): str(p) for h, p in hashes.items()})
        self.region_size = int(region_size)
        self.legacy_channels = bool(legacy_channels)

    @property
    def entries(self) -> Mapping[int, Tuple[IndexEntry, ...]]:
        return self._entries

    @property
    def hashes(self) -> Mapping[int, str]:
        return self._hashes

    def lookup(self, fingerprint: int) -> Tuple[IndexEntry, ...]:
        """Return every entry recorded under fingerprint (possibly none)."""
        return self._entries.get(fingerprint, ())

    def exact_match(self, phash: int) -> Optional[str]:
        """Return the image whose whole-image hash equals phash, if any."""
        return self._hashes.get(phash)

    def iter_triples(self) -> Iterator[Tuple[int, str, int]]:
        for fp, items in self._entries.items():
            for entry in items:
                yield fp, entry.path, entry.position

    @property
    def images(self) -> List[str]:
        """Distinct image paths that contributed region entries."""
        return sorted({path for _, path, _ in self.iter_triples()})

    def __len__(self) -> int:
        return sum(len(items) for items in self._entries.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, FingerprintIndex):
            return NotImplemented
        return (self.region_size == other.region_size
                and self.legacy_channels == other.legacy_channels
                and dict(self._hashes) == dict(other._hashes)
                and Counter(self.iter_triples()) == Counter(other.iter_triples()))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"FingerprintIndex(entries={len(self)}, hashes={len(self._hashes)}, "
                f"region_size={self.region_size})")


@dataclass(frozen=True)
class MatchResult:
    """Result of searching one query image against an index."""

    status: str  # "exact" | "sampled" | "no_match"
    path: Optional[str] = None
    score: Optional[int] = None
    samples: int = 0
    ranking: List[Tuple[str, int]] = field(default_factory=list)
    histograms: Dict[str, Dict[int, int]] = field(default_factory=dict, repr=False)

    @property
    def matched(self) -> bool:
        return self.path is not None
