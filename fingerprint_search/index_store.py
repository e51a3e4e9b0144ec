"""
Index persistence.

An index is stored as a compressed numpy archive (.npz) of flat arrays:

    format              ["fingerprint-index"]
    version             [FORMAT_VERSION]
    region_size         [int]
    legacy_channels     [0 | 1]
    paths               unicode table of image paths
    entry_fingerprints  int64, one per region entry
    entry_paths         int64 offsets into paths
    entry_positions     int64 trailing-x markers
    hash_values         uint64 perceptual hashes
    hash_paths          int64 offsets into paths

Archives are read with allow_pickle=False.
"""

import io
import logging
import zipfile
import zlib
from collections import defaultdict

import numpy as np

from .errors import IndexFormatError
from .models import FingerprintIndex, IndexEntry

logger = logging.getLogger(__name__)

FORMAT_TAG = "fingerprint-index"
FORMAT_VERSION = 1

_REQUIRED_ARRAYS = (
    "format", "version", "region_size", "legacy_channels", "paths",
    "entry_fingerprints", "entry_paths", "entry_positions",
    "hash_values", "hash_paths",
)

# Integer arrays may be signed or unsigned; paths and the tag are unicode
_KINDS = {"i": "iu", "U": "U"}
_KIND_NAMES = {"i": "integer", "U": "string"}


def _scalar(arrays, name, kind="i"):
    value = arrays[name]
    if value.shape != (1,) or value.dtype.kind not in _KINDS[kind]:
        raise IndexFormatError(f"Array {name!r} should hold exactly one {_KIND_NAMES[kind]} value")
    return value[0]


def _column(arrays, name, kind="i"):
    value = arrays[name]
    if value.ndim != 1 or value.dtype.kind not in _KINDS[kind]:
        raise IndexFormatError(f"Array {name!r} should be a 1-D {_KIND_NAMES[kind]} array")
    return value


def serialize(index: FingerprintIndex) -> bytes:
    """Encode an index as .npz bytes."""
    path_ids = {}

    def path_id(path):
        if path not in path_ids:
            path_ids[path] = len(path_ids)
        return path_ids[path]

    fingerprints, entry_paths, positions = [], [], []
    for fp, path, position in index.iter_triples():
        fingerprints.append(fp)
        entry_paths.append(path_id(path))
        positions.append(position)

    hash_values, hash_paths = [], []
    for phash, path in index.hashes.items():
        hash_values.append(phash)
        hash_paths.append(path_id(path))

    buf = io.BytesIO()
    np.savez_compressed(
        buf,
        format=np.array([FORMAT_TAG]),
        version=np.array([FORMAT_VERSION], dtype=np.int64),
        region_size=np.array([index.region_size], dtype=np.int64),
        legacy_channels=np.array([int(index.legacy_channels)], dtype=np.int64),
        paths=np.array(list(path_ids), dtype=str),
        entry_fingerprints=np.array(fingerprints, dtype=np.int64),
        entry_paths=np.array(entry_paths, dtype=np.int64),
        entry_positions=np.array(positions, dtype=np.int64),
        hash_values=np.array(hash_values, dtype=np.uint64),
        hash_paths=np.array(hash_paths, dtype=np.int64),
    )
    return buf.getvalue()


def deserialize(data: bytes) -> FingerprintIndex:
    """
    Decode .npz bytes produced by serialize().

    Raises:
        IndexFormatError: If the bytes are not a readable archive, miss
            arrays, hold arrays of the wrong shape or dtype, carry another
            format tag or version, or reference paths that are not in the
            path table.
    """
    try:
        archive = np.load(io.BytesIO(data), allow_pickle=False)
    except (ValueError, EOFError, OSError, zipfile.BadZipFile) as e:
        raise IndexFormatError(f"Not an index archive: {e}") from e

    if not hasattr(archive, "files"):
        raise IndexFormatError("Not an index archive: expected .npz content")

    with archive:
        missing = [name for name in _REQUIRED_ARRAYS if name not in archive.files]
        if missing:
            raise IndexFormatError(f"Index archive is missing arrays: {', '.join(missing)}")
        try:
            arrays = {name: archive[name] for name in _REQUIRED_ARRAYS}
        except (ValueError, EOFError, OSError, zipfile.BadZipFile, zlib.error) as e:
            raise IndexFormatError(f"Corrupt index archive: {e}") from e

    tag = str(_scalar(arrays, "format", "U"))
    if tag != FORMAT_TAG:
        raise IndexFormatError(f"Unexpected format tag {tag!r}")
    version = int(_scalar(arrays, "version"))
    if version != FORMAT_VERSION:
        raise IndexFormatError(
            f"Unsupported index version {version} (expected {FORMAT_VERSION})"
        )

    region_size = int(_scalar(arrays, "region_size"))
    if region_size <= 0:
        raise IndexFormatError(f"Invalid region size {region_size}")

    paths = [str(p) for p in _column(arrays, "paths", "U")]
    fps = _column(arrays, "entry_fingerprints")
    entry_paths = _column(arrays, "entry_paths")
    positions = _column(arrays, "entry_positions")
    hash_values = _column(arrays, "hash_values")
    hash_paths = _column(arrays, "hash_paths")

    if not (len(fps) == len(entry_paths) == len(positions)):
        raise IndexFormatError("Entry arrays have mismatched lengths")
    if len(hash_values) != len(hash_paths):
        raise IndexFormatError("Hash arrays have mismatched lengths")
    for ids in (entry_paths, hash_paths):
        if ids.size and (ids.min() < 0 or ids.max() >= len(paths)):
            raise IndexFormatError("Path reference out of range")

    entries = defaultdict(list)
    for fp, pid, position in zip(fps.tolist(), entry_paths.tolist(), positions.tolist()):
        entries[fp].append(IndexEntry(paths[pid], position))

    hashes = {h: paths[pid] for h, pid in zip(hash_values.tolist(), hash_paths.tolist())}

    return FingerprintIndex(
        entries, hashes,
        region_size=region_size,
        legacy_channels=bool(_scalar(arrays, "legacy_channels")),
    )


def save_index(index: FingerprintIndex, path: str) -> None:
    """Write an index to path. OSError propagates if it cannot be written."""
    data = serialize(index)
    with open(path, "wb") as f:
        f.write(data)
    logger.info(f"Saved index ({len(index)} entries, {len(data)} bytes) to {path}")


def load_index(path: str) -> FingerprintIndex:
    """
    Read an index from path.

    Raises:
        OSError: If the file cannot be opened.
        IndexFormatError: If its content is not a valid index.
    """
    with open(path, "rb") as f:
        data = f.read()
    index = deserialize(data)
    logger.info(f"Loaded index from {path}: {len(index.images)} images, {len(index)} entries")
    return index
