"""
ContentHasher — fixed-length digests for drift detection

Two algorithms:
- sha256 (default): 64 hex chars, cryptographic
- xxh128: 32 hex chars, via xxhash (much faster on large trees)

The registry records which algorithm produced each stored hash, so changing
the configured default never makes old entries look drifted.
"""

import hashlib
import re
from typing import Callable, Dict, Tuple

import xxhash


DEFAULT_ALGORITHM = "sha256"

# name -> (hash object factory, hex digest length)
ALGORITHMS: Dict[str, Tuple[Callable, int]] = {
    "sha256": (hashlib.sha256, 64),
    "xxh128": (xxhash.xxh3_128, 32),
}

_HEX = re.compile(r'^[0-9a-f]+$')


def is_digest(value: str, algorithm: str = DEFAULT_ALGORITHM) -> bool:
    """True iff value looks like a hex digest produced by algorithm."""
    if algorithm not in ALGORITHMS or not isinstance(value, str):
        return False
    return len(value) == ALGORITHMS[algorithm][1] and bool(_HEX.match(value))


class ContentHasher:
    """Hash file content with one configured algorithm."""

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM):
        if algorithm not in ALGORITHMS:
            valid = ", ".join(ALGORITHMS)
            raise ValueError(f"Unknown hash algorithm '{algorithm}'. Valid: {valid}")
        self.algorithm = algorithm
        self._factory, self.digest_length = ALGORITHMS[algorithm]

    def hash(self, data: bytes) -> str:
        digest = self._factory()
        digest.update(data)
        return digest.hexdigest()

    def hash_file(self, fs, path: str) -> str:
        """Read path through the filesystem collaborator and hash it."""
        return self.hash(fs.read(path))

    def __repr__(self) -> str:
        return f"ContentHasher({self.algorithm!r})"
