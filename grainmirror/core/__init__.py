"""
Core — Data layer for grainmirror

Contains the foundational pieces:
- Grainorder: 6-symbol permutation codes, ordering and stepping
- Naming: tagged filename parsing and formatting
- Allocator: collision-free codes for new files
- Registry: persistent source -> mirrors mapping
- Locking: exclusive lock around registry mutations
- Hasher / Filesystem: content digests and file access
"""

from .grainorder import (
    ALPHABET, CODE_LENGTH, SPACE_SIZE, START_CODE, ARCHIVE_CODE, LAST_CODE,
    is_valid, validate, is_archive, sort_key, compare,
    successor, predecessor, index_of, code_at,
)
from .naming import TaggedName, parse_tagged_name, format_timestamp_tag, used_codes_in
from .allocator import Direction, find_extremal, allocate_next, allocate_many
from .hasher import ContentHasher, DEFAULT_ALGORITHM, ALGORITHMS
from .filesystem import LocalFilesystem
from .locking import registry_lock, DEFAULT_LOCK_TIMEOUT
from .registry import (
    MirrorEntry, MirrorRegistry, RegistryStore, RegistrationResult,
    canonical_path, NEVER,
)

__all__ = [
    # Grainorder
    "ALPHABET", "CODE_LENGTH", "SPACE_SIZE", "START_CODE", "ARCHIVE_CODE", "LAST_CODE",
    "is_valid", "validate", "is_archive", "sort_key", "compare",
    "successor", "predecessor", "index_of", "code_at",
    # Naming
    "TaggedName", "parse_tagged_name", "format_timestamp_tag", "used_codes_in",
    # Allocator
    "Direction", "find_extremal", "allocate_next", "allocate_many",
    # Collaborators
    "ContentHasher", "DEFAULT_ALGORITHM", "ALGORITHMS", "LocalFilesystem",
    # Registry
    "registry_lock", "DEFAULT_LOCK_TIMEOUT",
    "MirrorEntry", "MirrorRegistry", "RegistryStore", "RegistrationResult",
    "canonical_path", "NEVER",
]
