"""
MirrorRegistry — persistent source -> mirrors mapping

Design:
- Storage: one JSON file (default ~/.grainmirror/registry.json), indented
  and key-sorted so it stays human-inspectable and diffable
- Every mutation is a transaction: lock -> load -> mutate -> save -> unlock
  (see core/locking.py), and is saved before the call returns
- Saves are atomic (temp file + os.replace); a crash never leaves half a file
- Reads (get, list) load the current file without locking

Entries are keyed by canonical source path (absolute, ~ expanded). Mirrors
within an entry are unique. An entry is only deleted by remove_entry.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import orjson

from ..errors import (
    EntryNotEmpty,
    InvalidMirror,
    MirrorNotRegistered,
    RegistryCorrupt,
    SourceNotFound,
    SourceNotRegistered,
)
from .filesystem import LocalFilesystem
from .hasher import ALGORITHMS, DEFAULT_ALGORITHM, is_digest
from .locking import DEFAULT_LOCK_TIMEOUT, registry_lock

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1
NEVER = "never"


def canonical_path(path) -> str:
    """Absolute path with ~ expanded. Symlinks are kept as given."""
    return os.path.abspath(os.path.expanduser(str(path)))


@dataclass
class MirrorEntry:
    """
    Sync state for one source file.

    content_hash is empty until the first sync; otherwise it is exactly
    one digest of hash_algorithm.
    """
    mirrors: List[str] = field(default_factory=list)
    last_sync: Optional[str] = None
    content_hash: str = ""
    hash_algorithm: str = DEFAULT_ALGORITHM

    def __post_init__(self):
        if len(set(self.mirrors)) != len(self.mirrors):
            raise RegistryCorrupt(f"duplicate mirror paths: {self.mirrors}")
        self.mirrors = sorted(self.mirrors)
        if self.hash_algorithm not in ALGORITHMS:
            raise RegistryCorrupt(f"unknown hash algorithm '{self.hash_algorithm}'")
        if self.content_hash and not is_digest(self.content_hash, self.hash_algorithm):
            raise RegistryCorrupt(f"malformed {self.hash_algorithm} hash '{self.content_hash}'")

    @property
    def never_synced(self) -> bool:
        return not self.content_hash

    @property
    def last_sync_display(self) -> str:
        return self.last_sync or NEVER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mirrors": list(self.mirrors),
            "last_sync": self.last_sync,
            "content_hash": self.content_hash,
            "hash_algorithm": self.hash_algorithm,
        }

    @classmethod
    def from_dict(cls, source: str, data: Dict[str, Any]) -> "MirrorEntry":
        if not isinstance(data, dict):
            raise RegistryCorrupt(f"entry for {source} is not an object")
        mirrors = data.get("mirrors", [])
        last_sync = data.get("last_sync")
        content_hash = data.get("content_hash", "")
        hash_algorithm = data.get("hash_algorithm", DEFAULT_ALGORITHM)
        if not isinstance(mirrors, list) or not all(isinstance(m, str) for m in mirrors):
            raise RegistryCorrupt(f"mirrors for {source} must be a list of paths")
        if last_sync is not None and not isinstance(last_sync, str):
            raise RegistryCorrupt(f"last_sync for {source} must be a string or null")
        if not isinstance(content_hash, str):
            raise RegistryCorrupt(f"content_hash for {source} must be a string")
        if not isinstance(hash_algorithm, str):
            raise RegistryCorrupt(f"hash_algorithm for {source} must be a string")
        return cls(
            mirrors=mirrors,
            last_sync=last_sync,
            content_hash=content_hash,
            hash_algorithm=hash_algorithm,
        )


@dataclass
class RegistrationResult:
    """Outcome of register(): what happened, not just whether it worked."""
    source: str
    mirror: str
    created_entry: bool = False
    already_registered: bool = False


class RegistryStore:
    """
    JSON file holding every MirrorEntry.

    Key methods:
    - load: current entries (missing file = empty registry)
    - save: atomic write of all entries
    - transaction: locked load/mutate/save
    """

    def __init__(self, path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.path = Path(path).expanduser()
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout

    def load(self) -> Dict[str, MirrorEntry]:
        """
        Load entries from disk.

        Raises:
            RegistryCorrupt: If the file exists but is not a valid registry.
                A corrupt registry is never silently replaced.
        """
        if not self.path.exists():
            return {}

        try:
            raw = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as e:
            raise RegistryCorrupt(f"{self.path}: {e}") from e

        if not isinstance(raw, dict) or not isinstance(raw.get("entries"), dict):
            raise RegistryCorrupt(f"{self.path}: missing 'entries' object")
        if raw.get("version") != REGISTRY_VERSION:
            raise RegistryCorrupt(f"{self.path}: unsupported version {raw.get('version')!r}")

        return {
            source: MirrorEntry.from_dict(source, data)
            for source, data in raw["entries"].items()
        }

    def save(self, entries: Dict[str, MirrorEntry]) -> None:
        """Write all entries atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = self._serialize(entries)

        fd, temp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        logger.debug("Saved registry %s (%d entries)", self.path, len(entries))

    @contextmanager
    def transaction(self):
        """
        Locked read-modify-write.

        Yields the loaded entries dict; mutate it in place. Changes are saved
        when the block exits normally and discarded if it raises.
        """
        with registry_lock(self.lock_path, self.lock_timeout):
            entries = self.load()
            before = self._serialize(entries)
            yield entries
            if self._serialize(entries) != before:
                self.save(entries)

    def _serialize(self, entries: Dict[str, MirrorEntry]) -> str:
        payload = {
            "version": REGISTRY_VERSION,
            "entries": {source: entry.to_dict() for source, entry in entries.items()},
        }
        return orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS).decode() + "\n"


class MirrorRegistry:
    """
    Registration, removal and query of source -> mirror mappings.

    Key methods:
    - register/unregister: idempotent mirror membership
    - remove_entry: explicit deletion of a whole entry
    - get/list: read-only queries
    - record_sync: store hash + timestamp after a sync
    """

    def __init__(self, store: RegistryStore, fs: Optional[LocalFilesystem] = None):
        self.store = store
        self.fs = fs or LocalFilesystem()

    canonical_path = staticmethod(canonical_path)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def register(self, source, mirror) -> RegistrationResult:
        """
        Add mirror to source's entry, creating the entry if needed.

        Registering an existing (source, mirror) pair changes nothing and
        reports already_registered.

        Raises:
            SourceNotFound: If source does not exist
            InvalidMirror: If mirror is the source itself, is registered as a
                source, or already mirrors a different source
        """
        source = canonical_path(source)
        mirror = canonical_path(mirror)

        if not self.fs.exists(source):
            raise SourceNotFound(source)
        if mirror == source:
            raise InvalidMirror(source, mirror, "mirror and source are the same path")

        with self.store.transaction() as entries:
            if mirror in entries:
                raise InvalidMirror(source, mirror, "path is itself a registered source")
            for other, other_entry in entries.items():
                if other == source:
                    continue
                if mirror in other_entry.mirrors:
                    raise InvalidMirror(source, mirror, f"already mirrors {other}")
                if source in other_entry.mirrors:
                    raise InvalidMirror(source, mirror, f"source is a mirror of {other}")

            entry = entries.get(source)
            created = entry is None
            if created:
                entry = MirrorEntry()
                entries[source] = entry

            if mirror in entry.mirrors:
                logger.info("Mirror already registered: %s -> %s", source, mirror)
                return RegistrationResult(source, mirror, already_registered=True)

            entries[source] = replace(entry, mirrors=entry.mirrors + [mirror])

        logger.info("Registered mirror %s -> %s", source, mirror)
        return RegistrationResult(source, mirror, created_entry=created)

    def unregister(self, source, mirror, strict: bool = False) -> bool:
        """
        Remove mirror from source's entry.

        Returns:
            True if removed, False if it was not registered (no-op)

        Raises:
            SourceNotRegistered: If source has no entry
            MirrorNotRegistered: If strict and mirror is not in the entry
        """
        source = canonical_path(source)
        mirror = canonical_path(mirror)

        with self.store.transaction() as entries:
            entry = entries.get(source)
            if entry is None:
                raise SourceNotRegistered(source)
            if mirror not in entry.mirrors:
                if strict:
                    raise MirrorNotRegistered(source, mirror)
                logger.info("Mirror not registered, nothing to remove: %s -> %s", source, mirror)
                return False
            entries[source] = replace(entry, mirrors=[m for m in entry.mirrors if m != mirror])

        logger.info("Unregistered mirror %s -> %s", source, mirror)
        return True

    def remove_entry(self, source, force: bool = False) -> MirrorEntry:
        """
        Delete source's entry.

        Returns:
            The removed entry

        Raises:
            SourceNotRegistered: If source has no entry
            EntryNotEmpty: If the entry still has mirrors and force is False
        """
        source = canonical_path(source)

        with self.store.transaction() as entries:
            entry = entries.get(source)
            if entry is None:
                raise SourceNotRegistered(source)
            if entry.mirrors and not force:
                raise EntryNotEmpty(source, len(entry.mirrors))
            del entries[source]

        logger.info("Removed registry entry %s (%d mirror(s))", source, len(entry.mirrors))
        return entry

    def record_sync(self, source, content_hash: str, hash_algorithm: str, timestamp: str) -> MirrorEntry:
        """
        Store the result of a sync.

        Only hash, algorithm and timestamp change; a mirror registered by
        another process in the meantime is kept.

        Raises:
            SourceNotRegistered: If the entry was removed meanwhile
        """
        source = canonical_path(source)

        with self.store.transaction() as entries:
            entry = entries.get(source)
            if entry is None:
                raise SourceNotRegistered(source)
            updated = replace(
                entry,
                content_hash=content_hash,
                hash_algorithm=hash_algorithm,
                last_sync=timestamp,
            )
            entries[source] = updated
        return updated

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, source) -> MirrorEntry:
        """
        Raises:
            SourceNotRegistered: If source has no entry
        """
        source = canonical_path(source)
        entry = self.store.load().get(source)
        if entry is None:
            raise SourceNotRegistered(source)
        return entry

    def list(self) -> List[Tuple[str, MirrorEntry]]:
        """All (source, entry) pairs sorted by source path. Never mutates."""
        return sorted(self.store.load().items())

    def is_registered(self, source) -> bool:
        return canonical_path(source) in self.store.load()
