"""
VerifyEngine — drift detection across a source and its mirrors

Two independent checks per source:

- Source vs registry: has the source been edited since its last sync?
  (source_changed_since_sync, informational)
- Mirror vs source: does each mirror match the source's CURRENT content?
  (IN_SYNC / MISSING / DRIFTED / UNREADABLE / UNVERIFIED)

all_in_sync only looks at the second check. A source edited after its last
sync can still have every mirror in sync, if the mirrors were updated some
other way.

verify() raises only for an unregistered source. For a registered one every
problem, including an unreadable source, is reported in the result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.registry import MirrorEntry, MirrorRegistry, canonical_path
from ..core.filesystem import LocalFilesystem
from ..core.hasher import DEFAULT_ALGORITHM, ContentHasher

logger = logging.getLogger(__name__)


class MirrorState(Enum):
    IN_SYNC = "in_sync"
    MISSING = "missing"
    DRIFTED = "drifted"
    UNREADABLE = "unreadable"   # mirror exists but could not be read
    UNVERIFIED = "unverified"   # source unreadable, nothing to compare to


@dataclass
class MirrorStatus:
    path: str
    state: MirrorState
    content_hash: str = ""
    detail: Optional[str] = None

    @property
    def in_sync(self) -> bool:
        return self.state is MirrorState.IN_SYNC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "state": self.state.value,
            "content_hash": self.content_hash,
            "detail": self.detail,
        }


@dataclass
class VerificationReport:
    """Findings for one source."""
    source: str
    recorded_hash: str = ""
    current_hash: str = ""
    hash_algorithm: str = DEFAULT_ALGORITHM
    last_sync: Optional[str] = None
    mirrors: List[MirrorStatus] = field(default_factory=list)
    source_error: Optional[str] = None

    @property
    def never_synced(self) -> bool:
        return not self.recorded_hash

    @property
    def source_changed_since_sync(self) -> bool:
        """Registry hash is stale: the source was edited after its last sync."""
        if not self.recorded_hash or not self.current_hash:
            return False
        return self.recorded_hash != self.current_hash

    @property
    def missing(self) -> List[MirrorStatus]:
        return [m for m in self.mirrors if m.state is MirrorState.MISSING]

    @property
    def drifted(self) -> List[MirrorStatus]:
        return [m for m in self.mirrors if m.state is MirrorState.DRIFTED]

    @property
    def all_in_sync(self) -> bool:
        return self.source_error is None and all(m.in_sync for m in self.mirrors)

    def status_of(self, mirror) -> Optional[MirrorStatus]:
        path = canonical_path(mirror)
        for status in self.mirrors:
            if status.path == path:
                return status
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "all_in_sync": self.all_in_sync,
            "source_changed_since_sync": self.source_changed_since_sync,
            "never_synced": self.never_synced,
            "recorded_hash": self.recorded_hash,
            "current_hash": self.current_hash,
            "hash_algorithm": self.hash_algorithm,
            "last_sync": self.last_sync,
            "source_error": self.source_error,
            "mirrors": [m.to_dict() for m in self.mirrors],
        }


@dataclass
class VerifyReport:
    """Aggregate of verify_all(), ordered by source path."""
    reports: List[VerificationReport] = field(default_factory=list)

    @property
    def all_in_sync(self) -> bool:
        return all(report.all_in_sync for report in self.reports)

    def count(self, state: MirrorState) -> int:
        return sum(1 for report in self.reports for m in report.mirrors if m.state is state)

    @property
    def changed_sources(self) -> List[VerificationReport]:
        return [report for report in self.reports if report.source_changed_since_sync]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "all_in_sync": self.all_in_sync,
            "source_count": len(self.reports),
            "counts": {state.value: self.count(state) for state in MirrorState},
            "reports": [report.to_dict() for report in self.reports],
        }


class VerifyEngine:
    """Compares sources, the registry and mirrors by content hash."""

    def __init__(
        self,
        registry: MirrorRegistry,
        fs: Optional[LocalFilesystem] = None,
        default_algorithm: str = DEFAULT_ALGORITHM,
    ):
        self.registry = registry
        self.fs = fs or registry.fs
        self.default_algorithm = default_algorithm

    def verify(self, source) -> VerificationReport:
        """
        Verify one source.

        Raises:
            SourceNotRegistered: If source has no entry
        """
        source = canonical_path(source)
        entry = self.registry.get(source)
        return self._verify_entry(source, entry)

    def verify_all(self) -> VerifyReport:
        return VerifyReport(
            reports=[self._verify_entry(source, entry) for source, entry in self.registry.list()]
        )

    def _verify_entry(self, source: str, entry: MirrorEntry) -> VerificationReport:
        # Compare with the digest that produced the recorded hash
        algorithm = self.default_algorithm if entry.never_synced else entry.hash_algorithm
        hasher = ContentHasher(algorithm)

        report = VerificationReport(
            source=source,
            recorded_hash=entry.content_hash,
            hash_algorithm=algorithm,
            last_sync=entry.last_sync,
        )

        try:
            report.current_hash = hasher.hash_file(self.fs, source)
        except OSError as e:
            report.source_error = e.strerror or str(e)
            logger.warning("Cannot read source %s: %s", source, report.source_error)

        for mirror in entry.mirrors:
            report.mirrors.append(self._check_mirror(mirror, hasher, report.current_hash))

        if report.source_changed_since_sync:
            logger.info("Source changed since last sync: %s", source)
        return report

    def _check_mirror(self, mirror: str, hasher: ContentHasher, source_hash: str) -> MirrorStatus:
        if not self.fs.exists(mirror):
            return MirrorStatus(mirror, MirrorState.MISSING)
        if not source_hash:
            return MirrorStatus(mirror, MirrorState.UNVERIFIED, detail="source unreadable")

        try:
            digest = hasher.hash_file(self.fs, mirror)
        except OSError as e:
            return MirrorStatus(mirror, MirrorState.UNREADABLE, detail=e.strerror or str(e))

        if digest == source_hash:
            return MirrorStatus(mirror, MirrorState.IN_SYNC, content_hash=digest)
        logger.info("Mirror drifted: %s", mirror)
        return MirrorStatus(mirror, MirrorState.DRIFTED, content_hash=digest)
