"""
SyncEngine — copy each source verbatim to all of its mirrors

Per source:
  1. read the source (failure = SourceUnreadable, registry untouched)
  2. hash the content
  3. write every mirror; a failed mirror is recorded and the rest still run
  4. record hash + timestamp in the registry, even if some mirrors failed;
     if recording fails (entry removed meanwhile) the outcome keeps the
     mirrors written and carries the error

The recorded hash always describes what the source was at sync time, not
what every mirror now holds. verify() is what compares mirrors.

sync_all() runs every registered source in path order. One source failing
never stops the batch.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..core.registry import MirrorEntry, MirrorRegistry, canonical_path
from ..errors import GrainmirrorError, MirrorWriteFailed, SourceUnreadable
from ..core.filesystem import LocalFilesystem
from ..core.hasher import ContentHasher

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncOutcome:
    """Result of syncing one source."""
    source: str
    content_hash: str = ""
    hash_algorithm: str = ""
    synced_at: Optional[str] = None
    written: List[str] = field(default_factory=list)
    failures: List[MirrorWriteFailed] = field(default_factory=list)
    error: Optional[GrainmirrorError] = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "success": self.success,
            "content_hash": self.content_hash,
            "hash_algorithm": self.hash_algorithm,
            "synced_at": self.synced_at,
            "written": list(self.written),
            "failures": [{"path": f.path, "reason": f.reason} for f in self.failures],
            "error": str(self.error) if self.error else None,
        }


@dataclass
class SyncReport:
    """Aggregate of a sync_all() run, ordered by source path."""
    outcomes: List[SyncOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(outcome.success for outcome in self.outcomes)

    @property
    def failed(self) -> List[SyncOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "source_count": len(self.outcomes),
            "failed_count": len(self.failed),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class SyncEngine:
    """Writes byte-identical copies of registered sources to their mirrors."""

    def __init__(
        self,
        registry: MirrorRegistry,
        fs: Optional[LocalFilesystem] = None,
        hasher: Optional[ContentHasher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.fs = fs or registry.fs
        self.hasher = hasher or ContentHasher()
        self.clock = clock or _utc_now

    def sync(self, source) -> SyncOutcome:
        """
        Sync one registered source.

        Raises:
            SourceNotRegistered: If source has no entry
            SourceUnreadable: If the source cannot be read
        """
        source = canonical_path(source)
        entry = self.registry.get(source)
        return self._sync_entry(source, entry)

    def sync_all(self) -> SyncReport:
        """Sync every registered source; failures are collected per source."""
        report = SyncReport()
        for source, entry in self.registry.list():
            try:
                report.outcomes.append(self._sync_entry(source, entry))
            except GrainmirrorError as e:
                logger.error("Sync failed for %s: %s", source, e)
                report.outcomes.append(SyncOutcome(source=source, error=e))
        return report

    def _sync_entry(self, source: str, entry: MirrorEntry) -> SyncOutcome:
        try:
            content = self.fs.read(source)
        except OSError as e:
            raise SourceUnreadable(source, e.strerror or str(e)) from e

        outcome = SyncOutcome(
            source=source,
            content_hash=self.hasher.hash(content),
            hash_algorithm=self.hasher.algorithm,
        )

        for mirror in entry.mirrors:
            try:
                self.fs.write(mirror, content)
            except OSError as e:
                failure = MirrorWriteFailed(mirror, e.strerror or str(e))
                logger.warning("Mirror write failed: %s", failure)
                outcome.failures.append(failure)
                continue
            outcome.written.append(mirror)
            logger.debug("Wrote mirror %s (%d bytes)", mirror, len(content))

        synced_at = self.clock().isoformat()
        try:
            self.registry.record_sync(source, outcome.content_hash, outcome.hash_algorithm, synced_at)
        except GrainmirrorError as e:
            # Mirrors already on disk stay listed in written
            logger.error("Wrote mirrors but could not record sync of %s: %s", source, e)
            outcome.error = e
            return outcome
        outcome.synced_at = synced_at

        logger.info(
            "Synced %s -> %d/%d mirror(s)",
            source, len(outcome.written), len(entry.mirrors),
        )
        return outcome
