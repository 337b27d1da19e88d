"""
Services — Operations over the registry and the filesystem

- Sync: copy sources to mirrors, record hashes
- Verify: drift detection
- Rebalance: renumber tagged files to follow timestamps
- Tagger: give untagged files a grainorder
"""

from .sync import SyncEngine, SyncOutcome, SyncReport
from .verify import VerifyEngine, VerificationReport, VerifyReport, MirrorState, MirrorStatus
from .rebalance import Rebalancer, RebalancePlan, ApplyResult, Move, TaggedFile
from .tagger import Tagger

__all__ = [
    # Sync
    "SyncEngine", "SyncOutcome", "SyncReport",
    # Verify
    "VerifyEngine", "VerificationReport", "VerifyReport", "MirrorState", "MirrorStatus",
    # Rebalance
    "Rebalancer", "RebalancePlan", "ApplyResult", "Move", "TaggedFile",
    # Tagger
    "Tagger",
]
