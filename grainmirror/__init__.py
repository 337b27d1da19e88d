"""
grainmirror — File mirroring and grainorder naming

Keeps hard copies of files in several places, knows which copy belongs to
which source, and notices when a copy drifts. Tagged filenames carry a
6-symbol grainorder so directory listings sort newest first.

Usage:
    grainmirror register notes.md ~/backup/notes.md
    grainmirror sync
    grainmirror verify
    grainmirror grain tag draft.md
    grainmirror rebalance ~/journal
    grainmirror config --set hashing.algorithm xxh128
"""

__version__ = "0.1.0"

# Core layer
from .core.grainorder import (
    ALPHABET, SPACE_SIZE, START_CODE, ARCHIVE_CODE, LAST_CODE,
    is_valid, compare, successor, predecessor, index_of, code_at,
)
from .core.naming import TaggedName, parse_tagged_name
from .core.allocator import Direction, find_extremal, allocate_next
from .core.registry import MirrorEntry, MirrorRegistry, RegistryStore
from .core.hasher import ContentHasher
from .core.filesystem import LocalFilesystem

# Services layer
from .services.sync import SyncEngine, SyncOutcome, SyncReport
from .services.verify import VerifyEngine, VerificationReport, MirrorState, MirrorStatus
from .services.rebalance import Rebalancer, RebalancePlan, ApplyResult
from .services.tagger import Tagger

# Config (stays at root)
from .config import Config, ConfigManager, get_config

from .errors import GrainmirrorError

__all__ = [
    # Core
    'ALPHABET', 'SPACE_SIZE', 'START_CODE', 'ARCHIVE_CODE', 'LAST_CODE',
    'is_valid', 'compare', 'successor', 'predecessor', 'index_of', 'code_at',
    'TaggedName', 'parse_tagged_name',
    'Direction', 'find_extremal', 'allocate_next',
    'MirrorEntry', 'MirrorRegistry', 'RegistryStore',
    'ContentHasher', 'LocalFilesystem',
    # Services
    'SyncEngine', 'SyncOutcome', 'SyncReport',
    'VerifyEngine', 'VerificationReport', 'MirrorState', 'MirrorStatus',
    'Rebalancer', 'RebalancePlan', 'ApplyResult',
    'Tagger',
    # Config
    'Config', 'ConfigManager', 'get_config',
    # Errors
    'GrainmirrorError',
]
