"""
Errors — grainmirror error taxonomy

Every failure the core can raise carries a stable code, a human message and
optional context, so the CLI can print one consistent line per failure.

Verification findings (missing mirror, drifted mirror, source changed since
sync) are NOT errors. They live in report fields (see services/verify.py).
"""

from typing import List, Optional


__all__ = [
    "GrainmirrorError",
    "InvalidGrainorder",
    "AllocationExhausted",
    "PlanExhausted",
    "SourceNotFound",
    "SourceUnreadable",
    "MirrorWriteFailed",
    "RenamePartialFailure",
    "AlreadyTagged",
    "SourceNotRegistered",
    "MirrorNotRegistered",
    "EntryNotEmpty",
    "InvalidMirror",
    "RegistryCorrupt",
    "RegistryLocked",
]


class GrainmirrorError(Exception):
    """Base class for all grainmirror errors."""

    def __init__(self, code: str, message: str, context: Optional[str] = None):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"

        super().__init__(full_msg)


# Grainorder space (E0xx)

class InvalidGrainorder(GrainmirrorError):
    def __init__(self, context: Optional[str] = None):
        super().__init__(
            "GM_E001",
            "Grainorder must be 6 distinct symbols from 'xbdghjklmnsvz'.",
            context,
        )


class AllocationExhausted(GrainmirrorError):
    def __init__(self, context: Optional[str] = None):
        super().__init__(
            "GM_E002",
            "No grainorder remains below the newest code in use.",
            context,
        )


class PlanExhausted(GrainmirrorError):
    def __init__(self, context: Optional[str] = None):
        super().__init__(
            "GM_E003",
            "Not enough grainorders remain above the starting code for this directory.",
            context,
        )


# Filesystem (E1xx)

class SourceNotFound(GrainmirrorError):
    def __init__(self, path: str):
        self.path = path
        super().__init__("GM_E100", "Source file does not exist.", path)


class SourceUnreadable(GrainmirrorError):
    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        context = f"{path}: {reason}" if reason else path
        super().__init__("GM_E101", "Source file could not be read.", context)


class MirrorWriteFailed(GrainmirrorError):
    """One mirror could not be written during sync. Collected, never fatal to the batch."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        context = f"{path}: {reason}" if reason else path
        super().__init__("GM_E102", "Mirror could not be written.", context)


class RenamePartialFailure(GrainmirrorError):
    """
    A rebalance stopped partway through its renames.

    completed and pending hold (old_name, new_name) pairs, so the caller can
    see exactly what moved. Re-scanning the directory gives a coherent state
    to re-plan from.
    """

    def __init__(
        self,
        completed: List[tuple],
        pending: List[tuple],
        reason: Optional[str] = None,
    ):
        self.completed = list(completed)
        self.pending = list(pending)
        self.reason = reason
        context = f"{len(self.completed)} renamed, {len(self.pending)} pending"
        if reason:
            context += f"; {reason}"
        super().__init__("GM_E103", "Rebalance stopped before all files were renamed.", context)


class AlreadyTagged(GrainmirrorError):
    def __init__(self, path: str):
        self.path = path
        super().__init__("GM_E104", "File already carries a grainorder tag.", path)


# Registry state (E2xx)

class SourceNotRegistered(GrainmirrorError):
    def __init__(self, path: str):
        self.path = path
        super().__init__("GM_E200", "Source is not registered.", path)


class MirrorNotRegistered(GrainmirrorError):
    def __init__(self, source: str, mirror: str):
        self.source = source
        self.mirror = mirror
        super().__init__("GM_E201", "Mirror is not registered for this source.", f"{source} -> {mirror}")


class EntryNotEmpty(GrainmirrorError):
    def __init__(self, source: str, mirror_count: int):
        self.source = source
        self.mirror_count = mirror_count
        super().__init__(
            "GM_E202",
            "Entry still has mirrors; remove them first or force removal.",
            f"{source} ({mirror_count} mirror(s))",
        )


class InvalidMirror(GrainmirrorError):
    def __init__(self, source: str, mirror: str, reason: str):
        self.source = source
        self.mirror = mirror
        super().__init__("GM_E203", f"Invalid mirror path: {reason}.", f"{source} -> {mirror}")


# Persistence (E3xx)

class RegistryCorrupt(GrainmirrorError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("GM_E300", "Registry file is malformed.", context)


class RegistryLocked(GrainmirrorError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("GM_E301", "Registry is locked by another process.", context)
