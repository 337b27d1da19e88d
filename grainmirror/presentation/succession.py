"""
Command Succession — Next-step hints printed under command output

Workflows the hints walk through:
- Mirror loop: register -> sync -> verify -> [EDIT] -> sync
- Drift repair: verify (drift found) -> sync
- Naming: grain tag -> rebalance --dry-run -> rebalance

RULES maps a command to its candidate steps. The first step whose
condition flag is set in the result context wins; a step without a
condition always matches, so it goes last.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class NextStep:
    label: str                       # Command line to suggest, or a closing remark
    why: Optional[str] = None
    when: Optional[str] = None       # Context flag required (None = always)
    terminal: bool = False           # Nothing left to do; label is a remark


RULES: Dict[str, Tuple[NextStep, ...]] = {
    # Mirror loop
    "register": (
        NextStep("grainmirror sync <source>", "Write the first copies"),
    ),
    "remove": (
        NextStep("grainmirror list", "Check remaining mirrors"),
    ),
    "list": (
        NextStep("grainmirror register <source> <mirror>", "Nothing registered yet", when="empty"),
        NextStep("grainmirror sync", "Some sources were never synced", when="never_synced"),
        NextStep("grainmirror verify", "Check for drift"),
    ),
    "sync": (
        NextStep("grainmirror list", "Check failing mirror paths", when="has_failures"),
        NextStep("grainmirror verify", "Confirm mirrors match"),
    ),
    "verify": (
        NextStep("grainmirror sync", "Overwrite drifted or missing mirrors", when="has_drift"),
        NextStep("All mirrors in sync", terminal=True),
    ),

    # Naming
    "tag": (
        NextStep("grainmirror rebalance <dir> --dry-run", "Preview order against timestamps"),
    ),
    "rebalance": (
        NextStep("grainmirror rebalance <dir>", "Apply the previewed renames", when="dry_run"),
        NextStep("grainmirror rebalance <dir>", "Re-plan from the current state", when="partial"),
        NextStep("Directory order matches timestamps", terminal=True),
    ),

    # Maintenance
    "config": (
        NextStep("grainmirror config", "Review the effective settings", when="updated"),
    ),
}


def get_hint(command: str, context: Optional[dict] = None) -> Optional[str]:
    """
    Hint line for the command that just ran, or None.

    Args:
        command: e.g., "sync", "verify"
        context: Result flags, e.g., {"has_drift": True}
    """
    context = context or {}
    for step in RULES.get(command, ()):
        if step.when is None or context.get(step.when):
            prefix = "->" if step.terminal else "-> Next:"
            suffix = f"  ({step.why})" if step.why else ""
            return f"{prefix} {step.label}{suffix}"
    return None
