"""
Rebalancer — reassign grainorders so listing order matches timestamp order

Over time a directory collects tagged files whose codes no longer follow
their timestamps (files copied in, codes allocated from different starting
points). Rebalancing gives the newest file the starting code and every
older file the next code in sequence.

Three steps, separated so the CLI can confirm in between:
  1. scan(directory)  -> tagged files found (untagged names are skipped)
  2. plan(directory)  -> RebalancePlan, pure, nothing touched
  3. apply(plan)      -> renames on disk

Files carrying the reserved archive code are left where they are.

apply() never lets two files hold the same code at once. A rename waits
until its target code is free; when every pending rename waits on another
(a cycle), one file is parked on a code outside the plan first. Parked
names are ordinary tagged names, so an interrupted run leaves a directory
that scan() and plan() handle like any other.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from ..core.allocator import allocate_next
from ..core.filesystem import LocalFilesystem
from ..core.grainorder import (
    ARCHIVE_CODE,
    START_CODE,
    code_at,
    index_of,
    is_archive,
    sort_key,
    successor,
    validate,
)
from ..core.naming import TaggedName, parse_tagged_name
from ..errors import (
    AllocationExhausted,
    InvalidGrainorder,
    PlanExhausted,
    RenamePartialFailure,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaggedFile:
    """A file in the scanned directory whose name parsed as tagged."""
    name: str
    tagged: TaggedName

    @property
    def code(self) -> str:
        return self.tagged.code


@dataclass(frozen=True)
class Move:
    old_name: str
    new_name: str
    old_code: str
    new_code: str

    @property
    def changed(self) -> bool:
        return self.old_name != self.new_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_name": self.old_name,
            "new_name": self.new_name,
            "old_code": self.old_code,
            "new_code": self.new_code,
        }


@dataclass
class RebalancePlan:
    """
    Every tagged file of a directory, newest first, with its planned name.

    moves covers all files, including those already in place; changes is
    the subset apply() will actually rename.
    """
    directory: str
    start: str = START_CODE
    headroom: int = 0
    moves: List[Move] = field(default_factory=list)

    @property
    def changes(self) -> List[Move]:
        return [move for move in self.moves if move.changed]

    @property
    def is_noop(self) -> bool:
        return not self.changes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directory": self.directory,
            "start": self.start,
            "headroom": self.headroom,
            "file_count": len(self.moves),
            "change_count": len(self.changes),
            "moves": [move.to_dict() for move in self.moves],
        }


@dataclass
class ApplyResult:
    directory: str
    completed: List[Tuple[str, str]] = field(default_factory=list)
    parked: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def renamed_count(self) -> int:
        return len(self.completed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directory": self.directory,
            "completed": [list(pair) for pair in self.completed],
            "parked": [list(pair) for pair in self.parked],
        }


class Rebalancer:
    """Plans and applies grainorder renames within one directory."""

    def __init__(self, fs: Optional[LocalFilesystem] = None):
        self.fs = fs or LocalFilesystem()

    def scan(self, directory) -> List[TaggedFile]:
        """Tagged files in directory, in listing order. Other names are skipped."""
        found = []
        for name in self.fs.list(str(directory)):
            tagged = parse_tagged_name(name)
            if tagged is None:
                logger.debug("Skipping untagged name %s", name)
                continue
            found.append(TaggedFile(name, tagged))
        return found

    def plan(self, directory, start: str = START_CODE, headroom: int = 0) -> RebalancePlan:
        """
        Build the rename plan for directory. Touches nothing.

        Files are ordered by timestamp, newest first; ties fall back to the
        current code and then the remainder, so the same directory always
        yields the same plan.

        Args:
            directory: Directory to scan
            start: Code for the newest file
            headroom: Codes left unused below the newest file, so that later
                allocations still fit in front of it

        Raises:
            InvalidGrainorder: If start is invalid or the archive code
            PlanExhausted: If the files do not fit between start and the
                archive code
            ValueError: If headroom is negative
        """
        validate(start)
        if is_archive(start):
            raise InvalidGrainorder(f"'{start}' is the reserved archive code")
        if headroom < 0:
            raise ValueError(f"headroom must be >= 0, got {headroom}")

        directory = os.path.abspath(os.path.expanduser(str(directory)))
        files = [f for f in self.scan(directory) if not is_archive(f.code)]
        files.sort(key=lambda f: (-f.tagged.sort_value, sort_key(f.code), f.tagged.remainder))

        first = index_of(start) + headroom
        if files and first + len(files) - 1 >= index_of(ARCHIVE_CODE):
            raise PlanExhausted(
                f"{len(files)} file(s) from '{start}' with headroom {headroom}"
            )

        moves = []
        for offset, tagged_file in enumerate(files):
            code = code_at(first + offset)
            moves.append(Move(
                old_name=tagged_file.name,
                new_name=tagged_file.tagged.with_code(code).filename,
                old_code=tagged_file.code,
                new_code=code,
            ))

        plan = RebalancePlan(directory=directory, start=start, headroom=headroom, moves=moves)
        logger.info(
            "Planned rebalance of %s: %d file(s), %d rename(s)",
            directory, len(plan.moves), len(plan.changes),
        )
        return plan

    def apply(self, plan: RebalancePlan) -> ApplyResult:
        """
        Carry out the renames of a plan.

        Returns:
            ApplyResult listing (old_name, new_name) for every finished
            rename, plus any temporary parking renames

        Raises:
            RenamePartialFailure: On the first failed rename. Nothing after
                it is attempted; completed and pending describe the state
                left on disk.
        """
        result = ApplyResult(directory=plan.directory)
        remaining = plan.changes
        if not remaining:
            return result

        # Original name -> name on disk now, and which files hold each code
        current: Dict[str, str] = {move.old_name: move.old_name for move in plan.moves}
        code_of: Dict[str, str] = {move.old_name: move.old_code for move in plan.moves}
        holders: Dict[str, Set[str]] = {}
        for move in plan.moves:
            holders.setdefault(move.old_code, set()).add(move.old_name)
        targets = {move.new_code for move in plan.moves}

        def rename(move: Move, new_name: str, new_code: str) -> None:
            old_path = os.path.join(plan.directory, current[move.old_name])
            self.fs.rename(old_path, os.path.join(plan.directory, new_name))
            holders[code_of[move.old_name]].discard(move.old_name)
            holders.setdefault(new_code, set()).add(move.old_name)
            current[move.old_name] = new_name
            code_of[move.old_name] = new_code

        try:
            while remaining:
                waiting = []
                for move in remaining:
                    if holders.get(move.new_code, set()) - {move.old_name}:
                        waiting.append(move)
                        continue
                    rename(move, move.new_name, move.new_code)
                    result.completed.append((move.old_name, move.new_name))
                    logger.info("Renamed %s -> %s", move.old_name, move.new_name)

                if len(waiting) == len(remaining):
                    move = waiting[0]
                    free = self._free_code(holders, targets)
                    parked_name = parse_tagged_name(current[move.old_name]).with_code(free).filename
                    rename(move, parked_name, free)
                    result.parked.append((move.old_name, parked_name))
                    logger.info("Parked %s as %s to break a rename cycle", move.old_name, parked_name)
                remaining = waiting
        except (OSError, AllocationExhausted) as e:
            pending = [(current[move.old_name], move.new_name) for move in remaining
                       if current[move.old_name] != move.new_name]
            logger.error("Rebalance of %s stopped: %s", plan.directory, e)
            raise RenamePartialFailure(result.completed, pending, str(e)) from e

        return result

    def _free_code(self, holders: Dict[str, Set[str]], targets: Set[str]) -> str:
        """A code nobody holds and no move targets."""
        taken = {code for code, names in holders.items() if names} | targets
        oldest = max((code for code in taken if not is_archive(code)), key=sort_key)
        code = successor(oldest)
        if code is not None:
            return code
        return allocate_next(taken)
