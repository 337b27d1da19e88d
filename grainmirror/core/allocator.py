"""
Allocator — collision-free grainorders for new files

New files take the code just below the newest code already in use, so they
sort first. Because every step moves to the adjacent code with nothing
skipped, two processes running this same algorithm over the same set of
codes always agree, and the result can never collide with a used code.

Invalid strings and the reserved archive code in the used set are ignored:
archived items never set the newest boundary.
"""

from enum import Enum
from typing import Iterable, List, Optional

from ..errors import AllocationExhausted, InvalidGrainorder
from .grainorder import (
    ARCHIVE_CODE,
    START_CODE,
    is_valid,
    predecessor,
    sort_key,
    validate,
)


class Direction(Enum):
    """Which end of the used range to look at."""
    NEWEST = "newest"  # smallest code
    OLDEST = "oldest"  # largest code


def find_extremal(used_codes: Iterable[str], direction: Direction = Direction.NEWEST) -> Optional[str]:
    """
    Smallest (NEWEST) or largest (OLDEST) valid, non-archive code.

    Returns:
        The extremal code, or None when no member qualifies
    """
    candidates = [code for code in used_codes if is_valid(code) and code != ARCHIVE_CODE]
    if not candidates:
        return None
    pick = min if direction is Direction.NEWEST else max
    return pick(candidates, key=sort_key)


def allocate_next(used_codes: Iterable[str], start: str = START_CODE) -> str:
    """
    Next free code, strictly smaller than every used code.

    Args:
        used_codes: Codes already assigned (any iterable; order irrelevant)
        start: Code to hand out when nothing valid is in use yet

    Returns:
        predecessor(newest used code), or start for an empty set

    Raises:
        AllocationExhausted: If the newest used code is START_CODE
        InvalidGrainorder: If start is invalid or the archive code
    """
    newest = find_extremal(used_codes, Direction.NEWEST)
    if newest is None:
        return _check_start(start)

    code = predecessor(newest)
    if code is None:
        raise AllocationExhausted(f"newest code in use is '{newest}'")
    return code


def allocate_many(used_codes: Iterable[str], count: int, start: str = START_CODE) -> List[str]:
    """
    Allocate count codes in a row; the last one is the newest.

    Raises:
        AllocationExhausted: If the space runs out partway (nothing is returned)
    """
    taken = set(used_codes)
    allocated = []
    for _ in range(count):
        code = allocate_next(taken, start=start)
        taken.add(code)
        allocated.append(code)
    return allocated


def _check_start(start: str) -> str:
    validate(start)
    if start == ARCHIVE_CODE:
        raise InvalidGrainorder(f"'{start}' is the reserved archive code")
    return start
