"""
Grainorder — 6-symbol permutation codes that sort newest-first

A grainorder is 6 distinct symbols drawn from a fixed 13-symbol alphabet.
Prefixed to a filename, it makes directory listings sort by age without
relying on numeric timestamps alone.

Key properties:
- BOUNDED: 13 x 12 x 11 x 10 x 9 x 8 = 1,235,520 valid codes
- ORDERED: compared symbol by symbol using alphabet rank, not character code
- DENSE: every code has an index in [0, SPACE_SIZE), so stepping never skips

Usage:
    is_valid("xzvbdh")              # True
    compare("xbdghj", "xbdghk")     # -1 (smaller = newer)
    predecessor("xbdghk")           # "xbdghj"
    successor("xbdghj")             # "xbdghk"
    predecessor(START_CODE)         # None (space exhausted)

Stepping uses carry: when a position has no smaller (or larger) symbol left
that is unused by the positions to its left, the step moves one position
left and everything to the right is refilled with the extreme available
symbols.

The largest code is reserved for archived items. It is a valid code, but
stepping never lands on it and refuses to start from it.
"""

import math
import re
from typing import Optional, Tuple

from ..errors import InvalidGrainorder


# Symbol order, smallest (newest) first
ALPHABET = "xbdghjklmnsvz"
CODE_LENGTH = 6

# Shape only: does not check the no-repeat rule
CODE_PATTERN = re.compile(r'^[xbdghjklmnsvz]{6}$')

_RANK = {symbol: rank for rank, symbol in enumerate(ALPHABET)}

# Number of ways to fill the positions after each position
_PERMS_AFTER = tuple(
    math.perm(len(ALPHABET) - pos - 1, CODE_LENGTH - pos - 1)
    for pos in range(CODE_LENGTH)
)

SPACE_SIZE = math.perm(len(ALPHABET), CODE_LENGTH)  # 1,235,520

START_CODE = "xbdghj"    # smallest valid code, index 0
ARCHIVE_CODE = "zvsnml"  # largest valid code, reserved
LAST_CODE = "zvsnmk"     # largest code stepping or allocation can produce


def is_valid(code) -> bool:
    """True iff code is 6 alphabet symbols with no repeats."""
    if not isinstance(code, str) or not CODE_PATTERN.fullmatch(code):
        return False
    return len(set(code)) == CODE_LENGTH


def validate(code) -> str:
    """Return code unchanged, or raise InvalidGrainorder."""
    if not is_valid(code):
        raise InvalidGrainorder(repr(code))
    return code


def is_archive(code: str) -> bool:
    return code == ARCHIVE_CODE


def sort_key(code: str) -> Tuple[int, ...]:
    """
    Rank tuple for sorting codes in grainorder.

    Example:
        sorted(codes, key=sort_key)   # newest first
    """
    validate(code)
    return tuple(_RANK[symbol] for symbol in code)


def compare(a: str, b: str) -> int:
    """
    Compare two codes by alphabet rank.

    Returns:
        -1 if a sorts before b (a is newer), 0 if equal, 1 otherwise

    Raises:
        InvalidGrainorder: If either code is invalid
    """
    key_a = sort_key(a)
    key_b = sort_key(b)
    return (key_a > key_b) - (key_a < key_b)


def successor(code: str) -> Optional[str]:
    """
    Next larger (older) code.

    Returns:
        The next code, or None when the only larger code is the reserved
        archive code (the space is exhausted in this direction).

    Raises:
        InvalidGrainorder: If code is invalid or is the archive code
    """
    _check_traversable(code)
    following = _step(code, smaller=False)
    if following is None or following == ARCHIVE_CODE:
        return None
    return following


def predecessor(code: str) -> Optional[str]:
    """
    Next smaller (newer) code.

    Returns:
        The previous code, or None when code is START_CODE.

    Raises:
        InvalidGrainorder: If code is invalid or is the archive code
    """
    _check_traversable(code)
    return _step(code, smaller=True)


def index_of(code: str) -> int:
    """Position of code in grainorder, 0 for START_CODE."""
    validate(code)
    index = 0
    used = set()
    for pos, symbol in enumerate(code):
        rank = _RANK[symbol]
        smaller_free = sum(1 for r in range(rank) if r not in used)
        index += smaller_free * _PERMS_AFTER[pos]
        used.add(rank)
    return index


def code_at(index: int) -> str:
    """
    Code at a position in grainorder (inverse of index_of).

    Raises:
        InvalidGrainorder: If index is outside [0, SPACE_SIZE)
    """
    if not 0 <= index < SPACE_SIZE:
        raise InvalidGrainorder(f"index {index} outside [0, {SPACE_SIZE})")
    available = list(range(len(ALPHABET)))
    symbols = []
    for pos in range(CODE_LENGTH):
        choice, index = divmod(index, _PERMS_AFTER[pos])
        symbols.append(ALPHABET[available.pop(choice)])
    return "".join(symbols)


def _check_traversable(code: str) -> None:
    validate(code)
    if code == ARCHIVE_CODE:
        raise InvalidGrainorder(f"'{code}' is the reserved archive code")


def _step(code: str, smaller: bool) -> Optional[str]:
    """Move one code in either direction, carrying leftwards as needed."""
    ranks = [_RANK[symbol] for symbol in code]
    alphabet_size = len(ALPHABET)

    for pos in range(CODE_LENGTH - 1, -1, -1):
        fixed = set(ranks[:pos])
        current = ranks[pos]
        if smaller:
            options = [r for r in range(current - 1, -1, -1) if r not in fixed]
        else:
            options = [r for r in range(current + 1, alphabet_size) if r not in fixed]
        if not options:
            continue

        chosen = options[0]
        taken = fixed | {chosen}
        free = sorted((r for r in range(alphabet_size) if r not in taken), reverse=smaller)
        tail = free[:CODE_LENGTH - pos - 1]
        return "".join(ALPHABET[r] for r in ranks[:pos] + [chosen] + tail)

    return None
