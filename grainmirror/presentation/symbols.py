"""
Symbols — Visual vocabulary for mirror and grainorder states

Unicode glyphs when the terminal can show them, bracketed ASCII otherwise.
Chosen by the display.symbols setting (or GRAINMIRROR_SYMBOLS).

Output helpers live here too, since both depend on which glyphs are in use:
- safe_print(): print file names of any origin without UnicodeEncodeError
- truncate(): shorten long paths from the left
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional


HASH_DISPLAY_LENGTH = 12  # Content hash prefixes (e.g., "3a7bd3e2360a")

# Glyph -> ASCII spelling, applied when the output stream rejects the glyph
ASCII_FALLBACKS = str.maketrans({
    '→': '->',
    '…': '...',
    '≠': '!=',
    '✓': '[OK]',
    '✗': '[X]',
    '∅': '[--]',
    '⊘': '[XX]',
    '↻': '[CH]',
    '○': '[ ]',
    '·': '[i]',
    '├': '+',
    '└': '+',
    '─': '-',
})


def safe_print(text: str, end: str = '\n', file=None) -> None:
    """
    print(), retried with ASCII spellings of our glyphs, then with '?' for
    whatever the stream still cannot encode (e.g., non-Latin file names on a
    cp1252 console).
    """
    stream = file if file is not None else sys.stdout
    try:
        print(text, end=end, file=stream)
        return
    except UnicodeEncodeError:
        text = text.translate(ASCII_FALLBACKS)

    try:
        print(text, end=end, file=stream)
    except UnicodeEncodeError:
        encoding = getattr(stream, 'encoding', None) or 'utf-8'
        print(text.encode(encoding, errors='replace').decode(encoding), end=end, file=stream)


def truncate(text: str, length: int, full: bool = False, ellipsis: str = "...") -> str:
    """
    Keep the last characters of text so the whole fits in length.

    Paths differ at the end, so the start is what gets dropped:
        truncate("/home/me/notes/a.md", 10) -> "...es/a.md"
    """
    if full or len(text) <= length:
        return text
    keep = length - len(ellipsis)
    if keep <= 0:
        return text[-length:]
    return ellipsis + text[-keep:]


@dataclass(frozen=True)
class SymbolSet:
    """Complete set of symbols for mirror states and listings."""
    # Mirror states
    in_sync: str
    missing: str
    drifted: str
    unreadable: str
    unverified: str

    # Source states
    changed: str
    never_synced: str

    # Status markers
    check_pass: str
    check_fail: str
    info: str
    arrow: str

    # Mirror lists under a source
    tree_branch: str
    tree_end: str

    ellipsis: str


UNICODE = SymbolSet(
    in_sync='✓',
    missing='∅',
    drifted='≠',
    unreadable='⊘',
    unverified='?',
    changed='↻',
    never_synced='○',
    check_pass='✓',
    check_fail='✗',
    info='·',
    arrow='→',
    tree_branch='├─',
    tree_end='└─',
    ellipsis='…',
)

ASCII = SymbolSet(
    in_sync='[OK]',
    missing='[--]',
    drifted='[!=]',
    unreadable='[XX]',
    unverified='[??]',
    changed='[CH]',
    never_synced='[ ]',
    check_pass='[OK]',
    check_fail='[ERR]',
    info='[i]',
    arrow='->',
    tree_branch='+-',
    tree_end='+-',
    ellipsis='...',
)

MIRROR_STATES = ('in_sync', 'missing', 'drifted', 'unreadable', 'unverified')


def supports_unicode() -> bool:
    """
    Best guess from the stdout encoding, then the locale variables.
    Unknown means no.
    """
    encoding = (getattr(sys.stdout, 'encoding', None) or '').lower().replace('_', '-')
    if encoding:
        return encoding in ('utf-8', 'utf8', 'utf-16', 'utf-32')

    locale = ' '.join(os.environ.get(name, '') for name in ('LC_ALL', 'LANG')).lower()
    return 'utf-8' in locale or 'utf8' in locale


def get_symbols(preference: Optional[str] = None) -> SymbolSet:
    """
    Symbol set for "unicode", "ascii", or "auto"/None (detect).
    """
    if preference == 'unicode':
        return UNICODE
    if preference == 'ascii':
        return ASCII
    return UNICODE if supports_unicode() else ASCII


def symbol_for_state(symbols: SymbolSet, state: str) -> str:
    """Symbol for a MirrorState value; unknown states show as unverified."""
    return getattr(symbols, state if state in MIRROR_STATES else 'unverified')
