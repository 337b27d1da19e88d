"""
Presentation — Display layer for grainmirror

- symbols: glyph sets (unicode/ascii), safe_print, truncate
- formatters: relative times, short hashes, mirror lines, JSON
- succession: next-step hints
- template: framed header/section/footer output
"""

from .symbols import SymbolSet, get_symbols, safe_print, truncate, symbol_for_state
from .formatters import format_timestamp, short_hash, format_mirror_line, render_json
from .succession import get_hint, RULES
from .template import OutputTemplate

__all__ = [
    "SymbolSet", "get_symbols", "safe_print", "truncate", "symbol_for_state",
    "format_timestamp", "short_hash", "format_mirror_line", "render_json",
    "get_hint", "RULES",
    "OutputTemplate",
]
