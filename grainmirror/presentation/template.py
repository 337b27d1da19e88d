"""
OutputTemplate — Framed command output

Every human-readable command result has the same frame:

    ========================================
    GRAINMIRROR VERIFY - 2 source(s)
    ========================================
    Legend: [OK] in sync  [!=] drifted
    <scope line>

    <section title>
    ---------------
    <section body>

    ----------------------------------------
    Summary: <summary>
    -> <next-step hint>
    ========================================

Usage:
    template = OutputTemplate(symbols=symbols)
    template.header("GRAINMIRROR VERIFY", "2 source(s)")
    template.section("/home/me/readme.md", mirror_lines)
    print(template.render(command="verify", context={"has_drift": True}))
"""

import shutil
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .succession import get_hint
from .symbols import SymbolSet, get_symbols, truncate


FRAME_CHAR = "="
RULE_CHAR = "-"
MIN_WIDTH = 20
MAX_WIDTH = 100


@dataclass
class TemplateSection:
    title: str
    content: str


class OutputTemplate:
    """Collects header, sections and footer, then renders them as one block."""

    def __init__(self, symbols: Optional[SymbolSet] = None, width: Optional[int] = None):
        self.symbols = symbols or get_symbols()
        if width is None:
            width = shutil.get_terminal_size((80, 24)).columns
        self.width = max(MIN_WIDTH, min(width, MAX_WIDTH))

        self._title = ""
        self._legend: Dict[str, str] = {}
        self._scope = ""
        self._sections: List[TemplateSection] = []
        self._summary = ""

    def header(self, title: str, subtitle: Optional[str] = None) -> "OutputTemplate":
        self._title = f"{title} - {subtitle}" if subtitle else title
        return self

    def legend(self, items: Dict[str, str]) -> "OutputTemplate":
        self._legend = dict(items)
        return self

    def scope(self, text: str) -> "OutputTemplate":
        self._scope = text
        return self

    def section(self, title: str, content: str) -> "OutputTemplate":
        self._sections.append(TemplateSection(title, content))
        return self

    def footer(self, summary: Optional[str] = None) -> "OutputTemplate":
        self._summary = summary or ""
        return self

    def render(self, command: Optional[str] = None, context: Optional[Dict[str, Any]] = None) -> str:
        """
        Join all parts. When command is given, the footer ends with the
        succession hint chosen for that command and context.
        """
        lines: List[str] = []

        if self._title:
            lines += [self._rule(FRAME_CHAR), self._title, self._rule(FRAME_CHAR)]
            if self._legend:
                lines.append("Legend: " + "  ".join(f"{k} {v}" for k, v in self._legend.items()))
            if self._scope:
                lines.append(self._scope)
            lines.append("")

        for section in self._sections:
            if section.title:
                # Titles are usually paths; the file name end is the part worth keeping
                title = truncate(section.title, self.width, ellipsis=self.symbols.ellipsis)
                lines += [title, self._rule(RULE_CHAR, len(title))]
            if section.content:
                lines.append(section.content)
            lines.append("")

        lines.append(self._rule(RULE_CHAR))
        if self._summary:
            lines.append(f"Summary: {self._summary}")
        hint = get_hint(command, context) if command else None
        if hint:
            lines.append(hint)
        lines.append(self._rule(FRAME_CHAR))
        return "\n".join(lines)

    def format_table(self, rows: Sequence[Sequence[Any]], headers: Sequence[str]) -> str:
        """Left-aligned columns two spaces apart, trailing blanks stripped."""
        if not rows:
            return ""
        table = [list(headers)] + [[str(cell) for cell in row] for row in rows]
        widths = [max(len(row[i]) for row in table) for i in range(len(headers))]
        return "\n".join(
            "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()
            for row in table
        )

    def _rule(self, char: str, length: Optional[int] = None) -> str:
        return char * (self.width if length is None else min(length, self.width))
