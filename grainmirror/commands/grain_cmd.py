"""
GrainCommand — Work with grainorder codes directly

Subcommands:
- grain check CODE...     validity and position of each code
- grain next DIR          code the next tagged file in DIR would get
- grain step CODE         adjacent code (newer by default, --older for the other way)
- grain tag FILE          rename FILE into tagged form
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..core.grainorder import SPACE_SIZE, index_of, is_archive, is_valid, predecessor, successor
from ..core.naming import TZ_PATTERN
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


class GrainCommand(BaseCommand):
    """Command for grainorder inspection, stepping and tagging."""

    def check(self, codes: List[str]) -> int:
        symbols = self.symbols
        rows = []
        for code in codes:
            if not is_valid(code):
                rows.append((code, "-", "invalid"))
            else:
                rows.append((code, index_of(code), "(archive)" if is_archive(code) else ""))
        invalid = sum(1 for row in rows if row[2] == "invalid")

        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR GRAIN", "Check")
        template.scope(f"index of each code in a space of {SPACE_SIZE}, 0 is newest")
        template.section("CODES", template.format_table(rows, ["CODE", "INDEX", "NOTE"]))
        if invalid:
            template.footer(f"{symbols.check_fail} {invalid} invalid code(s)")
        else:
            template.footer(f"{symbols.check_pass} {len(rows)} valid code(s)")
        safe_print(template.render())
        return 1 if invalid else 0

    def next_code(self, directory: str) -> int:
        print(self.tagger.next_code(directory))
        return 0

    def step(self, code: str, older: bool = False) -> int:
        following = successor(code) if older else predecessor(code)
        if following is None:
            direction = "older" if older else "newer"
            print(f"No {direction} code after {code}: the space is exhausted in that direction")
            return 1
        print(following)
        return 0

    def tag(self, path: str, tz_label: Optional[str] = None) -> int:
        tagged = self.tagger.tag(path, tz_label=tz_label)
        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR GRAIN", "Tagged")
        template.section("FILE", f"  {tagged.remainder} {symbols.arrow} {tagged.filename}")
        template.footer(f"{symbols.check_pass} code {tagged.code}")
        safe_print(template.render(command="tag"))
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAME = 'grain'


def _tz_label(value: str) -> str:
    if not TZ_PATTERN.match(value):
        raise ValueError(value)
    return value


def register_parser(subparsers):
    p = subparsers.add_parser('grain', help='Inspect, step and assign grainorder codes')
    grain_sub = p.add_subparsers(dest='grain_command', required=True)

    p_check = grain_sub.add_parser('check', help='Validate codes')
    p_check.add_argument('codes', nargs='+', metavar='code')

    p_next = grain_sub.add_parser('next', help='Next free code for a directory')
    p_next.add_argument('directory')

    p_step = grain_sub.add_parser('step', help='Adjacent code')
    p_step.add_argument('code')
    p_step.add_argument('--older', action='store_true',
                        help='Step to the next larger (older) code instead of the newer one')

    p_tag = grain_sub.add_parser('tag', help='Rename a file into tagged form')
    p_tag.add_argument('path')
    p_tag.add_argument('--tz', type=_tz_label, default=None, dest='tz_label',
                       help='3-4 letter lowercase timezone label (default: from local time)')

    return p


def handle(cli, args):
    if args.grain_command == 'check':
        return cli._grain_cmd.check(args.codes)
    elif args.grain_command == 'next':
        return cli._grain_cmd.next_code(args.directory)
    elif args.grain_command == 'step':
        return cli._grain_cmd.step(args.code, older=args.older)
    elif args.grain_command == 'tag':
        return cli._grain_cmd.tag(args.path, tz_label=args.tz_label)
