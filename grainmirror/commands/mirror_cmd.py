"""
MirrorCommand — Registration, removal and listing of mirrors

Handles registry membership:
- register: add one or more mirrors to a source
- remove: drop mirrors, or a whole entry with --entry
- list: every source with its mirrors and sync state
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..presentation.formatters import format_timestamp, render_json, short_hash
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


class MirrorCommand(BaseCommand):
    """Command for managing source -> mirror mappings."""

    def register(self, source: str, mirrors: List[str]) -> int:
        """Register each mirror for source; errors stop at the first failing mirror."""
        symbols = self.symbols
        lines = []
        for mirror in mirrors:
            result = self.registry.register(source, mirror)
            if result.already_registered:
                lines.append(f"{symbols.info} {result.mirror} (already registered)")
            else:
                lines.append(f"{symbols.check_pass} {result.mirror}")

        entry = self.registry.get(source)
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR REGISTER", self.registry.canonical_path(source))
        template.section("MIRRORS", "\n".join(lines))
        template.footer(f"{len(entry.mirrors)} mirror(s) registered, last sync {format_timestamp(entry.last_sync)}")
        safe_print(template.render(command="register"))
        return 0

    def remove(
        self,
        source: str,
        mirrors: List[str],
        strict: bool = False,
        entry: bool = False,
        force: bool = False,
    ) -> int:
        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR REMOVE", self.registry.canonical_path(source))

        if entry:
            removed = self.registry.remove_entry(source, force=force)
            template.section("ENTRY", f"{symbols.check_pass} Removed with {len(removed.mirrors)} mirror(s)")
        else:
            lines = []
            for mirror in mirrors:
                path = self.registry.canonical_path(mirror)
                if self.registry.unregister(source, mirror, strict=strict):
                    lines.append(f"{symbols.check_pass} {path}")
                else:
                    lines.append(f"{symbols.info} {path} (was not registered)")
            template.section("MIRRORS", "\n".join(lines))

        safe_print(template.render(command="remove"))
        return 0

    def list_mirrors(self, output_format: Optional[str] = None) -> int:
        entries = self.registry.list()

        if self.output_format(output_format) == "json":
            print(render_json({source: entry for source, entry in entries}))
            return 0

        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR LIST", f"{len(entries)} source(s)")

        for source, entry in entries:
            lines = []
            for i, mirror in enumerate(entry.mirrors):
                marker = symbols.tree_end if i == len(entry.mirrors) - 1 else symbols.tree_branch
                lines.append(f"  {marker} {mirror}")
            if not entry.mirrors:
                lines.append("  (no mirrors)")
            lines.append(
                f"  last sync: {format_timestamp(entry.last_sync)}"
                f"  hash: {short_hash(entry.content_hash)} ({entry.hash_algorithm})"
            )
            template.section(source, "\n".join(lines))

        never_synced = sum(1 for _, entry in entries if entry.never_synced)
        template.footer(
            f"{len(entries)} source(s), {sum(len(e.mirrors) for _, e in entries)} mirror(s), "
            f"{never_synced} never synced"
        )
        safe_print(template.render(
            command="list",
            context={"empty": not entries, "never_synced": never_synced > 0},
        ))
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAMES = ['register', 'remove', 'list']


def register_parser(subparsers):
    """Register register, remove and list command parsers."""
    p1 = subparsers.add_parser('register', help='Register mirrors for a source file')
    p1.add_argument('source', help='Source file (must exist)')
    p1.add_argument('mirrors', nargs='+', metavar='mirror', help='Mirror path(s)')

    p2 = subparsers.add_parser('remove', help='Unregister mirrors or a whole entry')
    p2.add_argument('source', help='Registered source file')
    p2.add_argument('mirrors', nargs='*', metavar='mirror', help='Mirror path(s) to unregister')
    p2.add_argument('--strict', action='store_true',
                    help='Fail if a mirror is not registered')
    p2.add_argument('--entry', action='store_true',
                    help='Remove the whole entry (must have no mirrors unless --force)')
    p2.add_argument('--force', action='store_true',
                    help='With --entry: remove even if mirrors remain')

    p3 = subparsers.add_parser('list', help='List sources and their mirrors')
    p3.add_argument('--format', '-f', choices=['text', 'json'], dest='output_format',
                    help='Output format (default: display.format)')

    return p1, p2, p3


def handle(cli, args):
    """Handle register, remove or list command dispatch."""
    if args.command == 'register':
        return cli._mirror_cmd.register(args.source, args.mirrors)
    elif args.command == 'remove':
        if not args.entry and not args.mirrors:
            print("Error: Give mirror path(s) to remove, or --entry to remove the source entry")
            return 1
        return cli._mirror_cmd.remove(
            args.source, args.mirrors,
            strict=args.strict, entry=args.entry, force=args.force,
        )
    elif args.command == 'list':
        return cli._mirror_cmd.list_mirrors(output_format=args.output_format)
