"""
SyncCommand — Copy sources to their mirrors

With no arguments every registered source is synced. A failing source or
mirror never stops the rest; the exit status reports whether all succeeded.
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..errors import GrainmirrorError
from ..presentation.formatters import render_json, short_hash
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate
from ..services.sync import SyncOutcome, SyncReport


class SyncCommand(BaseCommand):
    """Command for writing mirrors from their sources."""

    def sync(self, sources: List[str], output_format: Optional[str] = None) -> int:
        if sources:
            report = SyncReport()
            for source in sources:
                try:
                    report.outcomes.append(self.sync_engine.sync(source))
                except GrainmirrorError as e:
                    report.outcomes.append(SyncOutcome(source=source, error=e))
        else:
            report = self.sync_engine.sync_all()

        if self.output_format(output_format) == "json":
            print(render_json(report))
            return 0 if report.success else 1

        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR SYNC", f"{len(report.outcomes)} source(s)")

        for outcome in report.outcomes:
            template.section(outcome.source, self._outcome_lines(outcome))

        if not report.outcomes:
            template.section("SOURCES", "Nothing registered.")

        written = sum(len(o.written) for o in report.outcomes)
        template.footer(
            f"{written} mirror(s) written, {len(report.failed)} source(s) with failures"
        )
        safe_print(template.render(command="sync", context={"has_failures": not report.success}))
        return 0 if report.success else 1

    def _outcome_lines(self, outcome: SyncOutcome) -> str:
        symbols = self.symbols
        lines = []
        if outcome.error is not None:
            lines.append(f"  {symbols.check_fail} {outcome.error}")
        if not outcome.content_hash:
            return "\n".join(lines)

        lines.append(f"  hash: {short_hash(outcome.content_hash)} ({outcome.hash_algorithm})")
        for path in outcome.written:
            lines.append(f"  {symbols.check_pass} {path}")
        for failure in outcome.failures:
            lines.append(f"  {symbols.check_fail} {failure.path}: {failure.reason}")
        return "\n".join(lines)


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAME = 'sync'


def register_parser(subparsers):
    p = subparsers.add_parser('sync', help='Copy sources to their mirrors')
    p.add_argument('sources', nargs='*', metavar='source',
                   help='Sources to sync (default: all registered)')
    p.add_argument('--format', '-f', choices=['text', 'json'], dest='output_format',
                   help='Output format (default: display.format)')
    return p


def handle(cli, args):
    return cli._sync_cmd.sync(args.sources, output_format=args.output_format)
