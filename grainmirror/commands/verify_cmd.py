"""
VerifyCommand — Report drift between sources and mirrors

Reads only; nothing is written. Exit status is 1 when any mirror is not in
sync or a source could not be read.
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..presentation.formatters import format_mirror_line, format_timestamp, render_json, short_hash
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate
from ..services.verify import MirrorState, VerificationReport, VerifyReport


class VerifyCommand(BaseCommand):
    """Command for checking mirrors against their sources."""

    def verify(self, sources: List[str], output_format: Optional[str] = None) -> int:
        if sources:
            report = VerifyReport(reports=[self.verify_engine.verify(source) for source in sources])
        else:
            report = self.verify_engine.verify_all()

        if self.output_format(output_format) == "json":
            print(render_json(report))
            return 0 if report.all_in_sync else 1

        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR VERIFY", f"{len(report.reports)} source(s)")
        template.legend({
            symbols.in_sync: "in sync",
            symbols.missing: "missing",
            symbols.drifted: "drifted",
            symbols.changed: "source changed since sync",
        })

        for source_report in report.reports:
            template.section(source_report.source, self._report_lines(source_report))

        counts = ", ".join(
            f"{report.count(state)} {state.value.replace('_', ' ')}"
            for state in MirrorState if report.count(state) or state is MirrorState.IN_SYNC
        )
        template.footer(counts)
        safe_print(template.render(command="verify", context={"has_drift": not report.all_in_sync}))
        return 0 if report.all_in_sync else 1

    def _report_lines(self, report: VerificationReport) -> str:
        symbols = self.symbols
        lines = [
            f"  last sync: {format_timestamp(report.last_sync)}"
            f"  hash: {short_hash(report.recorded_hash)} ({report.hash_algorithm})"
        ]
        if report.source_error:
            lines.append(f"  {symbols.check_fail} source unreadable: {report.source_error}")
        if report.source_changed_since_sync:
            lines.append(f"  {symbols.changed} source changed since last sync")
        if report.never_synced:
            lines.append(f"  {symbols.never_synced} never synced")

        for status in report.mirrors:
            lines.append(format_mirror_line(symbols, status.state.value, status.path, status.detail))
        if not report.mirrors:
            lines.append("  (no mirrors)")
        return "\n".join(lines)


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAME = 'verify'


def register_parser(subparsers):
    p = subparsers.add_parser('verify', help='Check mirrors for drift')
    p.add_argument('sources', nargs='*', metavar='source',
                   help='Sources to verify (default: all registered)')
    p.add_argument('--format', '-f', choices=['text', 'json'], dest='output_format',
                   help='Output format (default: display.format)')
    return p


def handle(cli, args):
    return cli._verify_cmd.verify(args.sources, output_format=args.output_format)
