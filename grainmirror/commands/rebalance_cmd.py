"""
RebalanceCommand — Reassign grainorders to match timestamps

Shows the plan, asks once for confirmation (unless --yes), then renames.
--dry-run stops after the plan. A declined confirmation or a partial
failure exits with status 1.
"""

from typing import Optional

from ..commands.base import BaseCommand
from ..core.grainorder import START_CODE
from ..errors import RenamePartialFailure
from ..presentation.formatters import render_json
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate
from ..services.rebalance import RebalancePlan


class RebalanceCommand(BaseCommand):
    """Command for re-ordering a directory of tagged files."""

    def rebalance(
        self,
        directory: str,
        yes: bool = False,
        dry_run: bool = False,
        headroom: Optional[int] = None,
        output_format: Optional[str] = None,
    ) -> int:
        if headroom is None:
            headroom = self.config.grainorder.headroom
        plan = self.rebalancer.plan(directory, start=START_CODE, headroom=headroom)

        if self.output_format(output_format) == "json":
            print(render_json(plan))
        else:
            safe_print(self._render_plan(plan, dry_run))

        if plan.is_noop or dry_run:
            return 0

        if not yes and not self._confirm(len(plan.changes)):
            print("Rebalance cancelled.")
            return 1

        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR REBALANCE", "Applied")
        try:
            result = self.rebalancer.apply(plan)
        except RenamePartialFailure as e:
            template.section("ERROR", f"{symbols.check_fail} {e}")
            template.section("RENAMED", self._pairs(e.completed) or "(none)")
            template.section("PENDING", self._pairs(e.pending) or "(none)")
            safe_print(template.render(command="rebalance", context={"partial": True}))
            return 1

        if result.parked:
            template.section("PARKED", self._pairs(result.parked))
        template.footer(f"{symbols.check_pass} {result.renamed_count} file(s) renamed")
        safe_print(template.render(command="rebalance"))
        return 0

    def _render_plan(self, plan: RebalancePlan, dry_run: bool) -> str:
        symbols = self.symbols
        template = OutputTemplate(symbols=symbols)
        template.header("GRAINMIRROR REBALANCE", "Plan" if not dry_run else "Plan (dry run)")
        template.scope(f"{plan.directory} | start {plan.start} | headroom {plan.headroom}")

        if plan.is_noop:
            template.section("RENAMES", f"{symbols.check_pass} Nothing to rename")
        else:
            template.section("RENAMES", self._pairs(
                [(move.old_name, move.new_name) for move in plan.changes]
            ))

        template.footer(f"{len(plan.moves)} tagged file(s), {len(plan.changes)} rename(s)")
        context = {"dry_run": dry_run and not plan.is_noop}
        return template.render(command="rebalance" if plan.is_noop or dry_run else None, context=context)

    def _pairs(self, pairs) -> str:
        arrow = self.symbols.arrow
        return "\n".join(f"  {old} {arrow} {new}" for old, new in pairs)

    def _confirm(self, count: int) -> bool:
        try:
            response = input(f"Apply {count} rename(s)? [y/N] ").strip().lower()
        except EOFError:
            return False
        return response in ('y', 'yes')


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAME = 'rebalance'


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(value)
    return number


def register_parser(subparsers):
    p = subparsers.add_parser('rebalance', help='Renumber tagged files to follow their timestamps')
    p.add_argument('directory', help='Directory of tagged files')
    p.add_argument('--yes', '-y', action='store_true', help='Apply without asking')
    p.add_argument('--dry-run', '-n', action='store_true', help='Show the plan only')
    p.add_argument('--headroom', type=_non_negative, default=None,
                   help='Codes to leave free before the newest file (default: grainorder.headroom)')
    p.add_argument('--format', '-f', choices=['text', 'json'], dest='output_format',
                   help='Plan output format (default: display.format)')
    return p


def handle(cli, args):
    return cli._rebalance_cmd.rebalance(
        args.directory,
        yes=args.yes,
        dry_run=args.dry_run,
        headroom=args.headroom,
        output_format=args.output_format,
    )
