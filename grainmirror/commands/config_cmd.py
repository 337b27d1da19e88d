"""
ConfigCommand — Configuration display and updates

- config                       show effective settings and file locations
- config --set KEY VALUE       save to project config
- config --set KEY VALUE --user  save to user config
"""

from ..commands.base import BaseCommand
from ..presentation.symbols import safe_print
from ..presentation.template import OutputTemplate


class ConfigCommand(BaseCommand):
    """Command for configuration management."""

    def show_config(self) -> int:
        template = OutputTemplate(symbols=self.symbols)
        template.header("GRAINMIRROR CONFIG", "Current Configuration")
        template.section("SETTINGS", self._cli.config_manager.display())
        safe_print(template.render(command="config"))
        return 0

    def set_config(self, key: str, value: str, scope: str = "project") -> int:
        """Set a configuration value."""
        symbols = self.symbols
        manager = self._cli.config_manager
        error = manager.set(key, value, scope)

        template = OutputTemplate(symbols=symbols)
        if error:
            template.header("GRAINMIRROR CONFIG", "Error")
            template.section("ERROR", error)
            safe_print(template.render(command="config", context={"error": True}))
            return 1

        template.header("GRAINMIRROR CONFIG", "Configuration Updated")
        template.section("SETTING", f"Set {key} = {manager.get(key)}")
        path = manager.project_config_path if scope == "project" else manager.user_config_path
        template.section("SAVED TO", str(path))
        template.footer(f"{symbols.check_pass} Configuration saved")
        safe_print(template.render(command="config", context={"updated": True}))
        return 0


# =============================================================================
# Command Registration (Self-Registration Pattern)
# =============================================================================

COMMAND_NAME = 'config'


def register_parser(subparsers):
    p = subparsers.add_parser('config', help='View or set configuration')
    p.add_argument('--set', nargs=2, metavar=('KEY', 'VALUE'),
                   help='Set config value (e.g., --set hashing.algorithm xxh128)')
    p.add_argument('--user', action='store_true',
                   help='Apply to user config instead of project')
    return p


def handle(cli, args):
    if args.set:
        key, value = args.set
        scope = "user" if args.user else "project"
        return cli._config_cmd.set_config(key, value, scope)
    return cli._config_cmd.show_config()
