"""
BaseCommand — What every command can reach on the CLI object

Commands hold the MirrorCLI they were built with and read the registry,
engines and display settings through it, so one run shares one of each.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..cli import MirrorCLI


class BaseCommand:

    def __init__(self, cli: 'MirrorCLI'):
        self._cli = cli

    @property
    def config(self):
        return self._cli.config

    @property
    def symbols(self):
        return self._cli.symbols

    @property
    def registry(self):
        return self._cli.registry

    @property
    def sync_engine(self):
        return self._cli.sync_engine

    @property
    def verify_engine(self):
        return self._cli.verify_engine

    @property
    def rebalancer(self):
        return self._cli.rebalancer

    @property
    def tagger(self):
        return self._cli.tagger

    def output_format(self, requested: Optional[str] = None) -> str:
        """--format if given, else display.format from config."""
        return requested or self.config.display.format
