"""
CLI -- Command interface

Mirrors stay byte-identical copies of their sources; tagged names sort
newest first. Quiet unless something is off.

    grainmirror register notes.md ~/backup/notes.md
    grainmirror sync
    grainmirror verify
    grainmirror rebalance ~/journal --dry-run
    grainmirror grain tag draft.md
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .commands.config_cmd import ConfigCommand
from .commands.grain_cmd import GrainCommand
from .commands.mirror_cmd import MirrorCommand
from .commands.rebalance_cmd import RebalanceCommand
from .commands.sync_cmd import SyncCommand
from .commands.verify_cmd import VerifyCommand
from .config import ConfigManager
from .core.filesystem import LocalFilesystem
from .core.hasher import ContentHasher
from .core.registry import MirrorRegistry, RegistryStore
from .errors import GrainmirrorError
from .logging_setup import configure_logging
from .presentation.symbols import get_symbols
from .services.rebalance import Rebalancer
from .services.sync import SyncEngine
from .services.tagger import Tagger
from .services.verify import VerifyEngine

logger = logging.getLogger(__name__)


class MirrorCLI:
    """Command-line interface holding the registry and engines for one run."""

    def __init__(self, project_dir: Path, registry_path: Optional[str] = None):
        self.project_dir = Path(project_dir)
        self.config_manager = ConfigManager(self.project_dir)
        self.config = self.config_manager.load()

        self.symbols = get_symbols(self.config.display.symbols)

        self.fs = LocalFilesystem()
        self.store = RegistryStore(
            registry_path or self.config.registry.resolved_path,
            lock_timeout=self.config.registry.lock_timeout,
        )
        self.registry = MirrorRegistry(self.store, self.fs)
        self.sync_engine = SyncEngine(self.registry, self.fs, ContentHasher(self.config.hashing.algorithm))
        self.verify_engine = VerifyEngine(self.registry, self.fs, default_algorithm=self.config.hashing.algorithm)
        self.rebalancer = Rebalancer(self.fs)
        self.tagger = Tagger(self.fs, start=self.config.grainorder.start)

        # One handler object per command module; handle() functions look these up
        self._mirror_cmd = MirrorCommand(self)
        self._sync_cmd = SyncCommand(self)
        self._verify_cmd = VerifyCommand(self)
        self._rebalance_cmd = RebalanceCommand(self)
        self._grain_cmd = GrainCommand(self)
        self._config_cmd = ConfigCommand(self)

        logger.debug("Using registry %s", self.store.path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grainmirror",
        description="grainmirror -- keep file mirrors in sync and names in grainorder",
    )

    parser.add_argument(
        '--project', '-p',
        default=os.environ.get("GRAINMIRROR_PROJECT_PATH", "."),
        help='Project directory for .grainmirror/config.yaml (default: GRAINMIRROR_PROJECT_PATH or current)'
    )
    parser.add_argument(
        '--registry', '-r',
        default=None,
        help='Registry file (default: registry.path from config)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Debug logging on stderr'
    )
    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'grainmirror {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Subcommands come from the modules in commands.COMMAND_MODULES
    from .commands import register_all
    register_all(subparsers)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one grainmirror command.

    Returns:
        Process exit status: 0 on success, 1 when the command failed or
        found problems (drift, failed mirrors, declined rebalance)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging("DEBUG" if args.verbose else os.environ.get("GRAINMIRROR_LOG_LEVEL", "WARNING"))

    from .commands import dispatch
    try:
        cli = MirrorCLI(Path(args.project), registry_path=args.registry)
        if not args.verbose:
            configure_logging(cli.config.logging.level)
        return dispatch(args.command, cli, args)
    except (GrainmirrorError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
