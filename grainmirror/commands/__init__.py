"""
Commands — CLI command modules that register themselves

A command module provides:
- an XxxCommand(BaseCommand) class doing the work
- register_parser(subparsers): adds its subparser(s)
- handle(cli, args) -> int: calls the command object, returns the exit status
- COMMAND_NAME, or COMMAND_NAMES when one module owns several subcommands

Listing a module in COMMAND_MODULES is all it takes to add a command.
"""

import importlib
import logging
from typing import Any, Callable, Dict, List

from .base import BaseCommand

logger = logging.getLogger(__name__)

# Help lists subcommands in this order
COMMAND_MODULES = [
    'mirror_cmd',      # register, remove, list
    'sync_cmd',
    'verify_cmd',
    'rebalance_cmd',
    'grain_cmd',
    'config_cmd',
]

_handlers: Dict[str, Callable[[Any, Any], int]] = {}


def register_all(subparsers) -> None:
    """Add every module's subparsers and remember its handle() per command name."""
    _handlers.clear()
    for module_name in COMMAND_MODULES:
        module = importlib.import_module(f'.{module_name}', __package__)
        module.register_parser(subparsers)

        names = getattr(module, 'COMMAND_NAMES', None) or [module.COMMAND_NAME]
        for name in names:
            _handlers[name] = module.handle

    logger.debug("Registered commands: %s", ", ".join(_handlers))


def dispatch(command: str, cli: Any, args: Any) -> int:
    """
    Run the handler registered for command.

    Raises:
        KeyError: If register_all() did not register command
    """
    try:
        handler = _handlers[command]
    except KeyError:
        raise KeyError(f"Unknown command: {command}. Available: {', '.join(_handlers)}") from None
    status = handler(cli, args)
    return 0 if status is None else status


def get_registered_commands() -> List[str]:
    return list(_handlers)


__all__ = ['BaseCommand', 'register_all', 'dispatch', 'get_registered_commands']
