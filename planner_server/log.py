"""Logging setup shared by the planner modules."""
import logging

from rich.console import Console
from rich.logging import RichHandler

from planner_server.config import PLANNER_LOG_LEVEL

console = Console(stderr=True)

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger, installing the rich handler on first use."""
    global _configured
    if not _configured:
        root = logging.getLogger("planner")
        root.setLevel(PLANNER_LOG_LEVEL.upper())
        root.addHandler(RichHandler(console=console, show_path=False, markup=False))
        root.propagate = False
        _configured = True
    return logging.getLogger(f"planner.{name}")
