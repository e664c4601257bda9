"""Rich-backed logging setup used by both entry points."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install

from cleanpic_ui.config import LOG_LEVEL

console = Console()


def setup_logging(level: str | None = None) -> None:
    """
    Route the standard ``logging`` tree through a rich console handler.

    Parameters
    ----------
    level : str, optional
        Log level name; defaults to ``CLEANPIC_LOG_LEVEL``.
    """
    install(show_locals=False)
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, markup=False)],
        force=True,
    )
