"""Logging setup for StepCalc.

Library modules log through ``logging.getLogger(__name__)``, which places
them under the ``stepcalc`` logger. The CLI calls ``configure_logging`` once
to route that logger through rich.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER = "stepcalc"

_configured = False


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Attach a RichHandler to the ``stepcalc`` logger.

    Repeated calls only adjust the level.

    Args:
        verbose: Log at DEBUG instead of WARNING.
        console: Console to write to (defaults to stderr).
    """
    global _configured
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    if not _configured:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        _configured = True

    for handler in root.handlers:
        handler.setLevel(level)
    return root
