"""JSON logging for the order store.

Every module logs through a child of the ``checkout`` logger. The first
call installs a single stream handler with a JSON formatter on the parent
so records are emitted once, whatever the number of child loggers.
"""

import logging
import os

from pythonjsonlogger import jsonlogger

ROOT_LOGGER = "checkout"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def resolve_level(name: str) -> int:
    """Map a level name such as ``"debug"`` to its number, INFO if unknown."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``checkout`` hierarchy.

    Args:
        name: Suffix for the logger name (e.g. ``"repo"``).

    Returns:
        logging.Logger: ``checkout.<name>`` with JSON output configured.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        h = logging.StreamHandler()
        h.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
        root.addHandler(h)
        root.setLevel(resolve_level(os.getenv("LOG_LEVEL", "INFO")))
    return root.getChild(name)
