# qrinspect/core/logging_config.py
import logging
import sys

from qrinspect.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """
    Attach a single stderr handler to the ``qrinspect`` logger tree.
    Safe to call repeatedly (no duplicate handlers).
    """
    root = logging.getLogger("qrinspect")
    root.setLevel(getattr(logging, level, logging.INFO))
    if any(getattr(h, "_qrinspect", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._qrinspect = True  # type: ignore[attr-defined]
    root.addHandler(handler)
