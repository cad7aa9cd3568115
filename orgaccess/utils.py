import logging
import sys

from orgaccess.core import config

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger("orgaccess")
    root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``orgaccess`` namespace."""
    _configure_root()
    if name == "__main__" or not name.startswith("orgaccess"):
        name = f"orgaccess.{name}"
    return logging.getLogger(name)
