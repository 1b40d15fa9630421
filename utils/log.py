# utils/log.py
import logging

import config

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    lvl = getattr(logging, str(level or config.LOG_LEVEL).upper(), logging.INFO)
    if not any(getattr(h, "_forum", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._forum = True
        root.addHandler(handler)
    root.setLevel(lvl)
