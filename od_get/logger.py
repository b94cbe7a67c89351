"""Logging setup: console at the chosen level, rotating file at DEBUG."""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FILE = "od_get.log"


def setup_logger(log_dir: str = "logs", level: int = logging.INFO) -> logging.Logger:
    """Configure the od_get logger once; later calls only change console level.

    The file log always gets every discovered entry so a failed crawl can be
    traced afterwards, whether or not -v was passed.
    """
    logger = logging.getLogger("od_get")
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        for handler in logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(level)
        return logger

    os.makedirs(log_dir, exist_ok=True)
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)
    logger.addHandler(console)

    # 10MB per file, keep 5
    fh = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger
