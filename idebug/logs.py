"""Logging setup for the idebug programs (client window and demo host).

The library modules only log through ``loguru.logger``; they never touch
handlers. Programs call ``setup_logging()`` once at startup.
"""
from __future__ import annotations

import datetime
import os
import pathlib
import sys

from loguru import logger


def setup_logging(
    level: str | None = None, logdir: str | None = None, name: str = "idebug"
) -> pathlib.Path | None:
    """Console sink at ``level`` (default ``$IDEBUG_LOGLEVEL`` or INFO).

    If ``logdir`` (or ``$IDEBUG_LOGDIR``) is set, also log everything down to
    TRACE into ``<logdir>/<year>/<month>/<name>-<timestamp>.log`` so typed
    input can be looked up later. Returns the log file path, if any.
    """
    level = level or os.getenv("IDEBUG_LOGLEVEL", "INFO")
    logdir = logdir or os.getenv("IDEBUG_LOGDIR")

    logger.remove()
    logger.add(sys.stderr, colorize=True, level=level)

    if not logdir:
        return None

    now = datetime.datetime.now()
    path = pathlib.Path(logdir) / f"{now.year}" / f"{now.month:02}"
    path.mkdir(exist_ok=True, parents=True)

    logfile = path / f"{name}-pid={os.getpid()}-{now:%Y-%m-%dT%H-%M-%S}.log"
    logger.add(sink=logfile, level="TRACE", colorize=False)
    logger.info("Logging session to: {}", logfile)
    return logfile
