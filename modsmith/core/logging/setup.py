# modsmith/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter

if TYPE_CHECKING:
    from modsmith.app.settings import LoggingSettings

__all__ = [
    "NO_PROPAGATE",
    "configureLogging",
]



# Libraries that are chatty at DEBUG
NO_PROPAGATE = ["concurrent.futures", "asyncio"]



def configureLogging(settings: LoggingSettings) -> logging.Logger:
    """
    Initiate the logging configuration for the pipeline.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG) if a file is configured

    Prod:
      - Console INFO
      - JSON file logs INFO with rotation
      - Secret scrubbing unless explicitly disabled

    An explicit `level` wins over the dev/prod default.
    """
    if settings.level:
        rootLevel = logging.getLevelName(settings.level.upper())
        if not isinstance(rootLevel, int):
            rootLevel = logging.INFO
    else:
        rootLevel = logging.DEBUG if settings.devMode else logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    devFmt: logging.Formatter = DevFormatter()
    jsonFmt: logging.Formatter = JsonFormatter()
    if settings.redact:
        devFmt = RedactingFormatter(devFmt)
        jsonFmt = RedactingFormatter(jsonFmt)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(devFmt)
    root.addHandler(consoleHandler)

    if settings.file is not None:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        fileHandler = logging.handlers.RotatingFileHandler(
            settings.file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(jsonFmt)
        root.addHandler(fileHandler)

    return root
