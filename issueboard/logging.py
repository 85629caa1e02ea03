"""Logging setup for the issue board server.

What each level shows:
- ERROR: store and auth failures reported to the user
- WARNING: dropped notifications and rejected webhooks
- INFO: sign-in/out, (un)subscribe, server start
- DEBUG: reconciliation misses, stale fetch results, HTTP access lines

Level and format come from config.yaml (logging.level, logging.format) or
env (LOGGING_LEVEL, LOGGING_FORMAT). Loggers of the HTTP client libraries
stay at WARNING unless the board itself runs at DEBUG.
"""

import logging

from issueboard.config import LoggingConfig

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# requests/urllib3 log every connection at DEBUG
NOISY_LOGGERS = ("urllib3", "requests")


def _resolve_level(level: str) -> int:
    """Level name to logging constant; INFO for unknown names."""
    return LEVELS.get(level.upper().strip(), logging.INFO)


class IssueBoardLogging:
    """Root logger from LoggingConfig, plus third-party quieting."""

    def __init__(self, config: LoggingConfig) -> None:
        self.level = _resolve_level(config.level)
        self.format = config.format or DEFAULT_FORMAT

    def setup(self) -> None:
        logging.basicConfig(level=self.level, format=self.format, force=True)
        library_level = logging.DEBUG if self.level <= logging.DEBUG else logging.WARNING
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(library_level)
        logging.getLogger("issueboard.logging").debug(
            "Logging at %s", logging.getLevelName(self.level)
        )
