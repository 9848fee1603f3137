from __future__ import annotations

import logging

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Called once at application start-up; calling it again replaces the
    handler instead of stacking duplicates.
    """
    level_upper = level.upper()
    if level_upper == "WARN":
        level_upper = "WARNING"
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Valid: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    handler.setLevel(level_upper)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level_upper)
    root.handlers = [handler]

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(logging.WARNING, root.level))
