import logging
import sys

DEFAULT_LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if isinstance(resolved, int):
        return resolved
    # Logging is not configured yet, so this goes straight to stderr.
    print(  # noqa: T201
        f"Warning: Invalid log level '{level}'. Defaulting to {logging.getLevelName(DEFAULT_LOG_LEVEL)}.",
        file=sys.stderr,
    )
    return DEFAULT_LOG_LEVEL


def setup_logging(level: int | str = DEFAULT_LOG_LEVEL) -> None:
    """
    Send records of the `tgcd` loggers to stderr at `level`.

    Args:
        level: A level number such as `logging.INFO` or a name such as "info".
            Unknown names fall back to INFO with a warning.

    """
    app_logger = logging.getLogger("tgcd")
    app_logger.setLevel(_resolve_level(level))

    # A fresh handler picks up the current sys.stderr (CliRunner swaps it per invocation).
    for old_handler in list(app_logger.handlers):
        app_logger.removeHandler(old_handler)
        old_handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app_logger.addHandler(handler)
