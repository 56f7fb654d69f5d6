"""File logging setup for ZimbraKit runs."""

import logging
from pathlib import Path

LOG_FILENAME = "zimbrakit.log"

logger = logging.getLogger(__name__)

_handler: logging.FileHandler | None = None


def configure_logging(log_dir: Path, level: int = logging.INFO) -> Path | None:
    """Attach a file handler to the root logger and return the log path.

    Console output is handled by the OutputFormatter, so only a file handler
    is installed. When log_dir cannot be created (e.g. a non-root user about
    to be rejected by the preflight check) nothing is written and None is
    returned. Calling it again with the same directory is a no-op.
    """
    global _handler

    log_path = log_dir / LOG_FILENAME
    if _handler is not None and Path(_handler.baseFilename) == log_path.absolute():
        return log_path

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    except OSError:
        return None

    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
        _handler.close()
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler

    logger.info(f"Logging to {log_path}")
    return log_path
