"""Logging configuration using loguru."""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

DEFAULT_JSON_LOG_FILE = "logs/solver.jsonl"


def _ensure_parent(path: str | Path) -> Path:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    format_string: str | None = None,
    log_format: str = "both",
    json_log_file: str | Path | None = None,
) -> None:
    """
    Configure loguru sinks for the solver client and server.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotated text log file
        rotation: Log rotation size or interval (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days")
        format_string: Console format. Defaults to CONSOLE_FORMAT.
        log_format: "json", "text" or "both". Unknown values fall back to "both".
        json_log_file: Path of the JSONL sink. Defaults to logs/solver.jsonl.
    """
    logger.remove()

    if log_format not in ("json", "text", "both"):
        log_format = "both"
    use_json = log_format in ("json", "both")
    use_text = log_format in ("text", "both")

    if use_text:
        logger.add(
            sys.stderr,
            format=format_string or CONSOLE_FORMAT,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

        if log_file:
            logger.add(
                str(_ensure_parent(log_file)),
                format=FILE_FORMAT,
                level=level,
                rotation=rotation,
                retention=retention,
                compression="zip",
                backtrace=True,
                diagnose=True,
                enqueue=True,  # Thread-safe logging
            )

    if use_json:
        # Fields bound through logger.bind() land in record["extra"]
        logger.add(
            str(_ensure_parent(json_log_file or DEFAULT_JSON_LOG_FILE)),
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=True,
            enqueue=True,
            serialize=True,
        )


# Console-only until an entry point reconfigures
setup_logging(log_format="text")

__all__ = ["logger", "setup_logging"]
