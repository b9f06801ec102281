"""Logging configuration for the tribunal case scraper."""

from loguru import logger
import sys
from pathlib import Path
from typing import Optional, Any
import os

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _rotate_numbered_logs(directory: Path, base_name: str, extension: str, max_index: int = 9) -> Path:
    """Shift ``base-(i-1).ext`` to ``base-i.ext`` and return the free ``base-1.ext`` path.

    The oldest file (``base-<max_index>.ext``) is overwritten.
    """
    for i in range(max_index, 1, -1):
        src = directory / f"{base_name}-{i-1}{extension}"
        dst = directory / f"{base_name}-{i}{extension}"
        if src.exists():
            try:
                src.replace(dst)
            except OSError as exc:
                logger.debug(f"Could not rotate {src} -> {dst}: {exc}")

    new_log = directory / f"{base_name}-1{extension}"
    if new_log.exists():
        try:
            new_log.unlink()
        except OSError:
            pass
    return new_log


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_base: Optional[str] = None,
    max_index: Optional[int] = None,
) -> Optional[Path]:
    """Setup logging sinks for the scraper.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path; previous runs are kept as numbered files
        log_base: Base name for numbered log files (defaults to the file stem)
        max_index: How many numbered files to keep

    Returns:
        The path of the active log file, if any.
    """
    logger.remove()

    logger.add(sys.stdout, level=log_level, format=CONSOLE_FORMAT, colorize=True)

    numbered_log = None
    if log_file:
        log_path = Path(log_file)
        log_dir = log_path.parent
        log_dir.mkdir(parents=True, exist_ok=True)
        base = log_base or os.getenv("TRIBUNAL_LOG_BASE_NAME") or log_path.stem
        ext = log_path.suffix or ".log"
        try:
            max_idx = int(max_index or os.getenv("TRIBUNAL_LOG_MAX_INDEX") or 9)
        except ValueError:
            max_idx = 9

        numbered_log = _rotate_numbered_logs(log_dir, base, ext, max_idx)
        logger.add(numbered_log, level=log_level, format=FILE_FORMAT, encoding="utf-8")

    logger.info("Logging initialized with level: {}", log_level)
    return numbered_log


def get_logger() -> Any:
    """Get the configured logger instance.

    Returns:
        Logger: Configured loguru logger
    """
    return logger


# Initialize with default settings
setup_logging()
