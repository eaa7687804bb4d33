"""
Logging utilities for the fingermatch engine.

Library modules log through ``logging.getLogger(__name__)``; entry points
call :func:`setup_logger` once to attach handlers.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str = "fingermatch",
    level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure and return a logger.

    Args:
        name: Logger name (``"fingermatch"`` configures the whole package)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Optional directory for a timestamped log file
        console_output: Whether to output to stdout

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []  # Clear existing handlers

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        file_handler = logging.FileHandler(log_dir / f"{name}_{timestamp}.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class ProgressTracker:
    """
    Track progress of a match run.

    Reports roughly every 5% of completed items.
    """

    def __init__(self, total: int, logger: Optional[logging.Logger] = None):
        """
        Initialize progress tracker.

        Args:
            total: Total number of items to process
            logger: Optional logger for output
        """
        self.total = total
        self.current = 0
        self.start_time = datetime.now()
        self.logger = logger

    def update(self, n: int = 1) -> None:
        """
        Update progress by n items.

        Args:
            n: Number of items completed
        """
        self.current += n

        if self.logger and self.current % max(1, self.total // 20) == 0:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            rate = self.current / elapsed if elapsed > 0 else 0
            eta = (self.total - self.current) / rate if rate > 0 else 0

            self.logger.info(
                f"Progress: {self.current}/{self.total} "
                f"({100*self.current/self.total:.1f}%) "
                f"ETA: {eta:.1f}s"
            )

    def finish(self) -> float:
        """
        Mark operation as complete.

        Returns:
            Total elapsed time in seconds
        """
        elapsed = (datetime.now() - self.start_time).total_seconds()
        if self.logger:
            self.logger.info(f"Completed {self.total} items in {elapsed:.2f}s")
        return elapsed
