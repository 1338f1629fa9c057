"""
Centralized logging configuration for Release Control Tower.

Usage:
    from rct_core.logging_config import setup_logging

    logger = setup_logging("rct_radar.cli")
    logger.info("Rollback started")
    logger.warning("Signal has insufficient data")
    logger.error("Rollback failed")

Library modules only call logging.getLogger(__name__); handlers are attached
by entry points (CLI, alarm handler) through init_logging().
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    module_name: str,
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
    console_output: bool = True
) -> logging.Logger:
    """
    Set up logging for a module with file and/or console output.

    Args:
        module_name: Logger name (package name for init_logging)
        log_level: DEBUG, INFO, WARNING or ERROR
        log_dir: Directory for log files, None to disable file output
        console_output: Whether to log to stdout

    Returns:
        Configured logger instance

    Log Files:
        Format: logs/{module}_{date}.log
        Example: logs/rct_radar_2026-10-19.log
        Rotation: Daily (new file each day)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(module_name)
    logger.setLevel(level)

    # Prevent duplicate handlers if setup_logging called multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        today = datetime.now().strftime("%Y-%m-%d")
        simple_module = module_name.split('.')[-1]
        log_file = log_path / f"{simple_module}_{today}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def init_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> None:
    """
    Attach handlers for every Release Control Tower package.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files, None for console only
    """
    for package in ("rct_core", "rct_radar", "rct_alerts", "rct"):
        setup_logging(package, log_level=log_level, log_dir=log_dir)
