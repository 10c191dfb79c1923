# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging configuration for the geomessage simulator."""

import logging
import re
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

CONSOLE_FORMAT = '[%(levelname)s] %(message)s'
FILE_FORMAT = '%(asctime)s | %(threadName)-16s | %(name)-30s | %(levelname)-8s | %(message)s'


def log_file_name(simulation_file=None, now: Optional[datetime] = None) -> str:
    """geomsim_<timestamp>[_<simulation file stem>].log"""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    if not simulation_file:
        return f"geomsim_{timestamp}.log"
    stem = re.sub(r"[^\w.-]+", "_", Path(simulation_file).stem)
    return f"geomsim_{timestamp}_{stem}.log"


def setup_logging(
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    simulation_file=None,
) -> Optional[Path]:
    """
    Route the root logger to the console and, optionally, to a file.

    Playback runs on a worker thread, so the file format carries the
    thread name alongside the logger name.

    Args:
        log_dir: Directory for a DEBUG log file (None = console only)
        level: Console logging level (DEBUG, INFO, WARNING, ERROR)
        simulation_file: File being replayed; its name is added to the log file name

    Returns:
        Path to the log file, or None when logging to the console only
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(str(level).upper())
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    handlers = [console_handler]

    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / log_file_name(simulation_file)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel("DEBUG")
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel("DEBUG")
    root_logger.handlers = handlers

    return log_file
