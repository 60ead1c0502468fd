"""Logging setup: one format, console handler, optional file handler."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import AppConfig


FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

_logging_configured = False


def setup_logging(cfg: AppConfig) -> None:
    """Configure the root logger once per process (Streamlit reruns the script)."""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    level = getattr(logging, cfg.log_level, logging.INFO)
    formatter = logging.Formatter(FORMAT, datefmt=DATE_FMT)

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if cfg.log_file:
        try:
            path = Path(cfg.log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(path), encoding="utf-8", mode="a")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError as e:
            root.warning("Could not open log file %s: %s", cfg.log_file, e)

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    get_logger("skutopia").info("Logging configured: level=%s, file=%s", cfg.log_level, cfg.log_file or "console only")


def get_logger(name: str = "skutopia") -> logging.Logger:
    return logging.getLogger(name)
