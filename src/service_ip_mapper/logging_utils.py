"""Logging utilities with run id tracking."""

import json
import logging
import logging.handlers
import uuid
from pathlib import Path
from typing import Any

LOG_DIR = Path.home() / ".service-ip-mapper"


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Setup logger with rotating file and console handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    LOG_DIR.mkdir(exist_ok=True)

    # Rotating file handler (30MB max, 5 backups)
    file_handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / "service-ip-mapper.log",
        maxBytes=30 * 1024 * 1024,  # 30MB
        backupCount=5,
    )

    # Console handler writes to stderr so the report on stdout stays clean
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def generate_run_id() -> str:
    """Generate unique run ID."""
    return str(uuid.uuid4())[:8]


def log_run_start(logger: logging.Logger, run_id: str, **kwargs: Any) -> None:
    """Log run start with parameters."""
    logger.info(f"Run {run_id} started - {kwargs}")


def log_run_end(
    logger: logging.Logger, run_id: str, success: bool, **kwargs: Any
) -> None:
    """Log run completion."""
    status = "SUCCESS" if success else "FAILED"
    log_data = {"run_id": run_id, "status": status, **kwargs}

    logger.info(f"Run {run_id} {status} - {json.dumps(log_data, default=str)}")
