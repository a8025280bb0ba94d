"""Logging configuration for audiogist"""

import logging
import uuid
from typing import Optional


def setup_logging(log_file: Optional[str] = "audiogist.log", level: int = logging.INFO) -> logging.Logger:
    """Set up logging configuration"""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    # Suppress verbose HTTP client logging from the OpenAI SDK
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    return logging.getLogger("audiogist")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)


def new_correlation_id() -> str:
    """Short id used to tie together the log lines of one run"""
    return str(uuid.uuid4())[:8]
