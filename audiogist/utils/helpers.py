"""Utility helper functions"""

import hashlib
from pathlib import Path

from ..errors import InvalidArgumentError
from .logging import get_logger

logger = get_logger(__name__)

CACHE_KEY_LENGTH = 32


def is_url(identifier: str) -> bool:
    """True when ``identifier`` starts with an http(s) scheme (any case)"""
    lowered = identifier.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def derive_cache_key(identifier: str) -> str:
    """
    Map a source identifier to the key used for every cache lookup.

    URLs hash to the first 32 hex characters of SHA-256 over the exact
    string, so ``https://x/a.mp3`` and ``https://x/a.mp3/`` are different
    sources. Anything else is taken to be an existing cache key and is
    returned unchanged.

    Raises:
        InvalidArgumentError: if the identifier is empty or whitespace
    """
    if identifier is None or not identifier.strip():
        raise InvalidArgumentError("Episode ID/URL cannot be null or empty.")

    if is_url(identifier):
        cache_key = hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:CACHE_KEY_LENGTH]
        logger.debug(f"Generated cache key {cache_key} for URL: {identifier}")
        return cache_key

    logger.debug(f"Using identifier as-is for cache key: {identifier}")
    return identifier


def count_words(text: str) -> int:
    """Count whitespace-separated words, ignoring empty tokens"""
    if not text:
        return 0
    return len(text.split())


def trim_non_alphanumeric(text: str) -> str:
    """Strip leading and trailing characters that are not letters or digits"""
    if not text:
        return text

    start = 0
    while start < len(text) and not text[start].isalnum():
        start += 1

    end = len(text) - 1
    while end >= start and not text[end].isalnum():
        end -= 1

    return text[start:end + 1]


def file_size_mb(file_path: Path) -> float:
    """Size of a file in megabytes"""
    return file_path.stat().st_size / (1024 * 1024)
