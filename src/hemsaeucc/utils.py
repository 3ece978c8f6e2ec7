"""
HEMSAEUCC - Utility functions.

Provides logging setup, party ID validation and formatting helpers.
"""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Optional

from .constants import (
    ID_HEX_LENGTH,
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_MAX_BYTES,
    SHORT_ID_LENGTH,
)

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(rf"^[0-9a-f]{{{ID_HEX_LENGTH}}}$")


def validate_party_id(party_id: str) -> bool:
    """
    Validate a party ID format.

    A party ID is the lowercase hex encoding of a 32-byte X25519 public
    key. Relay mailbox keys are built from it, so the width is fixed.

    Args:
        party_id: ID string

    Returns:
        True if valid ID format, False otherwise
    """
    if not isinstance(party_id, str):
        return False
    return bool(_ID_PATTERN.match(party_id))


def normalize_party_id(party_id: str) -> str:
    """
    Strip whitespace and lowercase an ID, then validate it.

    Raises:
        ValueError: If the result is not a valid party ID
    """
    if not isinstance(party_id, str):
        raise ValueError("party ID must be a string")
    normalized = party_id.strip().lower()
    if not validate_party_id(normalized):
        raise ValueError(f"invalid party ID: {party_id!r}")
    return normalized


def short_id(party_id: str, length: int = SHORT_ID_LENGTH) -> str:
    """Return the display prefix of an ID."""
    return party_id[:length]


def setup_logging(
    level: str = "INFO",
    console: bool = True,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure the root logger for HEMSAEUCC processes.

    Args:
        level: Log level name
        console: Attach a stream handler
        log_file: Attach a rotating file handler writing to this path
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    for handler in list(root.handlers):
        if getattr(handler, "_hemsaeucc", False):
            root.removeHandler(handler)
            handler.close()

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler._hemsaeucc = True
        root.addHandler(stream_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler._hemsaeucc = True
        root.addHandler(file_handler)

    logger.debug(f"Logging configured (level={level}, file={log_file})")
