"""
Readers for file content taken from the working copy or from git objects.

Provides safe reading with:
- Automatic encoding detection (UTF-8 with latin-1 fallback)
- Binary content detection
- Graceful handling of missing/inaccessible files
"""
import logging
from pathlib import Path
from typing import Optional

from changescope.constants import BINARY_SNIFF_LENGTH

logger = logging.getLogger(__name__)

# Exceptions that indicate file access problems (not encoding issues)
_FILE_ACCESS_ERRORS = (FileNotFoundError, PermissionError, IsADirectoryError, NotADirectoryError)


class BinaryContentError(ValueError):
    """Raised when content that should be text looks binary."""


def is_binary(data: bytes) -> bool:
    """Same heuristic as git: a NUL byte near the start means binary."""
    return b"\x00" in data[:BINARY_SNIFF_LENGTH]


def decode_text(
    data: bytes,
    encodings: tuple[str, ...] = ('utf-8', 'latin-1'),
) -> str:
    """
    Decode raw file content, trying multiple encodings.

    Raises:
        BinaryContentError: If the content is binary
    """
    if is_binary(data):
        raise BinaryContentError("binary content")

    for i, encoding in enumerate(encodings):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            if i < len(encodings) - 1:
                logger.debug("%s decode failed, trying %s", encoding, encodings[i + 1])
                continue
            raise
    # Unreachable with latin-1 as the last encoding
    raise BinaryContentError("undecodable content")


def read_bytes_safe(filepath: Path | str) -> Optional[bytes]:
    """
    Read a file's raw bytes.

    Returns:
        File contents, or None if the file is missing or can't be read
    """
    path = Path(filepath)
    try:
        return path.read_bytes()
    except _FILE_ACCESS_ERRORS as e:
        logger.debug("%s: %s", type(e).__name__, path)
        return None
