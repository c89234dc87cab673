"""
File helpers for chapter artifacts.

Writes go through a temp file in the target directory followed by a rename,
so a reader sees either the previous file or the complete new one.
"""

import os
import tempfile
from pathlib import Path

from chaptrans.logger import get_logger
from chaptrans.translation.exceptions import StorageError

logger = get_logger(__name__)


def atomic_write_text(file_path: Path, text: str):
    """
    Write text to file atomically.

    Args:
        file_path: Target file path (parent directories are created)
        text: Content to write, UTF-8 encoded

    Raises:
        StorageError: If write fails
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        # Temp file in the same directory so the rename stays on one file system
        temp_fd, temp_name = tempfile.mkstemp(
            dir=file_path.parent,
            prefix=f".{file_path.stem}_",
            suffix=".tmp"
        )
    except OSError as e:
        raise StorageError(f"Cannot prepare {file_path}: {e}", file_path)

    temp_path = Path(temp_name)

    try:
        with open(temp_fd, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(file_path)
        logger.debug(f"Atomic write successful: {file_path}")

    except Exception as e:
        # Clean up temp file on error (includes UnicodeEncodeError on lone surrogates)
        if temp_path.exists():
            temp_path.unlink()
        raise StorageError(f"Atomic write failed for {file_path}: {e}", file_path) from e


def read_text(file_path: Path) -> str:
    """
    Read a UTF-8 text file.

    Raises:
        StorageError: If the file cannot be read or decoded
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(f"Cannot read {file_path}: {e}", file_path)
