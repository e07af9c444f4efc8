"""Local file store for uploaded lecture files.

Files live in a flat directory (``config.UPLOADS_DIR``) under generated,
collision-resistant names. The directory is read from config at call time.
"""

import logging
import os
import re
import time
from typing import Tuple
from uuid import uuid4

from . import config
from .errors import NotFoundError, StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+", re.UNICODE)


def get_upload_dir() -> str:
    """Return the absolute upload directory, creating it if missing.

    Raises:
        StorageWriteError: If the directory cannot be created.
    """
    upload_dir = os.path.abspath(config.UPLOADS_DIR)
    try:
        os.makedirs(upload_dir, exist_ok=True)
    except OSError as e:
        raise StorageWriteError(f"Cannot create upload directory {upload_dir}: {e}") from e
    return upload_dir


def sanitize_name(original_name: str) -> str:
    """Strip directory components and unsafe characters from a client file name."""
    name = os.path.basename((original_name or "").replace("\\", "/"))
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "file"


def generate_file_name(original_name: str) -> str:
    """Build a stored file name: millisecond timestamp, random token, original name."""
    return f"{int(time.time() * 1000)}_{uuid4().hex[:8]}_{sanitize_name(original_name)}"


def write_file(data: bytes, original_name: str) -> Tuple[str, str]:
    """Durably write ``data`` under a freshly generated name.

    The file is created exclusively, so a name collision fails instead of
    overwriting, and is fsynced before returning.

    Args:
        data: File content.
        original_name: Client-supplied name, used as the name suffix.

    Returns:
        tuple: (file_name, absolute file_path).

    Raises:
        StorageWriteError: If the file cannot be written.
    """
    upload_dir = get_upload_dir()
    file_name = generate_file_name(original_name)
    path = os.path.join(upload_dir, file_name)
    try:
        with open(path, "xb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        if os.path.exists(path):
            _discard_partial(path)
        raise StorageWriteError(f"Failed to write {file_name}: {e}") from e
    logger.debug(f"Stored {len(data)} bytes as {file_name}")
    return file_name, path


def _discard_partial(path: str) -> None:
    try:
        os.remove(path)
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")


def file_exists(path: str) -> bool:
    return bool(path) and os.path.isfile(os.path.abspath(path))


def remove_file(path: str) -> bool:
    """Remove a stored file.

    Returns:
        bool: True if the file was removed, False if it was already gone.

    Raises:
        StorageWriteError: If the file exists but cannot be removed.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageWriteError(f"Failed to remove {path}: {e}") from e
    return True


def resolve_stored_file(file_name: str) -> str:
    """Resolve a stored file name to its path inside the upload directory.

    Raises:
        NotFoundError: If the name escapes the directory or the file is missing.
    """
    upload_dir = get_upload_dir()
    path = os.path.abspath(os.path.join(upload_dir, file_name))
    if os.path.dirname(path) != upload_dir or not os.path.isfile(path):
        raise NotFoundError(f"File {file_name!r} not found")
    return path


def directory_usage() -> Tuple[int, int]:
    """Return (file count, total bytes) of the upload directory.

    Raises:
        StorageReadError: If the directory cannot be scanned.
    """
    upload_dir = get_upload_dir()
    count = 0
    total = 0
    try:
        with os.scandir(upload_dir) as entries:
            for entry in entries:
                if entry.is_file():
                    count += 1
                    total += entry.stat().st_size
    except OSError as e:
        raise StorageReadError(f"Failed to scan {upload_dir}: {e}") from e
    return count, total
