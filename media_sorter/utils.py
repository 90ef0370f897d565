"""Utility functions for media sorting."""

import os
import shutil
import tempfile
import psutil
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

GIGABYTE = 1024 * 1024 * 1024


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.

    Args:
        bytes_value: Size in bytes

    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.1f}{units[unit_index]}"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    The nearest existing ancestor is measured when path itself
    has not been created yet.

    Args:
        path: Path to check

    Returns:
        Available space in bytes
    """
    probe = Path(path)
    while not probe.exists() and probe.parent != probe:
        probe = probe.parent
    try:
        usage = psutil.disk_usage(str(probe))
        return usage.free
    except Exception as e:
        logger.error(f"Failed to get disk space for {path}: {e}")
        return 0


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        True if directory exists or was created successfully
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except Exception as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def sync_copy_file(source: Path, destination: Path) -> None:
    """
    Copy file bytes and flush them to disk before returning.

    Bytes go to a temporary file beside the destination which replaces it
    only once complete, so a failed copy never leaves a partial file behind
    or damages an existing one. Timestamps are carried over so a re-run
    dates the copy the same way as the source.

    Args:
        source: Source file path
        destination: Destination file path

    Raises:
        OSError: If reading, writing or syncing fails, or the copy is short
    """
    fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".part", dir=destination.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, 'wb') as dst, open(source, 'rb') as src:
            shutil.copyfileobj(src, dst)
            dst.flush()
            os.fsync(dst.fileno())
        shutil.copystat(source, temp_path)

        source_size = source.stat().st_size
        copied_size = temp_path.stat().st_size
        if source_size != copied_size:
            raise OSError(f"Size mismatch after copy: {source} ({source_size}) -> {destination} ({copied_size})")
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
