"""
Utility functions for yt-playlist-downloader.

Small helpers used across modules: file name sanitization, directory
creation and human-readable formatting.
"""

import re
from pathlib import Path


# Characters rejected by at least one common filesystem
INVALID_FILENAME_CHARS = re.compile(r'[/\\?%*:|"<>]')
WHITESPACE_RUN = re.compile(r"\s+")
MAX_FILENAME_LENGTH = 200


def sanitize_filename(name: str) -> str:
    """
    Make a string safe for use as a file name.

    Args:
        name: Raw name (typically "Artist - Title").

    Returns:
        The name with / \\ ? % * : | " < > removed, whitespace runs
        collapsed to a single space, trimmed and cut to 200 characters.

    Example:
        sanitize_filename('AC/DC - What? "Live"')  # 'ACDC - What Live'
    """
    cleaned = INVALID_FILENAME_CHARS.sub("", name)
    cleaned = WHITESPACE_RUN.sub(" ", cleaned).strip()
    return cleaned[:MAX_FILENAME_LENGTH]


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it and its parents if necessary.

    Args:
        path: Path to the directory.

    Returns:
        The same path (for chaining).

    Raises:
        OSError: If the directory cannot be created.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def format_file_size(size_bytes: int) -> str:
    """
    Format a size in bytes as a human-readable string.

    Example:
        format_file_size(1536)  # '1.5 KB'
    """
    if size_bytes < 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(size_bytes)
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


def format_duration(seconds: int) -> str:
    """
    Format seconds as M:SS or H:MM:SS.

    Example:
        format_duration(3735)  # '1:02:15'
    """
    if seconds <= 0:
        return "0:00"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate_text(text: str, limit: int) -> str:
    """Keep the last `limit` characters of text (the tail carries the error)."""
    if len(text) <= limit:
        return text
    return text[-limit:]
