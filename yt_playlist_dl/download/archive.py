"""
Finalization of a finished batch: ZIP archive or plain directory.

create_zip() packs every regular file of the staging directory, flattened,
into <output>/<name>.zip with maximum deflate compression.
move_to_directory() is used instead when archiving is disabled and moves
the files into the final playlist directory.
"""

import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from yt_playlist_dl.core.exceptions import ArchiveError
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.utils import ensure_directory, sanitize_filename

logger = get_logger(__name__)


ZIP_COMPRESSION_LEVEL = 9


@dataclass(frozen=True)
class ArchiveResult:
    """
    Attributes:
        zip_path: Path of the written archive.
        total_size: Size of the archive in bytes.
        file_count: Number of entries stored.
    """
    zip_path: Path
    total_size: int
    file_count: int


def archive_name(playlist_name: str, uploader: str | None = None) -> str:
    """
    Build the archive name for a playlist.

    Example:
        archive_name("Road Trip", "DJ Someone")  # 'Road Trip — DJ Someone'
    """
    if uploader:
        return f"{playlist_name} — {uploader}"
    return playlist_name


def create_zip(source_dir: Path, output_dir: Path, zip_name: str) -> ArchiveResult:
    """
    Pack every regular file of source_dir into a ZIP archive.

    Args:
        source_dir: Directory whose files are archived (not recursed).
        output_dir: Directory receiving the archive (created if needed).
        zip_name: Archive name without extension; sanitized before use.

    Returns:
        ArchiveResult with the archive path, its size and the entry count.

    Raises:
        ArchiveError: If the source is not a directory or writing fails.
    """
    if not source_dir.is_dir():
        raise ArchiveError(
            f"Source directory not found: {source_dir}",
            details={"source_dir": str(source_dir)}
        )

    safe_name = sanitize_filename(zip_name) or "playlist"
    zip_path = output_dir / f"{safe_name}.zip"
    files = sorted(path for path in source_dir.iterdir() if path.is_file())

    try:
        ensure_directory(output_dir)
        with zipfile.ZipFile(
            zip_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=ZIP_COMPRESSION_LEVEL
        ) as archive:
            for path in files:
                archive.write(path, arcname=path.name)
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(
            f"Failed to create archive {zip_path}: {e}",
            details={"zip_path": str(zip_path), "original_error": str(e)}
        ) from e

    result = ArchiveResult(
        zip_path=zip_path,
        total_size=zip_path.stat().st_size,
        file_count=len(files)
    )
    logger.debug(f"Archived {result.file_count} files into {zip_path}")
    return result


def move_to_directory(source_dir: Path, dest_dir: Path) -> list[Path]:
    """
    Move every regular file of source_dir into dest_dir.

    Existing files with the same name are replaced. The staging directory
    is removed afterwards if it is empty.

    Returns:
        Paths of the moved files in dest_dir.

    Raises:
        ArchiveError: If the destination cannot be created or a move fails.
    """
    moved: list[Path] = []

    try:
        ensure_directory(dest_dir)
        for path in sorted(source_dir.iterdir()):
            if not path.is_file():
                continue
            target = dest_dir / path.name
            shutil.move(str(path), str(target))
            moved.append(target)
    except OSError as e:
        raise ArchiveError(
            f"Failed to move files to {dest_dir}: {e}",
            details={"dest_dir": str(dest_dir), "original_error": str(e)}
        ) from e

    try:
        source_dir.rmdir()
    except OSError:
        logger.debug(f"Staging directory not removed (not empty): {source_dir}")

    return moved


def remove_directory(path: Path) -> None:
    """Delete a staging directory tree, logging instead of raising."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary directory {path}: {e}")
