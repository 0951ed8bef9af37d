"""
Playlist source: URL validation and playlist metadata retrieval.

Playlist metadata is read from yt-dlp in one of two shapes:

    1. Rich document (`yt-dlp -J URL`): a single JSON object with the
       playlist fields and an 'entries' array. Tried first.
    2. Flat stream (`yt-dlp --dump-json --flat-playlist URL`): one JSON
       object per line, one line per entry. Used when the rich document
       fails for any reason (large or partially unavailable playlists).

Failures of the flat stream are classified from yt-dlp's stderr:
    "Private video" / "This video is private"  -> PlaylistPrivateError
    "This playlist does not exist"            -> PlaylistNotFoundError
    no entries                                -> EmptyPlaylistError

Usage:
    playlist_id = validate_and_extract_id(url)
    batch = fetch_playlist(playlist_id, cookies_file=None)
    print(f"{batch.name}: {batch.total_count} items")
"""

import json
import re
import subprocess
import sys
from pathlib import Path
from typing import Any

from yt_playlist_dl.core.exceptions import (
    EmptyPlaylistError,
    PlaylistNotFoundError,
    PlaylistPrivateError,
    SourceError,
    ValidationError,
)
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.core.models import Batch, Item
from yt_playlist_dl.utils import truncate_text

logger = get_logger(__name__)


PLAYLIST_URL = "https://www.youtube.com/playlist?list={playlist_id}"
UNKNOWN_PLAYLIST = "Unknown Playlist"

RICH_TIMEOUT = 120
FLAT_TIMEOUT = 180
MAX_STDERR_CHARS = 2000

YOUTUBE_URL_PATTERNS = [
    re.compile(r"^(https?://)?(www\.)?youtube\.com/playlist\?list=", re.IGNORECASE),
    re.compile(r"^(https?://)?(www\.)?youtube\.com/watch\?v=", re.IGNORECASE),
    re.compile(r"^(https?://)?music\.youtube\.com/playlist\?list=", re.IGNORECASE),
    re.compile(r"^(https?://)?music\.youtube\.com/browse/", re.IGNORECASE),
    re.compile(r"^(https?://)?youtu\.be/", re.IGNORECASE),
]
PLAYLIST_ID_PATTERN = re.compile(r"[?&]list=([a-zA-Z0-9_-]+)")

PRIVATE_MARKERS = ("Private video", "This video is private")
NOT_FOUND_MARKERS = ("This playlist does not exist",)


def is_valid_youtube_url(url: str) -> bool:
    """
    Check whether url is a YouTube / YouTube Music URL we can work with.

    Accepted forms:
        youtube.com/playlist?list=...
        youtube.com/watch?v=...
        music.youtube.com/playlist?list=...
        music.youtube.com/browse/...
        youtu.be/...
    """
    if not url:
        return False
    url = url.strip()
    return any(pattern.match(url) for pattern in YOUTUBE_URL_PATTERNS)


def extract_playlist_id(url: str) -> str | None:
    """
    Extract the playlist id from the 'list' query parameter.

    Example:
        extract_playlist_id("https://music.youtube.com/playlist?list=OLAK5uy_abc")
        # 'OLAK5uy_abc'
    """
    match = PLAYLIST_ID_PATTERN.search(url or "")
    return match.group(1) if match else None


def validate_and_extract_id(url: str) -> str:
    """
    Validate a URL and return its playlist id.

    Raises:
        ValidationError: If the URL is not a supported YouTube URL or
                         carries no playlist id.
    """
    if not is_valid_youtube_url(url):
        raise ValidationError(
            f"Not a valid YouTube or YouTube Music URL: {url}",
            details={"url": url}
        )

    playlist_id = extract_playlist_id(url)
    if playlist_id is None:
        raise ValidationError(
            "Could not extract a playlist id from the URL (expected a 'list=' parameter)",
            details={"url": url}
        )
    return playlist_id


def fetch_playlist(
    playlist_id: str,
    cookies_file: Path | None = None,
    command: list[str] | None = None
) -> Batch:
    """
    Retrieve playlist metadata.

    Args:
        playlist_id: YouTube playlist id.
        cookies_file: Optional cookies file for private playlists.
        command: yt-dlp command prefix. Defaults to `python -m yt_dlp`.

    Returns:
        Batch with the items in playlist order.

    Raises:
        PlaylistPrivateError: Playlist is private or requires sign-in.
        PlaylistNotFoundError: Playlist does not exist.
        EmptyPlaylistError: Playlist has no entries.
        SourceError: Any other retrieval failure.
    """
    command = command or [sys.executable, "-m", "yt_dlp"]
    url = PLAYLIST_URL.format(playlist_id=playlist_id)

    try:
        return _fetch_rich(command, url, cookies_file)
    except SourceError as e:
        logger.debug(f"Full playlist document unavailable ({e.message}), trying flat listing")

    return _fetch_flat(command, url, cookies_file)


def _base_args(command: list[str], cookies_file: Path | None) -> list[str]:
    args = [*command, "--no-warnings"]
    if cookies_file is not None:
        args.extend(["--cookies", str(cookies_file)])
    return args


def _run(args: list[str], timeout: int) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise SourceError(
            f"yt-dlp did not answer within {timeout}s",
            details={"timeout": timeout}
        ) from e
    except OSError as e:
        raise SourceError(
            f"Could not start yt-dlp: {e}",
            details={"original_error": str(e)}
        ) from e


def _fetch_rich(command: list[str], url: str, cookies_file: Path | None) -> Batch:
    args = _base_args(command, cookies_file) + ["-J", url]
    result = _run(args, RICH_TIMEOUT)

    if result.returncode != 0:
        raise SourceError(
            f"yt-dlp exited with code {result.returncode}",
            details={"stderr": truncate_text(result.stderr or "", MAX_STDERR_CHARS)}
        )

    try:
        document = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise SourceError(f"Invalid JSON from yt-dlp: {e}") from e

    if not isinstance(document, dict):
        raise SourceError("Unexpected yt-dlp output: not a JSON object")

    items = _parse_entries(document.get("entries") or [])
    if not items:
        raise SourceError("Playlist document has no entries")

    return Batch(
        items=tuple(items),
        name=document.get("title") or document.get("playlist") or UNKNOWN_PLAYLIST,
        uploader=document.get("uploader") or document.get("channel") or None,
    )


def _fetch_flat(command: list[str], url: str, cookies_file: Path | None) -> Batch:
    args = _base_args(command, cookies_file) + ["--dump-json", "--flat-playlist", url]
    result = _run(args, FLAT_TIMEOUT)
    stderr = result.stderr or ""

    if result.returncode != 0:
        _raise_classified(stderr, result.returncode)

    entries = []
    for line in (result.stdout or "").splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"Skipping unparsable playlist line: {line[:80]}")

    items = _parse_entries(entries)
    if not items:
        raise EmptyPlaylistError(
            "Playlist is empty or all of its videos are unavailable",
            details={"url": url}
        )

    first = entries[0]
    return Batch(
        items=tuple(items),
        name=first.get("playlist") or first.get("playlist_title") or UNKNOWN_PLAYLIST,
        uploader=first.get("playlist_uploader") or None,
    )


def _raise_classified(stderr: str, returncode: int) -> None:
    details = {"returncode": returncode, "stderr": truncate_text(stderr, MAX_STDERR_CHARS)}

    if any(marker in stderr for marker in PRIVATE_MARKERS):
        raise PlaylistPrivateError(
            "Playlist is private or requires authentication. Try --cookies",
            details=details
        )
    if any(marker in stderr for marker in NOT_FOUND_MARKERS):
        raise PlaylistNotFoundError("Playlist does not exist", details=details)

    last_line = stderr.strip().splitlines()[-1] if stderr.strip() else ""
    raise SourceError(
        f"Failed to fetch playlist: {last_line or f'yt-dlp exited with code {returncode}'}",
        details=details
    )


def _parse_entries(entries: list[Any]) -> list[Item]:
    """Map yt-dlp entries to Items, skipping null or id-less entries."""
    items = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        items.append(Item.from_ytdlp_entry(entry))
    return items
