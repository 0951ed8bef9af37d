"""
YouTube module for yt-playlist-downloader.

Playlist URL validation and playlist metadata retrieval through yt-dlp.

Usage:
    from yt_playlist_dl.youtube import validate_and_extract_id, fetch_playlist

    batch = fetch_playlist(validate_and_extract_id(url))
"""

from yt_playlist_dl.youtube.playlist import (
    extract_playlist_id,
    fetch_playlist,
    is_valid_youtube_url,
    validate_and_extract_id,
)

__all__ = [
    "is_valid_youtube_url",
    "extract_playlist_id",
    "validate_and_extract_id",
    "fetch_playlist",
]
