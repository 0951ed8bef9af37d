"""
yt-playlist-downloader: Download YouTube / YouTube Music playlists as MP3.

Given a playlist or album URL, the tool lists its items, downloads each
item's audio with yt-dlp, converts it to 320 kbps MP3 with ffmpeg, tags
it, and packs the results into a ZIP archive (or a plain folder).

Architecture:
    youtube/    - URL validation and playlist metadata (yt-dlp -J / flat)
    download/   - Connectivity monitor, fetcher, transcoder, job pipeline,
                  bounded scheduler, ID3 tagging, archiving
    core/       - Configuration, logging, exceptions, models, progress bar
    utils/      - File name and formatting helpers
    cli.py      - Command-line interface

Usage:
    Command Line:
        yt-playlist-dl "https://music.youtube.com/playlist?list=..."
        yt-playlist-dl URL -o ~/Music -c 8 --no-zip

    Python API:
        from yt_playlist_dl.youtube import fetch_playlist, validate_and_extract_id
        from yt_playlist_dl.download import run_batch

        batch = fetch_playlist(validate_and_extract_id(url))
        results = run_batch(batch.items, concurrency=5, staging_dir=Path(".temp/run"))

Requirements:
    - Python 3.10+
    - FFmpeg installed and on PATH
"""

__version__ = "1.0.0"
__author__ = "yt-playlist-downloader"

__all__ = [
    "__version__",
    "__author__",
]
