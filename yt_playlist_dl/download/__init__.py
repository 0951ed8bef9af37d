"""
Download module for yt-playlist-downloader.

Components:
    - ConnectivityMonitor: pauses work while the network is down
    - Fetcher / YtDlpFetcher: retrieves one item's audio stream
    - Transcoder / FfmpegTranscoder: converts it to 320 kbps MP3
    - JobPipeline: fetch, network-aware retry and transcode for one item
    - run_batch: bounded-concurrency scheduler over a whole batch
    - Tagger: ID3 title, artist and cover
    - create_zip / move_to_directory: batch finalization

Usage:
    from yt_playlist_dl.download import run_batch, Tagger, create_zip

    results = run_batch(batch.items, concurrency=5, staging_dir=staging)
    Tagger().tag_files(results)
    create_zip(staging, output_dir, batch.name)
"""

from yt_playlist_dl.download.archive import (
    ArchiveResult,
    archive_name,
    create_zip,
    move_to_directory,
    remove_directory,
)
from yt_playlist_dl.download.connectivity import ConnectivityMonitor
from yt_playlist_dl.download.fetcher import Fetcher, YtDlpFetcher
from yt_playlist_dl.download.metadata import Tagger
from yt_playlist_dl.download.pipeline import JobPipeline, is_network_error
from yt_playlist_dl.download.scheduler import assign_output_stems, run_batch
from yt_playlist_dl.download.transcoder import FfmpegTranscoder, Transcoder

__all__ = [
    "ConnectivityMonitor",
    "Fetcher",
    "YtDlpFetcher",
    "Transcoder",
    "FfmpegTranscoder",
    "JobPipeline",
    "is_network_error",
    "run_batch",
    "assign_output_stems",
    "Tagger",
    "ArchiveResult",
    "archive_name",
    "create_zip",
    "move_to_directory",
    "remove_directory",
]
