"""
Core module for yt-playlist-downloader.

Foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console, file and failure report outputs
    - models: Item, Batch, job state and result types
    - progress: tqdm progress observer

Usage:
    from yt_playlist_dl.core import (
        Config, load_config,
        setup_logging, get_logger,
        DownloaderError, ConfigError
    )
"""

from yt_playlist_dl.core.config import (
    Config,
    DownloadConfig,
    LoggingConfig,
    NetworkConfig,
    OutputConfig,
    load_config,
)
from yt_playlist_dl.core.exceptions import (
    ArchiveError,
    ConfigError,
    DownloaderError,
    EmptyBatchError,
    EmptyPlaylistError,
    FetchError,
    MetadataError,
    PlaylistNotFoundError,
    PlaylistPrivateError,
    SourceError,
    StagingError,
    TranscodeError,
    ValidationError,
)
from yt_playlist_dl.core.logger import (
    get_logger,
    log_download_failure,
    setup_logging,
    shutdown_logging,
)
from yt_playlist_dl.core.models import (
    Batch,
    BatchResult,
    Item,
    ItemResult,
    JobPhase,
    JobState,
    ProgressEvent,
)

__all__ = [
    # Config
    "Config",
    "DownloadConfig",
    "NetworkConfig",
    "OutputConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "DownloaderError",
    "ConfigError",
    "ValidationError",
    "SourceError",
    "PlaylistPrivateError",
    "PlaylistNotFoundError",
    "EmptyPlaylistError",
    "EmptyBatchError",
    "StagingError",
    "FetchError",
    "TranscodeError",
    "MetadataError",
    "ArchiveError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_download_failure",
    "shutdown_logging",
    # Models
    "Item",
    "Batch",
    "BatchResult",
    "ItemResult",
    "JobPhase",
    "JobState",
    "ProgressEvent",
]
