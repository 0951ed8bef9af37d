"""
Exception classes for yt-playlist-downloader.

Every error raised by this package derives from DownloaderError, so callers
can catch the whole family with a single except clause.

Exception Hierarchy:
    DownloaderError (base)
        ConfigError - Configuration file or value issues
        ValidationError - Bad URL, bad playlist id, bad concurrency
        SourceError - Playlist metadata could not be retrieved
            PlaylistPrivateError - Playlist is private or needs cookies
            PlaylistNotFoundError - Playlist does not exist
            EmptyPlaylistError - Playlist has no entries
        EmptyBatchError - Scheduler received no items
        StagingError - Staging or output directory cannot be prepared
        FetchError - yt-dlp failed for one item
        TranscodeError - ffmpeg failed for one item
        MetadataError - ID3 tagging failed
        ArchiveError - ZIP creation or final move failed

Batch-level errors (ConfigError, ValidationError, SourceError, EmptyBatchError,
StagingError) abort the run before any job starts. Per-item errors (FetchError,
TranscodeError) never escape the job pipeline; they are turned into failed
results.
"""


class DownloaderError(Exception):
    """
    Base exception for all yt-playlist-downloader errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (item id, URL,
                 return code, captured stderr).

    Example:
        try:
            batch = fetch_playlist(playlist_id)
        except DownloaderError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(DownloaderError):
    """
    Raised when the configuration file or an override holds an invalid value.

    Fatal: the CLI exits before doing any work.

    Example:
        raise ConfigError(
            "'download.concurrency' must be a positive integer",
            details={"field": "download.concurrency", "value": 0}
        )
    """
    pass


class ValidationError(DownloaderError):
    """Raised for an unusable URL, an unextractable playlist id or a concurrency below 1."""
    pass


class SourceError(DownloaderError):
    """
    Raised when playlist metadata cannot be retrieved.

    The subclasses carry the classified cause so the CLI can print a hint.
    The raw yt-dlp diagnostic text is kept in details['stderr'] when present.
    """
    pass


class PlaylistPrivateError(SourceError):
    """Playlist is private or requires authentication (try --cookies)."""
    pass


class PlaylistNotFoundError(SourceError):
    """Playlist does not exist."""
    pass


class EmptyPlaylistError(SourceError):
    """Playlist exists but has no entries."""
    pass


class EmptyBatchError(DownloaderError):
    """Raised when a batch with zero items reaches the scheduler."""
    pass


class StagingError(DownloaderError):
    """Raised when the staging or output directory cannot be created."""
    pass


class FetchError(DownloaderError):
    """
    Raised by a Fetcher when one item could not be retrieved.

    The fetcher does not classify its failures. The full diagnostic text
    (process stderr, timeout marker, OS error) is stored in `raw_error` so
    the job pipeline can decide whether the failure is network related.

    Attributes:
        raw_error: Unprocessed diagnostic text used for classification.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        raw_error: str = ""
    ) -> None:
        """
        Initialize the fetch error.

        Args:
            message: Short human-readable description.
            details: Optional context (item id, return code).
            raw_error: Diagnostic text. Defaults to the message.
        """
        super().__init__(message, details)
        self.raw_error = raw_error or message


class TranscodeError(DownloaderError):
    """Raised when ffmpeg cannot convert a fetched file. Never retried."""
    pass


class MetadataError(DownloaderError):
    """Raised when ID3 tags cannot be written to a file."""
    pass


class ArchiveError(DownloaderError):
    """Raised when the ZIP archive cannot be created or files cannot be moved."""
    pass
