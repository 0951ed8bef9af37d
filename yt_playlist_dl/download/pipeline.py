"""
Job pipeline: fetch, retry and transcode for a single item.

Workflow per item:
    1. Wait for connectivity (before EVERY fetch attempt, the first included)
    2. FETCHING: run the fetcher
       - network-classified failure with attempts left: remove the partial
         file and go back to 1
       - any other failure, or no attempts left: FAILED
    3. CONVERTING: run the transcoder once (never retried)
    4. COMPLETED

Progress events:
    FETCHING    0   (emitted at every attempt)
    CONVERTING  50
    COMPLETED   100
    FAILED      last value reached, with the error text

A job never raises past run(): every failure, expected or not, becomes a
failed ItemResult.

Network Error Classification:
    Fetch failures are classified by matching the diagnostic text against
    NETWORK_ERROR_PATTERNS. The patterns cover DNS failures, connection
    resets, timeouts and unreachable networks as reported by yt-dlp and
    the Python socket layer.
"""

import re
from pathlib import Path
from typing import Callable

from yt_playlist_dl.core.exceptions import FetchError, TranscodeError
from yt_playlist_dl.core.logger import get_logger, log_download_failure
from yt_playlist_dl.core.models import (
    Item,
    ItemResult,
    JobPhase,
    JobState,
    ProgressEvent,
)
from yt_playlist_dl.download.connectivity import ConnectivityMonitor
from yt_playlist_dl.download.fetcher import Fetcher
from yt_playlist_dl.download.transcoder import DEFAULT_BITRATE_KBPS, Transcoder

logger = get_logger(__name__)


DEFAULT_MAX_ATTEMPTS = 4

PROGRESS_FETCHING = 0
PROGRESS_CONVERTING = 50
PROGRESS_COMPLETED = 100

NETWORK_ERROR_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"ENOTFOUND",
        r"EAI_AGAIN",
        r"ECONNRESET",
        r"ETIMEDOUT",
        r"network is unreachable",
        r"getaddrinfo ENOTFOUND",
        r"Temporary failure in name resolution",
        r"Resolving timed out",
        r"Connection reset by peer",
        r"timed out",
        r"Name or service not known",
    )
]

ProgressCallback = Callable[[ProgressEvent], None]


def is_network_error(error_text: str) -> bool:
    """
    Check whether a fetch failure looks like a transient network problem.

    Args:
        error_text: Raw diagnostic text from the fetcher.

    Returns:
        True if any NETWORK_ERROR_PATTERNS entry matches (case-insensitive).

    Example:
        is_network_error("getaddrinfo ENOTFOUND www.youtube.com")  # True
        is_network_error("ERROR: Video unavailable")                # False
    """
    if not error_text:
        return False
    return any(pattern.search(error_text) for pattern in NETWORK_ERROR_PATTERNS)


class JobPipeline:
    """
    Runs the fetch/retry/transcode state machine for one item at a time.

    A single JobPipeline is shared by all workers of a batch. run() keeps all
    per-item state in a local JobState, so concurrent calls do not interfere
    as long as they use distinct output names.

    Attributes:
        staging_dir: Directory receiving temp and output files.
        max_attempts: Total fetch attempts for network failures.
        bitrate_kbps: MP3 bitrate handed to the transcoder.
        cookies_file: Optional cookies file handed to the fetcher.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        transcoder: Transcoder,
        monitor: ConnectivityMonitor,
        staging_dir: Path,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        bitrate_kbps: int = DEFAULT_BITRATE_KBPS,
        cookies_file: Path | None = None,
        on_progress: ProgressCallback | None = None
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.monitor = monitor
        self.staging_dir = staging_dir
        self.max_attempts = max_attempts
        self.bitrate_kbps = bitrate_kbps
        self.cookies_file = cookies_file
        self.on_progress = on_progress

    def run(self, item: Item, output_stem: str | None = None) -> ItemResult:
        """
        Process one item to a terminal result.

        Args:
            item: The item to download.
            output_stem: File name stem (without extension). Defaults to the
                         item's sanitized "Artist - Title".

        Returns:
            ItemResult with success, output path or last error, and the
            number of fetch attempts made.
        """
        state = JobState(item=item)
        stem = output_stem or item.filename_stem
        temp_path = self.staging_dir / f"{stem}.webm"
        output_path = self.staging_dir / f"{stem}.mp3"

        try:
            return self._execute(state, temp_path, output_path)
        except Exception as e:
            logger.debug(f"Unexpected error for {item.display_name}", exc_info=True)
            return self._fail(state, f"Unexpected error: {e}", temp_path)

    def _execute(self, state: JobState, temp_path: Path, output_path: Path) -> ItemResult:
        item = state.item

        while True:
            self.monitor.await_connectivity()

            state.attempts += 1
            self._advance(state, JobPhase.FETCHING, PROGRESS_FETCHING)

            try:
                self.fetcher.fetch(item.id, temp_path, self.cookies_file)
                break
            except FetchError as e:
                state.last_error = e.message
                if is_network_error(e.raw_error) and state.attempts < self.max_attempts:
                    logger.warning(
                        f"Network error for {item.display_name} "
                        f"(attempt {state.attempts}/{self.max_attempts}), retrying: {e.message}"
                    )
                    _remove_partial(temp_path)
                    continue
                return self._fail(state, e.message, temp_path)

        self._advance(state, JobPhase.CONVERTING, PROGRESS_CONVERTING)

        try:
            self.transcoder.transcode(temp_path, output_path, self.bitrate_kbps)
        except TranscodeError as e:
            return self._fail(state, e.message, temp_path)

        self._advance(state, JobPhase.COMPLETED, PROGRESS_COMPLETED)
        logger.debug(f"Completed {item.display_name} -> {output_path.name}")

        return ItemResult(
            item=item,
            success=True,
            file_path=output_path,
            attempts=state.attempts
        )

    def _advance(self, state: JobState, phase: JobPhase, progress: int) -> None:
        state.transition(phase, progress)
        self._emit(state)

    def _fail(self, state: JobState, error: str, temp_path: Path) -> ItemResult:
        item = state.item
        state.last_error = error
        _remove_partial(temp_path)

        if not state.phase.is_terminal:
            state.transition(JobPhase.FAILED)
            self._emit(state, error)

        log_download_failure(
            logger,
            item_id=item.id,
            display_name=item.display_name,
            url=item.video_url,
            error_message=error
        )

        return ItemResult(
            item=item,
            success=False,
            error=error,
            attempts=state.attempts
        )

    def _emit(self, state: JobState, error: str | None = None) -> None:
        if self.on_progress is None:
            return

        event = ProgressEvent(
            item_id=state.item.id,
            title=state.item.title,
            phase=state.phase,
            progress=state.progress,
            error=error
        )
        try:
            self.on_progress(event)
        except Exception:
            logger.warning(
                f"Progress observer failed for {state.item.display_name}",
                exc_info=True
            )


def _remove_partial(temp_path: Path) -> None:
    """Remove a temp file and the '.part' file yt-dlp may leave next to it."""
    for path in (temp_path, temp_path.with_name(temp_path.name + ".part")):
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug(f"Could not remove partial file {path}: {e}")
