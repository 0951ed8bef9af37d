"""
Data models shared by the download pipeline.

Item and Batch describe what to download and are created once, when the
playlist is fetched. JobState is the mutable per-item state owned by the
worker running that item. ProgressEvent and ItemResult are what the
pipeline reports back.

Phase Transitions:
    PENDING -> FETCHING -> (FETCHING ...) -> CONVERTING -> COMPLETED
    PENDING | FETCHING | CONVERTING -> FAILED

    COMPLETED and FAILED are terminal: JobState refuses any transition
    out of them.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from yt_playlist_dl.utils import sanitize_filename


YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_TITLE = "Unknown"


@dataclass(frozen=True)
class Item:
    """
    Immutable description of one media item in a playlist.

    Attributes:
        id: External identifier (the YouTube video id).
        title: Display title.
        artist: Creator name, "Unknown Artist" when yt-dlp reports none.
        duration: Nominal duration in seconds, 0 when unknown.
        cover_url: URL of the largest thumbnail, or None.

    Example:
        item = Item.from_ytdlp_entry({"id": "dQw4w9WgXcQ", "title": "Song"})
        print(item.video_url)
    """

    id: str
    title: str
    artist: str
    duration: int = 0
    cover_url: str | None = None

    @classmethod
    def from_ytdlp_entry(cls, entry: dict[str, Any]) -> "Item":
        """
        Create an Item from one entry of a yt-dlp playlist document.

        Both the full (-J) and the flat (--flat-playlist) shapes are accepted.

        Args:
            entry: Dictionary describing one video.

        Returns:
            Item populated with the entry data.

        Field Mapping:
            cover_url: last element of 'thumbnails' (largest), else 'thumbnail'
            duration: 'duration', else 'duration_seconds', else 0
            artist: 'artist', else 'channel', else 'uploader'
            title: 'title', else "Unknown"
        """
        thumbnails = entry.get("thumbnails") or []
        cover_url = None
        if thumbnails and isinstance(thumbnails[-1], dict):
            cover_url = thumbnails[-1].get("url")
        if not cover_url:
            cover_url = entry.get("thumbnail") or None

        duration = entry.get("duration") or entry.get("duration_seconds") or 0
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            duration = 0

        artist = (
            entry.get("artist")
            or entry.get("channel")
            or entry.get("uploader")
            or UNKNOWN_ARTIST
        )

        return cls(
            id=str(entry.get("id", "")),
            title=entry.get("title") or UNKNOWN_TITLE,
            artist=artist,
            duration=duration,
            cover_url=cover_url,
        )

    @property
    def video_url(self) -> str:
        """Watch URL handed to yt-dlp."""
        return YOUTUBE_WATCH_URL.format(video_id=self.id)

    @property
    def display_name(self) -> str:
        """'Artist - Title' as shown in logs and reports."""
        return f"{self.artist} - {self.title}"

    @property
    def filename_stem(self) -> str:
        """Sanitized 'Artist - Title', used for temp and output file names."""
        return sanitize_filename(self.display_name)


@dataclass(frozen=True)
class Batch:
    """
    Ordered collection of items plus display metadata.

    Attributes:
        items: Items in playlist order.
        name: Playlist display name.
        uploader: Playlist owner, if known.
    """

    items: tuple[Item, ...]
    name: str
    uploader: str | None = None

    @property
    def total_count(self) -> int:
        return len(self.items)


class JobPhase(Enum):
    """Lifecycle phase of one job."""
    PENDING = "pending"
    FETCHING = "downloading"
    CONVERTING = "converting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.COMPLETED, JobPhase.FAILED)


_ALLOWED_TRANSITIONS: dict[JobPhase, set[JobPhase]] = {
    JobPhase.PENDING: {JobPhase.FETCHING, JobPhase.FAILED},
    JobPhase.FETCHING: {JobPhase.FETCHING, JobPhase.CONVERTING, JobPhase.FAILED},
    JobPhase.CONVERTING: {JobPhase.COMPLETED, JobPhase.FAILED},
    JobPhase.COMPLETED: set(),
    JobPhase.FAILED: set(),
}


@dataclass
class JobState:
    """
    Mutable state of one job, owned by the worker running it.

    Attributes:
        item: The item being processed.
        phase: Current phase.
        attempts: Number of fetch attempts started so far.
        last_error: Text of the most recent failure, if any.
        progress: Last progress value emitted (0-100, non-decreasing
                  within one attempt).
    """

    item: Item
    phase: JobPhase = JobPhase.PENDING
    attempts: int = 0
    last_error: str | None = None
    progress: int = 0

    def transition(self, phase: JobPhase, progress: int | None = None) -> None:
        """
        Move to a new phase.

        Args:
            phase: Target phase.
            progress: New progress value. When omitted the current value is kept.

        Raises:
            ValueError: If the transition is not allowed (for example out of
                        a terminal phase).
        """
        if phase not in _ALLOWED_TRANSITIONS[self.phase]:
            raise ValueError(
                f"Invalid job transition {self.phase.name} -> {phase.name} "
                f"for item {self.item.id}"
            )
        self.phase = phase
        if progress is not None:
            self.progress = progress


@dataclass(frozen=True)
class ProgressEvent:
    """
    Fire-and-forget notification emitted on every phase transition.

    Attributes:
        item_id: Identifier of the item.
        title: Item title, for display.
        phase: Phase just entered.
        progress: Numeric progress indicator (0-100).
        error: Failure text, set only for FAILED events.
    """

    item_id: str
    title: str
    phase: JobPhase
    progress: int
    error: str | None = None


@dataclass(frozen=True)
class ItemResult:
    """
    Terminal outcome of one job.

    Attributes:
        item: The originating item.
        success: True when the item was fetched and transcoded.
        file_path: Output MP3 path on success.
        error: Last error text on failure.
        attempts: Number of fetch attempts made.
    """

    item: Item
    success: bool
    file_path: Path | None = None
    error: str | None = None
    attempts: int = 0


@dataclass
class BatchResult:
    """
    Results of a whole batch, one ItemResult per input item in batch order.

    Attributes:
        batch: The batch that was processed.
        results: Per-item results.
    """

    batch: Batch
    results: list[ItemResult] = field(default_factory=list)

    @property
    def successful(self) -> list[ItemResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if not r.success]

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if not self.results:
            return 0.0
        return (len(self.successful) / len(self.results)) * 100
