"""
Progress display for yt-playlist-downloader using tqdm.

BatchProgressBar is a progress observer: the job pipeline calls it with
every ProgressEvent. Only terminal events move the bar; intermediate
phases are logged at DEBUG level.

Usage:
    from yt_playlist_dl.core.progress import BatchProgressBar

    with BatchProgressBar(total=len(items)) as progress:
        run_batch(items, concurrency, ..., on_progress=progress)
"""

import sys
import threading
from typing import TextIO

from tqdm import tqdm

from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.core.models import JobPhase, ProgressEvent

logger = get_logger(__name__)


class BatchProgressBar:
    """
    Thread-safe tqdm bar counting completed and failed items.

    Displays:
        Downloading:  40%|████      | 4/10 [00:12<00:18, ok=3, failed=1]

    Prints one line per finished item above the bar:
        ✅ [4/10] Song Title
        ❌ [5/10] Other Song - Video unavailable

    Attributes:
        total: Number of items in the batch.
        completed: Items finished successfully.
        failed: Items that ended in FAILED.
    """

    def __init__(
        self,
        total: int,
        description: str = "Downloading",
        disable: bool = False,
        stream: TextIO | None = None
    ) -> None:
        self.total = total
        self.description = description
        self.completed = 0
        self.failed = 0
        self._disable = disable
        self._stream = stream
        self._bar: tqdm | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> "BatchProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if self._bar is None:
            self._bar = tqdm(
                total=self.total,
                desc=self.description,
                unit="item",
                file=self._stream or sys.stderr,
                disable=self._disable,
                leave=True,
            )

    def stop(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    @property
    def finished(self) -> int:
        return self.completed + self.failed

    def __call__(self, event: ProgressEvent) -> None:
        """Observer entry point used by the job pipeline."""
        if not event.phase.is_terminal:
            logger.debug(f"{event.title}: {event.phase.value} ({event.progress}%)")
            return

        with self._lock:
            if event.phase == JobPhase.COMPLETED:
                self.completed += 1
                line = f"✅ [{self.finished}/{self.total}] {event.title}"
            else:
                self.failed += 1
                line = f"❌ [{self.finished}/{self.total}] {event.title} - {event.error}"

            if self._bar is not None:
                self._bar.write(line, file=self._stream or sys.stderr)
                self._bar.set_postfix(ok=self.completed, failed=self.failed)
                self._bar.update(1)
