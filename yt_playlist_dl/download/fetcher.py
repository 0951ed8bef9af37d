"""
Asset fetcher: retrieves the raw audio stream of one item.

The fetcher is policy-free. It runs yt-dlp once and either returns the path
of the written file or raises FetchError carrying the raw diagnostic text.
Classification and retry belong to the job pipeline.

yt-dlp is run as a subprocess of the current interpreter
(`python -m yt_dlp`), so the yt-dlp installed alongside this package is
used and one stalled invocation can be killed by its timeout without
affecting the other workers.
"""

import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from yt_playlist_dl.core.exceptions import FetchError
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.core.models import YOUTUBE_WATCH_URL
from yt_playlist_dl.utils import truncate_text

logger = get_logger(__name__)


AUDIO_FORMAT_SELECTOR = "bestaudio[ext=webm]/bestaudio"
MAX_STDERR_CHARS = 4000


class Fetcher(ABC):
    """Retrieves one item's audio stream to a local file."""

    @abstractmethod
    def fetch(
        self,
        item_id: str,
        output_path: Path,
        cookies_file: Path | None = None
    ) -> Path:
        """
        Fetch the audio of item_id into output_path.

        Args:
            item_id: External identifier of the item.
            output_path: Destination file. May be left partially written
                         on failure.
            cookies_file: Optional cookies file for authenticated access.

        Returns:
            Path of the written file.

        Raises:
            FetchError: On any failure, with the raw diagnostic text.
        """
        pass


class YtDlpFetcher(Fetcher):
    """
    Fetcher backed by the yt-dlp command line.

    Attributes:
        timeout: Seconds before the yt-dlp process is killed.
        command: Command prefix used to invoke yt-dlp.

    Example:
        fetcher = YtDlpFetcher(timeout=600)
        path = fetcher.fetch("dQw4w9WgXcQ", Path("/tmp/song.webm"))
    """

    def __init__(
        self,
        timeout: float = 600.0,
        command: list[str] | None = None
    ) -> None:
        self.timeout = timeout
        self.command = command or [sys.executable, "-m", "yt_dlp"]

    def build_args(
        self,
        item_id: str,
        output_path: Path,
        cookies_file: Path | None = None
    ) -> list[str]:
        """Build the full yt-dlp command line for one item."""
        args = [
            *self.command,
            "-f", AUDIO_FORMAT_SELECTOR,
            "--no-playlist",
            "--no-warnings",
            "--force-overwrites",
            "-o", str(output_path),
        ]
        if cookies_file is not None:
            args.extend(["--cookies", str(cookies_file)])
        args.append(YOUTUBE_WATCH_URL.format(video_id=item_id))
        return args

    def fetch(
        self,
        item_id: str,
        output_path: Path,
        cookies_file: Path | None = None
    ) -> Path:
        args = self.build_args(item_id, output_path, cookies_file)
        logger.debug(f"Running yt-dlp for {item_id}: {' '.join(args)}")

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            # The marker keeps timeouts in the network-error class
            raise FetchError(
                f"ETIMEDOUT: yt-dlp timed out after {self.timeout:g}s",
                details={"item_id": item_id, "timeout": self.timeout}
            ) from e
        except OSError as e:
            raise FetchError(
                f"Could not start yt-dlp: {e}",
                details={"item_id": item_id, "original_error": str(e)}
            ) from e

        if result.returncode != 0:
            stderr = truncate_text((result.stderr or "").strip(), MAX_STDERR_CHARS)
            message = _last_error_line(stderr) or f"yt-dlp exited with code {result.returncode}"
            raise FetchError(
                message,
                details={"item_id": item_id, "returncode": result.returncode},
                raw_error=stderr or message
            )

        if not output_path.exists():
            raise FetchError(
                "yt-dlp finished but no audio file was written",
                details={"item_id": item_id, "output_path": str(output_path)}
            )

        return output_path


def _last_error_line(stderr: str) -> str:
    """Return the most specific line of yt-dlp's stderr (prefers 'ERROR:' lines)."""
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    for line in reversed(lines):
        if line.startswith("ERROR:"):
            return line
    return lines[-1] if lines else ""
