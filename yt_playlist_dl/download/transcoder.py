"""
Transcoder: converts a fetched audio file to constant-bitrate MP3.

ffmpeg is driven through ffmpeg-python. The command is started as a
background process with run_async() and the calling worker blocks on
communicate() until it exits, so a slow conversion only occupies its own
worker slot.

Output Format:
    MP3, libmp3lame, 320 kbps CBR, no video stream.

Temp File Handling:
    The input file is always deleted once the conversion finishes,
    whether it succeeded or not. A partially written output file is
    deleted on failure.
"""

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

import ffmpeg

from yt_playlist_dl.core.exceptions import TranscodeError
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.utils import truncate_text

logger = get_logger(__name__)


MP3_CODEC = "libmp3lame"
DEFAULT_BITRATE_KBPS = 320
MAX_STDERR_CHARS = 2000


class Transcoder(ABC):
    """Converts one raw audio file to the target format."""

    @abstractmethod
    def transcode(
        self,
        input_path: Path,
        output_path: Path,
        bitrate_kbps: int = DEFAULT_BITRATE_KBPS
    ) -> Path:
        """
        Convert input_path to MP3 at output_path.

        Returns:
            output_path on success.

        Raises:
            TranscodeError: If the conversion fails.
        """
        pass


class FfmpegTranscoder(Transcoder):
    """
    Transcoder backed by the ffmpeg binary.

    Attributes:
        ffmpeg_binary: Executable name or path.
        timeout: Seconds before a conversion is killed.
    """

    def __init__(self, ffmpeg_binary: str = "ffmpeg", timeout: float = 600.0) -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout

    def build_stream(self, input_path: Path, output_path: Path, bitrate_kbps: int):
        """Build the ffmpeg-python stream graph for one conversion."""
        return (
            ffmpeg
            .input(str(input_path))
            .output(
                str(output_path),
                acodec=MP3_CODEC,
                audio_bitrate=f"{bitrate_kbps}k",
                format="mp3",
                vn=None,
            )
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )

    def transcode(
        self,
        input_path: Path,
        output_path: Path,
        bitrate_kbps: int = DEFAULT_BITRATE_KBPS
    ) -> Path:
        stream = self.build_stream(input_path, output_path, bitrate_kbps)
        logger.debug(f"Transcoding {input_path.name} -> {output_path.name}")

        try:
            self._run(stream, input_path)
        except TranscodeError:
            _remove_quietly(output_path)
            raise
        finally:
            _remove_quietly(input_path)

        return output_path

    def _run(self, stream, input_path: Path) -> None:
        try:
            process = stream.run_async(
                cmd=self.ffmpeg_binary,
                pipe_stdout=True,
                pipe_stderr=True
            )
        except OSError as e:
            raise TranscodeError(
                f"Could not start ffmpeg ({self.ffmpeg_binary}): {e}",
                details={"input_path": str(input_path), "original_error": str(e)}
            ) from e

        try:
            _, stderr = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.communicate()
            raise TranscodeError(
                f"ffmpeg timed out after {self.timeout:g}s",
                details={"input_path": str(input_path)}
            ) from e

        if process.returncode != 0:
            error_text = truncate_text(
                (stderr or b"").decode("utf-8", errors="replace").strip(),
                MAX_STDERR_CHARS
            )
            raise TranscodeError(
                f"ffmpeg conversion failed (code {process.returncode}): "
                f"{error_text or 'no output'}",
                details={"input_path": str(input_path), "returncode": process.returncode}
            )


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")
