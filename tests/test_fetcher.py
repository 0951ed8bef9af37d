# tests/test_fetcher.py
"""Test the yt-dlp fetcher"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from yt_playlist_dl.core.exceptions import FetchError
from yt_playlist_dl.download.fetcher import YtDlpFetcher


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestYtDlpFetcher:
    """Test YtDlpFetcher"""

    def test_build_args(self):
        fetcher = YtDlpFetcher(command=["yt-dlp"])

        args = fetcher.build_args("abc123", Path("/tmp/A - B.webm"), Path("/tmp/cookies.txt"))

        assert args[0] == "yt-dlp"
        assert args[args.index("-f") + 1] == "bestaudio[ext=webm]/bestaudio"
        assert args[args.index("-o") + 1] == "/tmp/A - B.webm"
        assert args[args.index("--cookies") + 1] == "/tmp/cookies.txt"
        assert args[-1] == "https://www.youtube.com/watch?v=abc123"

    def test_build_args_without_cookies(self):
        args = YtDlpFetcher(command=["yt-dlp"]).build_args("abc123", Path("out.webm"))

        assert "--cookies" not in args

    def test_fetch_success(self, temp_dir):
        output = temp_dir / "song.webm"

        def fake_run(args, **kwargs):
            output.write_bytes(b"audio")
            return completed()

        with patch("yt_playlist_dl.download.fetcher.subprocess.run", side_effect=fake_run) as run:
            result = YtDlpFetcher(timeout=42).fetch("abc123", output)

        assert result == output
        assert run.call_args.kwargs["timeout"] == 42
        assert run.call_args.kwargs["capture_output"] is True

    def test_fetch_nonzero_exit_keeps_raw_stderr(self, temp_dir):
        stderr = (
            "[youtube] abc123: Downloading webpage\n"
            "ERROR: [youtube] abc123: Unable to download webpage: "
            "<urlopen error [Errno -3] Temporary failure in name resolution>\n"
        )

        with patch(
            "yt_playlist_dl.download.fetcher.subprocess.run",
            return_value=completed(returncode=1, stderr=stderr)
        ):
            with pytest.raises(FetchError) as exc_info:
                YtDlpFetcher().fetch("abc123", temp_dir / "song.webm")

        assert exc_info.value.message.startswith("ERROR: [youtube] abc123")
        assert "Temporary failure in name resolution" in exc_info.value.raw_error
        assert exc_info.value.details["returncode"] == 1

    def test_fetch_timeout_is_marked(self, temp_dir):
        with patch(
            "yt_playlist_dl.download.fetcher.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="yt-dlp", timeout=5)
        ):
            with pytest.raises(FetchError) as exc_info:
                YtDlpFetcher(timeout=5).fetch("abc123", temp_dir / "song.webm")

        assert "ETIMEDOUT" in exc_info.value.raw_error

    def test_fetch_missing_executable(self, temp_dir):
        with patch(
            "yt_playlist_dl.download.fetcher.subprocess.run",
            side_effect=FileNotFoundError("yt-dlp")
        ):
            with pytest.raises(FetchError, match="Could not start yt-dlp"):
                YtDlpFetcher().fetch("abc123", temp_dir / "song.webm")

    def test_fetch_no_output_file(self, temp_dir):
        with patch("yt_playlist_dl.download.fetcher.subprocess.run", return_value=completed()):
            with pytest.raises(FetchError, match="no audio file"):
                YtDlpFetcher().fetch("abc123", temp_dir / "song.webm")
