"""Test configuration and fixtures"""

import tempfile
import threading
from pathlib import Path

import pytest

from yt_playlist_dl.core.exceptions import FetchError, TranscodeError
from yt_playlist_dl.core.models import Item
from yt_playlist_dl.download.fetcher import Fetcher
from yt_playlist_dl.download.transcoder import Transcoder


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_items():
    """Three distinct items"""
    return [
        Item(id="vid00000001", title="First Song", artist="Artist A", duration=200),
        Item(id="vid00000002", title="Second Song", artist="Artist B", duration=180),
        Item(id="vid00000003", title="Third Song", artist="Artist C", duration=240),
    ]


@pytest.fixture
def rich_playlist_document():
    """Single-document playlist as returned by `yt-dlp -J`"""
    return {
        "id": "PLtest123",
        "title": "Road Trip",
        "uploader": "DJ Someone",
        "entries": [
            {
                "id": "vid00000001",
                "title": "First Song",
                "artist": "Artist A",
                "duration": 200,
                "thumbnails": [
                    {"url": "https://i.ytimg.com/vi/vid00000001/default.jpg"},
                    {"url": "https://i.ytimg.com/vi/vid00000001/maxresdefault.jpg"},
                ],
            },
            {
                "id": "vid00000002",
                "title": "Second Song",
                "channel": "Channel B",
                "duration_seconds": 180,
                "thumbnail": "https://i.ytimg.com/vi/vid00000002/hq.jpg",
            },
            None,
        ],
    }


@pytest.fixture
def flat_playlist_lines():
    """Newline-delimited playlist as returned by `--dump-json --flat-playlist`"""
    return "\n".join([
        "[youtube:tab] Downloading playlist",
        '{"id": "vid00000001", "title": "First Song", "uploader": "Uploader A", '
        '"duration": 200, "playlist": "Flat Mix", "playlist_uploader": "Someone"}',
        "not json at all",
        '{"id": "vid00000002", "title": "Second Song", "duration": 180, "playlist": "Flat Mix"}',
    ])


class NoWaitMonitor:
    """Connectivity monitor that is always online and counts calls"""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def await_connectivity(self):
        with self._lock:
            self.calls += 1


class ScriptedFetcher(Fetcher):
    """
    Fetcher replaying a per-item script of outcomes.

    Each script entry is either None (success: writes the output file) or an
    error text (raises FetchError with that raw text).
    """

    def __init__(self, scripts=None, default=None, delay=0.0):
        self.scripts = {key: list(value) for key, value in (scripts or {}).items()}
        self.default = default
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def fetch(self, item_id, output_path, cookies_file=None):
        with self._lock:
            self.calls.append(item_id)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            script = self.scripts.get(item_id)
            outcome = script.pop(0) if script else self.default
        try:
            if self.delay:
                threading.Event().wait(self.delay)
            if outcome is not None:
                output_path.write_bytes(b"partial")
                raise FetchError(outcome.splitlines()[-1], raw_error=outcome)
            output_path.write_bytes(b"webm-audio")
            return output_path
        finally:
            with self._lock:
                self.active -= 1


class CopyTranscoder(Transcoder):
    """Transcoder that writes a marker file instead of running ffmpeg"""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []
        self._lock = threading.Lock()

    def transcode(self, input_path, output_path, bitrate_kbps=320):
        with self._lock:
            self.calls.append(input_path.name)
        data = input_path.read_bytes()
        input_path.unlink()
        if input_path.stem in self.fail_for:
            raise TranscodeError("ffmpeg conversion failed (code 1): Invalid data found")
        output_path.write_bytes(b"mp3:" + data)
        return output_path


@pytest.fixture
def monitor():
    return NoWaitMonitor()


@pytest.fixture
def make_fetcher():
    """Factory for ScriptedFetcher(scripts=..., default=..., delay=...)"""
    return ScriptedFetcher


@pytest.fixture
def make_transcoder():
    """Factory for CopyTranscoder(fail_for=...)"""
    return CopyTranscoder
