# tests/test_pipeline.py
"""Test the per-item job pipeline"""

import pytest

from yt_playlist_dl.core.models import Item, JobPhase
from yt_playlist_dl.download.pipeline import JobPipeline, is_network_error


DNS_ERROR = (
    "ERROR: [youtube] vid00000001: Unable to download webpage: "
    "<urlopen error [Errno -3] Temporary failure in name resolution>"
)
UNAVAILABLE = "ERROR: [youtube] vid00000001: Video unavailable"


@pytest.fixture
def item():
    return Item(id="vid00000001", title="First Song", artist="Artist A")


def make_pipeline(temp_dir, fetcher, transcoder, monitor, events=None, **kwargs):
    return JobPipeline(
        fetcher=fetcher,
        transcoder=transcoder,
        monitor=monitor,
        staging_dir=temp_dir,
        on_progress=events.append if events is not None else None,
        **kwargs
    )


class TestIsNetworkError:
    """Test network error classification"""

    @pytest.mark.parametrize("text", [
        "getaddrinfo ENOTFOUND www.youtube.com",
        "Error: getaddrinfo EAI_AGAIN youtube.com",
        "read ECONNRESET",
        "connect ETIMEDOUT 142.250.0.1:443",
        "[Errno 101] Network is unreachable",
        "Temporary failure in name resolution",
        "Resolving timed out after 5000 milliseconds",
        "[Errno 104] Connection reset by peer",
        "The read operation timed out",
        "[Errno -2] Name or service not known",
    ])
    def test_network_errors(self, text):
        assert is_network_error(text) is True

    @pytest.mark.parametrize("text", [
        UNAVAILABLE,
        "ERROR: [youtube] abc: Private video. Sign in if you've been granted access",
        "ERROR: Requested format is not available",
        "",
    ])
    def test_other_errors(self, text):
        assert is_network_error(text) is False

    def test_case_insensitive(self):
        assert is_network_error("NETWORK IS UNREACHABLE") is True


class TestJobPipeline:
    """Test JobPipeline.run()"""

    def test_success(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        events = []
        fetcher = make_fetcher()
        pipeline = make_pipeline(temp_dir, fetcher, make_transcoder(), monitor, events)

        result = pipeline.run(item)

        assert result.success is True
        assert result.file_path == temp_dir / "Artist A - First Song.mp3"
        assert result.file_path.read_bytes() == b"mp3:webm-audio"
        assert result.attempts == 1
        assert not (temp_dir / "Artist A - First Song.webm").exists()
        assert monitor.calls == 1
        assert [(e.phase, e.progress) for e in events] == [
            (JobPhase.FETCHING, 0),
            (JobPhase.CONVERTING, 50),
            (JobPhase.COMPLETED, 100),
        ]

    def test_network_error_then_success(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        events = []
        fetcher = make_fetcher(scripts={item.id: [DNS_ERROR, None]})
        pipeline = make_pipeline(temp_dir, fetcher, make_transcoder(), monitor, events)

        result = pipeline.run(item)

        assert result.success is True
        assert result.attempts == 2
        assert fetcher.calls == [item.id, item.id]
        assert monitor.calls == 2
        assert [e.phase for e in events] == [
            JobPhase.FETCHING,
            JobPhase.FETCHING,
            JobPhase.CONVERTING,
            JobPhase.COMPLETED,
        ]

    def test_non_network_error_is_not_retried(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        events = []
        transcoder = make_transcoder()
        fetcher = make_fetcher(scripts={item.id: [UNAVAILABLE]})
        pipeline = make_pipeline(temp_dir, fetcher, transcoder, monitor, events)

        result = pipeline.run(item)

        assert result.success is False
        assert result.attempts == 1
        assert result.error == UNAVAILABLE
        assert transcoder.calls == []
        assert events[-1].phase is JobPhase.FAILED
        assert events[-1].error == UNAVAILABLE
        assert events[-1].progress == 0

    def test_retry_budget_exhausted(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        last_error = "ERROR: connect ETIMEDOUT (attempt 4)"
        fetcher = make_fetcher(scripts={item.id: [DNS_ERROR, DNS_ERROR, DNS_ERROR, last_error]})
        pipeline = make_pipeline(temp_dir, fetcher, make_transcoder(), monitor)

        result = pipeline.run(item)

        assert result.success is False
        assert result.attempts == 4
        assert len(fetcher.calls) == 4
        assert result.error == last_error
        # Partial downloads from every attempt are cleaned up
        assert list(temp_dir.iterdir()) == []

    def test_custom_attempt_budget(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        fetcher = make_fetcher(default=DNS_ERROR)
        pipeline = make_pipeline(temp_dir, fetcher, make_transcoder(), monitor, max_attempts=2)

        result = pipeline.run(item)

        assert result.attempts == 2
        assert monitor.calls == 2

    def test_transcode_failure_is_terminal(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        events = []
        fetcher = make_fetcher()
        transcoder = make_transcoder(fail_for={item.filename_stem})
        pipeline = make_pipeline(temp_dir, fetcher, transcoder, monitor, events)

        result = pipeline.run(item)

        assert result.success is False
        assert "Invalid data found" in result.error
        assert len(fetcher.calls) == 1
        assert len(transcoder.calls) == 1
        assert (events[-1].phase, events[-1].progress) == (JobPhase.FAILED, 50)

    def test_progress_is_non_decreasing(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        events = []
        fetcher = make_fetcher(scripts={item.id: [DNS_ERROR, None]})
        pipeline = make_pipeline(temp_dir, fetcher, make_transcoder(), monitor, events)

        pipeline.run(item)

        values = [e.progress for e in events]
        assert values == sorted(values)

    def test_observer_errors_are_ignored(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        def broken_observer(event):
            raise RuntimeError("display crashed")

        pipeline = JobPipeline(
            fetcher=make_fetcher(),
            transcoder=make_transcoder(),
            monitor=monitor,
            staging_dir=temp_dir,
            on_progress=broken_observer
        )

        assert pipeline.run(item).success is True

    def test_unexpected_exception_becomes_result(self, temp_dir, item, make_transcoder, monitor):
        class ExplodingFetcher:
            def fetch(self, item_id, output_path, cookies_file=None):
                raise KeyError("boom")

        pipeline = make_pipeline(temp_dir, ExplodingFetcher(), make_transcoder(), monitor)

        result = pipeline.run(item)

        assert result.success is False
        assert result.error.startswith("Unexpected error")

    def test_custom_output_stem(self, temp_dir, item, make_fetcher, make_transcoder, monitor):
        pipeline = make_pipeline(temp_dir, make_fetcher(), make_transcoder(), monitor)

        result = pipeline.run(item, output_stem="Artist A - First Song [vid00000001]")

        assert result.file_path.name == "Artist A - First Song [vid00000001].mp3"

    def test_cookies_forwarded(self, temp_dir, item, make_transcoder, monitor):
        seen = []

        class RecordingFetcher:
            def fetch(self, item_id, output_path, cookies_file=None):
                seen.append(cookies_file)
                output_path.write_bytes(b"x")
                return output_path

        cookies = temp_dir / "cookies.txt"
        pipeline = make_pipeline(
            temp_dir, RecordingFetcher(), make_transcoder(), monitor, cookies_file=cookies
        )

        pipeline.run(item)

        assert seen == [cookies]

    def test_failure_written_to_report(self, temp_dir, item, make_fetcher, make_transcoder, monitor, caplog):
        pipeline = make_pipeline(
            temp_dir, make_fetcher(default=UNAVAILABLE), make_transcoder(), monitor
        )

        pipeline.run(item)

        failure_records = [r for r in caplog.records if hasattr(r, "download_failed_item_id")]
        assert len(failure_records) == 1
        assert failure_records[0].download_failed_item_url == item.video_url
