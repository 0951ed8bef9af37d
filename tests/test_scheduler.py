# tests/test_scheduler.py
"""Test the bounded batch scheduler"""

import pytest

from yt_playlist_dl.core.exceptions import EmptyBatchError, StagingError, ValidationError
from yt_playlist_dl.core.models import Item, JobPhase
from yt_playlist_dl.download.scheduler import assign_output_stems, run_batch


NETWORK_ERROR = "ERROR: Unable to download webpage: [Errno 104] Connection reset by peer"
UNAVAILABLE = "ERROR: [youtube] x: Video unavailable"
FETCH_TIMEOUT = "ETIMEDOUT: yt-dlp timed out after 600s"


def make_items(count):
    return [
        Item(id=f"vid{index:08d}", title=f"Song {index}", artist="Artist")
        for index in range(count)
    ]


class TestRunBatch:
    """Test run_batch()"""

    def test_one_result_per_item_in_batch_order(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(12)
        fetcher = make_fetcher(scripts={items[3].id: [UNAVAILABLE]}, delay=0.01)

        results = run_batch(
            items,
            concurrency=4,
            staging_dir=temp_dir,
            fetcher=fetcher,
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert len(results) == len(items)
        assert [r.item.id for r in results] == [item.id for item in items]
        assert [r.success for r in results].count(False) == 1
        assert results[3].success is False

    def test_concurrency_bound(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(10)
        fetcher = make_fetcher(delay=0.05)

        run_batch(
            items,
            concurrency=3,
            staging_dir=temp_dir,
            fetcher=fetcher,
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert fetcher.max_active <= 3
        assert len(fetcher.calls) == 10

    def test_concurrency_one_runs_sequentially(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(4)
        fetcher = make_fetcher(delay=0.01)

        run_batch(
            items,
            concurrency=1,
            staging_dir=temp_dir,
            fetcher=fetcher,
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert fetcher.max_active == 1
        assert fetcher.calls == [item.id for item in items]

    def test_mixed_outcomes(self, temp_dir, make_fetcher, make_transcoder, monitor):
        # 3 items: one recovers after a network error, one is unavailable
        items = make_items(3)
        fetcher = make_fetcher(scripts={
            items[0].id: [NETWORK_ERROR, None],
            items[2].id: [UNAVAILABLE],
        })
        events = []

        results = run_batch(
            items,
            concurrency=2,
            staging_dir=temp_dir,
            fetcher=fetcher,
            transcoder=make_transcoder(),
            monitor=monitor,
            on_progress=events.append
        )

        assert [r.success for r in results] == [True, True, False]
        assert [r.attempts for r in results] == [2, 1, 1]
        assert results[2].error == UNAVAILABLE
        terminal = [e for e in events if e.phase.is_terminal]
        assert len(terminal) == 3
        assert sum(e.phase is JobPhase.COMPLETED for e in terminal) == 2

    def test_item_recovers_after_two_timeouts(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(3)
        fetcher = make_fetcher(scripts={items[1].id: [FETCH_TIMEOUT, FETCH_TIMEOUT, None]})

        results = run_batch(
            items,
            concurrency=2,
            staging_dir=temp_dir,
            fetcher=fetcher,
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert [(r.success, r.attempts) for r in results] == [(True, 1), (True, 3), (True, 1)]
        assert fetcher.calls.count(items[1].id) == 3
        assert monitor.calls == 5

    def test_transcode_failure_is_isolated(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(2)
        transcoder = make_transcoder(fail_for={items[0].filename_stem})

        results = run_batch(
            items,
            concurrency=2,
            staging_dir=temp_dir,
            fetcher=make_fetcher(),
            transcoder=transcoder,
            monitor=monitor
        )

        assert [(r.item.id, r.success) for r in results] == [(items[0].id, False), (items[1].id, True)]
        assert results[0].attempts == 1
        assert "ffmpeg conversion failed" in results[0].error
        assert not (temp_dir / f"{items[0].filename_stem}.mp3").exists()
        assert (temp_dir / f"{items[1].filename_stem}.mp3").exists()

    def test_all_items_fail(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(3)

        results = run_batch(
            items,
            concurrency=5,
            staging_dir=temp_dir,
            fetcher=make_fetcher(default=UNAVAILABLE),
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert len(results) == 3
        assert not any(r.success for r in results)

    def test_rerun_overwrites_output(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = make_items(2)
        existing = temp_dir / f"{items[0].filename_stem}.mp3"
        existing.write_bytes(b"stale")

        results = run_batch(
            items,
            concurrency=2,
            staging_dir=temp_dir,
            fetcher=make_fetcher(),
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert results[0].file_path == existing
        assert existing.read_bytes() == b"mp3:webm-audio"
        assert sorted(p.name for p in temp_dir.iterdir()) == [
            "Artist - Song 0.mp3",
            "Artist - Song 1.mp3",
        ]

    def test_empty_batch(self, temp_dir, make_fetcher, make_transcoder, monitor):
        fetcher = make_fetcher()

        with pytest.raises(EmptyBatchError):
            run_batch(
                [],
                concurrency=2,
                staging_dir=temp_dir,
                fetcher=fetcher,
                transcoder=make_transcoder(),
                monitor=monitor
            )

        assert fetcher.calls == []

    @pytest.mark.parametrize("concurrency", [0, -1])
    def test_invalid_concurrency(self, temp_dir, make_fetcher, make_transcoder, monitor, concurrency):
        with pytest.raises(ValidationError):
            run_batch(
                make_items(1),
                concurrency=concurrency,
                staging_dir=temp_dir,
                fetcher=make_fetcher(),
                transcoder=make_transcoder(),
                monitor=monitor
            )

    def test_staging_dir_not_creatable(self, temp_dir, make_fetcher, make_transcoder, monitor):
        blocker = temp_dir / "file"
        blocker.write_text("not a directory")
        fetcher = make_fetcher()

        with pytest.raises(StagingError):
            run_batch(
                make_items(1),
                concurrency=1,
                staging_dir=blocker / "staging",
                fetcher=fetcher,
                transcoder=make_transcoder(),
                monitor=monitor
            )

        assert fetcher.calls == []


class TestAssignOutputStems:
    """Test file name collision handling"""

    def test_unique_names_unchanged(self, sample_items):
        assert assign_output_stems(sample_items) == [
            "Artist A - First Song",
            "Artist B - Second Song",
            "Artist C - Third Song",
        ]

    def test_collisions_get_item_id(self):
        items = [
            Item(id="aaa", title="Intro", artist="Band"),
            Item(id="bbb", title="Intro?", artist="Band"),
            Item(id="ccc", title="Intro", artist="Band"),
        ]

        assert assign_output_stems(items) == [
            "Band - Intro",
            "Band - Intro [bbb]",
            "Band - Intro [ccc]",
        ]

    def test_colliding_items_both_downloaded(self, temp_dir, make_fetcher, make_transcoder, monitor):
        items = [
            Item(id="aaa", title="Intro", artist="Band"),
            Item(id="bbb", title="Intro", artist="Band"),
        ]

        results = run_batch(
            items,
            concurrency=2,
            staging_dir=temp_dir,
            fetcher=make_fetcher(),
            transcoder=make_transcoder(),
            monitor=monitor
        )

        assert all(r.success for r in results)
        assert results[0].file_path != results[1].file_path
