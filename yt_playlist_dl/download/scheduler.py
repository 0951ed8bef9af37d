"""
Bounded scheduler: runs job pipelines concurrently across a batch.

At most `concurrency` items are in flight at any time. Items are admitted
in batch order as worker slots free up; results come back in batch order
regardless of the order in which jobs finish. Individual job failures
never abort the batch.

Usage:
    results = run_batch(
        items,
        concurrency=5,
        staging_dir=Path(".temp/1700000000"),
        on_progress=progress_bar
    )
    ok = [r for r in results if r.success]
"""

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Sequence

from yt_playlist_dl.core.exceptions import EmptyBatchError, StagingError, ValidationError
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.core.models import Item, ItemResult
from yt_playlist_dl.download.connectivity import ConnectivityMonitor
from yt_playlist_dl.download.fetcher import Fetcher, YtDlpFetcher
from yt_playlist_dl.download.pipeline import (
    DEFAULT_MAX_ATTEMPTS,
    JobPipeline,
    ProgressCallback,
)
from yt_playlist_dl.download.transcoder import (
    DEFAULT_BITRATE_KBPS,
    FfmpegTranscoder,
    Transcoder,
)
from yt_playlist_dl.utils import ensure_directory

logger = get_logger(__name__)


DEFAULT_CONCURRENCY = 5


def assign_output_stems(items: Sequence[Item]) -> list[str]:
    """
    Compute a unique output file stem for every item of a batch.

    The stem is the sanitized "Artist - Title". When two items sanitize to
    the same stem, every occurrence after the first gets " [item id]"
    appended, so no job overwrites another job's file.

    Args:
        items: Items in batch order.

    Returns:
        Stems in the same order as items.
    """
    stems: list[str] = []
    seen: set[str] = set()

    for item in items:
        stem = item.filename_stem or item.id
        if stem.lower() in seen:
            unique = f"{stem} [{item.id}]"
            logger.warning(
                f"Duplicate file name '{stem}' in batch, saving item {item.id} as '{unique}'"
            )
            stem = unique
        seen.add(stem.lower())
        stems.append(stem)

    return stems


def run_batch(
    items: Sequence[Item],
    concurrency: int = DEFAULT_CONCURRENCY,
    staging_dir: Path | None = None,
    fetcher: Fetcher | None = None,
    transcoder: Transcoder | None = None,
    monitor: ConnectivityMonitor | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    bitrate_kbps: int = DEFAULT_BITRATE_KBPS,
    cookies_file: Path | None = None,
    on_progress: ProgressCallback | None = None
) -> list[ItemResult]:
    """
    Run every item through a job pipeline with bounded concurrency.

    Args:
        items: Items in batch order.
        concurrency: Maximum number of jobs in flight (>= 1).
        staging_dir: Directory for temp and output files. Defaults to
                     ./.temp in the current working directory.
        fetcher: Fetcher implementation. Defaults to YtDlpFetcher.
        transcoder: Transcoder implementation. Defaults to FfmpegTranscoder.
        monitor: Connectivity monitor shared by all jobs.
        max_attempts: Total fetch attempts per item for network failures.
        bitrate_kbps: MP3 bitrate.
        cookies_file: Optional cookies file passed to every fetch.
        on_progress: Observer receiving every ProgressEvent.

    Returns:
        One ItemResult per item, in batch order.

    Raises:
        ValidationError: If concurrency < 1.
        EmptyBatchError: If items is empty.
        StagingError: If the staging directory cannot be created.
        These are raised before any job starts.
    """
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValidationError(
            f"Concurrency must be a positive integer, got {concurrency!r}",
            details={"concurrency": concurrency}
        )

    if not items:
        raise EmptyBatchError("Nothing to download: the batch contains no items")

    if staging_dir is None:
        staging_dir = Path.cwd() / ".temp"
    try:
        ensure_directory(staging_dir)
    except OSError as e:
        raise StagingError(
            f"Cannot create staging directory {staging_dir}: {e}",
            details={"staging_dir": str(staging_dir), "original_error": str(e)}
        ) from e

    pipeline = JobPipeline(
        fetcher=fetcher or YtDlpFetcher(),
        transcoder=transcoder or FfmpegTranscoder(),
        monitor=monitor or ConnectivityMonitor(),
        staging_dir=staging_dir,
        max_attempts=max_attempts,
        bitrate_kbps=bitrate_kbps,
        cookies_file=cookies_file,
        on_progress=on_progress
    )

    stems = assign_output_stems(items)
    total = len(items)
    results: list[ItemResult | None] = [None] * total
    succeeded = 0

    logger.info(f"Starting download of {total} items with {concurrency} workers")

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="job") as executor:
        # Submission order is batch order; the executor queue admits items FIFO
        future_to_index: dict[Future, int] = {
            executor.submit(pipeline.run, item, stem): index
            for index, (item, stem) in enumerate(zip(items, stems))
        }

        for done, future in enumerate(as_completed(future_to_index), start=1):
            index = future_to_index[future]
            item = items[index]

            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Unexpected error downloading {item.display_name}: {e}")
                result = ItemResult(item=item, success=False, error=f"Unexpected error: {e}")

            results[index] = result
            if result.success:
                succeeded += 1
            logger.debug(
                f"Progress: {done}/{total} (ok: {succeeded}, failed: {done - succeeded})"
            )

    logger.info(
        f"Download complete: {succeeded}/{total} successful, {total - succeeded} failed"
    )

    return [result for result in results if result is not None]
