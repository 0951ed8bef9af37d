"""
Command-line interface for yt-playlist-downloader.

Usage:
    yt-playlist-dl URL [OPTIONS]

    # Download a YouTube Music album into ./downloads/<name>.zip
    yt-playlist-dl "https://music.youtube.com/playlist?list=OLAK5uy_..."

    # 8 parallel downloads, plain folder instead of a ZIP
    yt-playlist-dl URL -c 8 --no-zip -o ~/Music

    # Private playlist
    yt-playlist-dl URL --cookies cookies.txt

Workflow:
    1. Validate the URL and extract the playlist id
    2. Fetch the playlist metadata
    3. Download and convert every item (bounded concurrency, network retry)
    4. Report failed items
    5. Tag successful files (unless --no-metadata)
    6. Pack them into a ZIP (or move them to <output>/<playlist name>)

Exit Codes:
    0   At least one item was downloaded
    1   No item downloaded, or a fatal error before downloading
    130 Interrupted by user
"""

import sys
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import click

from yt_playlist_dl import __version__
from yt_playlist_dl.core import (
    Batch,
    BatchResult,
    Config,
    ConfigError,
    DownloaderError,
    PlaylistPrivateError,
    SourceError,
    StagingError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from yt_playlist_dl.core.progress import BatchProgressBar
from yt_playlist_dl.download import (
    ConnectivityMonitor,
    FfmpegTranscoder,
    Tagger,
    YtDlpFetcher,
    archive_name,
    create_zip,
    move_to_directory,
    remove_directory,
    run_batch,
)
from yt_playlist_dl.utils import (
    ensure_directory,
    format_duration,
    format_file_size,
    sanitize_filename,
)
from yt_playlist_dl.youtube import fetch_playlist, validate_and_extract_id

logger = get_logger(__name__)


EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("url")
@click.option(
    "-o", "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: ./downloads)"
)
@click.option(
    "--temp-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Temporary directory for downloads (default: ./.temp)"
)
@click.option(
    "-c", "--concurrency",
    type=int,
    default=None,
    help="Number of concurrent downloads (default: 5)"
)
@click.option(
    "--cookies",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a cookies.txt file for private playlists"
)
@click.option("--no-zip", is_flag=True, help="Keep files in a folder instead of creating a ZIP")
@click.option("--no-metadata", is_flag=True, help="Do not write ID3 tags and cover art")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a config.yaml file (default: ./config.yaml if present)"
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="yt-playlist-dl")
def cli(
    url: str,
    output: Path | None,
    temp_dir: Path | None,
    concurrency: int | None,
    cookies: Path | None,
    no_zip: bool,
    no_metadata: bool,
    config_path: Path | None,
    verbose: bool
) -> None:
    """
    Download every item of a YouTube / YouTube Music playlist as 320 kbps MP3.

    URL is a playlist or album link (youtube.com/playlist?list=...,
    music.youtube.com/playlist?list=..., or a watch link with a list=
    parameter).
    """
    options = {
        "url": url,
        "output": output,
        "temp_dir": temp_dir,
        "concurrency": concurrency,
        "cookies": cookies,
        "no_zip": no_zip,
        "no_metadata": no_metadata,
        "config_path": config_path,
        "verbose": verbose,
    }
    sys.exit(_run_download(options))


def _run_download(options: dict) -> int:
    """
    Execute the whole workflow and return the process exit code.

    Args:
        options: Dictionary of CLI options.

    Returns:
        EXIT_SUCCESS if at least one item was downloaded, EXIT_FAILURE
        otherwise, EXIT_INTERRUPTED on Ctrl-C.
    """
    try:
        config = _build_config(options)

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        setup_logging(
            level="DEBUG" if options["verbose"] else config.logging.level,
            log_file=config.logging.file,
            failures_file=config.output.directory / "logs" / f"download_failures_{timestamp}.log"
        )

        playlist_id = validate_and_extract_id(options["url"])

        logger.info("Fetching playlist information...")
        batch = fetch_playlist(playlist_id, cookies_file=config.download.cookies_file)
        total_duration = sum(item.duration for item in batch.items)
        logger.info(
            f"Found playlist: {batch.name} "
            f"({batch.total_count} items, {format_duration(total_duration)})"
        )

        staging_dir = _create_staging_dir(config.output.temp_directory)
        batch_result = _download_batch(batch, config, staging_dir)

        _report_failures(batch_result)

        if not batch_result.successful:
            logger.error("No items were downloaded")
            remove_directory(staging_dir)
            return EXIT_FAILURE

        if config.output.add_metadata:
            _tag_files(batch_result, config)

        _finalize(batch, staging_dir, config)
        _print_summary(batch_result)

        return EXIT_SUCCESS

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        return EXIT_FAILURE

    except ValidationError as e:
        click.echo(f"Error: {e.message}", err=True)
        return EXIT_FAILURE

    except SourceError as e:
        click.echo(f"Playlist error: {e.message}", err=True)
        if isinstance(e, PlaylistPrivateError):
            click.echo("Export your browser cookies and pass them with --cookies", err=True)
        logger.debug(f"Playlist error details: {e.details}")
        return EXIT_FAILURE

    except StagingError as e:
        click.echo(f"Filesystem error: {e.message}", err=True)
        return EXIT_FAILURE

    except DownloaderError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.debug(f"Error: {e.message}", exc_info=True)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        return EXIT_FAILURE

    finally:
        shutdown_logging()


def _build_config(options: dict) -> Config:
    """Load the configuration and apply command-line overrides on top."""
    config = load_config(options["config_path"])

    output = config.output
    if options["output"] is not None:
        output = replace(output, directory=options["output"].expanduser().resolve())
    if options["temp_dir"] is not None:
        output = replace(output, temp_directory=options["temp_dir"].expanduser().resolve())
    if options["no_zip"]:
        output = replace(output, create_zip=False)
    if options["no_metadata"]:
        output = replace(output, add_metadata=False)

    download = config.download
    if options["concurrency"] is not None:
        if options["concurrency"] < 1:
            raise ValidationError(
                f"Concurrency must be a positive integer, got {options['concurrency']!r}",
                details={"concurrency": options["concurrency"]}
            )
        download = replace(download, concurrency=options["concurrency"])
    if options["cookies"] is not None:
        download = replace(download, cookies_file=options["cookies"].expanduser().resolve())

    return replace(config, output=output, download=download)


def _create_staging_dir(temp_root: Path) -> Path:
    """
    Create a unique per-run staging directory under temp_root.

    Raises:
        StagingError: If the directory cannot be created.
    """
    staging_dir = temp_root / str(int(time.time() * 1000))
    try:
        return ensure_directory(staging_dir)
    except OSError as e:
        raise StagingError(
            f"Cannot create temporary directory {staging_dir}: {e}",
            details={"staging_dir": str(staging_dir), "original_error": str(e)}
        ) from e


def _download_batch(batch: Batch, config: Config, staging_dir: Path) -> BatchResult:
    download = config.download
    network = config.network

    monitor = ConnectivityMonitor(
        probe_url=network.probe_url,
        probe_timeout=network.probe_timeout,
        reconnect_delay=network.reconnect_delay
    )

    logger.info(
        f"Downloading {batch.total_count} items "
        f"({download.concurrency} at a time, {download.bitrate_kbps} kbps MP3)"
    )

    try:
        with BatchProgressBar(total=batch.total_count) as progress:
            results = run_batch(
                batch.items,
                concurrency=download.concurrency,
                staging_dir=staging_dir,
                fetcher=YtDlpFetcher(timeout=download.fetch_timeout),
                transcoder=FfmpegTranscoder(
                    ffmpeg_binary=download.ffmpeg_binary,
                    timeout=download.transcode_timeout
                ),
                monitor=monitor,
                max_attempts=download.max_attempts,
                bitrate_kbps=download.bitrate_kbps,
                cookies_file=download.cookies_file,
                on_progress=progress
            )
    finally:
        monitor.close()

    return BatchResult(batch=batch, results=results)


def _report_failures(batch_result: BatchResult) -> None:
    failed = batch_result.failed
    if not failed:
        return

    logger.warning(f"{len(failed)} item(s) failed to download:")
    for result in failed:
        logger.warning(f"  - {result.item.display_name}: {result.error}")


def _tag_files(batch_result: BatchResult, config: Config) -> None:
    logger.info("Adding metadata...")
    tagger = Tagger(
        request_timeout=config.network.request_timeout,
        user_agent=config.network.user_agent
    )
    try:
        tagged = tagger.tag_files(batch_result.successful)
    finally:
        tagger.close()

    if tagged < len(batch_result.successful):
        logger.warning(f"Tagged {tagged}/{len(batch_result.successful)} files")
    else:
        logger.info(f"Tagged {tagged} files")


def _finalize(batch: Batch, staging_dir: Path, config: Config) -> None:
    """Pack the staging directory into a ZIP, or move it to its final folder."""
    output_dir = config.output.directory

    if config.output.create_zip:
        logger.info("Creating ZIP archive...")
        archive = create_zip(staging_dir, output_dir, archive_name(batch.name, batch.uploader))
        remove_directory(staging_dir)
        logger.info(
            f"ZIP created: {archive.zip_path} "
            f"({archive.file_count} files, {format_file_size(archive.total_size)})"
        )
    else:
        dest_dir = output_dir / (sanitize_filename(batch.name) or "playlist")
        moved = move_to_directory(staging_dir, dest_dir)
        logger.info(f"Saved {len(moved)} files to {dest_dir}")


def _print_summary(batch_result: BatchResult) -> None:
    total = len(batch_result.results)
    succeeded = len(batch_result.successful)

    logger.info("=" * 50)
    logger.info(f"Playlist:    {batch_result.batch.name}")
    logger.info(f"Downloaded:  {succeeded}/{total} ({batch_result.success_rate:.0f}%)")
    logger.info(f"Failed:      {total - succeeded}")
    logger.info("=" * 50)


def main() -> None:
    """Entry point for the `yt-playlist-dl` console script."""
    cli()


if __name__ == "__main__":
    main()
