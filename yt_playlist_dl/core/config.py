"""
Configuration management for yt-playlist-downloader.

Configuration is assembled from, in order of precedence:
    1. Command-line options (applied by the CLI on top of the loaded Config)
    2. Environment variables (a .env file in the working directory is loaded
       first with python-dotenv)
    3. A YAML file: the --config path, else config.yaml in the current
       working directory when it exists
    4. Built-in defaults

Unlike credentials-based tools, every value has a default, so running
without any configuration file is the normal case.

Example config.yaml:
    download:
      concurrency: 5
      max_attempts: 4
      fetch_timeout: 600
      cookies_file: null

    network:
      probe_url: "https://clients3.google.com/generate_204"
      probe_timeout: 3
      reconnect_delay: 5

    output:
      directory: "~/Music/playlists"
      temp_directory: "./.temp"
      create_zip: true
      add_metadata: true

    logging:
      level: INFO
      file: null

Environment Overrides:
    YTPL_OUTPUT_DIR, YTPL_TEMP_DIR, YTPL_CONCURRENCY,
    YTPL_COOKIES_FILE, YTPL_LOG_LEVEL
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from yt_playlist_dl.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"

DEFAULT_PROBE_URL = "https://clients3.google.com/generate_204"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "YTPL_OUTPUT_DIR": ("output", "directory"),
    "YTPL_TEMP_DIR": ("output", "temp_directory"),
    "YTPL_CONCURRENCY": ("download", "concurrency"),
    "YTPL_COOKIES_FILE": ("download", "cookies_file"),
    "YTPL_LOG_LEVEL": ("logging", "level"),
}


@dataclass(frozen=True)
class DownloadConfig:
    """
    Download pipeline configuration.

    Attributes:
        concurrency: Maximum number of items processed at once. Default: 5.
        max_attempts: Total fetch attempts per item for network failures.
                      Default: 4.
        bitrate_kbps: MP3 bitrate. Default: 320.
        fetch_timeout: Seconds before a single yt-dlp invocation is killed.
                       Default: 600.
        transcode_timeout: Seconds before ffmpeg is killed. Default: 600.
        cookies_file: Optional Netscape cookies file passed to yt-dlp.
        ffmpeg_binary: ffmpeg executable name or path. Default: "ffmpeg".
    """
    concurrency: int = 5
    max_attempts: int = 4
    bitrate_kbps: int = 320
    fetch_timeout: float = 600.0
    transcode_timeout: float = 600.0
    cookies_file: Path | None = None
    ffmpeg_binary: str = "ffmpeg"


@dataclass(frozen=True)
class NetworkConfig:
    """
    Connectivity probing and HTTP configuration.

    Attributes:
        probe_url: Endpoint hit by the connectivity monitor.
        probe_timeout: Seconds before a probe counts as failed. Default: 3.
        reconnect_delay: Seconds between probes while offline. Default: 5.
        request_timeout: Timeout for cover art downloads. Default: 30.
        user_agent: User-Agent header for cover art downloads.
    """
    probe_url: str = DEFAULT_PROBE_URL
    probe_timeout: float = 3.0
    reconnect_delay: float = 5.0
    request_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class OutputConfig:
    """
    Output locations and finalization behavior.

    Attributes:
        directory: Where the ZIP (or the playlist folder) is written.
        temp_directory: Parent of the per-run staging directory.
        create_zip: Pack results into a ZIP. When False, files are moved
                    into directory/<playlist name>.
        add_metadata: Write ID3 title, artist and cover tags.
    """
    directory: Path
    temp_directory: Path
    create_zip: bool = True
    add_metadata: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        level: Console log level name. Default: "INFO".
        file: Optional path of a full DEBUG log file.
    """
    level: str = "INFO"
    file: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration, created by load_config().

    Example:
        config = load_config()
        print(f"Saving to: {config.output.directory}")
        print(f"Using {config.download.concurrency} workers")
    """
    download: DownloadConfig
    network: NetworkConfig
    output: OutputConfig
    logging: LoggingConfig


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load configuration from YAML, environment variables and defaults.

    Args:
        config_path: Explicit YAML file. Must exist when given. When None,
                     config.yaml in the current working directory is used
                     if present.
        environ: Environment mapping. Defaults to os.environ after loading
                 a .env file with python-dotenv.

    Returns:
        Config: Frozen configuration object.

    Raises:
        ConfigError: If the file is missing (explicit path only), unreadable,
                     not valid YAML, or contains invalid values.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_yaml(config_path)
    else:
        default_path = Path.cwd() / CONFIG_FILENAME
        raw_config = _read_yaml(default_path) if default_path.exists() else {}

    _apply_env_overrides(raw_config, environ)

    for section in ("download", "network", "output", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    return Config(
        download=_parse_download_config(raw_config.get("download") or {}),
        network=_parse_network_config(raw_config.get("network") or {}),
        output=_parse_output_config(raw_config.get("output") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )
    return raw_config


def _apply_env_overrides(raw_config: dict[str, Any], environ: Mapping[str, str]) -> None:
    """Copy recognised environment variables into the raw configuration."""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        target = raw_config.get(section)
        if not isinstance(target, dict):
            target = {}
            raw_config[section] = target
        target[key] = value


def _parse_int(section: dict[str, Any], key: str, default: int, field_name: str) -> int:
    """
    Read a positive integer, accepting numeric strings from the environment.

    Raises:
        ConfigError: If the value is not an integer >= 1.
    """
    raw = section.get(key)
    if raw is None:
        return default
    if isinstance(raw, bool):
        raw = None
    elif isinstance(raw, str):
        try:
            raw = int(raw.strip())
        except ValueError:
            raw = None
    if not isinstance(raw, int) or raw < 1:
        raise ConfigError(
            f"'{field_name}' must be a positive integer",
            details={"field": field_name, "value": section.get(key)}
        )
    return raw


def _parse_seconds(section: dict[str, Any], key: str, default: float, field_name: str) -> float:
    raw = section.get(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = -1.0
    if isinstance(raw, bool) or value <= 0:
        raise ConfigError(
            f"'{field_name}' must be a positive number of seconds",
            details={"field": field_name, "value": raw}
        )
    return value


def _parse_bool(section: dict[str, Any], key: str, default: bool, field_name: str) -> bool:
    raw = section.get(key)
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ConfigError(
            f"'{field_name}' must be true or false",
            details={"field": field_name, "value": raw}
        )
    return raw


def _parse_path(section: dict[str, Any], key: str, field_name: str) -> Path | None:
    raw = section.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string path or null",
            details={"field": field_name}
        )
    return Path(raw.strip()).expanduser().resolve()


def _parse_download_config(section: dict[str, Any]) -> DownloadConfig:
    """
    Parse the download section.

    Raises:
        ConfigError: For non-positive numbers or a cookies file that does
                     not exist.
    """
    cookies_file = _parse_path(section, "cookies_file", "download.cookies_file")
    if cookies_file is not None and not cookies_file.exists():
        raise ConfigError(
            f"Cookies file not found: {cookies_file}",
            details={"field": "download.cookies_file", "path": str(cookies_file)}
        )

    ffmpeg_binary = section.get("ffmpeg_binary", "ffmpeg")
    if not isinstance(ffmpeg_binary, str) or not ffmpeg_binary.strip():
        raise ConfigError(
            "'download.ffmpeg_binary' must be a non-empty string",
            details={"field": "download.ffmpeg_binary"}
        )

    return DownloadConfig(
        concurrency=_parse_int(section, "concurrency", 5, "download.concurrency"),
        max_attempts=_parse_int(section, "max_attempts", 4, "download.max_attempts"),
        bitrate_kbps=_parse_int(section, "bitrate_kbps", 320, "download.bitrate_kbps"),
        fetch_timeout=_parse_seconds(section, "fetch_timeout", 600.0, "download.fetch_timeout"),
        transcode_timeout=_parse_seconds(
            section, "transcode_timeout", 600.0, "download.transcode_timeout"
        ),
        cookies_file=cookies_file,
        ffmpeg_binary=ffmpeg_binary.strip(),
    )


def _parse_network_config(section: dict[str, Any]) -> NetworkConfig:
    probe_url = section.get("probe_url", DEFAULT_PROBE_URL)
    if not isinstance(probe_url, str) or not probe_url.startswith(("http://", "https://")):
        raise ConfigError(
            "'network.probe_url' must be an http(s) URL",
            details={"field": "network.probe_url", "value": probe_url}
        )

    user_agent = section.get("user_agent", DEFAULT_USER_AGENT)
    if not isinstance(user_agent, str):
        raise ConfigError(
            "'network.user_agent' must be a string",
            details={"field": "network.user_agent"}
        )

    return NetworkConfig(
        probe_url=probe_url,
        probe_timeout=_parse_seconds(section, "probe_timeout", 3.0, "network.probe_timeout"),
        reconnect_delay=_parse_seconds(section, "reconnect_delay", 5.0, "network.reconnect_delay"),
        request_timeout=_parse_seconds(section, "request_timeout", 30.0, "network.request_timeout"),
        user_agent=user_agent,
    )


def _parse_output_config(section: dict[str, Any]) -> OutputConfig:
    """
    Parse the output section.

    Expands ~ and makes paths absolute. Does NOT create the directories
    (that happens when the run starts).
    """
    directory = _parse_path(section, "directory", "output.directory")
    temp_directory = _parse_path(section, "temp_directory", "output.temp_directory")

    return OutputConfig(
        directory=directory or Path.cwd() / "downloads",
        temp_directory=temp_directory or Path.cwd() / ".temp",
        create_zip=_parse_bool(section, "create_zip", True, "output.create_zip"),
        add_metadata=_parse_bool(section, "add_metadata", True, "output.add_metadata"),
    )


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    level = section.get("level", "INFO")
    if not isinstance(level, str) or level.strip().upper() not in LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    return LoggingConfig(
        level=level.strip().upper(),
        file=_parse_path(section, "file", "logging.file"),
    )
