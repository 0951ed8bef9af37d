"""
ID3 tagging for downloaded MP3 files.

Writes title (TIT2), artist (TPE1) and, when the item has a thumbnail URL,
a front cover (APIC). Tagging is best effort: a file that cannot be tagged
is still a valid download, so failures are logged and reported as False.

Cover Art Processing:
    - Downloaded with a shared requests.Session
    - Converted to RGB JPEG with Pillow (transparent and palette images
      included), downscaled to at most 1000x1000
    - If Pillow cannot decode the image, the raw bytes are embedded
"""

from io import BytesIO
from pathlib import Path
from typing import Iterable

import requests
from mutagen.id3 import APIC, TIT2, TPE1
from mutagen.mp3 import MP3
from PIL import Image

from yt_playlist_dl.core.config import DEFAULT_USER_AGENT
from yt_playlist_dl.core.exceptions import MetadataError
from yt_playlist_dl.core.logger import get_logger
from yt_playlist_dl.core.models import Item, ItemResult

logger = get_logger(__name__)


MAX_COVER_SIZE = 1000
COVER_JPEG_QUALITY = 90


class Tagger:
    """
    Embeds ID3 tags into MP3 files.

    Attributes:
        session: HTTP session used for cover downloads.
        request_timeout: Timeout in seconds for a cover download.

    Example:
        tagger = Tagger()
        if not tagger.tag(Path("song.mp3"), item):
            print("tags missing")
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        request_timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.request_timeout = request_timeout

    def tag(self, file_path: Path, item: Item) -> bool:
        """
        Write title, artist and cover tags to one file.

        Args:
            file_path: MP3 file to tag.
            item: Item providing the tag values.

        Returns:
            True on success, False if the file could not be tagged. Never
            raises.
        """
        try:
            self._write_tags(file_path, item)
            logger.debug(f"Tagged {file_path.name}")
            return True
        except Exception as e:
            logger.warning(f"Failed to tag {file_path.name}: {e}")
            return False

    def tag_files(self, results: Iterable[ItemResult]) -> int:
        """
        Tag every successful result whose file still exists.

        Returns:
            Number of files tagged.
        """
        tagged = 0
        for result in results:
            if not result.success or result.file_path is None:
                continue
            if not result.file_path.exists():
                logger.warning(f"Skipping tags, file is missing: {result.file_path}")
                continue
            if self.tag(result.file_path, result.item):
                tagged += 1
        return tagged

    def _write_tags(self, file_path: Path, item: Item) -> None:
        """
        Raises:
            MetadataError: If the file is missing or not a readable MP3.
        """
        if not file_path.exists():
            raise MetadataError(
                f"File not found: {file_path}",
                details={"file_path": str(file_path)}
            )

        try:
            audio = MP3(str(file_path))
        except Exception as e:
            raise MetadataError(
                f"Not a readable MP3 file: {e}",
                details={"file_path": str(file_path), "original_error": str(e)}
            ) from e

        if audio.tags is None:
            audio.add_tags()

        audio.tags.delall("TIT2")
        audio.tags.delall("TPE1")
        audio.tags.add(TIT2(encoding=3, text=item.title))
        audio.tags.add(TPE1(encoding=3, text=item.artist))

        if item.cover_url:
            cover = self.download_cover(item.cover_url)
            if cover:
                audio.tags.delall("APIC")
                audio.tags.add(APIC(
                    encoding=3,
                    mime="image/jpeg",
                    type=3,  # Cover (front)
                    desc="Cover",
                    data=cover
                ))

        audio.save(v2_version=3)

    def download_cover(self, image_url: str) -> bytes | None:
        """
        Download a cover image and normalize it to JPEG.

        Returns:
            JPEG bytes, the raw bytes if they could not be re-encoded, or
            None if the download failed.
        """
        try:
            response = self.session.get(image_url, timeout=self.request_timeout)
            response.raise_for_status()
            image_data = response.content
        except requests.RequestException as e:
            logger.warning(f"Failed to download cover from {image_url}: {e}")
            return None

        if not image_data:
            return None

        try:
            with Image.open(BytesIO(image_data)) as img:
                if img.mode != "RGB":
                    img = img.convert("RGB")
                if img.width > MAX_COVER_SIZE or img.height > MAX_COVER_SIZE:
                    img.thumbnail((MAX_COVER_SIZE, MAX_COVER_SIZE), Image.Resampling.LANCZOS)
                output = BytesIO()
                img.save(output, format="JPEG", quality=COVER_JPEG_QUALITY, optimize=True)
                return output.getvalue()
        except Exception as e:
            logger.debug(f"Could not re-encode cover image, embedding as-is: {e}")
            return image_data

    def close(self) -> None:
        self.session.close()
