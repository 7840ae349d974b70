"""
Decoding of inline ``data:<mime>;base64,<payload>`` uploads into blob storage.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from typing import Callable, Optional, Tuple

from sheetboard.errors import FormatError, StorageError
from sheetboard.storage import BlobStore

logger = logging.getLogger(__name__)

IMAGE_DATA_URL_PATTERN = re.compile(r"^data:([A-Za-z+/-]+);base64,(.+)$")
FILE_DATA_URL_PATTERN = re.compile(r"^data:(.+);base64,(.*)$")
UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\s.-]", re.ASCII)
DRIVE_FILE_ID_PATTERN = re.compile(r"[-\w]{25,}", re.ASCII)

DRIVE_DOMAIN = "drive.google.com"
DRIVE_THUMBNAIL_TEMPLATE = "https://lh3.google.com/u/0/d/{file_id}=w640-h480-iv1"


def parse_data_url(
    data_url: str, pattern: re.Pattern = FILE_DATA_URL_PATTERN
) -> Tuple[str, bytes]:
    """Split a base64 data URL into (content type, decoded bytes)."""
    match = pattern.match(data_url or "")
    if not match:
        raise FormatError()
    content_type, payload = match.group(1), match.group(2)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Invalid base64 payload: {e}") from e
    return content_type, data


def sanitize_filename(name: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", name)


def format_drive_url(url: Optional[str]) -> str:
    """
    Rewrite a Drive share URL into a fixed-size thumbnail URL for display.
    Non-Drive URLs (or Drive URLs without a file id) pass through unchanged.
    """
    if not url:
        return ""
    if DRIVE_DOMAIN in url:
        match = DRIVE_FILE_ID_PATTERN.search(url)
        if match:
            return DRIVE_THUMBNAIL_TEMPLATE.format(file_id=match.group(0))
    return url


class BlobUploader:
    def __init__(self, store: BlobStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def _millis(self) -> int:
        return int(self.clock() * 1000)

    def _store(self, name: str, data: bytes, content_type: str) -> str:
        try:
            return self.store.upload(name, data, content_type)
        except Exception as e:
            logger.exception("Upload of %s failed", name)
            raise StorageError(f"Upload failed: {e}") from e

    def upload_image(self, data_url: str) -> str:
        content_type, data = parse_data_url(data_url, IMAGE_DATA_URL_PATTERN)
        return self._store(f"image_{self._millis()}", data, content_type)

    def upload_file(self, name: str, data_url: str) -> Tuple[str, str]:
        """Store an attachment; returns (url, original file name)."""
        content_type, data = parse_data_url(data_url, FILE_DATA_URL_PATTERN)
        unique_name = f"{sanitize_filename(name)}_{self._millis()}"
        return self._store(unique_name, data, content_type), name
