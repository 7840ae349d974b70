"""
Blob storage for uploaded images and attachments: Google Drive, an
S3-compatible bucket (Tencent COS), or memory for tests.

Every stored blob is readable by anyone holding its URL.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import urlsplit, urlunsplit

import boto3
from botocore.config import Config
from googleapiclient.http import MediaIoBaseUpload

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class BlobStore(Protocol):
    """Defines the operations the uploader needs from blob storage."""

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        ...


@dataclass
class InMemoryBlobStore:
    """Test double for storage interactions."""

    folder_name: str = "bbs_files"
    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        path = f"{self.folder_name}/{name}"
        self.stored_objects[path] = (data, content_type)
        return f"{self.base_url}/{path}"


class DriveBlobStore:
    """
    Google Drive storage. Files land in a folder resolved by name; duplicate
    folders with the same name are trashed, keeping the first one listed.
    """

    def __init__(self, service, folder_name: str):
        self.service = service
        self.folder_name = folder_name
        self._folder_id: Optional[str] = None

    def _share_with_anyone(self, file_id: str) -> None:
        self.service.permissions().create(
            fileId=file_id,
            body={"type": "anyone", "role": "reader"},
        ).execute()

    def folder_id(self) -> str:
        if self._folder_id:
            return self._folder_id

        escaped = self.folder_name.replace("\\", "\\\\").replace("'", "\\'")
        query = (
            f"mimeType = '{FOLDER_MIME_TYPE}' and name = '{escaped}' "
            "and trashed = false"
        )
        result = (
            self.service.files()
            .list(q=query, fields="files(id, name)", spaces="drive")
            .execute()
        )
        folders = result.get("files", [])
        if folders:
            for duplicate in folders[1:]:
                logger.info(
                    "Trashing duplicate folder %s (%s)",
                    self.folder_name,
                    duplicate["id"],
                )
                self.service.files().update(
                    fileId=duplicate["id"], body={"trashed": True}
                ).execute()
            self._folder_id = folders[0]["id"]
            return self._folder_id

        created = (
            self.service.files()
            .create(
                body={"name": self.folder_name, "mimeType": FOLDER_MIME_TYPE},
                fields="id",
            )
            .execute()
        )
        self._share_with_anyone(created["id"])
        logger.info("Created upload folder %s (%s)", self.folder_name, created["id"])
        self._folder_id = created["id"]
        return self._folder_id

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=content_type)
        result = (
            self.service.files()
            .create(
                body={"name": name, "parents": [self.folder_id()]},
                media_body=media,
                fields="id, webViewLink",
            )
            .execute()
        )
        self._share_with_anyone(result["id"])
        return result.get("webViewLink") or (
            f"https://drive.google.com/file/d/{result['id']}/view"
        )


@dataclass
class CosStorageClient:
    """
    S3-compatible storage client for Tencent COS. Objects are written with a
    public-read ACL under ``folder_name/``.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    folder_name: str = "bbs_files"

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def object_url(self, key: str) -> str:
        parts = urlsplit(self.endpoint)
        host = f"{self.bucket}.{parts.netloc}"
        return urlunsplit((parts.scheme or "https", host, f"/{key}", "", ""))

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        key = f"{self.folder_name}/{name}"
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
        return self.object_url(key)
