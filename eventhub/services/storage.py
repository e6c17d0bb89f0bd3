"""Bucket-based object storage with public URLs."""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from flask import current_app, has_request_context, url_for
from werkzeug.utils import secure_filename

from eventhub.errors import PathResolutionError, RemoteError

DOCUMENTS_BUCKET = 'event-documents'
MEDIA_BUCKET = 'event-media'
AVATARS_BUCKET = 'avatars'

BUCKETS = (DOCUMENTS_BUCKET, MEDIA_BUCKET, AVATARS_BUCKET)

PUBLIC_PREFIX = '/storage/v1/object/public'


class BucketStorage:
    """Stores objects for one bucket below ``STORAGE_ROOT``."""

    def __init__(self, bucket: str):
        """
        Initialize bucket storage.

        Args:
            bucket: Bucket name (one of BUCKETS)
        """
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown bucket: {bucket}")
        self.bucket = bucket
        self.base_path = Path(current_app.config.get('STORAGE_ROOT', 'storage'))
        self.bucket_path = self.base_path / bucket

    def _object_path(self, key: str) -> Path:
        if not key or key.startswith('/') or '..' in key.split('/'):
            raise PathResolutionError(f"Invalid object key: {key!r}")
        path = self.bucket_path / key
        # Security check: ensure path is within the bucket directory
        if not str(path.resolve()).startswith(str(self.bucket_path.resolve())):
            raise PathResolutionError(f"Invalid object key: {key!r}")
        return path

    def exists(self, key: str) -> bool:
        return self._object_path(key).is_file()

    def upload(self, key: str, file: BinaryIO, upsert: bool = False) -> str:
        """
        Write an object.

        Args:
            key: Object key inside the bucket
            file: Readable binary stream
            upsert: Overwrite an existing object instead of failing

        Returns:
            The stored key
        """
        path = self._object_path(key)
        if path.exists() and not upsert:
            raise RemoteError(f"The resource already exists: {self.bucket}/{key}", status_code=409)

        max_size = current_app.config.get('MAX_UPLOAD_SIZE')
        try:
            file.seek(0, os.SEEK_END)
            size = file.tell()
            file.seek(0)
        except (AttributeError, OSError):
            size = None
        if max_size and size is not None and size > max_size:
            raise RemoteError(f"The object exceeded the maximum allowed size ({max_size} bytes)", status_code=413)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'wb') as fh:
                fh.write(file.read())
        except OSError as e:
            current_app.logger.error(f"Failed to write {self.bucket}/{key}: {e}")
            raise RemoteError(f"Failed to store object: {e}") from e

        current_app.logger.debug(f"Stored object {self.bucket}/{key}")
        return key

    def remove(self, keys: list[str]) -> None:
        """Delete objects; every key must exist."""
        for key in keys:
            path = self._object_path(key)
            if not path.is_file():
                raise RemoteError(f"Object not found: {self.bucket}/{key}", status_code=404)
            try:
                path.unlink()
            except OSError as e:
                current_app.logger.error(f"Failed to delete {self.bucket}/{key}: {e}")
                raise RemoteError(f"Failed to delete object: {e}") from e
            _cleanup_empty_dirs(path.parent, self.bucket_path)
            current_app.logger.debug(f"Removed object {self.bucket}/{key}")

    def download(self, key: str) -> bytes:
        path = self._object_path(key)
        if not path.is_file():
            raise RemoteError(f"Object not found: {self.bucket}/{key}", status_code=404)
        return path.read_bytes()

    def local_path(self, key: str) -> Path:
        return self._object_path(key)

    def get_public_url(self, key: str) -> str:
        """
        Get the public URL for an object.

        Returns an absolute URL inside a request and a root-relative one otherwise.
        """
        if has_request_context():
            return url_for('storage.public_object', bucket=self.bucket, key=key, _external=True)
        return f"{PUBLIC_PREFIX}/{self.bucket}/{key}"

    def key_from_public_url(self, url: str) -> str:
        """Recover an object key by splitting a public URL on the bucket marker."""
        marker = f"/public/{self.bucket}/"
        parts = (url or '').split(marker, 1)
        if len(parts) < 2 or not parts[1]:
            raise PathResolutionError('Could not determine file path for deletion.')
        return parts[1]


def _cleanup_empty_dirs(path: Path, stop: Path) -> None:
    """Remove empty directories up to the bucket root."""
    root = stop.resolve()
    current = path.resolve()
    while current != root and root in current.parents:
        try:
            current.rmdir()
        except OSError:
            break
        current = current.parent


def get_bucket(name: str) -> BucketStorage:
    return BucketStorage(name)


def file_extension(filename: str | None, default: str = 'bin') -> str:
    """Lower-cased extension of a sanitised client filename."""
    safe = secure_filename(filename or '')
    if '.' in safe:
        ext = safe.rsplit('.', 1)[1].lower()
        if ext:
            return ext
    return default


__all__ = [
    'BucketStorage',
    'get_bucket',
    'file_extension',
    'DOCUMENTS_BUCKET',
    'MEDIA_BUCKET',
    'AVATARS_BUCKET',
    'BUCKETS',
]
