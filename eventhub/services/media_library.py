"""Utilities for managing per-event media attachments."""

from __future__ import annotations

import time
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from eventhub.errors import AuthError, PermissionDeniedError, RemoteError, ValidationError
from eventhub.extensions import db
from eventhub.models import Event, Media, MediaType
from eventhub.services.roles import Capability
from eventhub.services.storage import MEDIA_BUCKET, file_extension, get_bucket


def classify_media_type(mime_type: str | None) -> MediaType:
    mime = mime_type or ''
    if mime.startswith('image/'):
        return MediaType.IMAGE
    if mime.startswith('video/'):
        return MediaType.VIDEO
    return MediaType.OTHER


def _check_access(event: Event, actor_id: str | None, capability: Capability) -> None:
    if not actor_id:
        raise AuthError('No user session.')
    if event.user_id != actor_id and not capability.is_admin:
        raise PermissionDeniedError('Only the event owner or an administrator can manage media.')


def list_media(event: Event) -> list[Media]:
    return list(db.session.execute(
        db.select(Media).where(Media.event_id == event.id).order_by(Media.created_at.desc())
    ).scalars().all())


def upload_media(
    event: Event,
    file: FileStorage | None,
    actor_id: str | None,
    capability: Capability,
) -> Media:
    """Store a new media object and insert its row; never overwrites."""
    _check_access(event, actor_id, capability)
    if file is None or not file.filename:
        raise ValidationError('No file selected.')

    media_type = classify_media_type(file.mimetype)
    bucket = get_bucket(MEDIA_BUCKET)
    stamp = int(time.time() * 1000)
    ext = file_extension(file.filename)
    key = f"{event.id}/{media_type.value}-{stamp}.{ext}"
    while bucket.exists(key):
        stamp += 1
        key = f"{event.id}/{media_type.value}-{stamp}.{ext}"
    current_app.logger.debug(f"[Media Upload] Target key in storage: {key}")

    bucket.upload(key, file.stream, upsert=False)

    item = Media(
        event_id=event.id,
        url=bucket.get_public_url(key),
        storage_key=key,
        type=media_type.value,
        original_name=file.filename,
        mime_type=file.mimetype,
        uploaded_by=actor_id,
    )
    db.session.add(item)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"[Media Upload] Error inserting media record: {e}")
        raise RemoteError(f"Failed to link media to event: {e}") from e

    current_app.logger.info(f"[Media Upload] Media {item.id} added to event {event.id}")
    return item


def resolve_media_key(item: Media) -> str:
    """Stored key, or the part of the URL after the bucket marker."""
    if item.storage_key:
        return item.storage_key
    return get_bucket(MEDIA_BUCKET).key_from_public_url(item.url)


def delete_media(item: Media, actor_id: str | None, capability: Capability) -> None:
    """Remove the stored object, then the row.

    An unresolvable key removes nothing.
    """
    _check_access(item.event, actor_id, capability)
    key = resolve_media_key(item)

    get_bucket(MEDIA_BUCKET).remove([key])

    db.session.delete(item)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"[Media Delete] Error deleting media record: {e}")
        raise RemoteError(f"Failed to delete media record: {e}") from e
    current_app.logger.info(f"[Media Delete] Media {key} deleted by {actor_id}")


def download_media(item: Media, actor_id: str | None, capability: Capability) -> tuple[bytes, str]:
    """Fetch raw bytes from storage rather than following the public URL."""
    _check_access(item.event, actor_id, capability)
    key = resolve_media_key(item)
    data = get_bucket(MEDIA_BUCKET).download(key)
    filename = key.rsplit('/', 1)[-1] or f"event-media.{file_extension(key)}"
    return data, filename


def serialize_media(item: Media) -> dict:
    """Serialize a media item for JSON responses."""
    return {
        'id': item.id,
        'event_id': item.event_id,
        'url': item.url,
        'type': item.type,
        'original_name': item.original_name,
        'mime_type': item.mime_type,
        'uploaded_by': item.uploaded_by,
        'created_at': item.created_at.isoformat() if item.created_at else None,
    }


def serialize_media_collection(items: Iterable[Media]) -> list[dict]:
    return [serialize_media(item) for item in items]


__all__ = [
    'classify_media_type',
    'list_media',
    'upload_media',
    'resolve_media_key',
    'delete_media',
    'download_media',
    'serialize_media',
    'serialize_media_collection',
]
