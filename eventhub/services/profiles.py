"""Profile reads and self-service updates."""

from __future__ import annotations

import secrets
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from eventhub.errors import AuthError, RemoteError, ValidationError
from eventhub.extensions import db
from eventhub.models import Profile, User, UserRole
from eventhub.services.storage import AVATARS_BUCKET, file_extension, get_bucket

AVATAR_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}
PROFILE_FIELDS = ('school', 'fraternity', 'first_name', 'last_name')


def ensure_profile(user: User, **fields: Any) -> Profile:
    """Return the user's profile, creating a client profile if missing."""
    profile = db.session.get(Profile, user.id)
    if profile is None:
        profile = Profile(id=user.id, role=fields.pop('role', UserRole.CLIENT.value), **fields)
        db.session.add(profile)
    return profile


def get_profile(identity_id: str | None) -> Profile:
    if not identity_id:
        raise AuthError('You must be logged in to view your profile.')
    profile = db.session.get(Profile, identity_id)
    if profile is None:
        raise RemoteError('Profile not found.', status_code=404)
    return profile


def update_profile(identity_id: str | None, **fields: Any) -> Profile:
    """Update the caller's own name and organisation fields."""
    profile = get_profile(identity_id)
    for name in PROFILE_FIELDS:
        if name in fields:
            value = fields[name]
            setattr(profile, name, value.strip() if isinstance(value, str) and value.strip() else None)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating profile: {e}")
        raise RemoteError(f"Failed to update profile: {e}") from e
    current_app.logger.info(f"Profile {profile.id} updated")
    return profile


def upload_avatar(identity_id: str | None, file: FileStorage | None) -> Profile:
    """Store a new avatar image and drop the previous one."""
    profile = get_profile(identity_id)
    if file is None or not file.filename:
        raise ValidationError('No file selected.')
    ext = file_extension(file.filename, default='')
    if ext not in AVATAR_EXTENSIONS or not (file.mimetype or '').startswith('image/'):
        raise ValidationError('Avatar must be an image.')

    bucket = get_bucket(AVATARS_BUCKET)
    key = f"{profile.id}-{secrets.token_hex(8)}.{ext}"
    bucket.upload(key, file.stream, upsert=False)

    previous = profile.avatar_key
    profile.avatar_url = bucket.get_public_url(key)
    profile.avatar_key = key
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        bucket.remove([key])
        current_app.logger.error(f"Error saving avatar: {e}")
        raise RemoteError(f"Failed to save avatar: {e}") from e

    if previous and bucket.exists(previous):
        bucket.remove([previous])
    current_app.logger.info(f"Avatar updated for {profile.id}")
    return profile


def serialize_profile(profile: Profile) -> dict[str, Any]:
    return {
        'id': profile.id,
        'school': profile.school,
        'fraternity': profile.fraternity,
        'first_name': profile.first_name,
        'last_name': profile.last_name,
        'avatar_url': profile.avatar_url,
        'role': profile.role,
        'chapter_id': profile.chapter_id,
    }


__all__ = [
    'ensure_profile',
    'get_profile',
    'update_profile',
    'upload_avatar',
    'serialize_profile',
]
