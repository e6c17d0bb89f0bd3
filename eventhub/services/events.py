"""Event lifecycle: create, edit, list and inspect events."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from eventhub.errors import AuthError, PermissionDeniedError, RemoteError, ValidationError
from eventhub.extensions import db
from eventhub.models import Chapter, DocumentSlot, Event, Profile
from eventhub.services.roles import Capability

PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')

EDITABLE_FIELDS = ('event_name', 'event_date', 'artist_name', 'budget', 'contact_phone', 'chapter_id')


@dataclass
class EventPartition:
    upcoming: list[Event] = field(default_factory=list)
    past: list[Event] = field(default_factory=list)


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValueError('Event date is required.')


def _parse_budget(value: Any) -> float:
    if isinstance(value, bool) or value is None or value == '':
        raise ValueError('Production budget must be a number.')
    try:
        budget = float(value)
    except (TypeError, ValueError):
        raise ValueError('Production budget must be a number.')
    if budget != budget or budget < 0:
        raise ValueError('Production budget must be a positive number.')
    return budget


def clean_event_fields(data: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    """Validate and normalise event input.

    ``partial`` allows omitting fields (updates). The hiring-artist toggle,
    when present, forces ``artist_name`` to None (off) or requires it (on).
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}

    def check(name, parser):
        if partial and name not in data:
            return
        try:
            cleaned[name] = parser(data.get(name))
        except ValueError as e:
            errors.setdefault(name, []).append(str(e))

    def parse_text(value):
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError('Must be a string.')
        return value.strip() or None

    def parse_chapter(value):
        chapter_id = parse_text(value)
        if chapter_id is not None and db.session.get(Chapter, chapter_id) is None:
            raise ValueError('Unknown chapter.')
        return chapter_id

    def parse_phone(value):
        phone = (value or '').strip() if isinstance(value, str) else ''
        if not PHONE_PATTERN.match(phone):
            raise ValueError('Invalid phone number format.')
        return phone

    check('event_date', _parse_date)
    check('budget', _parse_budget)
    check('contact_phone', parse_phone)

    if 'event_name' in data:
        check('event_name', parse_text)
    if 'chapter_id' in data:
        check('chapter_id', parse_chapter)

    try:
        artist_name = parse_text(data.get('artist_name'))
    except ValueError as e:
        errors.setdefault('artist_name', []).append(str(e))
        artist_name = None
    if 'hiring_artist' in data:
        if data.get('hiring_artist'):
            if not artist_name:
                errors.setdefault('artist_name', []).append(
                    'Artist name is required if you are hiring an artist.'
                )
            cleaned['artist_name'] = artist_name
        else:
            cleaned['artist_name'] = None
    elif 'artist_name' in data:
        cleaned['artist_name'] = artist_name
    elif not partial:
        cleaned['artist_name'] = None

    if errors:
        first = next(iter(errors.values()))[0]
        raise ValidationError(first, field_errors=errors)
    return cleaned


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to {action}: {e}")
        raise RemoteError(f"Failed to {action}: {e}") from e


def create_event(
    owner_id: str | None,
    *,
    event_date: Any,
    budget: Any,
    contact_phone: str,
    event_name: str | None = None,
    hiring_artist: bool = False,
    artist_name: str | None = None,
    chapter_id: str | None = None,
) -> Event:
    """Insert a new event owned by ``owner_id``."""
    if not owner_id:
        raise AuthError('You must be logged in to create an event.')

    cleaned = clean_event_fields({
        'event_date': event_date,
        'budget': budget,
        'contact_phone': contact_phone,
        'event_name': event_name,
        'hiring_artist': hiring_artist,
        'artist_name': artist_name,
        'chapter_id': chapter_id,
    })

    if not cleaned.get('chapter_id'):
        profile = db.session.get(Profile, owner_id)
        cleaned['chapter_id'] = profile.chapter_id if profile else None

    event = Event(user_id=owner_id, **cleaned)
    db.session.add(event)
    _commit('create event')
    current_app.logger.info(f"Event {event.id} created by {owner_id}")
    return event


def update_event(
    event_id: str,
    fields: dict[str, Any],
    *,
    owner_id: str | None = None,
    as_admin: bool = False,
) -> Event:
    """Apply validated field changes.

    Owners are matched on event id and owner id together; the admin path
    applies no owner filter.
    """
    cleaned = clean_event_fields(fields, partial=True)

    query = db.select(Event).where(Event.id == event_id)
    if not as_admin:
        if not owner_id:
            raise AuthError('You must be logged in to edit an event.')
        query = query.where(Event.user_id == owner_id)

    event = db.session.execute(query).scalar_one_or_none()
    if event is None:
        raise RemoteError('Event not found', status_code=404)

    for key, value in cleaned.items():
        if key in EDITABLE_FIELDS:
            setattr(event, key, value)
    event.updated_at = datetime.now(timezone.utc)

    _commit('update event')
    current_app.logger.info(f"Event {event.id} updated ({'admin' if as_admin else 'owner'})")
    return event


def partition_events(events: Iterable[Event], today: date | None = None) -> EventPartition:
    """Split into upcoming (today or later, ascending) and past (descending)."""
    today = today or date.today()
    upcoming = sorted((e for e in events if e.event_date >= today), key=lambda e: e.event_date)
    past = sorted((e for e in events if e.event_date < today), key=lambda e: e.event_date, reverse=True)
    return EventPartition(upcoming=upcoming, past=past)


def list_events(owner_id: str | None, today: date | None = None) -> EventPartition:
    if not owner_id:
        raise AuthError('You must be logged in to view events.')
    events = db.session.execute(
        db.select(Event).where(Event.user_id == owner_id).order_by(Event.event_date.asc())
    ).scalars().all()
    return partition_events(events, today)


def admin_list_events(user_id: str, today: date | None = None) -> EventPartition:
    """Same shape as ``list_events`` for any user, used by admins."""
    events = db.session.execute(
        db.select(Event).where(Event.user_id == user_id).order_by(Event.event_date.asc())
    ).scalars().all()
    return partition_events(events, today)


def all_events(order_by=None) -> list[Event]:
    query = db.select(Event).order_by(order_by if order_by is not None else Event.created_at.desc())
    return list(db.session.execute(query).scalars().all())


def get_event(event_id: str, identity_id: str | None, capability: Capability) -> Event:
    """Fetch an event visible to the caller: its owner or any admin."""
    if not identity_id:
        raise AuthError('You must be logged in to view this event.')
    event = db.session.get(Event, event_id)
    if event is None:
        raise RemoteError('Event not found', status_code=404)
    if event.user_id != identity_id and not capability.is_admin:
        raise PermissionDeniedError('You do not have access to this event.')
    return event


def event_checklist(event: Event) -> list[dict[str, Any]]:
    items = [{'label': 'Event Created', 'checked': True}]
    for slot in DocumentSlot:
        items.append({'label': f"{slot.label} Uploaded", 'checked': bool(event.slot_url(slot))})
    return items


def serialize_event(event: Event) -> dict[str, Any]:
    data = {
        'id': event.id,
        'user_id': event.user_id,
        'chapter_id': event.chapter_id,
        'event_name': event.event_name,
        'event_date': event.event_date.isoformat() if event.event_date else None,
        'artist_name': event.artist_name,
        'budget': event.budget,
        'contact_phone': event.contact_phone,
        'created_at': event.created_at.isoformat() if event.created_at else None,
        'updated_at': event.updated_at.isoformat() if event.updated_at else None,
    }
    data.update(event.slot_snapshot())
    return data


__all__ = [
    'EventPartition',
    'PHONE_PATTERN',
    'clean_event_fields',
    'create_event',
    'update_event',
    'partition_events',
    'list_events',
    'admin_list_events',
    'all_events',
    'get_event',
    'event_checklist',
    'serialize_event',
]
