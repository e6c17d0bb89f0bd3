"""Document slots: six per-event files with role-directed write access."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from enum import Enum

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from eventhub.errors import (
    AuthError,
    PathResolutionError,
    PermissionDeniedError,
    RemoteError,
    ValidationError,
)
from eventhub.extensions import db
from eventhub.models import DocumentSlot, Event
from eventhub.services.roles import Capability
from eventhub.services.storage import DOCUMENTS_BUCKET, file_extension, get_bucket

ADMIN_SLOTS = tuple(slot for slot in DocumentSlot if slot is not DocumentSlot.SIGNED_CONTRACT)


class SlotState(Enum):
    EMPTY = "empty"
    UPLOADING = "uploading"
    PRESENT = "present"
    DELETING = "deleting"


_TRANSITIONS: dict[SlotState, dict[str, SlotState]] = {
    SlotState.EMPTY: {'upload': SlotState.UPLOADING},
    SlotState.PRESENT: {'upload': SlotState.UPLOADING, 'delete': SlotState.DELETING},
    SlotState.UPLOADING: {'succeed': SlotState.PRESENT},
    SlotState.DELETING: {'succeed': SlotState.EMPTY, 'fail': SlotState.PRESENT},
}

# (event id, slot) pairs with an upload or delete in progress in this process
_in_flight: dict[tuple[str, DocumentSlot], SlotState] = {}
_in_flight_lock = threading.Lock()


def parse_slot(value: str | DocumentSlot) -> DocumentSlot:
    if isinstance(value, DocumentSlot):
        return value
    try:
        return DocumentSlot(value)
    except ValueError:
        raise ValidationError(f"Unknown document type: {value}")


def transition(slot: DocumentSlot, state: SlotState, action: str) -> SlotState:
    """Next state for ``action``; signed contracts never enter DELETING."""
    if action == 'delete' and slot is DocumentSlot.SIGNED_CONTRACT:
        raise PermissionDeniedError('Signed contracts cannot be deleted.')
    try:
        return _TRANSITIONS[state][action]
    except KeyError:
        raise PermissionDeniedError(
            f"Cannot {action} {slot.label} while it is {state.value}."
        )


def slot_state(event: Event, slot: DocumentSlot) -> SlotState:
    with _in_flight_lock:
        pending = _in_flight.get((event.id, slot))
    if pending is not None:
        return pending
    return SlotState.PRESENT if event.slot_url(slot) else SlotState.EMPTY


def _begin(event: Event, slot: DocumentSlot, action: str) -> None:
    with _in_flight_lock:
        current = _in_flight.get((event.id, slot))
        if current is None:
            current = SlotState.PRESENT if event.slot_url(slot) else SlotState.EMPTY
        _in_flight[(event.id, slot)] = transition(slot, current, action)


def _finish(event: Event, slot: DocumentSlot) -> None:
    with _in_flight_lock:
        _in_flight.pop((event.id, slot), None)


def can_write(slot: DocumentSlot, capability: Capability, is_owner: bool) -> bool:
    """Owners write the signed contract; admins write the other five."""
    if slot is DocumentSlot.SIGNED_CONTRACT:
        return is_owner
    return capability.is_admin


def writable_slots(event: Event, identity_id: str | None, capability: Capability) -> set[DocumentSlot]:
    is_owner = identity_id is not None and event.user_id == identity_id
    return {slot for slot in DocumentSlot if can_write(slot, capability, is_owner)}


def _check_write(event: Event, slot: DocumentSlot, actor_id: str | None, capability: Capability) -> None:
    if not actor_id:
        raise AuthError('No user session.')
    if not can_write(slot, capability, event.user_id == actor_id):
        raise PermissionDeniedError(f"{slot.label} is read-only for you.")


def _set_slot(event: Event, slot: DocumentSlot, url: str | None, key: str | None) -> None:
    setattr(event, slot.url_field, url)
    setattr(event, slot.key_field, key)
    event.updated_at = datetime.now(timezone.utc)


def upload_document(
    event: Event,
    slot: DocumentSlot | str,
    file: FileStorage | None,
    actor_id: str | None,
    capability: Capability,
) -> Event:
    """Store a document and link it to the event's slot.

    The key carries a millisecond timestamp so repeated uploads never collide.
    """
    slot = parse_slot(slot)
    _check_write(event, slot, actor_id, capability)
    if file is None or not file.filename:
        raise ValidationError('No file selected.')

    _begin(event, slot, 'upload')
    try:
        key = f"{event.id}/{slot.value}-{int(time.time() * 1000)}.{file_extension(file.filename)}"
        bucket = get_bucket(DOCUMENTS_BUCKET)
        bucket.upload(key, file.stream, upsert=True)
        url = bucket.get_public_url(key)

        _set_slot(event, slot, url, key)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating event with {slot.value} URL: {e}")
            raise RemoteError(f"Failed to update event with {slot.label} URL: {e}") from e
    finally:
        _finish(event, slot)

    current_app.logger.info(f"{slot.label} uploaded for event {event.id} by {actor_id}")
    return event


def resolve_document_key(event: Event, slot: DocumentSlot) -> str:
    """Stored key, or ``{eventId}/{last URL segment}`` for rows without one."""
    key = event.slot_key(slot)
    if key:
        return key
    url = event.slot_url(slot) or ''
    file_name = url.split('?', 1)[0].rstrip('/').split('/')[-1] if url else ''
    if not file_name or file_name.startswith('http'):
        raise PathResolutionError(f"Could not determine storage path for {slot.label}.")
    return f"{event.id}/{file_name}"


def delete_document(
    event: Event,
    slot: DocumentSlot | str,
    actor_id: str | None,
    capability: Capability,
) -> Event:
    """Remove the stored object, then clear the slot.

    A failed removal leaves the slot untouched.
    """
    slot = parse_slot(slot)
    if slot is DocumentSlot.SIGNED_CONTRACT:
        raise PermissionDeniedError('Signed contracts cannot be deleted.')
    _check_write(event, slot, actor_id, capability)
    if not event.slot_url(slot):
        raise ValidationError(f"No {slot.label} to delete.")

    key = resolve_document_key(event, slot)
    _begin(event, slot, 'delete')
    try:
        get_bucket(DOCUMENTS_BUCKET).remove([key])

        _set_slot(event, slot, None, None)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error clearing {slot.value} URL in event: {e}")
            raise RemoteError(f"Failed to clear {slot.label} URL: {e}") from e
    finally:
        _finish(event, slot)

    current_app.logger.info(f"{slot.label} deleted for event {event.id} by {actor_id}")
    return event


def document_download_url(event: Event, slot: DocumentSlot | str) -> str:
    slot = parse_slot(slot)
    url = event.slot_url(slot)
    if not url:
        raise PathResolutionError(f"No {slot.label} uploaded yet.")
    return url


def document_cards(event: Event, identity_id: str | None, capability: Capability,
                   read_only: set[DocumentSlot] | None = None) -> list[dict]:
    """Per-slot view data: state plus which controls to show."""
    writable = writable_slots(event, identity_id, capability) - (read_only or set())
    cards = []
    for slot in DocumentSlot:
        can_edit = slot in writable
        cards.append({
            'slot': slot.value,
            'title': slot.label,
            'url': event.slot_url(slot),
            'state': slot_state(event, slot).value,
            'can_upload': can_edit,
            'can_delete': can_edit and slot is not DocumentSlot.SIGNED_CONTRACT and bool(event.slot_url(slot)),
        })
    return cards


__all__ = [
    'ADMIN_SLOTS',
    'SlotState',
    'parse_slot',
    'transition',
    'slot_state',
    'can_write',
    'writable_slots',
    'upload_document',
    'resolve_document_key',
    'delete_document',
    'document_download_url',
    'document_cards',
]
