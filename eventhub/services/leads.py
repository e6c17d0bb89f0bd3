"""Sales lead database for admins."""

from __future__ import annotations

import re
from typing import Any, Iterable

from flask import current_app

from eventhub.errors import RemoteError, ValidationError
from eventhub.models import Lead
from eventhub.services.crud import CRUDService

# Statuses set from the lead screen
LEAD_STATUSES = ('contacted', 'no_answer', 'declined')
DEFAULT_LEAD_STATUS = 'contacted'

# Statuses accepted by the CSV import
IMPORT_LEAD_STATUSES = ('new', 'contacted', 'converted', 'rejected')
DEFAULT_IMPORT_STATUS = 'new'

LEAD_PHONE_PATTERN = re.compile(r'^\+?[0-9\s\-()]{7,20}$')

SEARCH_FIELDS = ('school', 'fraternity', 'contact_phone', 'instagram_handle', 'contact_name', 'status')


class LeadService(CRUDService):
    def __init__(self):
        super().__init__(Lead)

    def _validate_create(self, data: dict[str, Any]) -> str | None:
        if not (data.get('school') or '').strip():
            return 'School is required.'
        if not (data.get('fraternity') or '').strip():
            return 'Fraternity is required.'
        return None

    def _validate_update(self, instance: Lead, data: dict[str, Any]) -> str | None:
        status = data.get('status')
        if 'status' in data and status not in LEAD_STATUSES:
            return f"Invalid status: {status}"
        return None


def list_leads() -> list[Lead]:
    """All leads, newest first."""
    return LeadService().list_all(order_by=Lead.created_at.desc())


def search_leads(leads: Iterable[Lead], query: str | None) -> list[Lead]:
    """Case-insensitive substring match over the searchable columns."""
    leads = list(leads)
    needle = (query or '').strip().lower()
    if not needle:
        return leads
    return [
        lead for lead in leads
        if any(needle in (getattr(lead, name) or '').lower() for name in SEARCH_FIELDS)
    ]


def _text(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string.", field_errors={name: ['Must be a string.']})
    return value.strip()


def create_lead(data: dict[str, Any], user: Any = None) -> Lead:
    """Validate form input and insert a lead."""
    phone = _text(data, 'contact_phone')
    if not LEAD_PHONE_PATTERN.match(phone):
        raise ValidationError('Invalid phone number format.', field_errors={'contact_phone': ['Invalid phone number format.']})

    status = _text(data, 'status') or DEFAULT_LEAD_STATUS
    if status not in LEAD_STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    fields = {
        'school': _text(data, 'school'),
        'fraternity': _text(data, 'fraternity'),
        'contact_phone': phone,
        'instagram_handle': _text(data, 'instagram_handle') or None,
        'contact_name': _text(data, 'contact_name') or None,
        'status': status,
        'created_by': getattr(user, 'id', None),
    }
    lead, error = LeadService().create(fields, user)
    if error:
        if error.startswith('Failed'):
            raise RemoteError(error)
        raise ValidationError(error)
    current_app.logger.info(f"Lead {lead.id} created for {lead.school} {lead.fraternity}")
    return lead


def update_lead_status(lead_id: str, status: str, user: Any = None) -> Lead:
    """Change only the status column of one lead."""
    service = LeadService()
    ok, error = service.update(lead_id, {'status': status}, user)
    if not ok:
        if error and error.endswith('not found'):
            raise RemoteError(error, status_code=404)
        if error and error.startswith('Failed'):
            raise RemoteError(error)
        raise ValidationError(error or 'Failed to update lead status.')
    current_app.logger.info(f"Lead {lead_id} status set to {status}")
    return service.get_by_id(lead_id)


def serialize_lead(lead: Lead) -> dict[str, Any]:
    return {
        'id': lead.id,
        'school': lead.school,
        'fraternity': lead.fraternity,
        'contact_phone': lead.contact_phone,
        'contact_email': lead.contact_email,
        'instagram_handle': lead.instagram_handle,
        'contact_name': lead.contact_name,
        'status': lead.status,
        'notes': lead.notes,
        'created_at': lead.created_at.isoformat() if lead.created_at else None,
    }


__all__ = [
    'LEAD_STATUSES',
    'DEFAULT_LEAD_STATUS',
    'IMPORT_LEAD_STATUSES',
    'DEFAULT_IMPORT_STATUS',
    'LEAD_PHONE_PATTERN',
    'LeadService',
    'list_leads',
    'search_leads',
    'create_lead',
    'update_lead_status',
    'serialize_lead',
]
