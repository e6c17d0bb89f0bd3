"""Admin-only aggregation and mutation functions.

Each function assumes the caller's admin status was already checked and
raises ``EventHubError`` subclasses for malformed input or missing rows.
"""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from typing import Any

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from eventhub.errors import RemoteError, ValidationError
from eventhub.extensions import db
from eventhub.models import Chapter, Event, Lead, Profile, User, UserRole
from eventhub.services.audit import log_admin_action
from eventhub.services.crud import CRUDService
from eventhub.services.leads import DEFAULT_IMPORT_STATUS, IMPORT_LEAD_STATUSES

IMPORT_COLUMNS = ['school', 'fraternity', 'contact_email', 'contact_name', 'status', 'notes']


def get_all_user_profiles() -> list[dict[str, Any]]:
    """Every profile with its email and per-user event aggregates."""
    rows = db.session.execute(
        db.select(Profile, User.email).join(User, User.id == Profile.id)
    ).all()
    events = db.session.execute(
        db.select(Event.user_id, Event.budget, Event.event_date, Event.signed_contract_url)
    ).all()

    stats: dict[str, dict[str, Any]] = defaultdict(
        lambda: {'total': 0, 'budget': 0.0, 'signed': 0, 'last': None}
    )
    for user_id, budget, event_date, signed_url in events:
        entry = stats[user_id]
        entry['total'] += 1
        entry['budget'] += budget or 0
        if signed_url:
            entry['signed'] += 1
        if entry['last'] is None or event_date > entry['last']:
            entry['last'] = event_date

    result = []
    for profile, email in rows:
        entry = stats.get(profile.id)
        total = entry['total'] if entry else 0
        result.append({
            'id': profile.id,
            'school': profile.school,
            'fraternity': profile.fraternity,
            'first_name': profile.first_name,
            'last_name': profile.last_name,
            'avatar_url': profile.avatar_url,
            'role': profile.role,
            'chapter_id': profile.chapter_id,
            'email': email or 'N/A',
            'totalEvents': total,
            'averageBudget': entry['budget'] / total if total else 0,
            'signedContractsCount': entry['signed'] if entry else 0,
            'lastEventDate': entry['last'].isoformat() if entry and entry['last'] else None,
        })
    return result


def get_all_chapters() -> list[dict[str, Any]]:
    chapters = db.session.execute(db.select(Chapter).order_by(Chapter.name.asc())).scalars().all()
    return [{'id': chapter.id, 'name': chapter.name} for chapter in chapters]


def get_chapter_analytics(chapter_id: Any) -> dict[str, Any]:
    """Member and event aggregates for one chapter."""
    if not chapter_id or not isinstance(chapter_id, str):
        raise ValidationError('Chapter ID is required.')

    chapter = db.session.get(Chapter, chapter_id)
    if chapter is None:
        raise RemoteError('Chapter not found.', status_code=404)

    total_members = db.session.execute(
        db.select(func.count(Profile.id)).where(Profile.chapter_id == chapter_id)
    ).scalar_one()
    total_events, budget_sum = db.session.execute(
        db.select(func.count(Event.id), func.coalesce(func.sum(Event.budget), 0))
        .where(Event.chapter_id == chapter_id)
    ).one()

    average_budget = round(float(budget_sum) / total_events, 2) if total_events else 0
    return {
        'chapter_name': chapter.name,
        'total_members': total_members,
        'total_events': total_events,
        'average_budget': average_budget,
        'ltv': current_app.config.get('CHAPTER_LTV', 15000),
        'close_percentage': current_app.config.get('CHAPTER_CLOSE_PERCENTAGE', 75),
    }


def _get_profile(user_id: Any) -> Profile:
    if not user_id or not isinstance(user_id, str):
        raise ValidationError('User ID is required.')
    profile = db.session.get(Profile, user_id)
    if profile is None:
        raise RemoteError('User profile not found.', status_code=404)
    return profile


def update_user_chapter(user_id: Any, chapter_id: Any, actor: Any = None) -> dict[str, str]:
    """Assign a profile to a chapter, or unassign with ``None``."""
    if chapter_id is not None and not isinstance(chapter_id, str):
        raise ValidationError('Invalid chapterId provided.')
    profile = _get_profile(user_id)
    if chapter_id is not None and db.session.get(Chapter, chapter_id) is None:
        raise ValidationError('Invalid chapterId provided.')

    previous = profile.chapter_id
    profile.chapter_id = chapter_id
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating user chapter: {e}")
        raise RemoteError(f"Failed to update user chapter: {e}") from e

    log_admin_action(actor, 'user_chapter_updated', 'profile', profile.id,
                     metadata={'from': previous, 'to': chapter_id})
    return {'message': 'User chapter updated successfully.'}


def update_user_role(user_id: Any, new_role: Any, actor: Any = None) -> dict[str, str]:
    roles = [role.value for role in UserRole]
    if new_role not in roles:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(roles)}.")
    profile = _get_profile(user_id)

    previous = profile.role
    profile.role = new_role
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating user role: {e}")
        raise RemoteError(f"Failed to update user role: {e}") from e

    log_admin_action(actor, 'user_role_updated', 'profile', profile.id,
                     metadata={'from': previous, 'to': new_role})
    return {'message': 'User role updated successfully.'}


def parse_lead_rows(file_content: str, created_by: str | None = None) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Validate CSV lead rows.

    Args:
        file_content: CSV text; the first row is a header and is skipped
        created_by: User ID stamped on every lead

    Returns:
        (valid lead dicts, errors as ``{record, message}``)
    """
    reader = csv.reader(io.StringIO(file_content))
    next(reader, None)

    leads: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        padded = row + [''] * (len(IMPORT_COLUMNS) - len(row))
        record = {name: padded[i].strip() for i, name in enumerate(IMPORT_COLUMNS)}

        if not record['school'] or not record['fraternity'] or not record['contact_email']:
            errors.append({'record': record,
                           'message': 'Missing required fields: school, fraternity, or contact_email.'})
            continue
        try:
            validate_email(record['contact_email'], check_deliverability=False)
        except EmailNotValidError:
            errors.append({'record': record, 'message': 'Invalid contact_email format.'})
            continue

        status = record['status'].lower()
        leads.append({
            'school': record['school'],
            'fraternity': record['fraternity'],
            'contact_email': record['contact_email'],
            'contact_name': record['contact_name'] or None,
            'status': status if status in IMPORT_LEAD_STATUSES else DEFAULT_IMPORT_STATUS,
            'notes': record['notes'] or None,
            'created_by': created_by,
        })
    return leads, errors


def import_leads(file_content: str, actor: Any = None) -> tuple[dict[str, Any], int]:
    """
    Bulk insert leads from CSV text.

    Returns:
        (response payload, HTTP status)
    """
    leads, errors = parse_lead_rows(file_content, getattr(actor, 'id', None))

    if not leads and errors:
        return {'message': 'No valid leads to insert.', 'errors': errors}, 400

    created, error = CRUDService(Lead).bulk_create(leads, actor)
    if error:
        raise RemoteError(error)

    current_app.logger.info(f"Imported {len(created)} leads ({len(errors)} rejected)")
    return {
        'message': f"{len(created)} leads imported successfully.",
        'insertedCount': len(created),
        'errorCount': len(errors),
        'errors': errors,
    }, 200


__all__ = [
    'IMPORT_COLUMNS',
    'get_all_user_profiles',
    'get_all_chapters',
    'get_chapter_analytics',
    'update_user_chapter',
    'update_user_role',
    'parse_lead_rows',
    'import_leads',
]
