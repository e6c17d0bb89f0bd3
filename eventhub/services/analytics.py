"""Admin dashboard aggregates and calendar queries."""

from __future__ import annotations

from datetime import date
from typing import Any

from eventhub.extensions import db
from eventhub.models import DocumentSlot, Event, Profile, UserRole


def dashboard_analytics() -> dict[str, Any]:
    events = db.session.execute(db.select(Event)).scalars().all()

    total_budget = 0.0
    signed_count = 0
    signed_budget = 0.0
    pending_budget = 0.0
    documents = 0
    for event in events:
        budget = event.budget or 0
        total_budget += budget
        if event.signed_contract_url:
            signed_count += 1
            signed_budget += budget
        else:
            pending_budget += budget
        documents += client_document_progress(event)

    total_users = db.session.execute(
        db.select(db.func.count(Profile.id)).where(Profile.role != UserRole.ADMIN.value)
    ).scalar_one()

    total_events = len(events)
    return {
        'totalEvents': total_events,
        'totalUsers': total_users,
        'averageBudget': round(total_budget / total_events, 2) if total_events else 0,
        'signedContractsCount': signed_count,
        'pendingContractsCount': total_events - signed_count,
        'totalSignedBudget': signed_budget,
        'totalPendingBudget': pending_budget,
        'documentsUploaded': documents,
    }


def client_document_progress(event: Event) -> int:
    """Number of the six document slots holding a file."""
    return sum(1 for slot in DocumentSlot if event.slot_url(slot))


def event_dates() -> set[date]:
    return set(db.session.execute(db.select(Event.event_date).distinct()).scalars().all())


def events_on_date(day: date) -> list[Event]:
    return list(db.session.execute(
        db.select(Event).where(Event.event_date == day).order_by(Event.created_at.asc())
    ).scalars().all())


__all__ = [
    'dashboard_analytics',
    'client_document_progress',
    'event_dates',
    'events_on_date',
]
