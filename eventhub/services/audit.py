"""Audit logging service for security and administrative events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app, has_request_context, request

from eventhub.extensions import db
from eventhub.models import AuditLog

if TYPE_CHECKING:
    from eventhub.models import User


def _remote_addr() -> str | None:
    return request.remote_addr if has_request_context() else None


def log_security_event(
    user: User,
    action: str,
    details: str | None = None,
    metadata: dict[str, Any] | None = None
) -> None:
    """
    Log a security-related event to the audit log.

    Args:
        user: User who performed the action
        action: Action performed (e.g., "login_success", "logout")
        details: Optional additional details
        metadata: Additional metadata to store
    """
    try:
        meta = dict(metadata or {})
        meta['ip_address'] = _remote_addr()
        if details:
            meta['details'] = details

        db.session.add(AuditLog(
            user_id=user.id,
            action=action,
            entity_type='user',
            entity_id=user.id,
            meta=meta
        ))
        db.session.commit()

    except Exception as e:
        # Don't fail the request if audit logging fails
        db.session.rollback()
        current_app.logger.error(f"Failed to log security event: {e}")


def log_admin_action(
    user: User | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None
) -> None:
    """
    Log an administrative action.

    Args:
        user: User who performed the action
        action: Action performed (e.g., "user_role_updated", "leads_imported")
        entity_type: Type of entity affected
        entity_id: ID of entity affected
        metadata: Additional metadata
    """
    try:
        meta = dict(metadata or {})
        meta['ip_address'] = _remote_addr()

        db.session.add(AuditLog(
            user_id=getattr(user, 'id', None),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta
        ))
        db.session.commit()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log admin action: {e}")


__all__ = ["log_security_event", "log_admin_action"]
