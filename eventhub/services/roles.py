"""Server-side role resolution."""

from __future__ import annotations

from enum import Enum

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from eventhub.extensions import db
from eventhub.models import Profile, UserRole


class Capability(Enum):
    """What the current identity may do, resolved once per session context."""

    CLIENT = "client"
    ADMIN = "admin"

    @property
    def is_admin(self) -> bool:
        return self is Capability.ADMIN


def check_is_admin(identity_id: str | None) -> bool:
    """The privilege check: read the stored profile role.

    Session-held role hints are never consulted.
    """
    if not identity_id:
        return False
    role = db.session.execute(
        db.select(Profile.role).where(Profile.id == identity_id)
    ).scalar_one_or_none()
    return role == UserRole.ADMIN.value


class RoleResolver:
    """Caches the admin check per identity.

    A second resolve for the same identity reuses the cached answer; a new
    identity triggers a fresh check.
    """

    def __init__(self, check=check_is_admin):
        self._check = check
        self._identity_id: str | None = None
        self._capability: Capability | None = None

    def resolve(self, identity_id: str | None) -> Capability:
        if identity_id is None:
            self.reset()
            return Capability.CLIENT

        if identity_id == self._identity_id and self._capability is not None:
            return self._capability

        try:
            capability = Capability.ADMIN if self._check(identity_id) else Capability.CLIENT
        except Exception as e:
            current_app.logger.error(f"Admin check failed for {identity_id}: {e}")
            if isinstance(e, SQLAlchemyError):
                db.session.rollback()
            capability = Capability.CLIENT

        self._identity_id = identity_id
        self._capability = capability
        return capability

    def reset(self) -> None:
        self._identity_id = None
        self._capability = None


__all__ = ['Capability', 'RoleResolver', 'check_is_admin']
