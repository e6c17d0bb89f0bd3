"""Per-request session context: current identity and its capability."""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, flash, g
from flask_login import current_user, user_logged_in, user_logged_out, user_loaded_from_cookie

from eventhub.services.notifications import get_registry
from eventhub.services.roles import Capability, RoleResolver


@dataclass
class SessionContext:
    """Identity and capability handed explicitly to screens and services."""

    identity_id: str | None = None
    capability: Capability = Capability.CLIENT
    loading: bool = True

    @property
    def authenticated(self) -> bool:
        return self.identity_id is not None

    @property
    def is_admin(self) -> bool:
        return self.capability.is_admin


def load_session_context() -> SessionContext:
    """Resolve identity and role for this request.

    A failure while loading the identity is reported as a flash message and
    the request continues unauthenticated.
    """
    ctx = SessionContext()
    current_app.logger.debug('Checking authentication')
    try:
        if current_user.is_authenticated:
            ctx.identity_id = current_user.get_id()
    except Exception as e:
        current_app.logger.error(f"Failed to load identity: {e}")
        flash(f"Authentication check failed: {e}", 'error')
        ctx.identity_id = None

    ctx.capability = RoleResolver().resolve(ctx.identity_id)
    ctx.loading = False

    if ctx.identity_id:
        get_registry().ensure(ctx.identity_id, is_admin=ctx.is_admin)
    g.session_ctx = ctx
    return ctx


def get_session_context() -> SessionContext:
    ctx = g.get('session_ctx')
    if ctx is None:
        ctx = load_session_context()
    return ctx


def _on_signed_in(sender, user, **extra) -> None:
    current_app.logger.info(f"Identity signed in: {user.get_id()}")
    get_registry().ensure(user.get_id())


def _on_signed_out(sender, user, **extra) -> None:
    identity_id = user.get_id() if user is not None else None
    current_app.logger.info(f"Identity signed out: {identity_id}")
    if identity_id:
        get_registry().stop(identity_id)
    g.pop('session_ctx', None)


def _on_token_refreshed(sender, user, **extra) -> None:
    current_app.logger.info(f"Identity restored from remember cookie: {user.get_id()}")
    get_registry().ensure(user.get_id())


def init_session(app) -> None:
    """Register identity-change listeners and the per-request loader."""
    user_logged_in.connect(_on_signed_in, app)
    user_logged_out.connect(_on_signed_out, app)
    user_loaded_from_cookie.connect(_on_token_refreshed, app)

    @app.before_request
    def _load_session_context() -> None:
        load_session_context()

    @app.context_processor
    def _inject_session_context():
        return {'session_ctx': get_session_context()}


__all__ = [
    'SessionContext',
    'load_session_context',
    'get_session_context',
    'init_session',
]
