"""Authentication helpers shared across blueprints."""

from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar, cast

from flask import flash, jsonify, redirect, request, url_for
from flask_login import current_user

from eventhub.services.session import get_session_context

F = TypeVar('F', bound=Callable[..., object])


def login_required_with_message(func: F) -> F:
    """Decorator requiring authentication with custom flash message."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            flash('Please log in to access this page', 'warning')
            return redirect(url_for('auth.login', next=request.url))
        return func(*args, **kwargs)
    return cast(F, wrapper)


def admin_required(func: F) -> F:
    """Decorator to ensure the current identity resolved to the admin capability."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            flash('Please log in to access this page', 'warning')
            return redirect(url_for('auth.login', next=request.url))

        if not get_session_context().is_admin:
            flash('You need administrator privileges to access this page', 'error')
            return redirect(url_for('client.dashboard'))

        return func(*args, **kwargs)

    return cast(F, wrapper)


def api_login_required(func: F) -> F:
    """JSON variant: 401 instead of a redirect."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Authentication required'}), 401
        return func(*args, **kwargs)
    return cast(F, wrapper)


def api_admin_required(func: F) -> F:
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Authentication required'}), 401
        if not get_session_context().is_admin:
            return jsonify({'error': 'Forbidden: Only administrators can access this resource.'}), 403
        return func(*args, **kwargs)
    return cast(F, wrapper)


__all__ = [
    'login_required_with_message',
    'admin_required',
    'api_login_required',
    'api_admin_required',
]
