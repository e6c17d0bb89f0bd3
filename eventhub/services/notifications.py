"""Realtime document notifications for clients and admins."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from flask import current_app

from eventhub.extensions import db
from eventhub.models import DocumentSlot, Profile
from eventhub.services.change_feed import ChangeFeed, EventChange, Subscription
from eventhub.services.roles import check_is_admin


def _appeared(change: EventChange, field_name: str) -> bool:
    return not change.old.get(field_name) and bool(change.new.get(field_name))


def client_notification(change: EventChange) -> str | None:
    """Message for the event owner when an admin adds a document.

    Only the first slot (in slot order) that went from absent to present is
    reported. The signed contract is uploaded by the client and is skipped.
    """
    event_name = change.event_name or 'Your Event'
    for slot in DocumentSlot:
        if slot is DocumentSlot.SIGNED_CONTRACT:
            continue
        if _appeared(change, slot.url_field):
            return f'An admin has uploaded a new {slot.label} for "{event_name}"!'
    return None


def actor_label(profile: Profile | dict[str, Any] | None) -> str:
    if profile is None:
        return 'A client'
    if isinstance(profile, dict):
        school, fraternity = profile.get('school'), profile.get('fraternity')
    else:
        school, fraternity = profile.school, profile.fraternity
    label = f"{school or ''} {fraternity or ''}".strip()
    return label or 'A client'


def admin_notification(
    change: EventChange,
    is_admin: Callable[[], bool],
    lookup_profile: Callable[[str], Profile | dict[str, Any] | None],
) -> str | None:
    """Message for admins when a client uploads a signed contract."""
    if not is_admin():
        return None
    if not _appeared(change, DocumentSlot.SIGNED_CONTRACT.url_field):
        return None

    try:
        profile = lookup_profile(change.user_id)
    except Exception as e:
        current_app.logger.error(f"Profile lookup failed for {change.user_id}: {e}")
        profile = None

    event_name = change.event_name or 'an Untitled Event'
    return f'{actor_label(profile)} has uploaded a signed contract for "{event_name}"!'


def _lookup_profile(user_id: str) -> Profile | None:
    return db.session.get(Profile, user_id)


class NotificationBridge:
    """Holds one client-facing and one admin-facing subscription for an identity."""

    def __init__(
        self,
        identity_id: str,
        feed: ChangeFeed,
        is_admin: Callable[[str], bool] = check_is_admin,
        lookup_profile: Callable[[str], Profile | dict[str, Any] | None] = _lookup_profile,
    ):
        self.identity_id = identity_id
        self.feed = feed
        self._is_admin = is_admin
        self._lookup_profile = lookup_profile
        self._client: Subscription | None = None
        self._admin: Subscription | None = None

    @property
    def active(self) -> bool:
        return self._client is not None

    def start(self, is_admin: bool | None = None) -> None:
        if not self.active:
            self._client = self.feed.subscribe(owner_id=self.identity_id)
            current_app.logger.debug(f"Notification bridge started for {self.identity_id}")
        self.sync_admin(is_admin)

    def sync_admin(self, is_admin: bool | None = None) -> None:
        """Hold the unfiltered admin subscription only while the identity is an admin."""
        if is_admin is None:
            is_admin = self._check_admin()
        if is_admin and self._admin is None:
            self._admin = self.feed.subscribe()
        elif not is_admin and self._admin is not None:
            self._admin.close()
            self._admin = None

    def stop(self) -> None:
        for subscription in (self._client, self._admin):
            if subscription is not None:
                subscription.close()
        self._client = None
        self._admin = None
        current_app.logger.debug(f"Notification bridge stopped for {self.identity_id}")

    def _check_admin(self) -> bool:
        try:
            return bool(self._is_admin(self.identity_id))
        except Exception as e:
            current_app.logger.error(f"Admin check failed for {self.identity_id}: {e}")
            return False

    def drain(self) -> list[str]:
        """Turn queued changes into user-facing messages."""
        if not self.active:
            return []
        messages = []
        for change in self._client.drain():
            message = client_notification(change)
            if message:
                messages.append(message)
        if self._admin is None:
            return messages
        for change in self._admin.drain():
            # The admin check runs per change; the feed is unfiltered
            message = admin_notification(change, self._check_admin, self._lookup_profile)
            if message:
                messages.append(message)
        return messages


class BridgeRegistry:
    """One bridge per signed-in identity for the lifetime of its session."""

    def __init__(self, feed: ChangeFeed, idle_timeout: float | None = None):
        self.feed = feed
        self.idle_timeout = idle_timeout
        self._bridges: dict[str, NotificationBridge] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def ensure(self, identity_id: str, is_admin: bool | None = None) -> NotificationBridge:
        now = time.monotonic()
        with self._lock:
            bridge = self._bridges.get(identity_id)
            if bridge is None:
                bridge = NotificationBridge(identity_id, self.feed)
                self._bridges[identity_id] = bridge
            self._last_seen[identity_id] = now
            idle = self._pop_idle(now)
        for stale in idle:
            stale.stop()
        bridge.start(is_admin)
        return bridge

    def _pop_idle(self, now: float) -> list[NotificationBridge]:
        # caller holds the lock
        if not self.idle_timeout:
            return []
        cutoff = now - self.idle_timeout
        stale_ids = [i for i, seen in self._last_seen.items() if seen < cutoff]
        for identity_id in stale_ids:
            self._last_seen.pop(identity_id, None)
        return [b for b in (self._bridges.pop(i, None) for i in stale_ids) if b is not None]

    def get(self, identity_id: str) -> NotificationBridge | None:
        with self._lock:
            return self._bridges.get(identity_id)

    def stop(self, identity_id: str) -> None:
        with self._lock:
            bridge = self._bridges.pop(identity_id, None)
            self._last_seen.pop(identity_id, None)
        if bridge is not None:
            bridge.stop()


def init_notifications(app) -> BridgeRegistry:
    registry = BridgeRegistry(
        app.extensions['change_feed'],
        idle_timeout=app.config.get('NOTIFICATION_IDLE_TIMEOUT', 1800),
    )
    app.extensions['notification_bridges'] = registry
    return registry


def get_registry() -> BridgeRegistry:
    return current_app.extensions['notification_bridges']


def drain_notifications(identity_id: str | None) -> list[str]:
    if not identity_id:
        return []
    bridge = get_registry().get(identity_id)
    return bridge.drain() if bridge else []


__all__ = [
    'client_notification',
    'admin_notification',
    'actor_label',
    'NotificationBridge',
    'BridgeRegistry',
    'init_notifications',
    'get_registry',
    'drain_notifications',
]
