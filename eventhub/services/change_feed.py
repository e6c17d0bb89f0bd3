"""Row-level change feed for the events table.

Updates to ``Event`` rows are captured during flush, held on the session and
published to subscribers once the transaction commits. Each subscription
owns a queue that its consumer drains on its own schedule.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field

from flask import current_app, has_app_context
from sqlalchemy import event as sa_event

from eventhub.extensions import db
from eventhub.models import DocumentSlot, Event

SLOT_FIELDS = tuple(slot.url_field for slot in DocumentSlot)

_PENDING_KEY = 'eventhub_pending_changes'
_OLD_VALUES_KEY = '_eventhub_slot_old'


@dataclass(frozen=True)
class EventChange:
    """Old and new slot values of one updated event row."""

    event_id: str
    user_id: str
    event_name: str | None
    old: dict[str, str | None] = field(default_factory=dict)
    new: dict[str, str | None] = field(default_factory=dict)


class Subscription:
    def __init__(self, feed: ChangeFeed, owner_id: str | None = None, maxsize: int = 0):
        self.feed = feed
        self.owner_id = owner_id
        self.queue: queue.Queue[EventChange] = queue.Queue(maxsize)
        self.active = True

    def matches(self, change: EventChange) -> bool:
        return self.owner_id is None or change.user_id == self.owner_id

    def offer(self, change: EventChange) -> None:
        """Queue a change, dropping the oldest one when the queue is full."""
        while True:
            try:
                self.queue.put_nowait(change)
                return
            except queue.Full:
                try:
                    self.queue.get_nowait()
                except queue.Empty:
                    pass

    def drain(self) -> list[EventChange]:
        changes = []
        while True:
            try:
                changes.append(self.queue.get_nowait())
            except queue.Empty:
                return changes

    def close(self) -> None:
        if self.active:
            self.feed.unsubscribe(self)
            self.active = False


class ChangeFeed:
    """Fan-out of event changes to filtered subscriptions."""

    def __init__(self, max_queue_size: int = 0):
        self.max_queue_size = max_queue_size
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, owner_id: str | None = None) -> Subscription:
        subscription = Subscription(self, owner_id, self.max_queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: EventChange) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]
        for subscription in targets:
            subscription.offer(change)


def get_feed() -> ChangeFeed:
    return current_app.extensions['change_feed']


def init_change_feed(app) -> ChangeFeed:
    feed = ChangeFeed(app.config.get('NOTIFICATION_QUEUE_SIZE', 100))
    app.extensions['change_feed'] = feed
    return feed


def _record_old_value(field_name: str):
    def listener(target, value, oldvalue, initiator):
        old_values = target.__dict__.setdefault(_OLD_VALUES_KEY, {})
        if field_name not in old_values:
            old_values[field_name] = oldvalue if isinstance(oldvalue, str) else None
    return listener


# active_history loads the previous value even when the row was expired
for _field in SLOT_FIELDS:
    sa_event.listen(getattr(Event, _field), 'set', _record_old_value(_field), active_history=True)


@sa_event.listens_for(db.session, 'after_flush')
def _collect_event_changes(session, flush_context) -> None:
    for obj in session.new:
        if isinstance(obj, Event):
            obj.__dict__.pop(_OLD_VALUES_KEY, None)
    for obj in session.dirty:
        if not isinstance(obj, Event) or not session.is_modified(obj):
            continue
        old_values = obj.__dict__.pop(_OLD_VALUES_KEY, {})
        new = obj.slot_snapshot()
        old = {name: old_values.get(name, new[name]) for name in SLOT_FIELDS}
        if old == new:
            continue
        session.info.setdefault(_PENDING_KEY, []).append(EventChange(
            event_id=obj.id,
            user_id=obj.user_id,
            event_name=obj.event_name,
            old=old,
            new=new,
        ))


@sa_event.listens_for(db.session, 'after_commit')
def _publish_event_changes(session) -> None:
    changes = session.info.pop(_PENDING_KEY, [])
    if not changes or not has_app_context():
        return
    feed = current_app.extensions.get('change_feed')
    if feed is None:
        return
    for change in changes:
        current_app.logger.debug(f"Publishing change for event {change.event_id}")
        feed.publish(change)


@sa_event.listens_for(db.session, 'after_rollback')
def _discard_event_changes(session) -> None:
    session.info.pop(_PENDING_KEY, None)
    for obj in list(session.identity_map.values()):
        if isinstance(obj, Event):
            obj.__dict__.pop(_OLD_VALUES_KEY, None)


__all__ = [
    'EventChange',
    'Subscription',
    'ChangeFeed',
    'SLOT_FIELDS',
    'get_feed',
    'init_change_feed',
]
