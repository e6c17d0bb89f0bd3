"""Change feed and the client/admin notification bridge."""

from types import SimpleNamespace

import pytest

from conftest import login, make_event, make_user, upload_file
from eventhub.extensions import db
from eventhub.models import Event
from eventhub.services.change_feed import ChangeFeed, EventChange, get_feed
from eventhub.services import notifications
from eventhub.services.notifications import (
    BridgeRegistry,
    NotificationBridge,
    actor_label,
    admin_notification,
    client_notification,
)

EMPTY = {
    'renders_url': None,
    'contract_url': None,
    'invoice_url': None,
    'equipment_list_url': None,
    'other_documents_url': None,
    'signed_contract_url': None,
}


def change(new=None, old=None, event_name='Spring Formal', user_id='owner'):
    return EventChange(
        event_id='event-1',
        user_id=user_id,
        event_name=event_name,
        old={**EMPTY, **(old or {})},
        new={**EMPTY, **(new or {})},
    )


class TestClientNotification:
    def test_two_slots_appearing_raise_one_message(self):
        message = client_notification(change(new={'invoice_url': 'u1', 'contract_url': 'u2'}))
        assert message == 'An admin has uploaded a new Contract for "Spring Formal"!'

    def test_untitled_event(self):
        message = client_notification(change(new={'equipment_list_url': 'u'}, event_name=None))
        assert message == 'An admin has uploaded a new Equipment List for "Your Event"!'

    def test_replacement_is_not_an_appearance(self):
        assert client_notification(change(old={'renders_url': 'a'}, new={'renders_url': 'b'})) is None

    def test_signed_contract_is_ignored(self):
        assert client_notification(change(new={'signed_contract_url': 'u'})) is None


class TestAdminNotification:
    def test_message_uses_school_and_fraternity(self):
        message = admin_notification(
            change(new={'signed_contract_url': 'u'}),
            is_admin=lambda: True,
            lookup_profile=lambda user_id: {'school': 'State', 'fraternity': 'Alpha Beta'},
        )
        assert message == 'State Alpha Beta has uploaded a signed contract for "Spring Formal"!'

    def test_non_admin_gets_nothing(self):
        assert admin_notification(change(new={'signed_contract_url': 'u'}), lambda: False, lambda _: None) is None

    def test_lookup_failure_falls_back(self, ctx):
        def broken(user_id):
            raise RuntimeError('lookup failed')

        message = admin_notification(change(new={'signed_contract_url': 'u'}, event_name=None), lambda: True, broken)
        assert message == 'A client has uploaded a signed contract for "an Untitled Event"!'

    def test_actor_label_blank(self):
        assert actor_label({'school': ' ', 'fraternity': None}) == 'A client'


class TestChangeFeed:
    def test_owner_filter(self):
        feed = ChangeFeed()
        mine = feed.subscribe(owner_id='owner')
        everyone = feed.subscribe()
        feed.publish(change(user_id='someone-else'))
        assert mine.drain() == []
        assert len(everyone.drain()) == 1

    def test_close_unsubscribes(self):
        feed = ChangeFeed()
        subscription = feed.subscribe()
        subscription.close()
        assert feed.subscriber_count == 0

    def test_commit_publishes_slot_transition(self, ctx):
        owner = make_user('owner@test.com')
        event = make_event(owner.id)
        subscription = get_feed().subscribe(owner_id=owner.id)

        event.renders_url = 'http://localhost/renders.pdf'
        db.session.commit()

        changes = subscription.drain()
        assert len(changes) == 1
        assert changes[0].old['renders_url'] is None
        assert changes[0].new['renders_url'] == 'http://localhost/renders.pdf'

    def test_rollback_publishes_nothing(self, ctx):
        owner = make_user('owner@test.com')
        event = make_event(owner.id)
        subscription = get_feed().subscribe()

        event.contract_url = 'http://localhost/contract.pdf'
        db.session.flush()
        db.session.rollback()

        assert subscription.drain() == []

    def test_rollback_clears_recorded_old_values(self, ctx):
        owner = make_user('owner@test.com')
        event = make_event(owner.id)
        subscription = get_feed().subscribe()

        event.renders_url = 'http://localhost/stale.pdf'
        db.session.rollback()
        assert '_eventhub_slot_old' not in event.__dict__

        event.budget = 7000.0
        db.session.commit()
        assert subscription.drain() == []

    def test_non_slot_edit_publishes_nothing(self, ctx):
        owner = make_user('owner@test.com')
        event = make_event(owner.id)
        subscription = get_feed().subscribe()

        event.budget = 6500.0
        event.renders_url = event.renders_url
        db.session.commit()

        assert subscription.drain() == []

    def test_full_queue_drops_oldest(self):
        feed = ChangeFeed(max_queue_size=2)
        subscription = feed.subscribe()
        for name in ('first', 'second', 'third'):
            feed.publish(change(event_name=name))
        assert [c.event_name for c in subscription.drain()] == ['second', 'third']


class TestBridge:
    def test_stop_unsubscribes_both(self, ctx):
        feed = ChangeFeed()
        bridge = NotificationBridge('admin', feed, is_admin=lambda _: True, lookup_profile=lambda _: None)
        bridge.start()
        assert feed.subscriber_count == 2
        bridge.stop()
        assert feed.subscriber_count == 0

    def test_client_gets_no_unfiltered_subscription(self, ctx):
        feed = ChangeFeed()
        bridge = NotificationBridge('owner', feed, is_admin=lambda _: False, lookup_profile=lambda _: None)
        bridge.start()
        assert feed.subscriber_count == 1
        feed.publish(change(new={'signed_contract_url': 'u'}, user_id='someone-else'))
        assert bridge.drain() == []

    def test_promotion_and_demotion_follow_sync(self, ctx):
        feed = ChangeFeed()
        bridge = NotificationBridge('owner', feed, is_admin=lambda _: False, lookup_profile=lambda _: None)
        bridge.start()
        bridge.sync_admin(True)
        assert feed.subscriber_count == 2
        bridge.sync_admin(False)
        assert feed.subscriber_count == 1

    def test_admin_check_runs_per_change(self, ctx):
        feed = ChangeFeed()
        # first answer is consumed when the bridge starts
        answers = iter([True, True, False])
        bridge = NotificationBridge('admin', feed, is_admin=lambda _: next(answers),
                                    lookup_profile=lambda _: None)
        bridge.start()
        feed.publish(change(new={'signed_contract_url': 'u'}))
        feed.publish(change(new={'signed_contract_url': 'u'}))
        assert bridge.drain() == ['A client has uploaded a signed contract for "Spring Formal"!']


class TestRegistry:
    def test_idle_bridges_are_pruned(self, ctx, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(notifications, 'time', SimpleNamespace(monotonic=lambda: clock[0]))
        feed = ChangeFeed()
        registry = BridgeRegistry(feed, idle_timeout=60)

        registry.ensure('first', is_admin=False)
        clock[0] += 61
        registry.ensure('second', is_admin=False)

        assert registry.get('first') is None
        assert registry.get('second') is not None
        assert feed.subscriber_count == 1

    def test_recent_bridges_survive(self, ctx, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(notifications, 'time', SimpleNamespace(monotonic=lambda: clock[0]))
        registry = BridgeRegistry(ChangeFeed(), idle_timeout=60)

        registry.ensure('first', is_admin=False)
        clock[0] += 30
        registry.ensure('second', is_admin=False)
        assert registry.get('first') is not None


def test_client_session_ignores_other_owners_edits(app, accounts):
    client = app.test_client()
    login(client, 'client@test.com')
    feed = app.extensions['change_feed']
    bridge = app.extensions['notification_bridges'].get(accounts['owner'])
    assert bridge._admin is None

    with app.app_context():
        event = make_event(accounts['other'])
        for step in range(50):
            event.budget = 1000.0 + step
            db.session.commit()

    assert bridge._client.queue.qsize() == 0
    assert feed.subscriber_count == 1
    assert client.get('/api/v1/notifications').get_json()['items'] == []


def test_admin_upload_notifies_owner(app, accounts):
    with app.app_context():
        event_id = make_event(accounts['owner']).id

    owner_client = app.test_client()
    admin_client = app.test_client()
    login(owner_client, 'client@test.com')
    login(admin_client, 'admin@test.com')

    response = admin_client.post(
        f'/api/v1/events/{event_id}/documents/invoice',
        data={'file': (upload_file().stream, 'invoice.pdf')},
        content_type='multipart/form-data',
    )
    assert response.status_code == 200

    items = owner_client.get('/api/v1/notifications').get_json()['items']
    assert items == ['An admin has uploaded a new Invoice for "Spring Formal"!']
    assert owner_client.get('/api/v1/notifications').get_json()['items'] == []


def test_signed_contract_notifies_admin(app, accounts):
    with app.app_context():
        event_id = make_event(accounts['owner']).id

    owner_client = app.test_client()
    admin_client = app.test_client()
    login(admin_client, 'admin@test.com')
    login(owner_client, 'client@test.com')

    response = owner_client.post(
        f'/api/v1/events/{event_id}/documents/signed_contract',
        data={'file': (upload_file().stream, 'signed.pdf')},
        content_type='multipart/form-data',
    )
    assert response.status_code == 200

    items = admin_client.get('/api/v1/notifications').get_json()['items']
    assert items == ['State University Alpha Beta has uploaded a signed contract for "Spring Formal"!']


def test_logout_stops_bridge(app, accounts):
    client = app.test_client()
    login(client, 'client@test.com')
    registry = app.extensions['notification_bridges']
    assert registry.get(accounts['owner']) is not None

    client.get('/logout')
    assert registry.get(accounts['owner']) is None
