"""Page routes: sign-in, dashboards, admin screens and public storage."""

import io
from datetime import date

from conftest import login, make_chapter, make_event, make_user
from eventhub.extensions import db
from eventhub.forms.events import EventForm
from eventhub.models import AuditLog, Event
from eventhub.services.storage import DOCUMENTS_BUCKET, get_bucket


class TestAuth:
    def test_login_page_renders(self, client):
        response = client.get('/login')
        assert response.status_code == 200
        assert b'Sign in' in response.data

    def test_unauthenticated_redirects_to_login(self, client):
        response = client.get('/dashboard')
        assert response.status_code == 302
        assert '/login' in response.headers['Location']

    def test_login_success_redirects_to_dashboard(self, app, client, accounts):
        response = login(client, 'CLIENT@test.com')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/dashboard')
        with app.app_context():
            actions = db.session.execute(db.select(AuditLog.action)).scalars().all()
            assert 'login_success' in actions

    def test_login_wrong_password(self, client, accounts):
        response = login(client, 'client@test.com', 'wrong')
        assert response.status_code == 200
        assert b'Invalid email or password' in response.data

    def test_inactive_account_rejected(self, app, client):
        with app.app_context():
            user = make_user('inactive@test.com')
            user.active = False
            db.session.commit()
        response = login(client, 'inactive@test.com')
        assert b'Account is inactive' in response.data

    def test_authenticated_login_goes_to_dashboard(self, client, accounts):
        login(client, 'client@test.com')
        response = client.get('/login')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/dashboard')

    def test_login_honours_relative_next_only(self, client, accounts):
        response = client.post('/login?next=//evil.example.com',
                               data={'email': 'client@test.com', 'password': 'TestPass123!'})
        assert response.headers['Location'].endswith('/dashboard')

    def test_logout(self, client, accounts):
        login(client, 'client@test.com')
        response = client.get('/logout')
        assert response.status_code == 302
        assert '/login' in response.headers['Location']
        assert client.get('/dashboard').status_code == 302


class TestClientPages:
    def test_dashboard_lists_events(self, app, client, accounts):
        with app.app_context():
            make_event(accounts['owner'], event_name='Winter Ball')
            make_event(accounts['other'], event_name='Hidden Party')
        login(client, 'client@test.com')
        response = client.get('/dashboard')
        assert response.status_code == 200
        assert b'Winter Ball' in response.data
        assert b'Hidden Party' not in response.data

    def test_create_event_form(self, app, client, accounts):
        login(client, 'client@test.com')
        response = client.post('/events', data={
            'event_name': 'Launch Night',
            'event_date': '2030-05-01',
            'budget': '2500',
            'contact_phone': '+15551234567',
        })
        assert response.status_code == 302
        assert '/events/' in response.headers['Location']
        with app.app_context():
            event = db.session.execute(db.select(Event)).scalar_one()
            assert event.event_name == 'Launch Night'
            assert event.event_date == date(2030, 5, 1)
            assert event.user_id == accounts['owner']

    def test_create_event_requires_artist_name(self, app, client, accounts):
        login(client, 'client@test.com')
        response = client.post('/events', data={
            'event_date': '2030-05-01',
            'budget': '2500',
            'contact_phone': '+15551234567',
            'hiring_artist': 'y',
        }, follow_redirects=True)
        assert b'Artist name is required' in response.data
        with app.app_context():
            assert db.session.execute(db.select(Event)).first() is None

    def test_event_form_flags_missing_artist(self, app):
        data = {
            'event_date': '2030-05-01',
            'budget': '2500',
            'contact_phone': '+15551234567',
            'hiring_artist': 'y',
            'artist_name': '   ',
        }
        with app.test_request_context(method='POST', data=data):
            form = EventForm()
            assert not form.validate()
            assert form.errors['artist_name'] == ['Artist name is required if you are hiring an artist.']

    def test_event_form_allows_blank_artist_when_not_hiring(self, app):
        data = {'event_date': '2030-05-01', 'budget': '2500', 'contact_phone': '+15551234567'}
        with app.test_request_context(method='POST', data=data):
            form = EventForm()
            assert form.validate(), form.errors

    def test_event_detail_of_other_client_forbidden(self, app, client, accounts):
        with app.app_context():
            event_id = make_event(accounts['other']).id
        login(client, 'client@test.com')
        assert client.get(f'/events/{event_id}').status_code == 403

    def test_unknown_event_is_404(self, client, accounts):
        login(client, 'client@test.com')
        response = client.get('/events/does-not-exist')
        assert response.status_code == 404
        assert b'does not exist' in response.data

    def test_event_detail_and_stage(self, app, client, accounts):
        with app.app_context():
            event_id = make_event(accounts['owner']).id
        login(client, 'client@test.com')
        detail = client.get(f'/events/{event_id}')
        assert detail.status_code == 200
        assert b'Checklist' in detail.data
        assert b'Signed Contract' in detail.data
        stage = client.get(f'/events/{event_id}/stage')
        assert b'coming soon' in stage.data

    def test_profile_update(self, app, client, accounts):
        login(client, 'client@test.com')
        assert client.get('/profile').status_code == 200
        response = client.post('/profile', data={'first_name': 'Sam', 'school': 'New School'},
                               follow_redirects=True)
        assert b'Profile updated successfully!' in response.data
        assert b'New School' in response.data


class TestAdminPages:
    def test_client_is_redirected_from_admin(self, client, accounts):
        login(client, 'client@test.com')
        response = client.get('/admin/', follow_redirects=True)
        assert b'administrator privileges' in response.data

    def test_admin_pages_render(self, app, client, accounts):
        with app.app_context():
            make_event(accounts['owner'], event_date=date(2030, 6, 1))
            chapter_id = make_chapter().id
        login(client, 'admin@test.com')
        for path in ('/admin/', '/admin/analytics', '/admin/clients', '/admin/leads',
                     f"/admin/clients/{accounts['owner']}", f'/admin/chapters/{chapter_id}',
                     '/admin/calendar?date=2030-06-01', '/admin/event-documents'):
            assert client.get(path).status_code == 200, path

    def test_unknown_chapter_is_404(self, client, accounts):
        login(client, 'admin@test.com')
        assert client.get('/admin/chapters/missing').status_code == 404

    def test_calendar_lists_events_on_date(self, app, client, accounts):
        with app.app_context():
            make_event(accounts['owner'], event_name='June Gala', event_date=date(2030, 6, 1))
        login(client, 'admin@test.com')
        assert b'June Gala' in client.get('/admin/calendar?date=2030-06-01').data
        assert b'June Gala' not in client.get('/admin/calendar?date=2030-06-02').data

    def test_signed_contract_read_only_on_document_manager(self, app, client, accounts):
        with app.app_context():
            event_id = make_event(accounts['owner']).id
        login(client, 'admin@test.com')
        page = client.get('/admin/event-documents').get_data(as_text=True)
        assert f'/events/{event_id}/documents/invoice' in page
        assert f'/events/{event_id}/documents/signed_contract' not in page

    def test_lead_form_and_status(self, app, client, accounts):
        login(client, 'admin@test.com')
        response = client.post('/admin/leads', data={
            'school': 'State', 'fraternity': 'Alpha', 'contact_phone': '(555) 123-4567', 'status': 'contacted',
        }, follow_redirects=True)
        assert b'Lead added successfully!' in response.data
        assert b'State' in client.get('/admin/leads?q=alpha').data
        assert b'No leads found' in client.get('/admin/leads?q=zzz').data

    def test_role_change_from_client_profile(self, app, client, accounts):
        login(client, 'admin@test.com')
        response = client.post(f"/admin/clients/{accounts['owner']}/role", data={'role': 'admin'},
                               follow_redirects=True)
        assert b'User role updated successfully.' in response.data


class TestPublicStorage:
    def test_serves_stored_object(self, app, client):
        with app.test_request_context():
            get_bucket(DOCUMENTS_BUCKET).upload('owner/file.pdf', io.BytesIO(b"%PDF-data"))
        response = client.get('/storage/v1/object/public/event-documents/owner/file.pdf')
        assert response.status_code == 200
        assert response.data == b'%PDF-data'

    def test_missing_object_is_404(self, client):
        assert client.get('/storage/v1/object/public/event-documents/none.pdf').status_code == 404
        assert client.get('/storage/v1/object/public/unknown/none.pdf').status_code == 404
