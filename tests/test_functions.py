"""Admin functions under /functions/v1."""

import io

import pytest

from conftest import login, make_chapter, make_event
from eventhub.extensions import db
from eventhub.models import AuditLog, Profile


@pytest.fixture
def admin_client(app, accounts):
    client = app.test_client()
    login(client, 'admin@test.com')
    return client


@pytest.fixture
def owner_client(app, accounts):
    client = app.test_client()
    login(client, 'client@test.com')
    return client


def test_preflight_has_cors_headers(client):
    response = client.options('/functions/v1/get-all-chapters')
    assert response.status_code == 200
    assert response.data == b''
    assert response.headers['Access-Control-Allow-Origin'] == '*'
    assert 'content-type' in response.headers['Access-Control-Allow-Headers']


@pytest.mark.parametrize('name', [
    'get-all-user-profiles',
    'get-all-chapters',
    'get-chapter-analytics',
    'update-user-chapter',
    'update-user-role',
    'import-leads',
])
def test_non_admin_forbidden(owner_client, name):
    response = owner_client.post(f'/functions/v1/{name}', json={})
    assert response.status_code == 403
    assert 'error' in response.get_json()
    assert response.headers['Access-Control-Allow-Origin'] == '*'


def test_anonymous_forbidden(client):
    assert client.post('/functions/v1/get-all-chapters').status_code == 403


def test_all_user_profiles(app, accounts, admin_client):
    with app.app_context():
        make_event(accounts['owner'], budget=1000.0, signed_contract_url='http://x/signed.pdf')
        make_event(accounts['owner'], budget=3000.0)

    profiles = admin_client.post('/functions/v1/get-all-user-profiles').get_json()
    owner = next(p for p in profiles if p['id'] == accounts['owner'])
    assert owner['email'] == 'client@test.com'
    assert owner['totalEvents'] == 2
    assert owner['averageBudget'] == 2000
    assert owner['signedContractsCount'] == 1
    assert owner['lastEventDate'] == '2030-04-01'

    other = next(p for p in profiles if p['id'] == accounts['other'])
    assert other['totalEvents'] == 0
    assert other['averageBudget'] == 0
    assert other['lastEventDate'] is None


def test_chapters_sorted_by_name(app, admin_client):
    with app.app_context():
        make_chapter('Zeta')
        make_chapter('Alpha')
    names = [c['name'] for c in admin_client.get('/functions/v1/get-all-chapters').get_json()]
    assert names == ['Alpha', 'Zeta']


def test_chapter_analytics_with_no_events(app, admin_client):
    with app.app_context():
        chapter_id = make_chapter().id

    response = admin_client.post('/functions/v1/get-chapter-analytics', json={'chapterId': chapter_id})
    assert response.status_code == 200
    data = response.get_json()
    assert data['total_events'] == 0
    assert data['average_budget'] == 0
    assert data['ltv'] == 15000
    assert data['close_percentage'] == 75


def test_chapter_analytics_average(app, accounts, admin_client):
    with app.app_context():
        chapter_id = make_chapter().id
        db.session.get(Profile, accounts['owner']).chapter_id = chapter_id
        db.session.commit()
        make_event(accounts['owner'], chapter_id=chapter_id, budget=1000.0)
        make_event(accounts['owner'], chapter_id=chapter_id, budget=2000.5)

    data = admin_client.post('/functions/v1/get-chapter-analytics', json={'chapterId': chapter_id}).get_json()
    assert data['total_members'] == 1
    assert data['total_events'] == 2
    assert data['average_budget'] == 1500.25


def test_chapter_analytics_errors(admin_client):
    assert admin_client.post('/functions/v1/get-chapter-analytics', json={}).status_code == 400
    response = admin_client.post('/functions/v1/get-chapter-analytics', json={'chapterId': 'missing'})
    assert response.status_code == 404


def test_update_user_role(app, accounts, admin_client):
    response = admin_client.post('/functions/v1/update-user-role',
                                 json={'userId': accounts['owner'], 'newRole': 'admin'})
    assert response.status_code == 200
    assert response.get_json() == {'message': 'User role updated successfully.'}
    with app.app_context():
        assert db.session.get(Profile, accounts['owner']).role == 'admin'
        actions = db.session.execute(db.select(AuditLog.action)).scalars().all()
        assert 'user_role_updated' in actions

    bad = admin_client.post('/functions/v1/update-user-role',
                            json={'userId': accounts['owner'], 'newRole': 'superuser'})
    assert bad.status_code == 400


def test_update_user_chapter_assign_and_clear(app, accounts, admin_client):
    with app.app_context():
        chapter_id = make_chapter().id

    assert admin_client.post('/functions/v1/update-user-chapter',
                             json={'userId': accounts['owner'], 'chapterId': chapter_id}).status_code == 200
    with app.app_context():
        assert db.session.get(Profile, accounts['owner']).chapter_id == chapter_id

    assert admin_client.post('/functions/v1/update-user-chapter',
                             json={'userId': accounts['owner'], 'chapterId': None}).status_code == 200
    with app.app_context():
        assert db.session.get(Profile, accounts['owner']).chapter_id is None

    assert admin_client.post('/functions/v1/update-user-chapter',
                             json={'userId': accounts['owner'], 'chapterId': 42}).status_code == 400


def test_import_leads_endpoint(admin_client):
    csv_text = (
        'school,fraternity,contact_email,contact_name,status,notes\n'
        'State,Alpha,a@example.com,Ann,new,\n'
        'Tech,Beta,b@example.com,Ben,contacted,\n'
        'City,Gamma,c@example.com,Cal,rejected,\n'
        'Town,Delta,,Dan,new,\n'
    )
    response = admin_client.post(
        '/functions/v1/import-leads',
        data={'file': (io.BytesIO(csv_text.encode()), 'leads.csv')},
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    data = response.get_json()
    assert data['insertedCount'] == 3
    assert data['errorCount'] == 1
    assert data['errors'][0]['record']['school'] == 'Town'


def test_import_leads_requires_file(admin_client):
    response = admin_client.post('/functions/v1/import-leads', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
