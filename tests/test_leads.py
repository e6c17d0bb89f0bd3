"""Lead database: creation, status updates, search and CSV parsing."""

import pytest

from conftest import make_user
from eventhub.errors import RemoteError, ValidationError
from eventhub.models import Lead
from eventhub.services.admin_functions import import_leads, parse_lead_rows
from eventhub.services.leads import create_lead, list_leads, search_leads, update_lead_status

CSV_HEADER = 'school,fraternity,contact_email,contact_name,status,notes\n'


@pytest.fixture
def admin(ctx):
    return make_user('admin@test.com', role='admin')


class TestLeadService:
    def test_create_defaults_status(self, admin):
        lead = create_lead({'school': 'State', 'fraternity': 'Alpha', 'contact_phone': '(555) 123-4567'}, admin)
        assert lead.status == 'contacted'
        assert lead.created_by == admin.id

    def test_create_rejects_bad_phone(self, admin):
        with pytest.raises(ValidationError):
            create_lead({'school': 'State', 'fraternity': 'Alpha', 'contact_phone': '12'}, admin)

    def test_create_rejects_unknown_status(self, admin):
        with pytest.raises(ValidationError):
            create_lead({'school': 'State', 'fraternity': 'Alpha', 'contact_phone': '5551234567',
                         'status': 'converted'}, admin)

    def test_update_status(self, admin):
        lead = create_lead({'school': 'State', 'fraternity': 'Alpha', 'contact_phone': '5551234567'}, admin)
        assert update_lead_status(lead.id, 'declined', admin).status == 'declined'
        with pytest.raises(ValidationError):
            update_lead_status(lead.id, 'maybe', admin)

    def test_update_missing_lead(self, admin):
        with pytest.raises(RemoteError) as exc:
            update_lead_status('missing', 'declined', admin)
        assert exc.value.status_code == 404

    def test_list_newest_first(self, admin):
        first = create_lead({'school': 'A', 'fraternity': 'X', 'contact_phone': '5551234567'}, admin)
        second = create_lead({'school': 'B', 'fraternity': 'Y', 'contact_phone': '5557654321'}, admin)
        ids = [lead.id for lead in list_leads()]
        assert set(ids) == {first.id, second.id}


class TestSearch:
    LEADS = [
        Lead(school='State University', fraternity='Alpha Beta', contact_phone='555-0100',
             instagram_handle='@alphabeta', contact_name='Jordan', status='contacted'),
        Lead(school='Tech Institute', fraternity='Gamma Delta', contact_phone=None,
             instagram_handle=None, contact_name=None, status='no_answer'),
    ]

    @pytest.mark.parametrize('query, expected', [
        ('state', ['State University']),
        ('GAMMA', ['Tech Institute']),
        ('0100', ['State University']),
        ('@alpha', ['State University']),
        ('jordan', ['State University']),
        ('no_answer', ['Tech Institute']),
        ('', ['State University', 'Tech Institute']),
        ('nothing', []),
    ])
    def test_search_fields(self, query, expected):
        assert [lead.school for lead in search_leads(self.LEADS, query)] == expected


class TestCsvImport:
    def test_three_valid_one_missing_email(self, admin):
        content = CSV_HEADER + (
            'State,Alpha,a@example.com,Ann,contacted,\n'
            'Tech,Beta,b@example.com,Ben,,note\n'
            'City,Gamma,c@example.com,,CONVERTED,\n'
            'Town,Delta,,Dan,new,\n'
        )
        payload, status = import_leads(content, admin)

        assert status == 200
        assert payload['insertedCount'] == 3
        assert payload['errorCount'] == 1
        assert payload['errors'][0]['record']['school'] == 'Town'
        assert 'contact_email' in payload['errors'][0]['message']
        statuses = sorted(lead.status for lead in list_leads())
        assert statuses == ['contacted', 'converted', 'new']

    def test_no_valid_rows_is_rejected(self, admin):
        payload, status = import_leads(CSV_HEADER + 'State,,a@example.com,,,\n', admin)
        assert status == 400
        assert payload['message'] == 'No valid leads to insert.'
        assert len(payload['errors']) == 1
        assert list_leads() == []

    def test_status_defaults_to_new(self):
        leads, errors = parse_lead_rows(CSV_HEADER + 'State,Alpha,a@example.com,,bogus,\n')
        assert errors == []
        assert leads[0]['status'] == 'new'

    def test_invalid_email(self):
        leads, errors = parse_lead_rows(CSV_HEADER + 'State,Alpha,not-an-email,,,\n')
        assert leads == []
        assert errors[0]['message'] == 'Invalid contact_email format.'
