"""Flask CLI command groups."""

from eventhub.extensions import db
from eventhub.models import Chapter, Event, Lead, Profile, User


def test_user_create_and_set_role(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['user', 'create', '--email', 'New@Example.com', '--password', 'secret123',
                                 '--school', 'State'])
    assert 'User created successfully!' in result.output

    duplicate = runner.invoke(args=['user', 'create', '--email', 'new@example.com', '--password', 'x'])
    assert 'already exists' in duplicate.output

    result = runner.invoke(args=['user', 'set-role', '--email', 'new@example.com', '--role', 'admin'])
    assert 'set to admin' in result.output

    with app.app_context():
        user = db.session.execute(db.select(User).filter_by(email='new@example.com')).scalar_one()
        assert user.check_password('secret123')
        profile = db.session.get(Profile, user.id)
        assert profile.role == 'admin'
        assert profile.school == 'State'


def test_set_password_unknown_user(app):
    result = app.test_cli_runner().invoke(args=['user', 'set-password', '--email', 'nobody@x.com',
                                                '--password', 'x'])
    assert 'No user nobody@x.com found' in result.output


def test_chapter_commands(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['chapter', 'create', 'Beta'])
    runner.invoke(args=['chapter', 'create', 'Alpha'])
    assert 'already exists' in runner.invoke(args=['chapter', 'create', 'Alpha']).output

    lines = runner.invoke(args=['chapter', 'list']).output.strip().splitlines()
    assert [line.split('  ', 1)[1] for line in lines] == ['Alpha', 'Beta']


def test_seed_demo_is_idempotent(app):
    runner = app.test_cli_runner()
    assert 'Demo data created.' in runner.invoke(args=['seed', 'demo', '--events-per-client', '2']).output
    assert 'already present' in runner.invoke(args=['seed', 'demo']).output

    with app.app_context():
        assert db.session.execute(db.select(db.func.count(User.id))).scalar_one() == 5
        assert db.session.execute(db.select(db.func.count(Event.id))).scalar_one() == 8
        assert db.session.execute(db.select(db.func.count(Lead.id))).scalar_one() == 4
        assert db.session.execute(db.select(db.func.count(Chapter.id))).scalar_one() == 1
