"""Data seeding CLI commands."""

import random
from datetime import date, timedelta

import click
from flask.cli import with_appcontext

from eventhub.extensions import db
from eventhub.models import Chapter, Event, Lead, User, UserRole
from eventhub.services.profiles import ensure_profile

DEMO_SCHOOLS = [
    ('State University', 'Alpha Beta'),
    ('Tech Institute', 'Gamma Delta'),
    ('Riverside College', 'Sigma Chi'),
    ('Northern University', 'Kappa Sigma'),
]


@click.group('seed')
def seed_commands():
    """Data seeding commands."""
    pass


@seed_commands.command('demo')
@click.option('--password', default='password123', show_default=True, help='Password for demo accounts')
@click.option('--events-per-client', default=3, show_default=True, help='Events per demo client')
@with_appcontext
def seed_demo(password, events_per_client):
    """Seed an admin, demo clients with events, a chapter and leads.

    Example:
        flask seed demo
        flask seed demo --events-per-client 5
    """
    if db.session.execute(db.select(User).filter_by(email='admin@example.com')).scalar_one_or_none():
        click.echo(click.style('Demo data already present.', fg='yellow'))
        return

    chapter = Chapter(name='Demo Chapter')
    db.session.add(chapter)

    admin = User(email='admin@example.com')
    admin.set_password(password)
    db.session.add(admin)
    db.session.flush()
    ensure_profile(admin, role=UserRole.ADMIN.value, first_name='Demo', last_name='Admin')

    today = date.today()
    for index, (school, fraternity) in enumerate(DEMO_SCHOOLS, start=1):
        client = User(email=f'client{index}@example.com')
        client.set_password(password)
        db.session.add(client)
        db.session.flush()
        ensure_profile(client, school=school, fraternity=fraternity, chapter_id=chapter.id)

        for n in range(events_per_client):
            db.session.add(Event(
                user_id=client.id,
                chapter_id=chapter.id,
                event_name=f'{fraternity} Event {n + 1}',
                event_date=today + timedelta(days=random.randint(-60, 90)),
                budget=float(random.randrange(2000, 20000, 500)),
                contact_phone=f'+1555000{index:02d}{n:02d}',
            ))

        db.session.add(Lead(
            school=school,
            fraternity=fraternity,
            contact_phone=f'(555) 010-{index:04d}',
            contact_name=f'Contact {index}',
            status='contacted',
            created_by=admin.id,
        ))

    db.session.commit()
    click.echo(click.style('Demo data created.', fg='green'))
    click.echo('  Admin: admin@example.com')
    click.echo(f'  Clients: client1..client{len(DEMO_SCHOOLS)}@example.com')
