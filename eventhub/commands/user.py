"""User management CLI commands."""

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from eventhub.extensions import db
from eventhub.models import User, UserRole
from eventhub.services.profiles import ensure_profile


def _get_user_by_email(email: str) -> User | None:
    return db.session.execute(
        db.select(User).where(func.lower(User.email) == email.strip().lower())
    ).scalar_one_or_none()


@click.group('user')
def user_commands():
    """User management commands."""
    pass


@user_commands.command('create')
@click.option('--email', required=True, help='User email')
@click.option('--password', required=True, help='User password')
@click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.CLIENT.value, show_default=True)
@click.option('--school', default=None, help='School name')
@click.option('--fraternity', default=None, help='Fraternity name')
@with_appcontext
def create_user(email, password, role, school, fraternity):
    """Create a user and its profile."""
    if _get_user_by_email(email):
        click.echo(click.style(f'Error: User with email "{email}" already exists', fg='red'))
        return

    user = User(email=email.strip().lower())
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    ensure_profile(user, role=role, school=school, fraternity=fraternity)
    db.session.commit()

    click.echo(click.style('User created successfully!', fg='green'))
    click.echo(f'  Email: {user.email}')
    click.echo(f'  Role: {role}')


@user_commands.command('set-password')
@click.option('--email', required=True, help='User email')
@click.option('--password', required=True, help='New password')
@with_appcontext
def set_password(email, password):
    """Set or reset a user's password."""
    user = _get_user_by_email(email)
    if not user:
        click.echo(click.style(f'Error: No user {email} found', fg='red'))
        return

    user.set_password(password)
    db.session.commit()
    click.echo(click.style('Password updated.', fg='green'))


@user_commands.command('set-role')
@click.option('--email', required=True, help='User email')
@click.option('--role', type=click.Choice([r.value for r in UserRole]), required=True)
@with_appcontext
def set_role(email, role):
    """Change the stored role used by the admin check."""
    user = _get_user_by_email(email)
    if not user:
        click.echo(click.style(f'Error: No user {email} found', fg='red'))
        return

    profile = ensure_profile(user)
    profile.role = role
    db.session.commit()
    click.echo(click.style(f'Role for {user.email} set to {role}.', fg='green'))
