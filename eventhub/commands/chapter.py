"""Chapter CLI commands."""

import click
from flask.cli import with_appcontext

from eventhub.extensions import db
from eventhub.models import Chapter


@click.group('chapter')
def chapter_commands():
    """Chapter management commands."""
    pass


@chapter_commands.command('create')
@click.argument('name')
@with_appcontext
def create_chapter(name):
    """Create a chapter."""
    name = name.strip()
    existing = db.session.execute(db.select(Chapter).filter_by(name=name)).scalar_one_or_none()
    if existing:
        click.echo(click.style(f'Error: Chapter "{name}" already exists', fg='red'))
        return

    chapter = Chapter(name=name)
    db.session.add(chapter)
    db.session.commit()
    click.echo(click.style(f'Chapter created: {chapter.name} ({chapter.id})', fg='green'))


@chapter_commands.command('list')
@with_appcontext
def list_chapters():
    """List chapters by name."""
    chapters = db.session.execute(db.select(Chapter).order_by(Chapter.name)).scalars().all()
    if not chapters:
        click.echo('No chapters found.')
        return
    for chapter in chapters:
        click.echo(f'{chapter.id}  {chapter.name}')
