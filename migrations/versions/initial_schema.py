"""initial event production schema

Revision ID: initial_schema
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _document_slots():
    columns = []
    for slot in ('renders', 'contract', 'invoice', 'equipment_list', 'other_documents', 'signed_contract'):
        columns.append(sa.Column(f'{slot}_url', sa.String(length=1024), nullable=True))
        columns.append(sa.Column(f'{slot}_key', sa.String(length=512), nullable=True))
    return columns


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_ip', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'chapters',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('school', sa.String(length=255), nullable=True),
        sa.Column('fraternity', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        sa.Column('avatar_key', sa.String(length=512), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='client'),
        sa.Column('chapter_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapters.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_chapter_id', 'profiles', ['chapter_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('chapter_id', sa.String(length=36), nullable=True),
        sa.Column('event_name', sa.String(length=255), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('artist_name', sa.String(length=255), nullable=True),
        sa.Column('budget', sa.Float(), nullable=False, server_default='0'),
        sa.Column('contact_phone', sa.String(length=32), nullable=False),
        *_document_slots(),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapters.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_events_user_id', 'events', ['user_id'])
    op.create_index('ix_events_chapter_id', 'events', ['chapter_id'])
    op.create_index('ix_events_user_date', 'events', ['user_id', 'event_date'])

    op.create_table(
        'media',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('event_id', sa.String(length=36), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('storage_key', sa.String(length=512), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='other'),
        sa.Column('original_name', sa.String(length=255), nullable=True),
        sa.Column('mime_type', sa.String(length=128), nullable=True),
        sa.Column('uploaded_by', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_media_event_id', 'media', ['event_id'])
    op.create_index('ix_media_uploaded_by', 'media', ['uploaded_by'])
    op.create_index('ix_media_event_created', 'media', ['event_id', 'created_at'])

    op.create_table(
        'leads',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('school', sa.String(length=255), nullable=False),
        sa.Column('fraternity', sa.String(length=255), nullable=False),
        sa.Column('contact_phone', sa.String(length=32), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('instagram_handle', sa.String(length=255), nullable=True),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='contacted'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_leads_created_by', 'leads', ['created_by'])
    op.create_index('ix_leads_created', 'leads', ['created_at'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=128), nullable=False),
        sa.Column('entity_type', sa.String(length=128), nullable=False),
        sa.Column('entity_id', sa.String(length=36), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_user_id', 'audit_log', ['user_id'])


def downgrade():
    op.drop_index('ix_audit_log_user_id', table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_index('ix_leads_created', table_name='leads')
    op.drop_index('ix_leads_created_by', table_name='leads')
    op.drop_table('leads')
    op.drop_index('ix_media_event_created', table_name='media')
    op.drop_index('ix_media_uploaded_by', table_name='media')
    op.drop_index('ix_media_event_id', table_name='media')
    op.drop_table('media')
    op.drop_index('ix_events_user_date', table_name='events')
    op.drop_index('ix_events_chapter_id', table_name='events')
    op.drop_index('ix_events_user_id', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_profiles_chapter_id', table_name='profiles')
    op.drop_table('profiles')
    op.drop_table('chapters')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
