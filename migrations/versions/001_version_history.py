"""Version history tables

Revision ID: 001_version_history
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_version_history'
down_revision = None
branch_labels = None
depends_on = None


content_format_enum = sa.Enum('plain', 'fountain', 'markdown', name='content_format_enum')


def upgrade():
    op.create_table(
        'content_item',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('format', content_format_enum, nullable=False, server_default='plain'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_content_item_id', 'content_item', ['id'])

    op.create_table(
        'content_version',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('content_item_id', sa.Integer(), sa.ForeignKey('content_item.id'), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        # Serializes version numbering per content item
        sa.UniqueConstraint('content_item_id', 'version_number', name='uq_content_version_item_number'),
        sa.CheckConstraint('version_number > 0', name='ck_content_version_number_positive'),
    )
    op.create_index('ix_content_version_id', 'content_version', ['id'])
    op.create_index('idx_content_version_item', 'content_version', ['content_item_id', 'version_number'])


def downgrade():
    op.drop_index('idx_content_version_item', table_name='content_version')
    op.drop_index('ix_content_version_id', table_name='content_version')
    op.drop_table('content_version')
    op.drop_index('ix_content_item_id', table_name='content_item')
    op.drop_table('content_item')
    content_format_enum.drop(op.get_bind(), checkfirst=True)
