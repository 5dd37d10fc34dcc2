"""Initial_Schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('folders',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('owner_id', sa.String(length=255), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('is_default', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id', name='pk_folders')
    )
    op.create_index('ix_folders_owner_id', 'folders', ['owner_id'], unique=False)

    op.create_table('records',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('folder_id', sa.Integer(), nullable=True),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('datetime', sa.DateTime(), nullable=False),
    sa.Column('latitude', sa.Float(), nullable=True),
    sa.Column('longitude', sa.Float(), nullable=True),
    sa.Column('duration', sa.Integer(), nullable=False),
    sa.Column('category', sa.String(length=20), nullable=False),
    sa.Column('audio_url', sa.String(length=512), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.ForeignKeyConstraint(['folder_id'], ['folders.id'], name='fk_records_folder_id_folders'),
    sa.PrimaryKeyConstraint('id', name='pk_records')
    )
    op.create_index('ix_records_folder_id', 'records', ['folder_id'], unique=False)
    op.create_index('ix_records_datetime', 'records', ['datetime'], unique=False)

    op.create_table('transcription_segments',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('record_id', sa.Integer(), nullable=False),
    sa.Column('start', sa.Float(), nullable=False),
    sa.Column('end', sa.Float(), nullable=False),
    sa.Column('text', sa.Text(), nullable=False),
    sa.ForeignKeyConstraint(['record_id'], ['records.id'], name='fk_transcription_segments_record_id_records'),
    sa.PrimaryKeyConstraint('id', name='pk_transcription_segments')
    )
    op.create_index('ix_transcription_segments_record_id', 'transcription_segments', ['record_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_transcription_segments_record_id', table_name='transcription_segments')
    op.drop_table('transcription_segments')
    op.drop_index('ix_records_datetime', table_name='records')
    op.drop_index('ix_records_folder_id', table_name='records')
    op.drop_table('records')
    op.drop_index('ix_folders_owner_id', table_name='folders')
    op.drop_table('folders')
