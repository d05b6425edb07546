"""Initial schema: cases, documents, case_updates, case_number_sequences

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables and indexes."""
    op.create_table(
        'cases',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('case_number', sa.String(length=20), nullable=False),
        sa.Column('owner_id', sa.String(length=100), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'in-progress', 'completed', 'rejected', name='casestatus'),
            nullable=False,
        ),
        sa.Column('court_info', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_cases_case_number'), 'cases', ['case_number'], unique=True)
    op.create_index(op.f('ix_cases_owner_id'), 'cases', ['owner_id'], unique=False)
    op.create_index(op.f('ix_cases_status'), 'cases', ['status'], unique=False)
    op.create_index(op.f('ix_cases_created_at'), 'cases', ['created_at'], unique=False)

    op.create_table(
        'documents',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('case_id', sa.String(length=50), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('document_type', sa.Text(), nullable=False),
        sa.Column('remote_url', sa.Text(), nullable=False),
        sa.Column('opaque_id', sa.String(length=512), nullable=False),
        sa.Column('uploaded_by', sa.String(length=100), nullable=False),
        sa.Column(
            'delete_state',
            sa.Enum('active', 'pending_delete', name='deletestate'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('opaque_id'),
    )
    op.create_index(op.f('ix_documents_delete_state'), 'documents', ['delete_state'], unique=False)
    op.create_index('ix_documents_case_id_created_at', 'documents', ['case_id', 'created_at'], unique=False)

    op.create_table(
        'case_updates',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('case_id', sa.String(length=50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column(
            'update_type',
            sa.Enum('status', 'document', 'court', 'general', name='updatetype'),
            nullable=False,
        ),
        sa.Column('created_by', sa.String(length=100), nullable=False),
        sa.Column('is_automatic', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['cases.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_case_updates_created_by'), 'case_updates', ['created_by'], unique=False)
    op.create_index(
        'ix_case_updates_case_id_created_at', 'case_updates', ['case_id', 'created_at'], unique=False
    )

    op.create_table(
        'case_number_sequences',
        sa.Column('year', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('year'),
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table('case_number_sequences')
    op.drop_index('ix_case_updates_case_id_created_at', table_name='case_updates')
    op.drop_index(op.f('ix_case_updates_created_by'), table_name='case_updates')
    op.drop_table('case_updates')
    op.drop_index('ix_documents_case_id_created_at', table_name='documents')
    op.drop_index(op.f('ix_documents_delete_state'), table_name='documents')
    op.drop_table('documents')
    op.drop_index(op.f('ix_cases_created_at'), table_name='cases')
    op.drop_index(op.f('ix_cases_status'), table_name='cases')
    op.drop_index(op.f('ix_cases_owner_id'), table_name='cases')
    op.drop_index(op.f('ix_cases_case_number'), table_name='cases')
    op.drop_table('cases')

    # Drop enum types (PostgreSQL only)
    # SQLite will ignore these
    sa.Enum(name='updatetype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='deletestate').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='casestatus').drop(op.get_bind(), checkfirst=True)
