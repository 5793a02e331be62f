"""initial schema

Revision ID: a1f4c2d9e8b7
Revises: 
Create Date: 2026-10-19 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f4c2d9e8b7'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list:
    return [
        sa.Column('created_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_date', sa.TIMESTAMP(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'tbl_users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.Text(), nullable=False),
        sa.Column('last_name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('role', sa.Enum('admin', 'user', name='user_role', native_enum=False), server_default=sa.text("'user'"), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_users')),
        sa.UniqueConstraint('email', name=op.f('uq_tbl_users_email')),
        sa.UniqueConstraint('username', name=op.f('uq_tbl_users_username')),
    )
    op.create_index('ix_users_role_active', 'tbl_users', ['role', 'is_active'])

    op.create_table(
        'tbl_documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_name', sa.Text(), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('total_pages', sa.Integer(), nullable=False),
        sa.Column('free_pages', sa.Integer(), server_default=sa.text('3'), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('thumbnail_url', sa.Text(), nullable=True),
        sa.Column('uploader_id', sa.Uuid(), nullable=True),
        sa.Column('view_count', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('purchase_count', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint('price >= 0', name=op.f('ck_tbl_documents_price_non_negative')),
        sa.CheckConstraint('total_pages >= 0', name=op.f('ck_tbl_documents_total_pages_non_negative')),
        sa.CheckConstraint('free_pages >= 0 AND free_pages <= total_pages', name=op.f('ck_tbl_documents_free_pages_bounded')),
        sa.ForeignKeyConstraint(['uploader_id'], ['tbl_users.id'], name=op.f('fk_tbl_documents_uploader_id_tbl_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_documents')),
    )
    op.create_index('ix_documents_active_created', 'tbl_documents', ['is_active', 'created_date'])

    op.create_table(
        'tbl_discount_codes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('type', sa.Enum('percentage', 'fixed', 'free', name='discount_type', native_enum=False), nullable=False),
        sa.Column('value', sa.Numeric(12, 2), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('value >= 0', name=op.f('ck_tbl_discount_codes_value_non_negative')),
        sa.CheckConstraint('used_count >= 0', name=op.f('ck_tbl_discount_codes_used_count_non_negative')),
        sa.CheckConstraint('max_uses IS NULL OR max_uses >= 1', name=op.f('ck_tbl_discount_codes_max_uses_positive')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_discount_codes')),
        sa.UniqueConstraint('code', name=op.f('uq_tbl_discount_codes_code')),
    )

    op.create_table(
        'tbl_purchases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('document_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_code', sa.String(length=64), nullable=True),
        sa.Column('discount_code_id', sa.Uuid(), nullable=True),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default=sa.text('0'), nullable=False),
        sa.Column('final_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', name='purchase_status', native_enum=False), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('payment_method', sa.Enum('card_to_card', name='payment_method', native_enum=False), server_default=sa.text("'card_to_card'"), nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('amount >= 0', name=op.f('ck_tbl_purchases_amount_non_negative')),
        sa.CheckConstraint('discount_amount >= 0', name=op.f('ck_tbl_purchases_discount_amount_non_negative')),
        sa.CheckConstraint('final_amount >= 0', name=op.f('ck_tbl_purchases_final_amount_non_negative')),
        sa.ForeignKeyConstraint(['user_id'], ['tbl_users.id'], name=op.f('fk_tbl_purchases_user_id_tbl_users')),
        sa.ForeignKeyConstraint(['document_id'], ['tbl_documents.id'], name=op.f('fk_tbl_purchases_document_id_tbl_documents')),
        sa.ForeignKeyConstraint(['discount_code_id'], ['tbl_discount_codes.id'], name=op.f('fk_tbl_purchases_discount_code_id_tbl_discount_codes'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_purchases')),
    )
    op.create_index('ix_purchases_user', 'tbl_purchases', ['user_id'])
    op.create_index('ix_purchases_status_created', 'tbl_purchases', ['status', 'created_date'])

    op.create_table(
        'tbl_licenses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('document_id', sa.Uuid(), nullable=False),
        sa.Column('purchase_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['user_id'], ['tbl_users.id'], name=op.f('fk_tbl_licenses_user_id_tbl_users')),
        sa.ForeignKeyConstraint(['document_id'], ['tbl_documents.id'], name=op.f('fk_tbl_licenses_document_id_tbl_documents')),
        sa.ForeignKeyConstraint(['purchase_id'], ['tbl_purchases.id'], name=op.f('fk_tbl_licenses_purchase_id_tbl_purchases')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_licenses')),
    )
    # At most one active license per (user, document)
    op.create_index(
        'uq_licenses_active_user_document',
        'tbl_licenses',
        ['user_id', 'document_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active'),
    )
    op.create_index('ix_licenses_purchase', 'tbl_licenses', ['purchase_id'])

    op.create_table(
        'tbl_file_permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('document_id', sa.Uuid(), nullable=False),
        sa.Column('granted_by', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['user_id'], ['tbl_users.id'], name=op.f('fk_tbl_file_permissions_user_id_tbl_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_id'], ['tbl_documents.id'], name=op.f('fk_tbl_file_permissions_document_id_tbl_documents'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['tbl_users.id'], name=op.f('fk_tbl_file_permissions_granted_by_tbl_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_file_permissions')),
        sa.UniqueConstraint('user_id', 'document_id', name='uq_file_permissions_user_document'),
    )

    op.create_table(
        'tbl_activity_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('target_type', sa.String(length=32), nullable=True),
        sa.Column('target_id', sa.String(length=64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['actor_user_id'], ['tbl_users.id'], name=op.f('fk_tbl_activity_logs_actor_user_id_tbl_users')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tbl_activity_logs')),
    )
    op.create_index('ix_activity_actor_time', 'tbl_activity_logs', ['actor_user_id', 'created_date'])
    op.create_index('ix_activity_target', 'tbl_activity_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_activity_target', table_name='tbl_activity_logs')
    op.drop_index('ix_activity_actor_time', table_name='tbl_activity_logs')
    op.drop_table('tbl_activity_logs')
    op.drop_table('tbl_file_permissions')
    op.drop_index('ix_licenses_purchase', table_name='tbl_licenses')
    op.drop_index('uq_licenses_active_user_document', table_name='tbl_licenses')
    op.drop_table('tbl_licenses')
    op.drop_index('ix_purchases_status_created', table_name='tbl_purchases')
    op.drop_index('ix_purchases_user', table_name='tbl_purchases')
    op.drop_table('tbl_purchases')
    op.drop_table('tbl_discount_codes')
    op.drop_index('ix_documents_active_created', table_name='tbl_documents')
    op.drop_table('tbl_documents')
    op.drop_index('ix_users_role_active', table_name='tbl_users')
    op.drop_table('tbl_users')
