"""Initial migration

Revision ID: 3b1f0c2a9d4e
Revises: 
Create Date: 2025-10-02 12:14:03.518211

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c2a9d4e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'TRAINER', 'CLIENT', name='userrole', native_enum=False), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('email_verification_token', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email_verification_token')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)

    op.create_table('trainer_clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trainer_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['trainer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('trainer_id', 'client_id', name='_trainer_client_uc')
    )
    op.create_index(op.f('ix_trainer_clients_trainer_id'), 'trainer_clients', ['trainer_id'], unique=False)
    op.create_index(op.f('ix_trainer_clients_client_id'), 'trainer_clients', ['client_id'], unique=False)

    op.create_table('packages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('headline', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('original_price', sa.Integer(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('duration_in_days', sa.Integer(), nullable=False),
        sa.Column('is_popular', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('theme_color', sa.String(length=32), nullable=True),
        sa.Column('icon_name', sa.String(length=64), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('not_included', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_packages_slug'), 'packages', ['slug'], unique=True)
    op.create_index(op.f('ix_packages_is_active'), 'packages', ['is_active'], unique=False)

    op.create_table('package_purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'PENDING', 'EXPIRED', 'CANCELLED', name='packagestatus', native_enum=False), nullable=False),
        sa.Column('purchased_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_package_purchases_user_id'), 'package_purchases', ['user_id'], unique=False)
    op.create_index(op.f('ix_package_purchases_package_id'), 'package_purchases', ['package_id'], unique=False)
    op.create_index('ix_package_purchases_user_status_expires', 'package_purchases', ['user_id', 'status', 'expires_at'], unique=False)

    op.create_table('manual_payment_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=False),
        sa.Column('account_name', sa.String(length=255), nullable=False),
        sa.Column('iban', sa.String(length=64), nullable=False),
        sa.Column('account_number', sa.String(length=64), nullable=True),
        sa.Column('branch_name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('paytr_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mode', sa.Enum('TEST', 'LIVE', name='paytrmode', native_enum=False), nullable=False),
        sa.Column('merchant_id', sa.String(length=64), nullable=False),
        sa.Column('encrypted_merchant_key', sa.String(), nullable=False),
        sa.Column('encrypted_merchant_salt', sa.String(), nullable=False),
        sa.Column('merchant_ok_url', sa.String(), nullable=True),
        sa.Column('merchant_fail_url', sa.String(), nullable=True),
        sa.Column('merchant_webhook_url', sa.String(), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('language', sa.String(length=8), nullable=False),
        sa.Column('iframe_debug', sa.Boolean(), nullable=False),
        sa.Column('non_3d', sa.Boolean(), nullable=False),
        sa.Column('max_installment', sa.Integer(), nullable=False),
        sa.Column('payment_methods', sa.JSON(), nullable=True),
        sa.Column('installment_config', sa.JSON(), nullable=True),
        sa.Column('extra_config', sa.JSON(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by_id', sa.Integer(), nullable=True),
        sa.Column('updated_by_email', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['updated_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_paytr_settings_updated_at'), 'paytr_settings', ['updated_at'], unique=False)

    op.create_table('paytr_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('message', sa.String(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('user_email', sa.String(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('error', sa.JSON(), nullable=True),
        sa.Column('setting_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['setting_id'], ['paytr_settings.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_paytr_logs_action'), 'paytr_logs', ['action'], unique=False)
    op.create_index(op.f('ix_paytr_logs_message'), 'paytr_logs', ['message'], unique=False)
    op.create_index(op.f('ix_paytr_logs_user_id'), 'paytr_logs', ['user_id'], unique=False)
    op.create_index(op.f('ix_paytr_logs_created_at'), 'paytr_logs', ['created_at'], unique=False)
    op.create_index('ix_paytr_logs_action_message_user', 'paytr_logs', ['action', 'message', 'user_id'], unique=False)

    op.create_table('admin_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Enum('INFO', 'WARN', 'ERROR', 'AUDIT', name='loglevel', native_enum=False), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('source', sa.String(length=64), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('actor_email', sa.String(), nullable=True),
        sa.Column('context', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_admin_logs_level'), 'admin_logs', ['level'], unique=False)
    op.create_index(op.f('ix_admin_logs_source'), 'admin_logs', ['source'], unique=False)
    op.create_index(op.f('ix_admin_logs_created_at'), 'admin_logs', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('admin_logs')
    op.drop_table('paytr_logs')
    op.drop_table('paytr_settings')
    op.drop_table('manual_payment_accounts')
    op.drop_table('package_purchases')
    op.drop_table('packages')
    op.drop_table('trainer_clients')
    op.drop_table('users')
