"""fleet tables

Revision ID: 0001_fleet_tables
Revises:
Create Date: 2026-10-18 12:00:00
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_fleet_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    op.create_table(
        'printers',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('model', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('firmware_version', sa.String(length=50), nullable=False),
        sa.Column('last_seen', sa.DateTime(), nullable=False),
        sa.Column('battery_level', sa.Integer(), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('update_progress', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=50), nullable=True),
        sa.Column('serial_number', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_printers_status'), 'printers', ['status'], unique=False)

    op.create_table(
        'firmware_updates',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('version', sa.String(length=50), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('upload_date', sa.DateTime(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('target_printers', sa.JSON(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=True),
        sa.Column('storage_provider', sa.String(length=20), nullable=True),
        sa.Column('storage_info', sa.JSON(), nullable=False),
        sa.Column('uploaded_by', sa.String(length=100), nullable=True),
        sa.Column('checksum', sa.String(length=80), nullable=True),
        sa.Column('deployed_by', sa.String(length=100), nullable=True),
        sa.Column('deployment_started', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_by', sa.String(length=100), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('failed_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.String(length=500), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_firmware_updates_version'), 'firmware_updates', ['version'], unique=True)
    op.create_index(op.f('ix_firmware_updates_status'), 'firmware_updates', ['status'], unique=False)

    op.create_table(
        'update_history',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('printer_id', sa.String(length=100), nullable=False),
        sa.Column('printer_name', sa.String(length=255), nullable=False),
        sa.Column('from_version', sa.String(length=50), nullable=False),
        sa.Column('to_version', sa.String(length=50), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('duration', sa.String(length=50), nullable=False),
        sa.Column('initiated_by', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.String(), nullable=False),
        sa.Column('error_message', sa.String(length=500), nullable=True),
        sa.Column('firmware_id', sa.String(length=100), nullable=True),
        sa.Column('updated_by', sa.String(length=100), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_update_history_printer_id'), 'update_history', ['printer_id'], unique=False)
    op.create_index(op.f('ix_update_history_timestamp'), 'update_history', ['timestamp'], unique=False)
    op.create_index(op.f('ix_update_history_status'), 'update_history', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_update_history_status'), table_name='update_history')
    op.drop_index(op.f('ix_update_history_timestamp'), table_name='update_history')
    op.drop_index(op.f('ix_update_history_printer_id'), table_name='update_history')
    op.drop_table('update_history')
    op.drop_index(op.f('ix_firmware_updates_status'), table_name='firmware_updates')
    op.drop_index(op.f('ix_firmware_updates_version'), table_name='firmware_updates')
    op.drop_table('firmware_updates')
    op.drop_index(op.f('ix_printers_status'), table_name='printers')
    op.drop_table('printers')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
