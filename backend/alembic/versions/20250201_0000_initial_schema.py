"""initial_correspondence_schema

Revision ID: 20250201_0000
Revises:
Create Date: 2025-02-01 00:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa

from app.database_types import GUID, JSON


revision = '20250201_0000'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'roles',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('role_name', sa.String(length=50), nullable=False),
        sa.Column('permissions', JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_roles_role_name'), 'roles', ['role_name'], unique=True)

    # dean_id / manager_id FKs are added after users exists
    op.create_table(
        'colleges',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('dean_id', GUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'departments',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('dept_name', sa.String(length=200), nullable=False),
        sa.Column('college_id', GUID(), nullable=False),
        sa.Column('manager_id', GUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['college_id'], ['colleges.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_departments_college_id'), 'departments', ['college_id'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('university_id', sa.String(length=50), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role_id', GUID(), nullable=False),
        sa.Column('department_id', GUID(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_ip', sa.String(length=45), nullable=True),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False),
        sa.Column('account_locked_until', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id']),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_university_id'), 'users', ['university_id'], unique=True)
    op.create_index(op.f('ix_users_role_id'), 'users', ['role_id'], unique=False)
    op.create_index(op.f('ix_users_department_id'), 'users', ['department_id'], unique=False)

    with op.batch_alter_table('colleges', schema=None) as batch_op:
        batch_op.create_foreign_key('fk_colleges_dean_id_users', 'users', ['dean_id'], ['id'])
    with op.batch_alter_table('departments', schema=None) as batch_op:
        batch_op.create_foreign_key('fk_departments_manager_id_users', 'users', ['manager_id'], ['id'])

    op.create_table(
        'workflows',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'workflow_steps',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('workflow_id', GUID(), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('approver_role_id', GUID(), nullable=True),
        sa.Column('approver_user_id', GUID(), nullable=True),
        sa.Column('sla_hours', sa.Integer(), nullable=True),
        sa.Column('is_final', sa.Boolean(), nullable=False),
        sa.Column('escalation_role_id', GUID(), nullable=True),
        sa.ForeignKeyConstraint(['approver_role_id'], ['roles.id']),
        sa.ForeignKeyConstraint(['approver_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['escalation_role_id'], ['roles.id']),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflows.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_workflow_steps_workflow_id'), 'workflow_steps', ['workflow_id'], unique=False)

    op.create_table(
        'form_templates',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('schema', JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('audience_config', JSON(), nullable=True),
        sa.Column('workflow_id', GUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflows.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_form_templates_workflow_id'), 'form_templates', ['workflow_id'], unique=False)

    op.create_table(
        'requests',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('reference_no', sa.String(length=64), nullable=False),
        sa.Column('requester_id', GUID(), nullable=False),
        sa.Column('form_id', GUID(), nullable=True),
        sa.Column('current_step_id', GUID(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('request_type', sa.String(), nullable=False),
        sa.Column('submission_data', JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['current_step_id'], ['workflow_steps.id']),
        sa.ForeignKeyConstraint(['form_id'], ['form_templates.id']),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_requests_reference_no'), 'requests', ['reference_no'], unique=True)
    op.create_index(op.f('ix_requests_requester_id'), 'requests', ['requester_id'], unique=False)
    op.create_index(op.f('ix_requests_form_id'), 'requests', ['form_id'], unique=False)
    op.create_index('idx_requests_inbox', 'requests', ['status', 'current_step_id', 'submitted_at'], unique=False)

    op.create_table(
        'request_actions',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('request_id', GUID(), nullable=False),
        sa.Column('actor_id', GUID(), nullable=False),
        sa.Column('step_id', GUID(), nullable=True),
        sa.Column('on_behalf_of_id', GUID(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.ForeignKeyConstraint(['on_behalf_of_id'], ['users.id']),
        sa.ForeignKeyConstraint(['request_id'], ['requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['step_id'], ['workflow_steps.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_request_actions_request_id'), 'request_actions', ['request_id'], unique=False)
    op.create_index(op.f('ix_request_actions_actor_id'), 'request_actions', ['actor_id'], unique=False)
    op.create_index(op.f('ix_request_actions_created_at'), 'request_actions', ['created_at'], unique=False)

    op.create_table(
        'delegations',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('grantor_id', GUID(), nullable=False),
        sa.Column('grantee_id', GUID(), nullable=False),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.Column('ends_at', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('request_id', GUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['grantee_id'], ['users.id']),
        sa.ForeignKeyConstraint(['grantor_id'], ['users.id']),
        sa.ForeignKeyConstraint(['request_id'], ['requests.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_delegations_grantor_id'), 'delegations', ['grantor_id'], unique=False)
    op.create_index(op.f('ix_delegations_grantee_id'), 'delegations', ['grantee_id'], unique=False)

    op.create_table(
        'attachments',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('request_id', GUID(), nullable=False),
        sa.Column('uploader_id', GUID(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_type', sa.String(length=100), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('storage_location', sa.String(length=500), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploader_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_attachments_request_id'), 'attachments', ['request_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('user_id', GUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(length=500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('user_id', GUID(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=True),
        sa.Column('details', JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_user_id'), 'audit_logs', ['user_id'], unique=False)
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('attachments')
    op.drop_table('delegations')
    op.drop_table('request_actions')
    op.drop_index('idx_requests_inbox', table_name='requests')
    op.drop_table('requests')
    op.drop_table('form_templates')
    op.drop_table('workflow_steps')
    op.drop_table('workflows')
    with op.batch_alter_table('departments', schema=None) as batch_op:
        batch_op.drop_constraint('fk_departments_manager_id_users', type_='foreignkey')
    with op.batch_alter_table('colleges', schema=None) as batch_op:
        batch_op.drop_constraint('fk_colleges_dean_id_users', type_='foreignkey')
    op.drop_table('users')
    op.drop_table('departments')
    op.drop_table('colleges')
    op.drop_table('roles')
