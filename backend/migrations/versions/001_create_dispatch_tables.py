"""Create dispatch log tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _id_column():
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False)


def upgrade():
    # Reference data
    for table in ('priority', 'complexity', 'assigned_personnel'):
        op.create_table(
            table,
            _id_column(),
            sa.Column('name', sa.Text(), nullable=False),
            sa.Column('order', sa.Integer(), server_default='0', nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            _created_at(),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('name', name=f'uq_{table}_name'),
        )

    op.create_table(
        'workcenter',
        _id_column(),
        sa.Column('name', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_workcenter_name'),
    )

    op.create_table(
        'user',
        _id_column(),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), server_default='EMPLOYEE', nullable=False),
        sa.Column('status', sa.Text(), server_default='ACTIVE', nullable=False),
        sa.Column('designation', sa.Text(), nullable=True),
        sa.Column('staff_id', sa.Text(), nullable=True),
        sa.Column('workcenter_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('can_create_tasks', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('can_approve_completions', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('can_revert_completions', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('can_manage_receives', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('include_in_all_staff', sa.Boolean(), server_default=sa.false(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['workcenter_id'], ['workcenter.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.CheckConstraint(
            "role IN ('SUPERADMIN', 'DIRECTOR', 'DY_DIRECTOR', 'MANAGER', 'INCHARGE', 'EMPLOYEE')",
            name='ck_user_role'
        ),
        sa.CheckConstraint("status IN ('ACTIVE', 'DISABLED')", name='ck_user_status')
    )
    op.create_index('idx_user_all_staff', 'user', ['include_in_all_staff'])

    op.create_table(
        'sequence_counter',
        sa.Column('name', sa.String(32), nullable=False),
        sa.Column('value', sa.BigInteger(), server_default='0', nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )

    op.create_table(
        'receive',
        _id_column(),
        sa.Column('record_number', sa.Text(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('sender', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default='OPEN', nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by_id'], ['user.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('record_number', name='uq_receive_record_number'),
        sa.CheckConstraint("status IN ('OPEN', 'ASSIGNED', 'CLOSED')", name='ck_receive_status')
    )

    op.create_table(
        'task',
        _id_column(),
        sa.Column('record_number', sa.Text(), nullable=False),
        sa.Column('issuance_date', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('issuance_message', sa.Text(), nullable=True),
        sa.Column('description_of_work', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), server_default='ACTIVE', nullable=False),
        sa.Column('is_notice', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('notice_group_id', sa.Text(), nullable=True),
        sa.Column('assigned_to_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('external_assignee_name', sa.Text(), nullable=True),
        sa.Column('external_assignee_email', sa.Text(), nullable=True),
        sa.Column('priority_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('complexity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('assigned_personnel_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('workcenter_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('assigned_completion_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('acknowledged_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('acknowledged_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_deadline_reminder', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('receive_id', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['user.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['priority_id'], ['priority.id']),
        sa.ForeignKeyConstraint(['complexity_id'], ['complexity.id']),
        sa.ForeignKeyConstraint(['assigned_personnel_id'], ['assigned_personnel.id']),
        sa.ForeignKeyConstraint(['workcenter_id'], ['workcenter.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['user.id']),
        sa.ForeignKeyConstraint(['acknowledged_by_id'], ['user.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['receive_id'], ['receive.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('record_number', name='uq_task_record_number'),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'IN_PROGRESS', 'COMPLETED', 'CLOSED')",
            name='ck_task_status'
        ),
        # Acknowledgment only exists on completed work
        sa.CheckConstraint(
            "acknowledged_by_id IS NULL OR status = 'COMPLETED'",
            name='ck_task_acknowledged_completed'
        ),
    )
    op.create_index('idx_task_status', 'task', ['status'])
    op.create_index('idx_task_assigned_to', 'task', ['assigned_to_id'])
    op.create_index('idx_task_notice_group', 'task', ['notice_group_id'])

    op.create_table(
        'task_assignment',
        _id_column(),
        sa.Column('task_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('task_id', 'user_id', name='uq_task_assignment_task_user'),
    )

    op.create_table(
        'task_attachment',
        _id_column(),
        sa.Column('task_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('storage_key', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.Text(), nullable=True),
        sa.Column('uploaded_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['user.id']),
    )

    op.create_table(
        'task_action',
        _id_column(),
        sa.Column('sequence', sa.BigInteger(), nullable=False),
        sa.Column('task_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action_type', sa.String(20), nullable=False),
        sa.Column('performed_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('forwarded_to_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('forwarded_to_email', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['performed_by_id'], ['user.id']),
        sa.ForeignKeyConstraint(['forwarded_to_id'], ['user.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('task_id', 'sequence', name='uq_task_action_task_sequence'),
        sa.CheckConstraint(
            "action_type IN ('CREATED', 'FORWARDED', 'SUBMITTED', 'CLOSED', "
            "'REVERTED', 'EDITED', 'ACKNOWLEDGED', 'REJECTED')",
            name='ck_task_action_type'
        ),
    )
    op.create_index('idx_task_action_task_type', 'task_action', ['task_id', 'action_type', 'sequence'])

    op.create_table(
        'task_history',
        _id_column(),
        sa.Column('sequence', sa.BigInteger(), nullable=False),
        sa.Column('task_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('old_value', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('new_value', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('changed_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by_id'], ['user.id']),
        sa.UniqueConstraint('task_id', 'sequence', name='uq_task_history_task_sequence'),
    )

    op.create_table(
        'notification',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('task_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('last_reminder_sent', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['task.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_notification_user_read', 'notification', ['user_id', 'read'])
    op.create_index('idx_notification_created', 'notification', ['created_at'])


def downgrade():
    op.drop_table('notification')
    op.drop_table('task_history')
    op.drop_table('task_action')
    op.drop_table('task_attachment')
    op.drop_table('task_assignment')
    op.drop_table('task')
    op.drop_table('receive')
    op.drop_table('sequence_counter')
    op.drop_table('user')
    op.drop_table('workcenter')
    op.drop_table('assigned_personnel')
    op.drop_table('complexity')
    op.drop_table('priority')
