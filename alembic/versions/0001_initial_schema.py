"""initial schema: organizations, projects, tasks, chat

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    'taskstatus': ('OPEN', 'IN_PROGRESS', 'BLOCKED', 'DONE', 'CANCELED'),
    'taskpriority': ('LOW', 'MEDIUM', 'HIGH', 'URGENT'),
    'closurerequeststatus': ('PENDING', 'ACKNOWLEDGED'),
    'projectstatus': ('ACTIVE', 'CLOSED', 'ARCHIVED'),
    'memberrole': ('ADMIN', 'EDITOR', 'VIEWER'),
}

# PostgreSQL 下枚举类型只创建一次，由 upgrade 显式建立
PG_ENUMS = {name: postgresql.ENUM(*values, name=name, create_type=False) for name, values in ENUMS.items()}


def enum(name):
    return sa.Enum(*ENUMS[name], name=name).with_variant(PG_ENUMS[name], 'postgresql')


def id_column(comment):
    return sa.Column('id', sa.String(length=32), primary_key=True, comment=comment)


def org_column(primary_key=False):
    return sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'),
                     nullable=False, primary_key=primary_key, comment='所属组织ID')


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for pg_enum in PG_ENUMS.values():
            pg_enum.create(bind, checkfirst=True)

    op.create_table(
        'organizations',
        id_column('组织ID'),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)

    op.create_table(
        'users',
        id_column('用户ID'),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('avatar', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'organization_members',
        sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('user_id', sa.String(length=32), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('role', sa.String(length=50), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'projects',
        id_column('项目ID'),
        org_column(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', enum('projectstatus'), nullable=False),
        sa.Column('parent_id', sa.String(length=32), sa.ForeignKey('projects.id'), nullable=True),
        sa.Column('creator_id', sa.String(length=32), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_projects_id', 'projects', ['id'])
    op.create_index('ix_projects_org_id', 'projects', ['org_id'])

    op.create_table(
        'project_members',
        sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('project_id', sa.String(length=32), sa.ForeignKey('projects.id'), primary_key=True),
        sa.Column('user_id', sa.String(length=32), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('role', enum('memberrole'), nullable=True),
        sa.Column('added_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'project_settings',
        org_column(primary_key=True),
        sa.Column('project_id', sa.String(length=32), sa.ForeignKey('projects.id'), primary_key=True),
        sa.Column('default_task_due_days', sa.Integer(), nullable=False),
        sa.Column('default_task_priority', enum('taskpriority'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'tasks',
        id_column('任务ID'),
        org_column(),
        sa.Column('project_id', sa.String(length=32), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', enum('taskstatus'), nullable=False),
        sa.Column('priority', enum('taskpriority'), nullable=False),
        sa.Column('created_by', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('due_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_org_id', 'tasks', ['org_id'])
    op.create_index('ix_tasks_org_project_status', 'tasks', ['org_id', 'project_id', 'status'])

    op.create_table(
        'task_assignments',
        sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('task_id', sa.String(length=32), sa.ForeignKey('tasks.id'), primary_key=True),
        sa.Column('user_id', sa.String(length=32), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'task_status_logs',
        id_column('日志ID'),
        org_column(),
        sa.Column('task_id', sa.String(length=32), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('from_status', enum('taskstatus'), nullable=True),
        sa.Column('to_status', enum('taskstatus'), nullable=False),
        sa.Column('changed_by', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('changed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_status_logs_org_id', 'task_status_logs', ['org_id'])
    op.create_index('ix_task_status_logs_org_task_changed', 'task_status_logs', ['org_id', 'task_id', 'changed_at'])

    op.create_table(
        'task_closure_requests',
        id_column('申请ID'),
        org_column(),
        sa.Column('task_id', sa.String(length=32), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('requested_by', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('status', enum('closurerequeststatus'), nullable=False),
        sa.Column('acknowledged_by', sa.String(length=32), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('org_id', 'task_id', 'requested_by', name='uq_task_closure_requests_requester'),
    )
    op.create_index('ix_task_closure_requests_org_id', 'task_closure_requests', ['org_id'])

    op.create_table(
        'chat_rooms',
        id_column('聊天室ID'),
        org_column(),
        sa.Column('project_id', sa.String(length=32), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('org_id', 'project_id', name='uq_chat_rooms_org_project'),
    )
    op.create_index('ix_chat_rooms_org_id', 'chat_rooms', ['org_id'])

    op.create_table(
        'chat_messages',
        id_column('消息ID'),
        org_column(),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('chat_rooms.id'), nullable=False),
        sa.Column('author_id', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_chat_messages_org_id', 'chat_messages', ['org_id'])
    op.create_index('ix_chat_messages_org_room_created', 'chat_messages', ['org_id', 'room_id', 'created_at'])

    op.create_table(
        'chat_mentions',
        sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('message_id', sa.String(length=32), sa.ForeignKey('chat_messages.id'), primary_key=True),
        sa.Column('mentioned_user_id', sa.String(length=32), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('chat_rooms.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_chat_mentions_user_unread', 'chat_mentions', ['org_id', 'mentioned_user_id', 'read_at'])

    op.create_table(
        'chat_read_status',
        sa.Column('org_id', sa.String(length=32), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('chat_rooms.id'), primary_key=True),
        sa.Column('user_id', sa.String(length=32), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('last_read_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        'chat_read_status', 'chat_mentions', 'chat_messages', 'chat_rooms',
        'task_closure_requests', 'task_status_logs', 'task_assignments', 'tasks',
        'project_settings', 'project_members', 'projects',
        'organization_members', 'users', 'organizations',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for pg_enum in PG_ENUMS.values():
            pg_enum.drop(bind, checkfirst=True)
