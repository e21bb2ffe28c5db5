"""
关联表定义模块
包含多对多关系的关联表定义
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Table, Enum

from .base import utc_now
from .database import Base
from .enums import MemberRole


# 组织成员关联表：决定 @提及 能解析到哪些用户
organization_members = Table(
    'organization_members',
    Base.metadata,
    Column('org_id', String(32), ForeignKey('organizations.id'), primary_key=True, comment='组织ID'),
    Column('user_id', String(32), ForeignKey('users.id'), primary_key=True, comment='用户ID'),
    Column('role', String(50), default='member', comment='组织内角色'),
    Column('joined_at', DateTime, default=utc_now, comment='加入时间')
)

# 项目成员关联表：决定项目访问权限
project_members = Table(
    'project_members',
    Base.metadata,
    Column('org_id', String(32), ForeignKey('organizations.id'), primary_key=True, comment='组织ID'),
    Column('project_id', String(32), ForeignKey('projects.id'), primary_key=True, comment='项目ID'),
    Column('user_id', String(32), ForeignKey('users.id'), primary_key=True, comment='用户ID'),
    Column('role', Enum(MemberRole), default=MemberRole.VIEWER, comment='成员角色'),
    Column('added_at', DateTime, default=utc_now, comment='加入时间')
)
