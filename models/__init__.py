"""
模型模块初始化文件
提供统一的导入接口
"""

# 导入数据库基础配置
from .database import Base, engine, SessionLocal, get_db, transactional

# 导入枚举类型
from .enums import (
    TaskStatus, TaskPriority, ClosureRequestStatus,
    ProjectStatus, MemberRole, TASK_STATUS_ORDER
)

# 导入关联表
from .associations import project_members, organization_members

# 导入模型类
from .organization import Organization
from .user import User
from .project import Project, ProjectSettings
from .task import Task, TaskAssignment, TaskStatusLog, TaskClosureRequest
from .chat import ChatRoom, ChatMessage, ChatMention, ChatReadStatus

__all__ = [
    # 数据库配置
    'Base', 'engine', 'SessionLocal', 'get_db', 'transactional',

    # 枚举类型
    'TaskStatus', 'TaskPriority', 'ClosureRequestStatus',
    'ProjectStatus', 'MemberRole', 'TASK_STATUS_ORDER',

    # 关联表
    'project_members', 'organization_members',

    # 模型类
    'Organization', 'User', 'Project', 'ProjectSettings',
    'Task', 'TaskAssignment', 'TaskStatusLog', 'TaskClosureRequest',
    'ChatRoom', 'ChatMessage', 'ChatMention', 'ChatReadStatus'
]
