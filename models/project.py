"""
项目模型模块
包含项目及项目任务默认设置的数据模型定义
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Integer
from sqlalchemy.orm import relationship

from .base import OrgScopedMixin, TimestampMixin, utc_now
from .database import Base
from .enums import ProjectStatus, TaskPriority
from utils.snowflake import generate_project_id


class Project(Base, OrgScopedMixin, TimestampMixin):
    """项目表模型"""
    __tablename__ = "projects"

    id = Column(String(32), primary_key=True, index=True, default=generate_project_id, comment='项目ID，格式：P_雪花算法ID')
    name = Column(String(100), nullable=False, comment='项目名称')
    description = Column(Text, comment='项目描述')
    status = Column(Enum(ProjectStatus), default=ProjectStatus.ACTIVE, nullable=False, comment='项目状态')
    parent_id = Column(String(32), ForeignKey("projects.id"), nullable=True, comment='父项目ID')
    creator_id = Column(String(32), ForeignKey("users.id"), comment='项目创建者ID')

    # 关系
    organization = relationship("Organization", back_populates="projects")
    parent = relationship("Project", remote_side=[id])
    tasks = relationship("Task", back_populates="project")
    settings = relationship("ProjectSettings", uselist=False, back_populates="project")


class ProjectSettings(Base):
    """项目任务默认设置表模型"""
    __tablename__ = "project_settings"

    org_id = Column(String(32), ForeignKey("organizations.id"), primary_key=True, comment='所属组织ID')
    project_id = Column(String(32), ForeignKey("projects.id"), primary_key=True, comment='项目ID')
    default_task_due_days = Column(Integer, nullable=False, default=2, comment='新任务默认截止天数，0表示不设置')
    default_task_priority = Column(Enum(TaskPriority), nullable=False, default=TaskPriority.MEDIUM, comment='新任务默认优先级')
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, comment='更新时间')

    project = relationship("Project", back_populates="settings")
