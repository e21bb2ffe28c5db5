"""
任务模型模块
包含任务、任务分配、状态流转日志和关闭申请的数据模型定义
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import OrgScopedMixin, TimestampMixin, utc_now
from .database import Base
from .enums import TaskStatus, TaskPriority, ClosureRequestStatus
from utils.snowflake import (
    generate_task_id,
    generate_task_log_id,
    generate_closure_request_id
)


class Task(Base, OrgScopedMixin, TimestampMixin):
    """任务表模型"""
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_org_project_status", "org_id", "project_id", "status"),
    )

    id = Column(String(32), primary_key=True, index=True, default=generate_task_id, comment='任务ID，格式：T_雪花算法ID')
    project_id = Column(String(32), ForeignKey("projects.id"), nullable=False, comment='任务所属项目ID')
    title = Column(String(200), nullable=False, comment='任务标题')
    description = Column(Text, comment='任务描述')
    status = Column(Enum(TaskStatus), default=TaskStatus.OPEN, nullable=False, comment='任务状态')
    priority = Column(Enum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False, comment='任务优先级')
    created_by = Column(String(32), ForeignKey("users.id"), nullable=False, comment='任务创建人ID，创建后不可修改，唯一有权关闭任务的人')
    due_at = Column(DateTime, nullable=True, comment='任务截止时间')

    # 关系
    project = relationship("Project", back_populates="tasks")
    creator = relationship("User", foreign_keys=[created_by])
    assignments = relationship("TaskAssignment", back_populates="task")
    status_logs = relationship("TaskStatusLog", back_populates="task", order_by="TaskStatusLog.changed_at")
    closure_requests = relationship("TaskClosureRequest", back_populates="task")


class TaskAssignment(Base):
    """任务分配表模型（任务与用户多对多，重复分配不产生新行）"""
    __tablename__ = "task_assignments"

    org_id = Column(String(32), ForeignKey("organizations.id"), primary_key=True, comment='所属组织ID')
    task_id = Column(String(32), ForeignKey("tasks.id"), primary_key=True, comment='任务ID')
    user_id = Column(String(32), ForeignKey("users.id"), primary_key=True, comment='被分配用户ID')
    assigned_at = Column(DateTime, default=utc_now, comment='分配时间')

    task = relationship("Task", back_populates="assignments")
    user = relationship("User")


class TaskStatusLog(Base, OrgScopedMixin):
    """任务状态流转日志表模型（只追加，不修改）"""
    __tablename__ = "task_status_logs"
    __table_args__ = (
        Index("ix_task_status_logs_org_task_changed", "org_id", "task_id", "changed_at"),
    )

    id = Column(String(32), primary_key=True, default=generate_task_log_id, comment='日志ID，格式：TL_雪花算法ID')
    task_id = Column(String(32), ForeignKey("tasks.id"), nullable=False, comment='任务ID')
    from_status = Column(Enum(TaskStatus), nullable=True, comment='变更前状态')
    to_status = Column(Enum(TaskStatus), nullable=False, comment='变更后状态')
    changed_by = Column(String(32), ForeignKey("users.id"), nullable=False, comment='操作人ID')
    changed_at = Column(DateTime, default=utc_now, nullable=False, comment='变更时间')

    task = relationship("Task", back_populates="status_logs")
    changer = relationship("User", foreign_keys=[changed_by])


class TaskClosureRequest(Base, OrgScopedMixin):
    """任务关闭申请表模型（非创建人请求创建人关闭任务）"""
    __tablename__ = "task_closure_requests"
    __table_args__ = (
        UniqueConstraint("org_id", "task_id", "requested_by", name="uq_task_closure_requests_requester"),
    )

    id = Column(String(32), primary_key=True, default=generate_closure_request_id, comment='申请ID，格式：TC_雪花算法ID')
    task_id = Column(String(32), ForeignKey("tasks.id"), nullable=False, comment='任务ID')
    requested_by = Column(String(32), ForeignKey("users.id"), nullable=False, comment='申请人ID')
    requested_at = Column(DateTime, default=utc_now, nullable=False, comment='申请时间')
    status = Column(Enum(ClosureRequestStatus), default=ClosureRequestStatus.PENDING, nullable=False, comment='申请状态')
    acknowledged_by = Column(String(32), ForeignKey("users.id"), nullable=True, comment='确认人ID')
    acknowledged_at = Column(DateTime, nullable=True, comment='确认时间')

    task = relationship("Task", back_populates="closure_requests")
    requester = relationship("User", foreign_keys=[requested_by])
