from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime, timezone
from models.enums import TaskStatus, TaskPriority, ClosureRequestStatus

# 任务创建模式
class TaskCreate(BaseModel):
    title: str = Field(..., max_length=200, description="任务标题")
    description: Optional[str] = None
    priority: Optional[TaskPriority] = Field(None, description="为空时使用项目默认优先级")
    due_at: Optional[datetime] = Field(None, description="为空时按项目默认截止天数计算")
    status: Optional[TaskStatus] = Field(None, description="初始状态，默认 OPEN")
    assigned_to: Optional[List[str]] = Field(default_factory=list, description="初始负责人ID列表")

    @field_validator('status')
    @classmethod
    def initial_status_not_terminal(cls, v):
        if v is not None and v.is_terminal:
            raise ValueError("新任务不能直接处于终态")
        return v

    @field_validator('due_at', mode='before')
    @classmethod
    def parse_datetime_string(cls, v):
        """支持 "YYYY-MM-DD HH:MM:SS" 和 "YYYY-MM-DD" 两种格式，其余交给 pydantic 解析"""
        if isinstance(v, str):
            if len(v) == 19 and ' ' in v:
                return datetime.strptime(v, "%Y-%m-%d %H:%M:%S")
            if len(v) == 10:
                return datetime.strptime(v, "%Y-%m-%d")
        return v

    @field_validator('due_at')
    @classmethod
    def due_at_to_naive_utc(cls, v):
        """带时区的时间统一换算为 UTC 后去掉时区，和库中存储保持一致"""
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

# 任务响应模式
class TaskResponse(BaseModel):
    id: str
    org_id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    created_by: str
    due_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

# 状态更新模式
class TaskStatusUpdate(BaseModel):
    status: TaskStatus

# 分配负责人模式
class TaskAssignRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1, description="负责人ID列表，只增不减")

# 关闭任务模式：创建人直接关闭，其他人发起关闭申请
class TaskCloseRequest(BaseModel):
    action: Literal["close", "request"] = "close"
    status: Optional[TaskStatus] = Field(None, description="action 为 close 时必填，DONE 或 CANCELED")

# 负责人响应模式
class AssigneeResponse(BaseModel):
    id: str
    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

# 状态日志响应模式
class TaskStatusLogResponse(BaseModel):
    id: str
    task_id: str
    from_status: Optional[TaskStatus] = None
    to_status: TaskStatus
    changed_by: str
    changed_by_name: Optional[str] = None
    changed_at: datetime

    @classmethod
    def from_log(cls, log) -> "TaskStatusLogResponse":
        return cls(
            id=log.id,
            task_id=log.task_id,
            from_status=log.from_status,
            to_status=log.to_status,
            changed_by=log.changed_by,
            changed_by_name=log.changer.name if log.changer else None,
            changed_at=log.changed_at
        )

# 关闭申请响应模式
class ClosureRequestResponse(BaseModel):
    id: str
    task_id: str
    requested_by: str
    requested_by_name: Optional[str] = None
    requested_at: datetime
    status: ClosureRequestStatus
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request) -> "ClosureRequestResponse":
        return cls(
            id=request.id,
            task_id=request.task_id,
            requested_by=request.requested_by,
            requested_by_name=request.requester.name if request.requester else None,
            requested_at=request.requested_at,
            status=request.status,
            acknowledged_by=request.acknowledged_by,
            acknowledged_at=request.acknowledged_at
        )
