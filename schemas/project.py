from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models import TaskPriority

# 项目设置更新模式
class ProjectSettingsUpdate(BaseModel):
    default_task_due_days: Optional[int] = Field(None, ge=0, le=365, description="新任务默认截止天数，0表示不设置")
    default_task_priority: Optional[TaskPriority] = Field(None, description="新任务默认优先级")

# 项目设置响应模式
class ProjectSettingsResponse(BaseModel):
    project_id: str
    default_task_due_days: int
    default_task_priority: TaskPriority
    updated_at: Optional[datetime] = None
