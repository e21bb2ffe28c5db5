"""项目设置服务模块

管理项目级的任务默认值（截止天数、优先级）
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from config.settings import settings
from models import Project, ProjectSettings, TaskPriority, transactional
from models.base import utc_now
from utils.db_dialect import insert_ignore
from utils.exceptions import ResourceNotFoundException, ValidationException

logger = logging.getLogger(__name__)


class ProjectSettingsService:
    """项目设置服务类"""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_project(self, org_id: str, project_id: str) -> Project:
        project = self.db.query(Project).filter(
            Project.org_id == org_id,
            Project.id == project_id
        ).first()
        if not project:
            raise ResourceNotFoundException(message=f"项目 {project_id} 不存在")
        return project

    def _find_settings(self, org_id: str, project_id: str) -> Optional[ProjectSettings]:
        return self.db.query(ProjectSettings).filter(
            ProjectSettings.org_id == org_id,
            ProjectSettings.project_id == project_id
        ).populate_existing().first()

    def get_project_settings(self, org_id: str, project_id: str) -> dict:
        """获取项目设置，没有保存过时返回全局默认值"""
        self._ensure_project(org_id, project_id)
        row = self._find_settings(org_id, project_id)
        if row is None:
            return {
                "project_id": project_id,
                "default_task_due_days": settings.DEFAULT_TASK_DUE_DAYS,
                "default_task_priority": TaskPriority(settings.DEFAULT_TASK_PRIORITY),
                "updated_at": None,
            }
        return {
            "project_id": project_id,
            "default_task_due_days": row.default_task_due_days,
            "default_task_priority": row.default_task_priority,
            "updated_at": row.updated_at,
        }

    def update_project_settings(self, org_id: str, project_id: str,
                                default_task_due_days: Optional[int] = None,
                                default_task_priority: Optional[TaskPriority] = None) -> dict:
        """更新项目设置，未传入的字段保持不变"""
        self._ensure_project(org_id, project_id)
        if default_task_due_days is not None and default_task_due_days < 0:
            raise ValidationException(message="默认截止天数不能为负数")

        with transactional(self.db):
            insert_ignore(
                self.db,
                ProjectSettings.__table__,
                {
                    "org_id": org_id,
                    "project_id": project_id,
                    "default_task_due_days": settings.DEFAULT_TASK_DUE_DAYS,
                    "default_task_priority": TaskPriority(settings.DEFAULT_TASK_PRIORITY),
                    "updated_at": utc_now(),
                },
                ("org_id", "project_id")
            )
            row = self._find_settings(org_id, project_id)
            if default_task_due_days is not None:
                row.default_task_due_days = default_task_due_days
            if default_task_priority is not None:
                row.default_task_priority = TaskPriority(default_task_priority)
            row.updated_at = utc_now()

        logger.info(f"更新项目设置: project={project_id}")
        return self.get_project_settings(org_id, project_id)

    def resolve_task_defaults(self, org_id: str, project_id: str,
                              priority: Optional[TaskPriority] = None,
                              due_at: Optional[datetime] = None) -> Tuple[TaskPriority, Optional[datetime]]:
        """
        按项目设置补全新任务的优先级和截止时间

        截止天数为 0 时不设置截止时间
        """
        project_settings = self.get_project_settings(org_id, project_id)
        if priority is None:
            priority = project_settings["default_task_priority"]
        if due_at is None and project_settings["default_task_due_days"] > 0:
            due_at = utc_now() + timedelta(days=project_settings["default_task_due_days"])
        return priority, due_at
