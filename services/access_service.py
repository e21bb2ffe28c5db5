"""访问控制服务模块

判断当前身份能否操作某个项目、任务或聊天室。不做任何缓存，每次都读取最新的成员关系
"""
import logging
from typing import Optional

from sqlalchemy import exists, select, or_
from sqlalchemy.orm import Session

from models import Project, Task, TaskAssignment, ChatRoom, project_members
from utils.exceptions import ResourceNotFoundException, PermissionException

logger = logging.getLogger(__name__)


class AccessGuard:
    """项目访问守卫"""

    def __init__(self, db: Session):
        self.db = db

    def can_access(self, org_id: str, project_id: str, user_id: str, is_super_admin: bool) -> bool:
        """超级管理员总是通过，否则必须是该组织下该项目的成员"""
        if is_super_admin:
            return True

        stmt = select(
            exists().where(
                project_members.c.org_id == org_id,
                project_members.c.project_id == project_id,
                project_members.c.user_id == user_id
            )
        )
        return bool(self.db.execute(stmt).scalar())

    def accessible_project_ids(self, org_id: str, user_id: str):
        """当前用户在组织内可访问的项目ID子查询"""
        return select(project_members.c.project_id).where(
            project_members.c.org_id == org_id,
            project_members.c.user_id == user_id
        )

    # ==================== 资源定位 ====================

    def get_project_in_org(self, org_id: str, project_id: str) -> Project:
        """获取组织内的项目，不存在或属于其他组织时均按不存在处理"""
        project = self.db.execute(
            select(Project).where(Project.org_id == org_id, Project.id == project_id)
        ).scalar_one_or_none()
        if not project:
            raise ResourceNotFoundException(message=f"项目 {project_id} 不存在")
        return project

    def get_task_in_org(self, org_id: str, task_id: str) -> Task:
        task = self.db.execute(
            select(Task).where(Task.org_id == org_id, Task.id == task_id)
        ).scalar_one_or_none()
        if not task:
            raise ResourceNotFoundException(message=f"任务 {task_id} 不存在")
        return task

    def get_room_in_org(self, org_id: str, room_id: str) -> ChatRoom:
        room = self.db.execute(
            select(ChatRoom).where(ChatRoom.org_id == org_id, ChatRoom.id == room_id)
        ).scalar_one_or_none()
        if not room:
            raise ResourceNotFoundException(message=f"聊天室 {room_id} 不存在")
        return room

    # ==================== 权限校验 ====================

    def ensure_project_access(self, org_id: str, project_id: str, user_id: str, is_super_admin: bool) -> Project:
        """校验项目访问权限，返回项目"""
        project = self.get_project_in_org(org_id, project_id)
        if not self.can_access(org_id, project_id, user_id, is_super_admin):
            logger.info(f"拒绝访问项目: org={org_id} project={project_id} user={user_id}")
            raise PermissionException(message="您不是该项目的成员")
        return project

    def ensure_task_access(self, org_id: str, task_id: str, user_id: str, is_super_admin: bool) -> Task:
        """任务的访问权限跟随其所属项目"""
        task = self.get_task_in_org(org_id, task_id)
        self.ensure_project_access(org_id, task.project_id, user_id, is_super_admin)
        return task

    def ensure_room_access(self, org_id: str, room_id: str, user_id: str, is_super_admin: bool) -> ChatRoom:
        room = self.get_room_in_org(org_id, room_id)
        self.ensure_project_access(org_id, room.project_id, user_id, is_super_admin)
        return room

    def check_task_access(self, org_id: str, task_id: str, user_id: str,
                          is_super_admin: Optional[bool] = False) -> bool:
        """任务级可见性：超级管理员、任务创建人或被分配人"""
        if is_super_admin:
            return True

        visible = (
            select(Task.id)
            .outerjoin(
                TaskAssignment,
                (TaskAssignment.task_id == Task.id) & (TaskAssignment.org_id == Task.org_id)
            )
            .where(
                Task.org_id == org_id,
                Task.id == task_id,
                or_(Task.created_by == user_id, TaskAssignment.user_id == user_id)
            )
            .exists()
        )
        return bool(self.db.execute(select(visible)).scalar())
