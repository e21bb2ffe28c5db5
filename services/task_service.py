"""任务服务模块

包含任务的创建、查询、分配和状态流转。所有查询都限定在调用方的组织内
"""
import logging
from typing import Dict, List, Optional, Iterable
from datetime import datetime

from sqlalchemy import desc, update
from sqlalchemy.orm import Session, joinedload

from models import (
    Task, TaskAssignment, TaskStatusLog, User, Project,
    TaskStatus, TaskPriority, TASK_STATUS_ORDER,
    organization_members, transactional
)
from models.base import utc_now
from utils.db_dialect import insert_ignore
from utils.exceptions import ResourceNotFoundException, ResourceConflictException, ValidationException

logger = logging.getLogger(__name__)

STATUS_UPDATE_RETRIES = 5  # 状态并发修改时的最大尝试次数


class TaskService:
    """任务服务类"""

    def __init__(self, db: Session):
        self.db = db

    def create_task(self, org_id: str, project_id: str, title: str, created_by: str,
                    description: Optional[str] = None,
                    priority: Optional[TaskPriority] = None,
                    due_at: Optional[datetime] = None,
                    status: Optional[TaskStatus] = None,
                    assignee_ids: Optional[Iterable[str]] = None) -> Task:
        """
        创建任务，可同时指定初始负责人

        默认值（优先级、截止时间）由调用方根据项目设置解析，这里只落库。
        任务和初始分配在同一事务中写入
        """
        title = (title or "").strip()
        if not title:
            raise ValidationException(message="任务标题不能为空")

        project = self.db.query(Project).filter(
            Project.org_id == org_id,
            Project.id == project_id
        ).first()
        if not project:
            raise ResourceNotFoundException(message=f"项目 {project_id} 不存在")

        assignees = self._validate_org_members(org_id, assignee_ids or [])

        task = Task(
            org_id=org_id,
            project_id=project_id,
            title=title,
            description=description,
            status=status or TaskStatus.OPEN,
            priority=priority or TaskPriority.MEDIUM,
            created_by=created_by,
            due_at=due_at
        )

        with transactional(self.db):
            self.db.add(task)
            self.db.flush()
            self._insert_assignments(org_id, task.id, assignees)

        logger.info(f"创建任务: {task.id} project={project_id} by={created_by} assignees={len(assignees)}")
        return task

    def get_task(self, org_id: str, task_id: str) -> Task:
        """根据ID获取任务，其他组织的任务视为不存在"""
        task = self.db.query(Task).filter(
            Task.org_id == org_id,
            Task.id == task_id
        ).first()
        if not task:
            raise ResourceNotFoundException(message=f"任务 {task_id} 不存在")
        return task

    def get_tasks_by_status(self, org_id: str, project_id: str, user_id: str,
                            is_super_admin: bool = False) -> Dict[str, List[Task]]:
        """
        按状态分组获取项目任务（看板视图）

        非超级管理员只能看到分配给自己的任务。返回结果总是包含全部五个状态分组，
        组内按创建时间倒序
        """
        query = self.db.query(Task).filter(
            Task.org_id == org_id,
            Task.project_id == project_id
        )
        if not is_super_admin:
            query = query.join(
                TaskAssignment,
                (TaskAssignment.task_id == Task.id) & (TaskAssignment.org_id == Task.org_id)
            ).filter(TaskAssignment.user_id == user_id)

        tasks = query.order_by(desc(Task.created_at), desc(Task.id)).all()

        board: Dict[str, List[Task]] = {status.value: [] for status in TASK_STATUS_ORDER}
        for task in tasks:
            board[task.status.value].append(task)
        return board

    def assign_users_to_task(self, org_id: str, task_id: str, user_ids: Iterable[str]) -> List[User]:
        """
        为任务添加负责人（只增不减）

        已分配的用户再次分配不会产生重复记录；并发分配同一用户只会成功插入一次
        """
        task = self.get_task(org_id, task_id)

        wanted = self._validate_org_members(org_id, user_ids)
        if not wanted:
            raise ValidationException(message="请至少指定一个负责人")

        with transactional(self.db):
            self._insert_assignments(org_id, task.id, wanted)

        return self.get_task_assignments(org_id, task.id)

    def _validate_org_members(self, org_id: str, user_ids: Iterable[str]) -> List[str]:
        """去重并校验用户都属于当前组织"""
        wanted = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not wanted:
            return []

        members = {
            row.user_id for row in self.db.query(organization_members.c.user_id).filter(
                organization_members.c.org_id == org_id,
                organization_members.c.user_id.in_(wanted)
            )
        }
        unknown = [uid for uid in wanted if uid not in members]
        if unknown:
            raise ValidationException(
                message="部分用户不属于当前组织",
                data={"user_ids": unknown}
            )
        return wanted

    def _insert_assignments(self, org_id: str, task_id: str, user_ids: List[str]) -> None:
        for uid in user_ids:
            inserted = insert_ignore(
                self.db,
                TaskAssignment.__table__,
                {"org_id": org_id, "task_id": task_id, "user_id": uid, "assigned_at": utc_now()},
                ("org_id", "task_id", "user_id")
            )
            if inserted:
                logger.info(f"任务 {task_id} 分配给用户 {uid}")

    def get_task_assignments(self, org_id: str, task_id: str) -> List[User]:
        """获取任务负责人列表，按姓名排序"""
        self.get_task(org_id, task_id)
        return (
            self.db.query(User)
            .join(TaskAssignment, TaskAssignment.user_id == User.id)
            .filter(TaskAssignment.org_id == org_id, TaskAssignment.task_id == task_id)
            .order_by(User.name, User.id)
            .all()
        )

    def _find_task_for_update(self, org_id: str, task_id: str) -> Task:
        """重新读取任务当前状态，PostgreSQL/MySQL 下同时加行锁"""
        task = self.db.query(Task).filter(
            Task.org_id == org_id,
            Task.id == task_id
        ).populate_existing().with_for_update().first()
        if not task:
            raise ResourceNotFoundException(message=f"任务 {task_id} 不存在")
        return task

    def update_task_status(self, org_id: str, task_id: str, new_status: TaskStatus, changed_by: str) -> Task:
        """
        更新任务状态并追加一条状态日志

        状态变更和日志写入在同一事务中完成，状态未变化时不写日志。
        状态按旧值比较后交换（UPDATE ... WHERE status = 旧状态），
        SQLite 不支持行锁，期间被他人改动时重新读取后重试。
        不校验终态权限，关闭任务请走 TaskClosureService.close_task
        """
        new_status = TaskStatus(new_status)

        for _ in range(STATUS_UPDATE_RETRIES):
            with transactional(self.db):
                task = self._find_task_for_update(org_id, task_id)
                old_status = task.status
                if old_status == new_status:
                    return task

                now = utc_now()
                result = self.db.execute(
                    update(Task)
                    .where(Task.org_id == org_id, Task.id == task_id, Task.status == old_status)
                    .values(status=new_status, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    self.db.add(TaskStatusLog(
                        org_id=org_id,
                        task_id=task.id,
                        from_status=old_status,
                        to_status=new_status,
                        changed_by=changed_by,
                        changed_at=now
                    ))
                    swapped = True
                else:
                    swapped = False

            if swapped:
                self.db.refresh(task)
                logger.info(f"任务 {task.id} 状态变更: {old_status.value} -> {new_status.value} by={changed_by}")
                return task
            logger.debug(f"任务 {task_id} 状态已被并发修改，重试")

        raise ResourceConflictException(message="任务状态正在被他人修改，请稍后重试")

    def get_task_status_log(self, org_id: str, task_id: str) -> List[TaskStatusLog]:
        """获取任务状态流转历史，按时间正序"""
        self.get_task(org_id, task_id)
        return (
            self.db.query(TaskStatusLog)
            .options(joinedload(TaskStatusLog.changer))
            .filter(TaskStatusLog.org_id == org_id, TaskStatusLog.task_id == task_id)
            .order_by(TaskStatusLog.changed_at, TaskStatusLog.id)
            .all()
        )
