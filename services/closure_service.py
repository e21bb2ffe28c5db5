"""任务关闭服务模块

只有任务创建人可以把任务关闭为 DONE / CANCELED；其他人只能发起关闭申请，
由创建人确认
"""
import logging
from typing import List

from sqlalchemy.orm import Session, joinedload

from models import (
    Task, TaskClosureRequest, TaskStatus, ClosureRequestStatus, transactional
)
from models.base import utc_now
from services.task_service import TaskService
from utils.db_dialect import insert_ignore
from utils.snowflake import generate_closure_request_id
from utils.exceptions import PermissionException, ValidationException, ResourceConflictException
from utils.status_codes import TASK_CLOSE_FORBIDDEN

logger = logging.getLogger(__name__)


class TaskClosureService:
    """任务关闭服务类"""

    def __init__(self, db: Session):
        self.db = db
        self.task_service = TaskService(db)

    def request_closure(self, org_id: str, task_id: str, requested_by: str) -> TaskClosureRequest:
        """
        申请关闭任务

        同一用户对同一任务只保留一条申请：待处理的申请原样返回，
        已确认的申请重新置为待处理
        """
        task = self.task_service.get_task(org_id, task_id)

        with transactional(self.db):
            request = self._find_request(org_id, task.id, requested_by)
            if request is None:
                inserted = insert_ignore(
                    self.db,
                    TaskClosureRequest.__table__,
                    {
                        "id": generate_closure_request_id(),
                        "org_id": org_id,
                        "task_id": task.id,
                        "requested_by": requested_by,
                        "requested_at": utc_now(),
                        "status": ClosureRequestStatus.PENDING,
                    },
                    ("org_id", "task_id", "requested_by")
                )
                request = self._find_request(org_id, task.id, requested_by)
                if request is None:
                    raise ResourceConflictException(message="关闭申请写入失败，请重试")
                if inserted:
                    logger.info(f"用户 {requested_by} 申请关闭任务 {task.id}")
            elif request.status == ClosureRequestStatus.ACKNOWLEDGED:
                request.status = ClosureRequestStatus.PENDING
                request.requested_at = utc_now()
                request.acknowledged_by = None
                request.acknowledged_at = None
                logger.info(f"用户 {requested_by} 重新申请关闭任务 {task.id}")

        return request

    def close_task(self, org_id: str, task_id: str, target_status: TaskStatus, acting_user_id: str) -> Task:
        """
        关闭任务，仅任务创建人可操作

        关闭不会修改已有的关闭申请
        """
        try:
            target_status = TaskStatus(target_status)
        except ValueError:
            raise ValidationException(message=f"无效的任务状态: {target_status}")
        if not target_status.is_terminal:
            raise ValidationException(message="关闭任务的目标状态只能是 DONE 或 CANCELED")

        task = self.task_service.get_task(org_id, task_id)
        if task.created_by != acting_user_id:
            logger.info(f"拒绝关闭任务 {task.id}: 操作人 {acting_user_id} 不是创建人")
            raise PermissionException(message="只有任务创建人可以关闭任务", code=TASK_CLOSE_FORBIDDEN)

        return self.task_service.update_task_status(org_id, task.id, target_status, acting_user_id)

    def get_closure_requests(self, org_id: str, task_id: str) -> List[TaskClosureRequest]:
        """获取任务的关闭申请列表"""
        self.task_service.get_task(org_id, task_id)
        return (
            self.db.query(TaskClosureRequest)
            .options(joinedload(TaskClosureRequest.requester))
            .filter(TaskClosureRequest.org_id == org_id, TaskClosureRequest.task_id == task_id)
            .order_by(TaskClosureRequest.requested_at, TaskClosureRequest.id)
            .all()
        )

    def acknowledge_closure_requests(self, org_id: str, task_id: str, acting_user_id: str) -> List[TaskClosureRequest]:
        """创建人确认所有待处理的关闭申请"""
        task = self.task_service.get_task(org_id, task_id)
        if task.created_by != acting_user_id:
            raise PermissionException(message="只有任务创建人可以处理关闭申请", code=TASK_CLOSE_FORBIDDEN)

        with transactional(self.db):
            pending = self.db.query(TaskClosureRequest).filter(
                TaskClosureRequest.org_id == org_id,
                TaskClosureRequest.task_id == task.id,
                TaskClosureRequest.status == ClosureRequestStatus.PENDING
            ).all()
            now = utc_now()
            for request in pending:
                request.status = ClosureRequestStatus.ACKNOWLEDGED
                request.acknowledged_by = acting_user_id
                request.acknowledged_at = now

        if pending:
            logger.info(f"任务 {task.id} 的 {len(pending)} 条关闭申请已确认")
        return self.get_closure_requests(org_id, task.id)

    def _find_request(self, org_id: str, task_id: str, requested_by: str):
        return self.db.query(TaskClosureRequest).filter(
            TaskClosureRequest.org_id == org_id,
            TaskClosureRequest.task_id == task_id,
            TaskClosureRequest.requested_by == requested_by
        ).populate_existing().first()
