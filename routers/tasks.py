from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from models.database import get_db
from schemas.base import BaseResponse
from schemas.task import (
    TaskResponse, TaskStatusUpdate, TaskAssignRequest, TaskCloseRequest,
    AssigneeResponse, TaskStatusLogResponse, ClosureRequestResponse
)
from services import AccessGuard, TaskService, TaskClosureService
from utils.auth import Principal, get_current_principal
from utils.exceptions import ValidationException
from utils.response_utils import standard_response

router = APIRouter()


def _task_detail(task_service: TaskService, task, org_id: str) -> dict:
    data = TaskResponse.model_validate(task).model_dump()
    data["assignees"] = [
        AssigneeResponse.model_validate(user)
        for user in task_service.get_task_assignments(org_id, task.id)
    ]
    return data


@router.get("/{task_id}", response_model=BaseResponse)
def get_task(
    task_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取任务详情（含负责人）"""
    task = AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    return standard_response(data=_task_detail(TaskService(db), task, principal.org_id))


@router.patch("/{task_id}/status", response_model=BaseResponse)
def update_task_status(
    task_id: str,
    status_in: TaskStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """
    更新任务状态

    目标为 DONE / CANCELED 时按关闭任务处理，只有创建人可以操作
    """
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    if status_in.status.is_terminal:
        task = TaskClosureService(db).close_task(principal.org_id, task_id, status_in.status, principal.user_id)
    else:
        task = TaskService(db).update_task_status(principal.org_id, task_id, status_in.status, principal.user_id)
    return standard_response(data=TaskResponse.model_validate(task), message="任务状态已更新")


@router.get("/{task_id}/assign", response_model=BaseResponse)
def get_task_assignees(
    task_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取任务负责人列表"""
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    users = TaskService(db).get_task_assignments(principal.org_id, task_id)
    return standard_response(data=[AssigneeResponse.model_validate(user) for user in users])


@router.post("/{task_id}/assign", response_model=BaseResponse)
def assign_task(
    task_id: str,
    assign_in: TaskAssignRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """为任务添加负责人，已有负责人保持不变"""
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    users = TaskService(db).assign_users_to_task(principal.org_id, task_id, assign_in.user_ids)
    return standard_response(data=[AssigneeResponse.model_validate(user) for user in users], message="任务分配成功")


@router.get("/{task_id}/close", response_model=BaseResponse)
def get_closure_requests(
    task_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取任务的关闭申请"""
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    requests = TaskClosureService(db).get_closure_requests(principal.org_id, task_id)
    return standard_response(data=[ClosureRequestResponse.from_request(r) for r in requests])


@router.post("/{task_id}/close", response_model=BaseResponse)
def close_task(
    task_id: str,
    close_in: TaskCloseRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """
    关闭任务或申请关闭

    - action=close：创建人把任务关闭为 DONE / CANCELED
    - action=request：任何有权限的成员请求创建人关闭任务
    """
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    closure_service = TaskClosureService(db)

    if close_in.action == "request":
        request = closure_service.request_closure(principal.org_id, task_id, principal.user_id)
        return standard_response(data=ClosureRequestResponse.from_request(request), message="已提交关闭申请")

    if close_in.status is None:
        raise ValidationException(message="关闭任务需要指定目标状态")
    task = closure_service.close_task(principal.org_id, task_id, close_in.status, principal.user_id)
    return standard_response(data=TaskResponse.model_validate(task), message="任务已关闭")


@router.post("/{task_id}/close/acknowledge", response_model=BaseResponse)
def acknowledge_closure_requests(
    task_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """创建人确认所有待处理的关闭申请"""
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    requests = TaskClosureService(db).acknowledge_closure_requests(principal.org_id, task_id, principal.user_id)
    return standard_response(data=[ClosureRequestResponse.from_request(r) for r in requests])


@router.get("/{task_id}/log", response_model=BaseResponse)
def get_task_status_log(
    task_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取任务状态流转历史"""
    AccessGuard(db).ensure_task_access(principal.org_id, task_id, principal.user_id, principal.is_super_admin)
    logs = TaskService(db).get_task_status_log(principal.org_id, task_id)
    return standard_response(data=[TaskStatusLogResponse.from_log(log) for log in logs])
