from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from models.database import get_db
from schemas.base import BaseResponse
from schemas.task import TaskCreate, TaskResponse, AssigneeResponse
from schemas.project import ProjectSettingsUpdate, ProjectSettingsResponse
from schemas.chat import (
    MessageCreate, MessageResponse, ChatRoomResponse, MessageWithMentionsResponse, RoomMessagesResponse
)
from services import (
    AccessGuard, TaskService, ProjectSettingsService,
    ChatRoomService, ChatMessageService, ReadStateService
)
from utils.auth import Principal, get_current_principal
from utils.response_utils import standard_response
from utils.status_codes import CREATED

router = APIRouter()


# ==================== 项目任务 ====================

@router.get("/{project_id}/tasks", response_model=BaseResponse)
def get_project_tasks(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """按状态分组获取项目任务（看板），非超级管理员只看到分配给自己的任务"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)
    board = TaskService(db).get_tasks_by_status(
        principal.org_id, project_id, principal.user_id, principal.is_super_admin
    )
    data = {
        status_key: [TaskResponse.model_validate(task) for task in tasks]
        for status_key, tasks in board.items()
    }
    return standard_response(data=data)


@router.post("/{project_id}/tasks", response_model=BaseResponse, status_code=status.HTTP_201_CREATED)
def create_project_task(
    project_id: str,
    task_in: TaskCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """创建任务，未指定的优先级和截止时间按项目设置补全"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)

    priority, due_at = ProjectSettingsService(db).resolve_task_defaults(
        principal.org_id, project_id, task_in.priority, task_in.due_at
    )
    task_service = TaskService(db)
    task = task_service.create_task(
        org_id=principal.org_id,
        project_id=project_id,
        title=task_in.title,
        created_by=principal.user_id,
        description=task_in.description,
        priority=priority,
        due_at=due_at,
        status=task_in.status,
        assignee_ids=task_in.assigned_to
    )
    assignees = task_service.get_task_assignments(principal.org_id, task.id)

    data = TaskResponse.model_validate(task).model_dump()
    data["assignees"] = [AssigneeResponse.model_validate(user) for user in assignees]
    return standard_response(data=data, code=CREATED, message="任务创建成功")


# ==================== 项目设置 ====================

@router.get("/{project_id}/settings", response_model=BaseResponse)
def get_project_settings(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取项目的任务默认设置"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)
    project_settings = ProjectSettingsService(db).get_project_settings(principal.org_id, project_id)
    return standard_response(data=ProjectSettingsResponse(**project_settings))


@router.put("/{project_id}/settings", response_model=BaseResponse)
def update_project_settings(
    project_id: str,
    settings_in: ProjectSettingsUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """更新项目的任务默认设置"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)
    project_settings = ProjectSettingsService(db).update_project_settings(
        principal.org_id,
        project_id,
        default_task_due_days=settings_in.default_task_due_days,
        default_task_priority=settings_in.default_task_priority
    )
    return standard_response(data=ProjectSettingsResponse(**project_settings), message="项目设置已更新")


# ==================== 项目聊天 ====================

@router.get("/{project_id}/chat/messages", response_model=BaseResponse)
def get_project_messages(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """获取项目聊天室最近的消息，并把聊天室标记为已读"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)
    room = ChatRoomService(db).get_or_create_room(principal.org_id, project_id)
    messages = ChatMessageService(db).get_messages_with_mentions(principal.org_id, room.id, principal.user_id)
    if messages:
        # 只把已返回的消息标记为已读，之后到达的消息仍计入未读
        ReadStateService(db).mark_as_read(
            principal.org_id, room.id, principal.user_id, read_at=messages[-1]["created_at"]
        )

    return standard_response(data=RoomMessagesResponse(
        room=ChatRoomResponse.model_validate(room),
        messages=[MessageWithMentionsResponse(**message) for message in messages],
    ))


@router.post("/{project_id}/chat/messages", response_model=BaseResponse, status_code=status.HTTP_201_CREATED)
def send_project_message(
    project_id: str,
    message_in: MessageCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """在项目聊天室发送消息"""
    AccessGuard(db).ensure_project_access(principal.org_id, project_id, principal.user_id, principal.is_super_admin)
    room = ChatRoomService(db).get_or_create_room(principal.org_id, project_id)
    message = ChatMessageService(db).send_message(principal.org_id, room.id, principal.user_id, message_in.content)
    return standard_response(data=MessageResponse.model_validate(message), code=CREATED, message="消息已发送")
