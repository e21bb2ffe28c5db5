from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from models.database import get_db
from schemas.base import BaseResponse
from schemas.chat import MarkMentionReadRequest, MarkRoomMentionsReadRequest, ProjectMentionCount
from services import AccessGuard, ReadStateService
from utils.auth import Principal, get_current_principal
from utils.response_utils import standard_response

router = APIRouter()


# /mentions 路由需要在 /{room_id} 之前注册

@router.get("/mentions/unread", response_model=BaseResponse)
def get_unread_mentions(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """当前用户的未读提及总数"""
    count = ReadStateService(db).get_user_unread_mentions(
        principal.org_id, principal.user_id, principal.is_super_admin
    )
    return standard_response(data={"unread_mentions": count})


@router.get("/mentions/by-project", response_model=BaseResponse)
def get_mentions_by_project(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """按项目统计当前用户的未读提及"""
    rows = ReadStateService(db).get_user_mentions_by_project(
        principal.org_id, principal.user_id, principal.is_super_admin
    )
    return standard_response(data=[ProjectMentionCount(**row) for row in rows])


@router.post("/mentions/mark-read", response_model=BaseResponse)
def mark_mention_read(
    mark_in: MarkMentionReadRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """标记某条消息中对当前用户的提及为已读"""
    updated = ReadStateService(db).mark_mentions_as_read(principal.org_id, mark_in.message_id, principal.user_id)
    return standard_response(data={"updated": updated})


@router.post("/mentions/mark-read-room", response_model=BaseResponse)
def mark_room_mentions_read(
    mark_in: MarkRoomMentionsReadRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """标记当前用户在某个聊天室的全部提及为已读"""
    AccessGuard(db).ensure_room_access(principal.org_id, mark_in.room_id, principal.user_id, principal.is_super_admin)
    updated = ReadStateService(db).mark_all_room_mentions_as_read(principal.org_id, mark_in.room_id, principal.user_id)
    return standard_response(data={"updated": updated})


@router.get("/{room_id}/unread", response_model=BaseResponse)
def get_unread_count(
    room_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """聊天室未读消息数"""
    AccessGuard(db).ensure_room_access(principal.org_id, room_id, principal.user_id, principal.is_super_admin)
    count = ReadStateService(db).get_unread_count(principal.org_id, room_id, principal.user_id)
    return standard_response(data={"room_id": room_id, "unread": count})


@router.post("/{room_id}/read", response_model=BaseResponse)
def mark_room_read(
    room_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """标记聊天室已读"""
    AccessGuard(db).ensure_room_access(principal.org_id, room_id, principal.user_id, principal.is_super_admin)
    last_read_at = ReadStateService(db).mark_as_read(principal.org_id, room_id, principal.user_id)
    return standard_response(data={"room_id": room_id, "last_read_at": last_read_at})
