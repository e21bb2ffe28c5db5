"""已读状态服务模块

维护每个用户在每个聊天室的已读游标，以及 @提及 的已读标记
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, desc, update
from sqlalchemy.orm import Session

from models import ChatRoom, ChatMessage, ChatMention, ChatReadStatus, Project, transactional
from models.base import utc_now
from services.access_service import AccessGuard
from utils.db_dialect import upsert_max
from utils.exceptions import ResourceNotFoundException

logger = logging.getLogger(__name__)


def apply_room_mentions_read(db: Session, org_id: str, room_id: str, user_id: str,
                             read_at: Optional[datetime] = None) -> int:
    """
    把用户在某个聊天室的未读提及标记为已读（不提交事务）

    传入 read_at 时只处理在该时间及之前产生的提及
    """
    stmt = update(ChatMention).where(
        ChatMention.org_id == org_id,
        ChatMention.room_id == room_id,
        ChatMention.mentioned_user_id == user_id,
        ChatMention.read_at.is_(None)
    )
    if read_at is not None:
        stmt = stmt.where(ChatMention.created_at <= read_at)
    result = db.execute(
        stmt
        .values(read_at=read_at or utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


class ReadStateService:
    """已读状态服务类"""

    def __init__(self, db: Session):
        self.db = db

    def _get_room(self, org_id: str, room_id: str) -> ChatRoom:
        room = self.db.query(ChatRoom).filter(
            ChatRoom.org_id == org_id,
            ChatRoom.id == room_id
        ).first()
        if not room:
            raise ResourceNotFoundException(message=f"聊天室 {room_id} 不存在")
        return room

    def get_last_read_at(self, org_id: str, room_id: str, user_id: str) -> Optional[datetime]:
        row = self.db.query(ChatReadStatus.last_read_at).filter(
            ChatReadStatus.org_id == org_id,
            ChatReadStatus.room_id == room_id,
            ChatReadStatus.user_id == user_id
        ).first()
        return row.last_read_at if row else None

    def mark_as_read(self, org_id: str, room_id: str, user_id: str,
                     read_at: Optional[datetime] = None) -> datetime:
        """
        标记聊天室已读

        游标只前进不后退，并发调用最终收敛到最大的时间；
        同时把该用户在此聊天室 read_at 及之前产生的未读提及标记为已读

        Returns:
            datetime: 写入后的已读游标
        """
        room = self._get_room(org_id, room_id)
        read_at = read_at or utc_now()

        with transactional(self.db):
            upsert_max(
                self.db,
                ChatReadStatus.__table__,
                {"org_id": org_id, "room_id": room.id, "user_id": user_id, "last_read_at": read_at},
                ("org_id", "room_id", "user_id"),
                "last_read_at"
            )
            apply_room_mentions_read(self.db, org_id, room.id, user_id, read_at)

        return self.get_last_read_at(org_id, room.id, user_id)

    def get_unread_count(self, org_id: str, room_id: str, user_id: str) -> int:
        """未读消息数：他人在已读游标之后发送的消息，没有游标时统计全部"""
        room = self._get_room(org_id, room_id)
        last_read_at = self.get_last_read_at(org_id, room.id, user_id)

        query = self.db.query(func.count(ChatMessage.id)).filter(
            ChatMessage.org_id == org_id,
            ChatMessage.room_id == room.id,
            ChatMessage.author_id != user_id
        )
        if last_read_at is not None:
            query = query.filter(ChatMessage.created_at > last_read_at)
        return query.scalar() or 0

    def _unread_mentions_query(self, org_id: str, user_id: str, is_super_admin: bool, *columns):
        query = (
            self.db.query(*columns)
            .select_from(ChatMention)
            .join(ChatRoom, (ChatRoom.id == ChatMention.room_id) & (ChatRoom.org_id == ChatMention.org_id))
            .filter(
                ChatMention.org_id == org_id,
                ChatMention.mentioned_user_id == user_id,
                ChatMention.read_at.is_(None)
            )
        )
        if not is_super_admin:
            member_projects = AccessGuard(self.db).accessible_project_ids(org_id, user_id)
            query = query.filter(ChatRoom.project_id.in_(member_projects.scalar_subquery()))
        return query

    def get_user_mentions_by_project(self, org_id: str, user_id: str,
                                     is_super_admin: bool = False) -> List[Dict]:
        """
        按项目统计未读提及数

        超级管理员统计组织内全部项目，其他用户只统计自己所在的项目。
        没有未读提及的项目不出现在结果中
        """
        mention_count = func.count(ChatMention.message_id).label("mention_count")
        rows = (
            self._unread_mentions_query(org_id, user_id, is_super_admin,
                                        ChatRoom.project_id, Project.name, mention_count)
            .join(Project, (Project.id == ChatRoom.project_id) & (Project.org_id == ChatRoom.org_id))
            .group_by(ChatRoom.project_id, Project.name)
            .order_by(desc(mention_count), Project.name)
            .all()
        )
        return [
            {"project_id": row.project_id, "project_name": row.name, "mention_count": row.mention_count}
            for row in rows
        ]

    def get_user_unread_mentions(self, org_id: str, user_id: str, is_super_admin: bool = False) -> int:
        """用户未读提及总数"""
        count = self._unread_mentions_query(
            org_id, user_id, is_super_admin, func.count(ChatMention.message_id)
        ).scalar()
        return count or 0

    def mark_mentions_as_read(self, org_id: str, message_id: str, user_id: str) -> int:
        """标记某条消息中对当前用户的提及为已读，重复调用无副作用"""
        with transactional(self.db):
            result = self.db.execute(
                update(ChatMention)
                .where(
                    ChatMention.org_id == org_id,
                    ChatMention.message_id == message_id,
                    ChatMention.mentioned_user_id == user_id,
                    ChatMention.read_at.is_(None)
                )
                .values(read_at=utc_now())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0

    def mark_all_room_mentions_as_read(self, org_id: str, room_id: str, user_id: str) -> int:
        room = self._get_room(org_id, room_id)
        with transactional(self.db):
            count = apply_room_mentions_read(self.db, org_id, room.id, user_id)
        if count:
            logger.debug(f"用户 {user_id} 在聊天室 {room.id} 的 {count} 条提及已读")
        return count
