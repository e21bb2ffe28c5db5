"""聊天服务模块

每个项目一个聊天室，消息中的 @用户名 会解析为提及记录
"""
import re
import logging
from typing import Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from config.settings import settings
from models import (
    ChatRoom, ChatMessage, ChatMention, Project, User,
    organization_members, transactional
)
from models.base import utc_now
from services.read_state_service import apply_room_mentions_read
from utils.db_dialect import insert_ignore
from utils.snowflake import generate_chat_room_id
from utils.exceptions import ResourceNotFoundException, ResourceConflictException, ValidationException

logger = logging.getLogger(__name__)

# @后面紧跟用户名（字母、数字、下划线），前面不能是单词字符，避免匹配邮箱
MENTION_PATTERN = re.compile(r"(?<!\w)@(\w+)")


def extract_mentions(content: str) -> List[str]:
    """提取消息中提及的用户名，按出现顺序去重"""
    if not content:
        return []
    return list(dict.fromkeys(MENTION_PATTERN.findall(content)))


class ChatRoomService:
    """聊天室服务类"""

    def __init__(self, db: Session):
        self.db = db

    def _find_room(self, org_id: str, project_id: str) -> Optional[ChatRoom]:
        return self.db.query(ChatRoom).filter(
            ChatRoom.org_id == org_id,
            ChatRoom.project_id == project_id
        ).first()

    def get_or_create_room(self, org_id: str, project_id: str) -> ChatRoom:
        """
        获取项目聊天室，不存在时创建

        并发首次访问依赖 (org_id, project_id) 唯一约束，所有调用方拿到同一个聊天室
        """
        room = self._find_room(org_id, project_id)
        if room:
            return room

        project = self.db.query(Project).filter(
            Project.org_id == org_id,
            Project.id == project_id
        ).first()
        if not project:
            raise ResourceNotFoundException(message=f"项目 {project_id} 不存在")

        with transactional(self.db):
            created = insert_ignore(
                self.db,
                ChatRoom.__table__,
                {
                    "id": generate_chat_room_id(),
                    "org_id": org_id,
                    "project_id": project_id,
                    "name": settings.CHAT_ROOM_DEFAULT_NAME,
                    "created_at": utc_now(),
                },
                ("org_id", "project_id")
            )

        room = self._find_room(org_id, project_id)
        if room is None:
            raise ResourceConflictException(message="聊天室创建失败，请重试")
        if created:
            logger.info(f"创建项目聊天室: {room.id} project={project_id}")
        return room

    def get_room(self, org_id: str, room_id: str) -> ChatRoom:
        room = self.db.query(ChatRoom).filter(
            ChatRoom.org_id == org_id,
            ChatRoom.id == room_id
        ).first()
        if not room:
            raise ResourceNotFoundException(message=f"聊天室 {room_id} 不存在")
        return room


class ChatMessageService:
    """聊天消息服务类"""

    def __init__(self, db: Session):
        self.db = db
        self.room_service = ChatRoomService(db)

    def _resolve_usernames(self, org_id: str, usernames: List[str]) -> List[str]:
        """把用户名解析为本组织成员的用户ID，无法解析的静默忽略"""
        if not usernames:
            return []
        rows = (
            self.db.query(User.id, User.username)
            .join(organization_members, organization_members.c.user_id == User.id)
            .filter(
                organization_members.c.org_id == org_id,
                User.username.in_(usernames)
            )
            .all()
        )
        by_name = {row.username: row.id for row in rows}
        return [by_name[name] for name in usernames if name in by_name]

    def send_message(self, org_id: str, room_id: str, author_id: str, content: str) -> ChatMessage:
        """
        发送消息

        消息、提及记录以及作者自己在该聊天室的未读提及清理在同一事务中完成。
        作者提及自己不会产生提及记录
        """
        content = (content or "").strip()
        if not content:
            raise ValidationException(message="消息内容不能为空")

        room = self.room_service.get_room(org_id, room_id)
        mentioned_ids = [
            uid for uid in self._resolve_usernames(org_id, extract_mentions(content))
            if uid != author_id
        ]

        with transactional(self.db):
            now = utc_now()
            message = ChatMessage(
                org_id=org_id,
                room_id=room.id,
                author_id=author_id,
                content=content,
                created_at=now
            )
            self.db.add(message)
            self.db.flush()

            for uid in mentioned_ids:
                insert_ignore(
                    self.db,
                    ChatMention.__table__,
                    {
                        "org_id": org_id,
                        "message_id": message.id,
                        "mentioned_user_id": uid,
                        "room_id": room.id,
                        "created_at": now,
                    },
                    ("org_id", "message_id", "mentioned_user_id")
                )

            apply_room_mentions_read(self.db, org_id, room.id, author_id, now)

        logger.info(f"用户 {author_id} 在聊天室 {room.id} 发送消息 {message.id}，提及 {len(mentioned_ids)} 人")
        return message

    def get_messages_with_mentions(self, org_id: str, room_id: str, user_id: str,
                                   limit: Optional[int] = None) -> List[Dict]:
        """
        获取聊天室最近的消息，按时间正序返回

        每条消息附带被提及用户列表，以及当前用户是否被提及、该提及是否已读
        """
        room = self.room_service.get_room(org_id, room_id)
        limit = limit or settings.CHAT_MESSAGE_LIMIT

        latest = (
            self.db.query(ChatMessage)
            .options(joinedload(ChatMessage.author))
            .filter(ChatMessage.org_id == org_id, ChatMessage.room_id == room.id)
            .order_by(desc(ChatMessage.created_at), desc(ChatMessage.id))
            .limit(limit)
            .all()
        )
        messages = list(reversed(latest))
        if not messages:
            return []

        mentions: Dict[str, List[ChatMention]] = {}
        for mention in self.db.query(ChatMention).filter(
            ChatMention.org_id == org_id,
            ChatMention.message_id.in_([m.id for m in messages])
        ):
            mentions.setdefault(mention.message_id, []).append(mention)

        result = []
        for message in messages:
            message_mentions = mentions.get(message.id, [])
            mine = next((m for m in message_mentions if m.mentioned_user_id == user_id), None)
            result.append({
                "id": message.id,
                "room_id": message.room_id,
                "author_id": message.author_id,
                "author_name": message.author.name if message.author else None,
                "author_username": message.author.username if message.author else None,
                "content": message.content,
                "created_at": message.created_at,
                "mentioned_user_ids": [m.mentioned_user_id for m in message_mentions],
                "mentions_me": mine is not None,
                "mention_read": mine.read_at is not None if mine else None,
            })
        return result
