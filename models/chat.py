"""
聊天模型模块
包含项目聊天室、消息、@提及记录和已读游标的数据模型定义
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import OrgScopedMixin, utc_now
from .database import Base
from utils.snowflake import generate_chat_room_id, generate_chat_message_id


class ChatRoom(Base, OrgScopedMixin):
    """聊天室表模型，每个项目有且只有一个"""
    __tablename__ = "chat_rooms"
    __table_args__ = (
        UniqueConstraint("org_id", "project_id", name="uq_chat_rooms_org_project"),
    )

    id = Column(String(32), primary_key=True, default=generate_chat_room_id, comment='聊天室ID，格式：CR_雪花算法ID')
    project_id = Column(String(32), ForeignKey("projects.id"), nullable=False, comment='所属项目ID')
    name = Column(String(100), nullable=False, comment='聊天室名称')
    created_at = Column(DateTime, default=utc_now, nullable=False, comment='创建时间')

    project = relationship("Project")
    messages = relationship("ChatMessage", back_populates="room")


class ChatMessage(Base, OrgScopedMixin):
    """聊天消息表模型，创建后不可修改"""
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_org_room_created", "org_id", "room_id", "created_at"),
    )

    id = Column(String(32), primary_key=True, default=generate_chat_message_id, comment='消息ID，格式：M_雪花算法ID')
    room_id = Column(String(32), ForeignKey("chat_rooms.id"), nullable=False, comment='聊天室ID')
    author_id = Column(String(32), ForeignKey("users.id"), nullable=False, comment='发送人ID')
    content = Column(Text, nullable=False, comment='消息内容')
    created_at = Column(DateTime, default=utc_now, nullable=False, comment='发送时间')

    room = relationship("ChatRoom", back_populates="messages")
    author = relationship("User")
    mentions = relationship("ChatMention", back_populates="message")


class ChatMention(Base):
    """@提及记录表模型，每条消息每个被提及用户一行"""
    __tablename__ = "chat_mentions"
    __table_args__ = (
        Index("ix_chat_mentions_user_unread", "org_id", "mentioned_user_id", "read_at"),
    )

    org_id = Column(String(32), ForeignKey("organizations.id"), primary_key=True, comment='所属组织ID')
    message_id = Column(String(32), ForeignKey("chat_messages.id"), primary_key=True, comment='消息ID')
    mentioned_user_id = Column(String(32), ForeignKey("users.id"), primary_key=True, comment='被提及用户ID')
    room_id = Column(String(32), ForeignKey("chat_rooms.id"), nullable=False, comment='聊天室ID')
    created_at = Column(DateTime, default=utc_now, nullable=False, comment='创建时间')
    read_at = Column(DateTime, nullable=True, comment='已读时间，为空表示未读')

    message = relationship("ChatMessage", back_populates="mentions")


class ChatReadStatus(Base):
    """已读游标表模型，每个聊天室每个用户一行，只前进不后退"""
    __tablename__ = "chat_read_status"

    org_id = Column(String(32), ForeignKey("organizations.id"), primary_key=True, comment='所属组织ID')
    room_id = Column(String(32), ForeignKey("chat_rooms.id"), primary_key=True, comment='聊天室ID')
    user_id = Column(String(32), ForeignKey("users.id"), primary_key=True, comment='用户ID')
    last_read_at = Column(DateTime, nullable=False, comment='最后已读时间')
