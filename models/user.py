"""
用户模型模块
用户是全局账号，通过组织成员表加入各个组织
"""
from sqlalchemy import Column, String, Boolean

from .base import TimestampMixin
from .database import Base
from utils.snowflake import generate_user_id


class User(Base, TimestampMixin):
    """用户表模型"""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, index=True, default=generate_user_id, comment='用户ID，格式：U_雪花算法ID')
    username = Column(String(50), unique=True, index=True, nullable=False, comment='用户名，@提及时使用，区分大小写')
    email = Column(String(100), unique=True, index=True, nullable=False, comment='邮箱地址')
    name = Column(String(100), comment='用户真实姓名')
    avatar = Column(String(255), comment='头像URL地址')
    is_active = Column(Boolean, default=True, comment='是否激活状态')

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
