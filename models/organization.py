"""
组织模型模块
组织是租户边界，其他所有业务数据都按组织隔离
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from .base import utc_now
from .database import Base
from utils.snowflake import generate_organization_id


class Organization(Base):
    """组织表模型"""
    __tablename__ = "organizations"

    id = Column(String(32), primary_key=True, index=True, default=generate_organization_id, comment='组织ID，格式：O_雪花算法ID')
    name = Column(String(100), nullable=False, comment='组织名称')
    slug = Column(String(50), unique=True, nullable=False, index=True, comment='组织标识')
    created_at = Column(DateTime, default=utc_now, comment='创建时间')

    # 关系
    projects = relationship("Project", back_populates="organization")
