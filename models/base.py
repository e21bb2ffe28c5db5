"""模型基类模块

包含模型的混入类和时间工具
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String


def utc_now() -> datetime:
    """当前UTC时间（不带时区，微秒精度），所有时间字段统一使用"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrgScopedMixin:
    """组织隔离混入类，所有业务表都带 org_id"""

    org_id = Column(String(32), ForeignKey("organizations.id"), nullable=False, index=True, comment='所属组织ID')


class TimestampMixin:
    """时间戳混入类"""

    created_at = Column(DateTime, default=utc_now, nullable=False, comment='创建时间')
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False, comment='更新时间')
