"""认证工具模块

从 Bearer 令牌中解析当前身份（用户、组织、是否超级管理员）
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from config.settings import settings
from models import User, organization_members
from models.database import get_db
from utils.exceptions import AuthenticationException, PermissionException

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """当前请求的身份"""
    user_id: str
    org_id: str
    is_super_admin: bool = False


def create_access_token(user_id: str, org_id: str, is_super_admin: bool = False,
                        expires_delta: Optional[timedelta] = None) -> str:
    """创建访问令牌"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": user_id,
        "org": org_id,
        "is_super_admin": bool(is_super_admin),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> dict:
    """验证令牌，返回载荷"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.debug(f"令牌校验失败: {e}")
        raise AuthenticationException(message="无效的认证凭据")

    if not payload.get("sub"):
        raise AuthenticationException(message="无效的认证凭据")
    if not payload.get("org"):
        raise AuthenticationException(message="令牌缺少组织信息")
    return payload


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Principal:
    """获取当前身份，用户必须存在且处于启用状态，非超级管理员必须属于令牌中的组织"""
    if credentials is None:
        raise AuthenticationException(message="缺少认证凭据")

    payload = verify_token(credentials.credentials)
    principal = Principal(
        user_id=payload["sub"],
        org_id=payload["org"],
        is_super_admin=bool(payload.get("is_super_admin", False))
    )

    user = db.query(User).filter(User.id == principal.user_id).first()
    if user is None or not user.is_active:
        raise AuthenticationException(message="用户不存在或已被禁用")

    if not principal.is_super_admin:
        membership = db.query(organization_members.c.user_id).filter(
            organization_members.c.org_id == principal.org_id,
            organization_members.c.user_id == principal.user_id
        ).first()
        if membership is None:
            raise PermissionException(message="您不属于该组织")

    return principal
