"""统一异常处理模块

定义业务层使用的异常类，每个异常携带业务码和HTTP状态码
"""
from typing import Any

from utils.status_codes import (
    VALIDATION_ERROR, DATABASE_ERROR, AUTH_ERROR,
    PERMISSION_ERROR, RESOURCE_ERROR, CONFLICT
)


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(self, code: str, message: str, data: Any = None, status_code: int = 400):
        self.code = code
        self.message = message
        self.data = data
        self.status_code = status_code
        super().__init__(message)


class ValidationException(BusinessException):
    """数据验证异常"""

    def __init__(self, message: str, data: Any = None):
        super().__init__(
            code=VALIDATION_ERROR,
            message=message,
            data=data,
            status_code=400
        )


class AuthenticationException(BusinessException):
    """认证异常，没有有效的身份凭据"""

    def __init__(self, message: str = "认证失败", data: Any = None):
        super().__init__(
            code=AUTH_ERROR,
            message=message,
            data=data,
            status_code=401
        )


class PermissionException(BusinessException):
    """权限异常，已认证但无权执行该操作"""

    def __init__(self, message: str = "权限不足", data: Any = None, code: str = PERMISSION_ERROR):
        super().__init__(
            code=code,
            message=message,
            data=data,
            status_code=403
        )


class ResourceNotFoundException(BusinessException):
    """资源不存在异常（跨组织访问同样按不存在处理）"""

    def __init__(self, message: str = "资源不存在", data: Any = None, code: str = RESOURCE_ERROR):
        super().__init__(
            code=code,
            message=message,
            data=data,
            status_code=404
        )


class ResourceConflictException(BusinessException):
    """资源冲突异常"""

    def __init__(self, message: str = "资源冲突", data: Any = None):
        super().__init__(
            code=CONFLICT,
            message=message,
            data=data,
            status_code=409
        )


class DatabaseException(BusinessException):
    """数据库操作异常"""

    def __init__(self, message: str = "数据库操作失败", data: Any = None):
        super().__init__(
            code=DATABASE_ERROR,
            message=message,
            data=data,
            status_code=500
        )
