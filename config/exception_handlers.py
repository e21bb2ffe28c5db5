"""异常处理器配置模块

把业务异常、请求校验错误和未预期异常统一转换为标准响应结构
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.exceptions import BusinessException
from utils.response_utils import error_response
from utils.status_codes import (
    BAD_REQUEST, UNAUTHORIZED, FORBIDDEN, NOT_FOUND, METHOD_NOT_ALLOWED,
    CONFLICT, INTERNAL_ERROR, SERVICE_UNAVAILABLE, VALIDATION_ERROR, DATABASE_ERROR
)

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES = {
    400: BAD_REQUEST,
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    405: METHOD_NOT_ALLOWED,
    409: CONFLICT,
    500: INTERNAL_ERROR,
    503: SERVICE_UNAVAILABLE,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def configure_exception_handlers(app: FastAPI) -> None:
    """配置全局异常处理器"""

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """业务异常处理器"""
        if exc.status_code >= 500:
            logger.error(f"[{_request_id(request)}] 业务异常: {exc.code} {exc.message}")
        else:
            logger.info(f"[{_request_id(request)}] 业务异常: {exc.code} {exc.message}")
        return error_response(code=exc.code, message=exc.message, data=exc.data, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """请求参数校验失败统一按 400 返回"""
        errors = [
            {"field": ".".join(str(loc) for loc in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return error_response(code=VALIDATION_ERROR, message="请求参数错误", data=errors, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """HTTP异常处理器"""
        code = HTTP_STATUS_CODES.get(exc.status_code, str(exc.status_code))
        return error_response(code=code, message=str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """数据库异常不向客户端暴露细节"""
        logger.exception(f"[{_request_id(request)}] 数据库异常: {exc.__class__.__name__}")
        return error_response(code=DATABASE_ERROR, message="数据库操作失败", status_code=500)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """通用异常处理器"""
        logger.exception(f"[{_request_id(request)}] 未处理的异常: {exc}")
        return error_response(code=INTERNAL_ERROR, message="服务器内部错误", status_code=500)
