from datetime import datetime
from typing import Any, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from .status_codes import SUCCESS, get_message


def format_timestamp(dt: Optional[datetime] = None) -> str:
    """
    格式化时间戳为标准格式

    参数:
        dt: datetime对象，如果为None则使用当前时间

    返回:
        格式化后的时间字符串，格式为 "YYYY-MM-DD HH:MM:SS"
    """
    if dt is None:
        dt = datetime.now()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def standard_response(data: Any = None, code: str = SUCCESS, message: Optional[str] = None):
    """
    生成标准响应格式

    参数:
        data: 响应数据
        code: 业务状态码
        message: 响应消息，如果为None则使用状态码对应的默认消息

    返回:
        标准格式的响应字典
    """
    if message is None:
        message = get_message(code)

    return {
        "code": code,
        "message": message,
        "data": jsonable_encoder(data),
        "timestamp": format_timestamp()
    }


def success_response(data: Any = None, message: Optional[str] = None, code: str = SUCCESS):
    """生成成功响应"""
    return standard_response(data=data, code=code, message=message)


def error_response(code: str, message: Optional[str] = None, data: Any = None,
                   status_code: int = status.HTTP_400_BAD_REQUEST):
    """
    生成错误响应

    参数:
        code: 业务状态码
        message: 错误消息
        data: 错误详情数据
        status_code: HTTP状态码
    """
    return JSONResponse(
        status_code=status_code,
        content=standard_response(data=data, code=code, message=message)
    )
