from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from datetime import datetime

def default_timestamp() -> str:
    """返回格式化的当前时间戳"""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

# 基础响应模式
class BaseResponse(BaseModel):
    """统一响应结构"""
    code: str = "200"
    message: str = "操作成功"
    data: Optional[Any] = None
    timestamp: str = Field(default_factory=default_timestamp)

    model_config = ConfigDict(from_attributes=True)
