"""配置模块

包含应用设置、日志配置、中间件配置和异常处理配置
"""

from .settings import settings, Settings

__all__ = [
    "settings",
    "Settings",
]
