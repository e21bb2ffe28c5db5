"""应用设置模块

基于 pydantic-settings 从环境变量和 .env 文件加载配置
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    # 应用配置
    APP_NAME: str = "项目协作系统API"
    APP_DESCRIPTION: str = "多组织项目、任务与项目聊天的后端服务"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = False
    API_V1_STR: str = "/api/v1"

    # 服务器配置
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./project_hub.db"
    DATABASE_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_STATEMENT_TIMEOUT_MS: int = 15000  # 单条语句超时，超时视为失败且不生效

    # JWT配置
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_JSON: bool = False
    LOG_ENABLE_COLORS: bool = True
    LOG_MAX_SIZE: int = 10 * 1024 * 1024  # 10 MB
    LOG_BACKUP_COUNT: int = 5

    # CORS配置
    CORS_ORIGINS: list[str] = ["*"]

    # 聊天配置
    CHAT_MESSAGE_LIMIT: int = 100
    CHAT_ROOM_DEFAULT_NAME: str = "Project Chat"

    # 项目默认任务设置
    DEFAULT_TASK_DUE_DAYS: int = 2
    DEFAULT_TASK_PRIORITY: str = "MEDIUM"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# 创建全局设置实例
settings = Settings()
