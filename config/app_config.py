"""应用配置模块

负责创建FastAPI应用实例和配置路由
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.settings import settings
from routers import projects, tasks, chat
from utils.response_utils import success_response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：开发环境下自动建表"""
    if settings.AUTO_CREATE_TABLES:
        from models.database import Base, engine
        Base.metadata.create_all(bind=engine)
        logger.info("数据库表检查完成")
    logger.info(f"🚀 {settings.APP_NAME} v{settings.VERSION} 启动 ({settings.ENVIRONMENT})")
    yield
    logger.info("服务已停止")


def create_app() -> FastAPI:
    """创建FastAPI应用实例"""
    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    return app


def configure_routes(app: FastAPI) -> None:
    """配置应用路由"""
    prefix = settings.API_V1_STR
    app.include_router(projects.router, prefix=f"{prefix}/projects", tags=["项目"])
    app.include_router(tasks.router, prefix=f"{prefix}/tasks", tags=["任务"])
    app.include_router(chat.router, prefix=f"{prefix}/chat", tags=["项目聊天"])

    # 健康检查
    @app.get("/health")
    def health_check():
        return success_response(
            data={"status": "healthy", "version": settings.VERSION},
            message="服务运行正常"
        )
