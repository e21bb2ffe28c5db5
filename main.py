import os
import logging

import uvicorn

from config.settings import settings
from config.logging_config import setup_logging
from config.app_config import create_app, configure_routes
from config.middleware import configure_middleware
from config.exception_handlers import configure_exception_handlers
from utils.snowflake import init_snowflake

# 初始化日志
setup_logging()
logger = logging.getLogger(__name__)

# 初始化雪花算法（机器ID可以通过环境变量配置）
machine_id = int(os.getenv("MACHINE_ID", "1"))
init_snowflake(machine_id)

# 创建FastAPI应用
app = create_app()

# 配置中间件
configure_middleware(app)

# 配置异常处理器
configure_exception_handlers(app)

# 配置路由
configure_routes(app)

if __name__ == "__main__":
    logger.info(f"📍 地址: http://{settings.HOST}:{settings.PORT}")
    logger.info(f"📚 API文档: http://{settings.HOST}:{settings.PORT}/docs")

    if settings.DEBUG:
        # 开发模式使用import string以支持reload
        uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=True, log_level="debug")
    else:
        uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="info")
