#!/usr/bin/env python3
"""
项目启动脚本
"""

import uvicorn

from config.settings import settings


def main():
    """启动FastAPI应用"""
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
