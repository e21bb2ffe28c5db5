"""中间件配置模块

包含所有中间件的配置
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from utils.logging_middleware import RequestResponseLoggingMiddleware, REQUEST_ID_HEADER


def configure_middleware(app: FastAPI) -> None:
    """配置应用中间件"""
    # CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
            REQUEST_ID_HEADER,
        ],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # 请求日志中间件
    app.add_middleware(RequestResponseLoggingMiddleware, log_headers=settings.DEBUG)
