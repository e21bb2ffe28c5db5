"""
请求日志中间件
为每个请求分配请求ID，记录方法、路径、状态码和耗时
"""

import time
import json
import uuid
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("api.access")

REQUEST_ID_HEADER = "X-Request-ID"

SENSITIVE_HEADERS = {
    'authorization', 'cookie', 'x-api-key', 'x-auth-token',
    'password', 'secret', 'token'
}


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """请求响应日志中间件"""

    def __init__(self, app, log_headers: bool = False, slow_request_seconds: float = 1.0):
        super().__init__(app)
        self.log_headers = log_headers
        self.slow_request_seconds = slow_request_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # 复用上游传入的请求ID，便于跨服务追踪
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        extra = {"request_id": request_id, "method": method, "path": path, "client_ip": client_ip}
        logger.info(f"[{request_id}] 📥 {method} {path}", extra=extra)
        if self.log_headers:
            filtered = self._filter_headers(dict(request.headers))
            logger.debug(f"[{request_id}] 请求头: {json.dumps(filtered, ensure_ascii=False)}", extra=extra)

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(f"[{request_id}] 请求处理异常: {e}, 耗时: {process_time:.3f}s", extra=extra)
            raise

        process_time = time.time() - start_time
        extra.update({"status_code": response.status_code, "duration_ms": round(process_time * 1000, 2)})
        response.headers[REQUEST_ID_HEADER] = request_id

        if response.status_code >= 500:
            log = logger.error
        elif process_time > self.slow_request_seconds or response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(f"[{request_id}] 📤 {method} {path} -> {response.status_code} ({process_time:.3f}s)", extra=extra)
        return response

    def _filter_headers(self, headers: dict) -> dict:
        """过滤敏感的请求头信息"""
        filtered = {}
        for key, value in headers.items():
            key_lower = key.lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_HEADERS):
                filtered[key] = "***MASKED***"
            else:
                filtered[key] = value
        return filtered
