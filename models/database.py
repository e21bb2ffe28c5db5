"""数据库连接模块

负责创建引擎、会话工厂以及请求级会话依赖和事务上下文
"""
import logging
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config.settings import settings

logger = logging.getLogger(__name__)

# 创建基础模型类
Base = declarative_base()

SLOW_QUERY_THRESHOLD = 1.0  # 慢查询阈值（秒）


def create_db_engine(database_url: str = None, echo: bool = None) -> Engine:
    """
    按数据库类型创建引擎

    Args:
        database_url: 数据库连接URL，默认读取配置
        echo: 是否打印SQL
    """
    database_url = database_url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo
    timeout_seconds = max(1, settings.DB_STATEMENT_TIMEOUT_MS // 1000)

    engine_kwargs = {"echo": echo, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        # SQLite 通过 busy timeout 控制锁等待
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout_seconds}
    else:
        engine_kwargs.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        })
        if "postgresql" in database_url:
            engine_kwargs["connect_args"] = {
                "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
                "connect_timeout": 10,
            }
        elif "mysql" in database_url:
            engine_kwargs["connect_args"] = {
                "charset": "utf8mb4",
                "connect_timeout": 10,
                "read_timeout": timeout_seconds,
                "write_timeout": timeout_seconds,
            }

    engine = create_engine(database_url, **engine_kwargs)
    setup_engine_events(engine)

    logger.info(f"数据库引擎已创建: {database_url.split('@')[-1] if '@' in database_url else database_url}")
    return engine


def setup_engine_events(engine: Engine):
    """设置引擎事件监听器"""

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            # 启用外键约束
            cursor.execute("PRAGMA foreign_keys=ON")
            # WAL模式提升读写并发
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.time()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total = time.time() - context._query_start_time
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"慢查询检测: {total:.3f}s - {statement[:100]}...")

    @event.listens_for(engine, "handle_error")
    def receive_handle_error(exception_context):
        logger.error(f"数据库错误: {exception_context.original_exception}")


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """数据库会话依赖，每个请求一个会话，无论成功失败都归还连接"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transactional(db: Session):
    """
    事务上下文：成功提交，任何异常回滚后继续抛出

    一个业务单元（状态+日志、消息+提及）内的所有写入要么全部生效，要么全部不生效
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
