from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection
from alembic import context

# 导入模型和配置
from config.settings import settings
from models import Base  # 导入全部模型以注册表结构

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_database_url() -> str:
    """获取数据库URL，命令行 -x db_url=... 优先"""
    return context.get_x_argument(as_dictionary=True).get("db_url") or settings.DATABASE_URL


def include_object(object, name, type_, reflected, compare_to):
    """决定是否包含对象在迁移中"""
    # 排除临时表
    if type_ == "table" and name.startswith("temp_"):
        return False
    return True


def run_migrations_offline() -> None:
    """离线模式：只生成SQL脚本"""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """运行迁移"""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        include_object=include_object,
        # SQLite 不支持大部分 ALTER，使用批处理模式
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """在线模式：连接数据库执行迁移"""
    connectable = create_engine(get_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
