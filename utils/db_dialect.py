"""数据库方言工具模块

提供依赖唯一约束的并发安全写入：冲突忽略插入、取最大值的游标写入
PostgreSQL / SQLite 使用 ON CONFLICT，MySQL 使用 ON DUPLICATE KEY，其余数据库回退到保存点重试
"""
import logging
from typing import Any, Dict, Sequence

from sqlalchemy import Table, case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def insert_ignore(db: Session, table: Table, values: Dict[str, Any], conflict_columns: Sequence[str]) -> bool:
    """
    插入一行，唯一约束冲突时静默忽略

    Args:
        db: 数据库会话
        table: 目标表
        values: 列值
        conflict_columns: 构成唯一约束的列

    Returns:
        bool: 是否真正插入了新行
    """
    dialect = _dialect_name(db)
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        stmt = insert(table).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        stmt = insert(table).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    elif dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
        stmt = insert(table).values(**values).prefix_with("IGNORE")
    else:
        return _insert_with_savepoint(db, table, values)

    result = db.execute(stmt)
    return bool(result.rowcount)


def upsert_max(db: Session, table: Table, values: Dict[str, Any],
               conflict_columns: Sequence[str], column: str) -> None:
    """
    插入或更新一行，冲突时 column 取新旧两者中的较大值

    并发写入无论到达顺序如何，最终都收敛到提交过的最大值
    """
    dialect = _dialect_name(db)
    target = table.c[column]
    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        stmt = insert(table).values(**values)
        incoming = stmt.excluded[column]
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={column: case((incoming > target, incoming), else_=target)}
        )
        db.execute(stmt)
    elif dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
        stmt = insert(table).values(**values)
        stmt = stmt.on_duplicate_key_update({column: func.greatest(target, stmt.inserted[column])})
        db.execute(stmt)
    else:
        if _insert_with_savepoint(db, table, values):
            return
        conditions = [table.c[name] == values[name] for name in conflict_columns]
        db.execute(
            table.update()
            .where(*conditions)
            .where(target < values[column])
            .values({column: values[column]})
        )


def _insert_with_savepoint(db: Session, table: Table, values: Dict[str, Any]) -> bool:
    try:
        with db.begin_nested():
            db.execute(table.insert().values(**values))
        return True
    except IntegrityError:
        logger.debug(f"唯一约束冲突，忽略插入: {table.name}")
        return False
