"""
数据库写入辅助

写路径统一通过 commit_or_raise / flush_or_raise 落库：
- 唯一约束冲突 -> ConflictError
- 非空、外键等其他完整性错误 -> ValidationError
- 其他数据库错误 -> 回滚、记录 P1 告警、抛出 StoreError

更新操作通过 apply_changes 赋值，必填列收到 None 时在改动前拒绝。
"""
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from advantix.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from advantix.logging_config import AlertLevel, log_alert

logger = logging.getLogger(__name__)

_PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """sqlite 只给出消息文本，postgresql 带 SQLSTATE"""
    orig = error.orig
    if getattr(orig, "pgcode", None) == _PG_UNIQUE_VIOLATION:
        return True
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


def _write_or_raise(db: Session, write, action: str, conflict_message: str = None):
    try:
        write()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.warning(f"{action} 违反唯一约束: {e.orig}")
            raise ConflictError(conflict_message or f"{action}: duplicate record")
        logger.warning(f"{action} 违反完整性约束: {e.orig}")
        raise ValidationError(f"{action}: {e.orig}")
    except SQLAlchemyError as e:
        db.rollback()
        log_alert(
            logger,
            AlertLevel.P1_URGENT,
            "数据库写入失败",
            f"{action}: {e}",
            context={"action": action},
            suggested_actions=["检查数据库连接与磁盘空间"],
        )
        raise StoreError(f"{action} failed", original=e)


def commit_or_raise(db: Session, action: str, conflict_message: str = None):
    """提交事务，失败时回滚并转换为业务异常"""
    _write_or_raise(db, db.commit, action, conflict_message)


def flush_or_raise(db: Session, action: str, conflict_message: str = None):
    """flush 待写入的改动（需要生成的 id 或在审计前暴露约束错误时使用）"""
    _write_or_raise(db, db.flush, action, conflict_message)


def apply_changes(obj, data: dict):
    """
    把部分更新写到 ORM 对象上

    先检查全部字段：非空列传入 None 时抛 ValidationError，对象保持不变。
    """
    columns = inspect(obj).mapper.columns
    for key, value in data.items():
        column = columns.get(key)
        if value is None and column is not None and not column.nullable:
            raise ValidationError(f"Field '{key}' cannot be null")
    for key, value in data.items():
        setattr(obj, key, value)


def get_or_404(db: Session, model, entity_id: str, entity: str = None):
    """按主键读取，不存在时抛出 NotFoundError"""
    obj = db.get(model, entity_id)
    if obj is None:
        raise NotFoundError(entity or model.__name__, entity_id)
    return obj


def dialect_insert(db: Session):
    """返回支持 ON CONFLICT 的方言 insert 构造器；其他方言返回 None"""
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    return None
