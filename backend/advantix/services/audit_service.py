"""
Gher 审计日志服务

- diff_changes: 字段级差异，日期按时间值比较，Decimal 按数值比较
- record: 在调用方事务内追加一行审计日志（不单独提交）
- list_logs: 按条件过滤并分页
审计行只追加，更新/删除由 ORM 监听器拦截（见 models/gher.py）。
"""
import logging
import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from advantix.models.gher import GherAuditLog
from advantix.models.user import User

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_DELETED = "deleted"
ACTION_BULK_DELETED = "bulk_deleted"
ACTION_GENERATED_INVOICE = "generated_invoice"
ACTION_DELETED_INVOICE = "deleted_invoice"

ENTITY_TYPES = ("entry", "partner", "tag", "invoice", "capital_transaction")


def _normalize(value: Any) -> Any:
    """比较用的规范值"""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return ("ts", value.timestamp())
    if isinstance(value, date):
        return ("date", value.toordinal())
    if isinstance(value, Decimal):
        return ("num", value.normalize())
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def diff_changes(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    计算字段差异

    示例:
        >>> diff_changes({"amount": "10", "notes": "a"}, {"amount": "20", "notes": "a"})
        {'amount': {'from': '10', 'to': '20'}}
    """
    before = before or {}
    after = after or {}
    changes: Dict[str, Dict[str, Any]] = {}
    for key in list(before.keys()) + [k for k in after.keys() if k not in before]:
        old, new = before.get(key), after.get(key)
        if _normalize(old) != _normalize(new):
            changes[key] = {"from": _jsonable(old), "to": _jsonable(new)}
    return changes


def snapshot(obj: Any, exclude: tuple = ("created_at", "updated_at")) -> Dict[str, Any]:
    """ORM 对象的列值快照"""
    if obj is None:
        return {}
    mapper = inspect(obj).mapper
    return {
        attr.key: getattr(obj, attr.key)
        for attr in mapper.column_attrs
        if attr.key not in exclude
    }


def record(
    db: Session,
    action_type: str,
    entity_type: str,
    entity_id: Optional[str],
    entity_label: Optional[str] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    user: Optional[User] = None,
) -> GherAuditLog:
    """追加审计日志；由调用方负责提交事务"""
    change_summary = {
        "before": _jsonable(before) if before is not None else None,
        "after": _jsonable(after) if after is not None else None,
        "changes": diff_changes(before, after) if before is not None and after is not None else {},
    }
    log = GherAuditLog(
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_label=entity_label,
        change_summary=change_summary,
        extra_metadata=_jsonable(metadata) if metadata else None,
        user_id=user.id if user else None,
        username=user.username if user else None,
    )
    db.add(log)
    logger.info(
        f"审计: {action_type} {entity_type}",
        extra={"entity_id": entity_id, "username": log.username},
    )
    return log


def list_logs(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    action_type: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Dict[str, Any]:
    """分页查询，返回 {data, total, page, pageSize, totalPages}，按时间倒序"""
    query = db.query(GherAuditLog)
    if start_date:
        query = query.filter(GherAuditLog.created_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(GherAuditLog.created_at <= datetime.combine(end_date, datetime.max.time()))
    if user_id:
        query = query.filter(GherAuditLog.user_id == user_id)
    if entity_type:
        query = query.filter(GherAuditLog.entity_type == entity_type)
    if action_type:
        query = query.filter(GherAuditLog.action_type == action_type)

    total = query.count()
    rows = (
        query.order_by(GherAuditLog.created_at.desc(), GherAuditLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "data": rows,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size) if total else 0,
    }
