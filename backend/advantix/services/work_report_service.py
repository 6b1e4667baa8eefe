"""
工作日报服务

权限控制：管理员（admin / super_admin）可查看和管理全部日报并按用户筛选，
其他角色只能查看、修改、删除自己的日报。
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from advantix.exceptions import NotFoundError, ValidationError
from advantix.models.user import User
from advantix.models.work_report import WorkReport
from advantix.utils.data_processor import quantize_money, to_decimal
from advantix.utils.db_utils import commit_or_raise

logger = logging.getLogger(__name__)

WORK_REPORT_CSV_COLUMNS = ["Date", "Title", "Description", "Hours Worked", "Status", "User", "User ID"]


def list_reports(
    db: Session,
    current_user: User,
    user_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[WorkReport]:
    query = db.query(WorkReport)
    if current_user.is_admin:
        if user_id:
            query = query.filter(WorkReport.user_id == user_id)
    else:
        # 非管理员忽略 user_id 参数
        query = query.filter(WorkReport.user_id == current_user.id)
    if start_date:
        query = query.filter(WorkReport.date >= start_date)
    if end_date:
        query = query.filter(WorkReport.date <= end_date)
    return query.order_by(WorkReport.date.desc(), WorkReport.created_at.desc()).all()


def get_report(db: Session, report_id: str, current_user: User) -> WorkReport:
    """读取单条日报；他人的日报对非管理员表现为不存在"""
    report = db.get(WorkReport, report_id)
    if report is None or (not current_user.is_admin and report.user_id != current_user.id):
        raise NotFoundError("Work report", report_id)
    return report


def create_report(db: Session, data: dict, current_user: User) -> WorkReport:
    data = dict(data)
    owner_id = data.pop("user_id", None)
    if not current_user.is_admin or not owner_id:
        owner_id = current_user.id
    elif db.get(User, owner_id) is None:
        raise ValidationError(f"User with ID {owner_id} not found")

    report = WorkReport(
        **{**data, "hours_worked": quantize_money(to_decimal(data["hours_worked"]))},
        user_id=owner_id,
    )
    db.add(report)
    commit_or_raise(db, "create work report")
    db.refresh(report)
    return report


def update_report(db: Session, report_id: str, data: dict, current_user: User) -> WorkReport:
    report = get_report(db, report_id, current_user)
    for key, value in data.items():
        if value is not None:
            setattr(report, key, value)
    commit_or_raise(db, "update work report")
    db.refresh(report)
    return report


def delete_report(db: Session, report_id: str, current_user: User):
    report = get_report(db, report_id, current_user)
    db.delete(report)
    commit_or_raise(db, "delete work report")


def delete_all_reports(db: Session) -> int:
    count = db.query(WorkReport).delete(synchronize_session=False)
    commit_or_raise(db, "delete all work reports")
    logger.warning(f"已删除全部工作日报: {count}")
    return count


def export_report_rows(db: Session, current_user: User, **filters) -> List[Dict[str, Any]]:
    return [
        {
            "Date": r.date.isoformat(),
            "Title": r.title,
            "Description": r.description,
            "Hours Worked": str(r.hours_worked),
            "Status": r.status,
            "User": r.user.display_name if r.user else "",
            "User ID": r.user_id,
        }
        for r in list_reports(db, current_user, **filters)
    ]
