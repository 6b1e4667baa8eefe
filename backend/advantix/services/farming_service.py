"""
养号账户服务

敏感字段（recovery_email / password / two_fa_secret）只在管理员显式请求时返回或导出。
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from advantix.exceptions import AdvantixError, ValidationError
from advantix.models.farming_account import FarmingAccount
from advantix.models.user import User
from advantix.schemas.farming_account import FarmingAccountCreate
from advantix.services.export_service import pick
from advantix.utils.db_utils import apply_changes, commit_or_raise, get_or_404

logger = logging.getLogger(__name__)

PUBLIC_CSV_COLUMNS = ["id", "comment", "socialMedia", "vaId", "status", "idName", "email", "createdAt"]
SECRET_CSV_COLUMNS = [
    "id", "comment", "socialMedia", "vaId", "status", "idName", "email",
    "recoveryEmail", "password", "twoFaSecret", "createdAt",
]


def list_accounts(
    db: Session,
    status: Optional[str] = None,
    social_media: Optional[str] = None,
    va_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[FarmingAccount]:
    query = db.query(FarmingAccount)
    if status:
        query = query.filter(FarmingAccount.status == status)
    if social_media:
        query = query.filter(FarmingAccount.social_media == social_media)
    if va_id:
        query = query.filter(FarmingAccount.va_id == va_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            FarmingAccount.id_name.ilike(pattern),
            FarmingAccount.email.ilike(pattern),
            FarmingAccount.comment.ilike(pattern),
        ))
    return query.order_by(FarmingAccount.created_at.desc()).all()


def get_account(db: Session, account_id: str) -> FarmingAccount:
    return get_or_404(db, FarmingAccount, account_id, "Farming account")


def _check_va(db: Session, va_id: Optional[str]):
    if va_id and db.get(User, va_id) is None:
        raise ValidationError(f"VA user with ID {va_id} not found")


def create_account(db: Session, data: dict) -> FarmingAccount:
    _check_va(db, data.get("va_id"))
    account = FarmingAccount(**data)
    db.add(account)
    commit_or_raise(db, "create farming account")
    db.refresh(account)
    return account


def update_account(db: Session, account_id: str, data: dict) -> FarmingAccount:
    account = get_account(db, account_id)
    _check_va(db, data.get("va_id"))
    apply_changes(account, data)
    commit_or_raise(db, "update farming account")
    db.refresh(account)
    return account


def delete_account(db: Session, account_id: str):
    account = get_account(db, account_id)
    db.delete(account)
    commit_or_raise(db, "delete farming account")


def _row_to_payload(row: Dict[str, str]) -> Dict[str, Any]:
    """CSV 表头别名映射"""
    return {
        "comment": pick(row, "comment", "Comment") or None,
        "social_media": pick(row, "socialMedia", "Social Media", "social_media").lower(),
        "va_id": pick(row, "vaId", "VA", "va_id") or None,
        "status": (pick(row, "status", "Status") or "new").lower(),
        "id_name": pick(row, "idName", "ID Name", "id_name"),
        "email": pick(row, "email", "Email"),
        "recovery_email": pick(row, "recoveryEmail", "Recovery Mail", "recovery_email", "recovery_mail") or None,
        "password": pick(row, "password", "Password"),
        "two_fa_secret": pick(row, "twoFaSecret", "2FA", "two_fa_secret", "two_fa") or None,
    }


def import_accounts(db: Session, rows: List[Dict[str, str]]) -> Dict[str, Any]:
    success = 0
    errors: List[str] = []
    for row in rows:
        payload = _row_to_payload(row)
        try:
            validated = FarmingAccountCreate.model_validate(payload)
            create_account(db, validated.model_dump())
            success += 1
        except SchemaValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            errors.append(f"Failed to import {payload['email'] or '(no email)'}: invalid {fields}")
        except AdvantixError as e:
            errors.append(f"Failed to import {payload['email'] or '(no email)'}: {e.message}")
    logger.info(f"养号账户导入完成: 成功 {success}, 失败 {len(errors)}")
    return {
        "message": f"Imported {success} accounts successfully",
        "success": success,
        "errors": errors,
    }


def export_rows(db: Session, include_secrets: bool) -> List[Dict[str, Any]]:
    rows = []
    for account in list_accounts(db):
        row = {
            "id": account.id,
            "comment": account.comment or "",
            "socialMedia": account.social_media,
            "vaId": account.va_id or "",
            "status": account.status,
            "idName": account.id_name,
            "email": account.email,
            "createdAt": account.created_at.isoformat() if account.created_at else "",
        }
        if include_secrets:
            row.update({
                "recoveryEmail": account.recovery_email or "",
                "password": account.password,
                "twoFaSecret": account.two_fa_secret or "",
            })
        rows.append(row)
    return rows
