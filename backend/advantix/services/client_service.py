"""
客户与广告账户服务
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from advantix.exceptions import AdvantixError, ConflictError, ValidationError
from advantix.models.campaign import Campaign
from advantix.models.client import AdAccount, Client
from advantix.services.export_service import pick
from advantix.utils.db_utils import apply_changes, commit_or_raise, get_or_404

logger = logging.getLogger(__name__)

CLIENT_CSV_COLUMNS = [
    "Client Name", "Business Name", "Contact Person", "Email", "Phone", "Address", "Notes", "Status",
]
AD_ACCOUNT_CSV_COLUMNS = [
    "Platform", "Account Name", "Account ID", "Client", "Spend Limit", "Total Spend", "Status", "Notes",
]


# ========== 客户 ==========

def list_clients(db: Session, status: Optional[str] = None) -> List[Client]:
    query = db.query(Client)
    if status:
        query = query.filter(Client.status == status)
    return query.order_by(Client.client_name).all()


def create_client(db: Session, data: dict) -> Client:
    client = Client(**data)
    db.add(client)
    commit_or_raise(db, "create client")
    db.refresh(client)
    return client


def update_client(db: Session, client_id: str, data: dict) -> Client:
    client = get_or_404(db, Client, client_id, "Client")
    apply_changes(client, data)
    commit_or_raise(db, "update client")
    db.refresh(client)
    return client


def delete_client(db: Session, client_id: str):
    """客户下仍有广告账户或广告系列时拒绝删除"""
    client = get_or_404(db, Client, client_id, "Client")
    if db.query(AdAccount).filter(AdAccount.client_id == client.id).count():
        raise ConflictError("Cannot delete client with existing ad accounts")
    if db.query(Campaign).filter(Campaign.client_id == client.id).count():
        raise ConflictError("Cannot delete client with existing campaigns")
    db.delete(client)
    commit_or_raise(db, "delete client")


def export_client_rows(db: Session) -> List[Dict[str, Any]]:
    return [
        {
            "Client Name": c.client_name,
            "Business Name": c.business_name,
            "Contact Person": c.contact_person,
            "Email": c.email,
            "Phone": c.phone,
            "Address": c.address or "",
            "Notes": c.notes or "",
            "Status": c.status,
        }
        for c in list_clients(db)
    ]


def import_clients(db: Session, rows: List[Dict[str, str]]) -> Dict[str, Any]:
    """逐行导入客户，表头接受导出列名或 camelCase 字段名"""
    imported = 0
    errors: List[str] = []
    for index, row in enumerate(rows):
        row_number = index + 2
        data = {
            "client_name": pick(row, "Client Name", "clientName"),
            "business_name": pick(row, "Business Name", "businessName"),
            "contact_person": pick(row, "Contact Person", "contactPerson"),
            "email": pick(row, "Email", "email"),
            "phone": pick(row, "Phone", "phone"),
            "address": pick(row, "Address", "address") or None,
            "notes": pick(row, "Notes", "notes") or None,
            "status": (pick(row, "Status", "status") or "active").lower(),
        }
        missing = [k for k in ("client_name", "business_name", "contact_person", "email", "phone") if not data[k]]
        try:
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")
            if data["status"] not in ("active", "inactive"):
                raise ValidationError(f"Invalid status '{data['status']}'")
            create_client(db, data)
            imported += 1
        except AdvantixError as e:
            errors.append(f"Row {row_number}: {e.message}")
    logger.info(f"客户导入完成: 成功 {imported}, 失败 {len(errors)}")
    return {"imported": imported, "errors": errors}


# ========== 广告账户 ==========

def list_ad_accounts(db: Session, client_id: Optional[str] = None) -> List[AdAccount]:
    query = db.query(AdAccount)
    if client_id:
        query = query.filter(AdAccount.client_id == client_id)
    return query.order_by(AdAccount.created_at.desc()).all()


def _check_client(db: Session, client_id: Optional[str]):
    if client_id and db.get(Client, client_id) is None:
        raise ValidationError(f"Client with ID {client_id} not found")


def create_ad_account(db: Session, data: dict) -> AdAccount:
    _check_client(db, data.get("client_id"))
    account = AdAccount(**data, total_spend=Decimal("0"))
    db.add(account)
    commit_or_raise(db, "create ad account")
    db.refresh(account)
    return account


def update_ad_account(db: Session, account_id: str, data: dict) -> AdAccount:
    account = get_or_404(db, AdAccount, account_id, "Ad account")
    _check_client(db, data.get("client_id"))
    apply_changes(account, data)
    commit_or_raise(db, "update ad account")
    db.refresh(account)
    return account


def delete_ad_account(db: Session, account_id: str):
    account = get_or_404(db, AdAccount, account_id, "Ad account")
    if db.query(Campaign).filter(Campaign.ad_account_id == account.id).count():
        raise ConflictError("Cannot delete ad account with existing campaigns")
    db.delete(account)
    commit_or_raise(db, "delete ad account")


def export_ad_account_rows(db: Session) -> List[Dict[str, Any]]:
    return [
        {
            "Platform": a.platform,
            "Account Name": a.account_name,
            "Account ID": a.account_id,
            "Client": a.client.client_name if a.client else "",
            "Spend Limit": str(a.spend_limit),
            "Total Spend": str(a.total_spend),
            "Status": a.status,
            "Notes": a.notes or "",
        }
        for a in list_ad_accounts(db)
    ]
