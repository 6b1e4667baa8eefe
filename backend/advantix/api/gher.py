"""
Gher 记账API

- 标签、合伙人、流水、资本交易的增删改查与 CSV 导入导出
- 仪表盘统计、合伙人资本汇总
- 月度发票（gher_invoices 页面权限）
- 审计日志查询
"""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.exceptions import NotFoundError
from advantix.middleware.auth import require_page_permission
from advantix.models.gher import GherCapitalTransaction, GherPartner, GherTag
from advantix.models.user import User
from advantix.schemas.common import CountResponse, ImportResult, MessageResponse, Paginated
from advantix.schemas.gher import (
    AuditLogResponse,
    CapitalTransactionCreate,
    CapitalTransactionResponse,
    CapitalTransactionUpdate,
    DashboardStats,
    GherEntryCreate,
    GherEntryResponse,
    GherEntryUpdate,
    GherPartnerCreate,
    GherPartnerResponse,
    GherPartnerUpdate,
    GherTagCreate,
    GherTagResponse,
    GherTagUpdate,
    InvoiceCreate,
    InvoiceDetailResponse,
    InvoicePreview,
    InvoiceResponse,
    PartnerSummary,
)
from advantix.services import audit_service, export_service, gher_service
from advantix.utils.db_utils import get_or_404

router = APIRouter(prefix="/api/gher", tags=["gher"])

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# ========== 标签 ==========

@router.get("/tags", response_model=List[GherTagResponse])
async def list_tags(
    type: Optional[str] = None,
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.list_tags(db, tag_type=type)


@router.get("/tags/{tag_id}", response_model=GherTagResponse)
async def get_tag(
    tag_id: str,
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, GherTag, tag_id, "Tag")


@router.post("/tags", response_model=GherTagResponse, status_code=201)
async def create_tag(
    payload: GherTagCreate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.create_tag(db, payload.model_dump(), current_user)


@router.put("/tags/{tag_id}", response_model=GherTagResponse)
async def update_tag(
    tag_id: str,
    payload: GherTagUpdate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.update_tag(db, tag_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/tags/{tag_id}", response_model=MessageResponse)
async def delete_tag(
    tag_id: str,
    current_user: User = Depends(require_page_permission("gher_management", "delete")),
    db: Session = Depends(get_db)
):
    """删除标签，引用它的流水变为未标记"""
    gher_service.delete_tag(db, tag_id, current_user)
    return {"message": "Tag deleted successfully"}


# ========== 合伙人 ==========

@router.get("/partners", response_model=List[GherPartnerResponse])
async def list_partners(
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.list_partners(db)


@router.get("/partners/summary", response_model=List[PartnerSummary])
async def partners_summary(
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.partners_summary(db)


@router.get("/partners/{partner_id}", response_model=GherPartnerResponse)
async def get_partner(
    partner_id: str,
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, GherPartner, partner_id, "Partner")


@router.post("/partners", response_model=GherPartnerResponse, status_code=201)
async def create_partner(
    payload: GherPartnerCreate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.create_partner(db, payload.model_dump(), current_user)


@router.put("/partners/{partner_id}", response_model=GherPartnerResponse)
async def update_partner(
    partner_id: str,
    payload: GherPartnerUpdate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.update_partner(db, partner_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/partners/{partner_id}", response_model=MessageResponse)
async def delete_partner(
    partner_id: str,
    current_user: User = Depends(require_page_permission("gher_management", "delete")),
    db: Session = Depends(get_db)
):
    gher_service.delete_partner(db, partner_id, current_user)
    return {"message": "Partner deleted successfully"}


# ========== 流水 ==========

@router.get("/entries", response_model=List[GherEntryResponse])
async def list_entries(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    type: Optional[str] = None,
    tag_id: Optional[str] = Query(None, alias="tagId"),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.list_entries(
        db, start_date=start_date, end_date=end_date, partner_id=partner_id, entry_type=type, tag_id=tag_id
    )


@router.post("/entries/delete-all", response_model=CountResponse)
async def delete_all_entries(
    current_user: User = Depends(require_page_permission("gher_management", "delete")),
    db: Session = Depends(get_db)
):
    count = gher_service.delete_all_entries(db, current_user)
    return {"message": f"Deleted {count} entries", "count": count}


@router.post("/entries/import/csv", response_model=ImportResult)
async def import_entries(
    file: UploadFile = File(...),
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    rows = export_service.read_csv_rows(await file.read())
    return gher_service.import_entries(db, rows, current_user)


@router.get("/entries/export/csv")
async def export_entries(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    rows = gher_service.export_entries_rows(db, start_date=start_date, end_date=end_date, partner_id=partner_id)
    text = export_service.rows_to_csv(rows, gher_service.ENTRY_CSV_COLUMNS)
    return export_service.csv_response(text, export_service.dated_filename("gher_entries"))


@router.get("/entries/{entry_id}", response_model=GherEntryResponse)
async def get_entry(
    entry_id: str,
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    entry = gher_service.get_entry(db, entry_id)
    if entry is None:
        raise NotFoundError("Entry", entry_id)
    return entry


@router.post("/entries", response_model=GherEntryResponse, status_code=201)
async def create_entry(
    payload: GherEntryCreate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.create_entry(db, payload.model_dump(), current_user)


@router.put("/entries/{entry_id}", response_model=GherEntryResponse)
async def update_entry(
    entry_id: str,
    payload: GherEntryUpdate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.update_entry(db, entry_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/entries/{entry_id}", response_model=MessageResponse)
async def delete_entry(
    entry_id: str,
    current_user: User = Depends(require_page_permission("gher_management", "delete")),
    db: Session = Depends(get_db)
):
    gher_service.delete_entry(db, entry_id, current_user)
    return {"message": "Entry deleted successfully"}


# ========== 资本交易 ==========

@router.get("/capital-transactions", response_model=List[CapitalTransactionResponse])
async def list_capital_transactions(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.list_capital_transactions(db, partner_id=partner_id)


@router.post("/capital-transactions/import/csv", response_model=ImportResult)
async def import_capital_transactions(
    file: UploadFile = File(...),
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    rows = export_service.read_csv_rows(await file.read())
    return gher_service.import_capital_transactions(db, rows, current_user)


@router.get("/capital-transactions/export/csv")
async def export_capital_transactions(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    rows = gher_service.export_capital_rows(db, partner_id=partner_id)
    text = export_service.rows_to_csv(rows, gher_service.CAPITAL_CSV_COLUMNS)
    return export_service.csv_response(text, export_service.dated_filename("capital_transactions"))


@router.get("/capital-transactions/{txn_id}", response_model=CapitalTransactionResponse)
async def get_capital_transaction(
    txn_id: str,
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, GherCapitalTransaction, txn_id, "Capital transaction")


@router.post("/capital-transactions", response_model=CapitalTransactionResponse, status_code=201)
async def create_capital_transaction(
    payload: CapitalTransactionCreate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.create_capital_transaction(db, payload.model_dump(), current_user)


@router.put("/capital-transactions/{txn_id}", response_model=CapitalTransactionResponse)
async def update_capital_transaction(
    txn_id: str,
    payload: CapitalTransactionUpdate,
    current_user: User = Depends(require_page_permission("gher_management", "edit")),
    db: Session = Depends(get_db)
):
    return gher_service.update_capital_transaction(
        db, txn_id, payload.model_dump(exclude_unset=True), current_user
    )


@router.delete("/capital-transactions/{txn_id}", response_model=MessageResponse)
async def delete_capital_transaction(
    txn_id: str,
    current_user: User = Depends(require_page_permission("gher_management", "delete")),
    db: Session = Depends(get_db)
):
    gher_service.delete_capital_transaction(db, txn_id, current_user)
    return {"message": "Capital transaction deleted successfully"}


# ========== 仪表盘 ==========

@router.get("/dashboard-stats", response_model=DashboardStats)
async def dashboard_stats(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.dashboard_stats(db, start_date=start_date, end_date=end_date, partner_id=partner_id)


# ========== 发票 ==========

@router.get("/invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    _: User = Depends(require_page_permission("gher_invoices", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.list_invoices(db, month=month)


@router.get("/invoices/preview", response_model=InvoicePreview)
async def invoice_preview(
    month: str = Query(..., pattern=MONTH_PATTERN),
    top_n: Optional[int] = Query(None, alias="topN", ge=1),
    _: User = Depends(require_page_permission("gher_invoices", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.invoice_preview(db, month, top_n=top_n)


@router.post("/invoices", response_model=InvoiceDetailResponse, status_code=201)
async def generate_invoice(
    payload: InvoiceCreate,
    current_user: User = Depends(require_page_permission("gher_invoices", "edit")),
    db: Session = Depends(get_db)
):
    """生成发票：分配当月下一个序号并保存快照"""
    return gher_service.generate_invoice(db, payload.month, notes=payload.notes, user=current_user)


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: str,
    _: User = Depends(require_page_permission("gher_invoices", "view")),
    db: Session = Depends(get_db)
):
    return gher_service.get_invoice(db, invoice_id)


@router.get("/invoices/{invoice_id}/csv")
async def download_invoice_csv(
    invoice_id: str,
    _: User = Depends(require_page_permission("gher_invoices", "view")),
    db: Session = Depends(get_db)
):
    invoice = gher_service.get_invoice(db, invoice_id)
    text = export_service.invoice_to_csv(invoice.invoice_number, invoice.snapshot)
    return export_service.csv_response(text, f"{invoice.invoice_number}.csv")


@router.get("/invoices/{invoice_id}/xlsx")
async def download_invoice_xlsx(
    invoice_id: str,
    _: User = Depends(require_page_permission("gher_invoices", "view")),
    db: Session = Depends(get_db)
):
    invoice = gher_service.get_invoice(db, invoice_id)
    data = export_service.invoice_to_xlsx(invoice.invoice_number, invoice.snapshot)
    return export_service.xlsx_response(data, f"{invoice.invoice_number}.xlsx")


@router.delete("/invoices/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    invoice_id: str,
    current_user: User = Depends(require_page_permission("gher_invoices", "delete")),
    db: Session = Depends(get_db)
):
    """删除发票，序号不会被重新分配"""
    gher_service.delete_invoice(db, invoice_id, current_user)
    return {"message": "Invoice deleted successfully"}


# ========== 审计日志 ==========

@router.get("/audit-logs", response_model=Paginated[AuditLogResponse])
async def list_audit_logs(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    user_id: Optional[str] = Query(None, alias="userId"),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    action_type: Optional[str] = Query(None, alias="actionType"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    _: User = Depends(require_page_permission("gher_management", "view")),
    db: Session = Depends(get_db)
):
    return audit_service.list_logs(
        db,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        entity_type=entity_type,
        action_type=action_type,
        page=page,
        page_size=page_size,
    )
