"""
Gher 记账服务

- 标签 / 合伙人 / 流水 / 资本交易 的增删改（每次变更写入审计日志）
- 仪表盘统计：一次遍历累计收支总额与按标签金额
- 合伙人资本汇总：全部由交易记录在读取时推导
- 月度发票：快照 + 按月计数器原子递增分配序号
"""
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from advantix.config import settings
from advantix.exceptions import AdvantixError, ConflictError, ValidationError
from advantix.models.gher import (
    GherCapitalTransaction,
    GherEntry,
    GherInvoice,
    GherInvoiceCounter,
    GherPartner,
    GherTag,
)
from advantix.models.user import User
from advantix.schemas.gher import InvoicePreview
from advantix.services import audit_service
from advantix.utils.data_processor import (
    ZERO,
    month_bounds,
    parse_flexible_date,
    percentage,
    quantize_money,
    to_decimal,
    validate_month,
)
from advantix.utils.db_utils import apply_changes, commit_or_raise, dialect_insert, flush_or_raise, get_or_404

logger = logging.getLogger(__name__)

UNTAGGED = "Untagged"
ENTRY_TYPES = ("income", "expense")
CAPITAL_TYPES = ("contribution", "return", "withdrawal")


# ========== 标签 ==========

def list_tags(db: Session, tag_type: Optional[str] = None) -> List[GherTag]:
    query = db.query(GherTag)
    if tag_type:
        query = query.filter(GherTag.type == tag_type)
    return query.order_by(GherTag.type, GherTag.name).all()


def _check_tag_unique(db: Session, name: str, tag_type: str, exclude_id: Optional[str] = None):
    query = db.query(GherTag).filter(GherTag.name == name, GherTag.type == tag_type)
    if exclude_id:
        query = query.filter(GherTag.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Tag '{name}' ({tag_type}) already exists")


def create_tag(db: Session, data: dict, user: Optional[User] = None) -> GherTag:
    _check_tag_unique(db, data["name"].strip(), data["type"])
    tag = GherTag(name=data["name"].strip(), type=data["type"])
    db.add(tag)
    flush_or_raise(db, "create tag", f"Tag '{tag.name}' ({tag.type}) already exists")
    audit_service.record(
        db, audit_service.ACTION_CREATED, "tag", tag.id, tag.name,
        after=audit_service.snapshot(tag), user=user,
    )
    commit_or_raise(db, "create tag", f"Tag '{tag.name}' ({tag.type}) already exists")
    db.refresh(tag)
    return tag


def update_tag(db: Session, tag_id: str, data: dict, user: Optional[User] = None) -> GherTag:
    tag = get_or_404(db, GherTag, tag_id, "Tag")
    before = audit_service.snapshot(tag)
    new_type = data.get("type")
    if new_type and new_type != tag.type:
        in_use = db.query(GherEntry).filter(GherEntry.tag_id == tag.id).count()
        if in_use:
            raise ValidationError(
                f"Cannot change type of tag '{tag.name}': it is used by {in_use} {tag.type} entries"
            )
    _check_tag_unique(
        db, (data.get("name") or tag.name).strip(), new_type or tag.type, exclude_id=tag.id
    )
    for key, value in data.items():
        if value is not None:
            setattr(tag, key, value.strip() if key == "name" else value)
    flush_or_raise(db, "update tag", f"Tag '{tag.name}' ({tag.type}) already exists")
    audit_service.record(
        db, audit_service.ACTION_UPDATED, "tag", tag.id, tag.name,
        before=before, after=audit_service.snapshot(tag), user=user,
    )
    commit_or_raise(db, "update tag", f"Tag '{tag.name}' ({tag.type}) already exists")
    db.refresh(tag)
    return tag


def delete_tag(db: Session, tag_id: str, user: Optional[User] = None):
    tag = get_or_404(db, GherTag, tag_id, "Tag")
    before = audit_service.snapshot(tag)
    # 流水保留，标签置空
    db.query(GherEntry).filter(GherEntry.tag_id == tag.id).update(
        {GherEntry.tag_id: None}, synchronize_session=False
    )
    db.delete(tag)
    audit_service.record(db, audit_service.ACTION_DELETED, "tag", tag_id, before["name"], before=before, user=user)
    commit_or_raise(db, "delete tag")


# ========== 合伙人 ==========

def list_partners(db: Session) -> List[GherPartner]:
    return db.query(GherPartner).order_by(GherPartner.name).all()


def create_partner(db: Session, data: dict, user: Optional[User] = None) -> GherPartner:
    partner = GherPartner(name=data["name"].strip(), phone=data.get("phone"))
    db.add(partner)
    flush_or_raise(db, "create partner")
    audit_service.record(
        db, audit_service.ACTION_CREATED, "partner", partner.id, partner.name,
        after=audit_service.snapshot(partner), user=user,
    )
    commit_or_raise(db, "create partner")
    db.refresh(partner)
    return partner


def update_partner(db: Session, partner_id: str, data: dict, user: Optional[User] = None) -> GherPartner:
    partner = get_or_404(db, GherPartner, partner_id, "Partner")
    before = audit_service.snapshot(partner)
    apply_changes(partner, data)
    flush_or_raise(db, "update partner")
    audit_service.record(
        db, audit_service.ACTION_UPDATED, "partner", partner.id, partner.name,
        before=before, after=audit_service.snapshot(partner), user=user,
    )
    commit_or_raise(db, "update partner")
    db.refresh(partner)
    return partner


def delete_partner(db: Session, partner_id: str, user: Optional[User] = None):
    """删除合伙人：其资本交易一并删除，流水中的合伙人置空"""
    partner = get_or_404(db, GherPartner, partner_id, "Partner")
    before = audit_service.snapshot(partner)
    cascaded = [(txn.id, _capital_label(txn), audit_service.snapshot(txn)) for txn in partner.capital_transactions]
    db.query(GherEntry).filter(GherEntry.partner_id == partner.id).update(
        {GherEntry.partner_id: None}, synchronize_session=False
    )
    db.delete(partner)
    for txn_id, label, txn_before in cascaded:
        audit_service.record(
            db, audit_service.ACTION_DELETED, "capital_transaction", txn_id, label,
            before=txn_before, metadata={"partner_name": before["name"], "cascade": True}, user=user,
        )
    audit_service.record(
        db, audit_service.ACTION_DELETED, "partner", partner_id, before["name"], before=before,
        metadata={"capital_transactions_deleted": len(cascaded)}, user=user,
    )
    commit_or_raise(db, "delete partner")


# ========== 流水 ==========

def _validate_entry_refs(db: Session, entry_type: str, tag_id: Optional[str], partner_id: Optional[str]):
    if tag_id:
        tag = db.get(GherTag, tag_id)
        if tag is None:
            raise ValidationError(f"Tag with ID {tag_id} not found")
        if tag.type != entry_type:
            raise ValidationError(f"Cannot use {tag.type} tag '{tag.name}' for {entry_type} entry")
    if partner_id and db.get(GherPartner, partner_id) is None:
        raise ValidationError(f"Partner with ID {partner_id} not found")


def _entry_label(entry: GherEntry) -> str:
    return f"{entry.type} {entry.amount} on {entry.date.isoformat()}"


def list_entries(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    partner_id: Optional[str] = None,
    entry_type: Optional[str] = None,
    tag_id: Optional[str] = None,
) -> List[GherEntry]:
    query = db.query(GherEntry)
    if start_date:
        query = query.filter(GherEntry.date >= start_date)
    if end_date:
        query = query.filter(GherEntry.date <= end_date)
    if partner_id:
        query = query.filter(GherEntry.partner_id == partner_id)
    if entry_type:
        query = query.filter(GherEntry.type == entry_type)
    if tag_id:
        query = query.filter(GherEntry.tag_id == tag_id)
    return query.order_by(GherEntry.date.desc(), GherEntry.created_at.desc()).all()


def get_entry(db: Session, entry_id: str) -> Optional[GherEntry]:
    return db.get(GherEntry, entry_id)


def create_entry(db: Session, data: dict, user: Optional[User] = None) -> GherEntry:
    _validate_entry_refs(db, data["type"], data.get("tag_id"), data.get("partner_id"))
    entry = GherEntry(
        date=data["date"],
        type=data["type"],
        amount=quantize_money(to_decimal(data["amount"])),
        details=data["details"],
        tag_id=data.get("tag_id"),
        partner_id=data.get("partner_id"),
    )
    db.add(entry)
    flush_or_raise(db, "create entry")
    audit_service.record(
        db, audit_service.ACTION_CREATED, "entry", entry.id, _entry_label(entry),
        after=audit_service.snapshot(entry), user=user,
    )
    commit_or_raise(db, "create entry")
    db.refresh(entry)
    return entry


def update_entry(db: Session, entry_id: str, data: dict, user: Optional[User] = None) -> GherEntry:
    entry = get_or_404(db, GherEntry, entry_id, "Entry")
    before = audit_service.snapshot(entry)
    merged_type = data.get("type") or entry.type
    merged_tag = data["tag_id"] if "tag_id" in data else entry.tag_id
    merged_partner = data["partner_id"] if "partner_id" in data else entry.partner_id
    _validate_entry_refs(db, merged_type, merged_tag, merged_partner)

    if data.get("amount") is not None:
        data = {**data, "amount": quantize_money(to_decimal(data["amount"]))}
    apply_changes(entry, data)
    flush_or_raise(db, "update entry")
    audit_service.record(
        db, audit_service.ACTION_UPDATED, "entry", entry.id, _entry_label(entry),
        before=before, after=audit_service.snapshot(entry), user=user,
    )
    commit_or_raise(db, "update entry")
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry_id: str, user: Optional[User] = None):
    entry = get_or_404(db, GherEntry, entry_id, "Entry")
    before = audit_service.snapshot(entry)
    label = _entry_label(entry)
    db.delete(entry)
    audit_service.record(db, audit_service.ACTION_DELETED, "entry", entry_id, label, before=before, user=user)
    commit_or_raise(db, "delete entry")


def delete_all_entries(db: Session, user: Optional[User] = None) -> int:
    count = db.query(GherEntry).delete(synchronize_session=False)
    audit_service.record(
        db, audit_service.ACTION_BULK_DELETED, "entry", None, "all entries",
        metadata={"count": count}, user=user,
    )
    commit_or_raise(db, "delete all entries")
    logger.warning(f"已删除全部流水: {count}", extra={"count": count})
    return count


# ========== 资本交易 ==========

def _capital_label(txn: GherCapitalTransaction) -> str:
    return f"{txn.type} {txn.amount} on {txn.date.isoformat()}"


def list_capital_transactions(db: Session, partner_id: Optional[str] = None) -> List[GherCapitalTransaction]:
    query = db.query(GherCapitalTransaction)
    if partner_id:
        query = query.filter(GherCapitalTransaction.partner_id == partner_id)
    return query.order_by(GherCapitalTransaction.date.desc(), GherCapitalTransaction.created_at.desc()).all()


def create_capital_transaction(
    db: Session, data: dict, user: Optional[User] = None
) -> GherCapitalTransaction:
    partner = db.get(GherPartner, data["partner_id"])
    if partner is None:
        raise ValidationError(f"Partner with ID {data['partner_id']} not found")
    if data["type"] not in CAPITAL_TYPES:
        raise ValidationError(f"Invalid capital transaction type: {data['type']}")
    txn = GherCapitalTransaction(
        partner_id=partner.id,
        date=data["date"],
        type=data["type"],
        amount=quantize_money(to_decimal(data["amount"])),
        notes=data.get("notes"),
    )
    db.add(txn)
    flush_or_raise(db, "create capital transaction")
    audit_service.record(
        db, audit_service.ACTION_CREATED, "capital_transaction", txn.id, _capital_label(txn),
        after=audit_service.snapshot(txn), metadata={"partner_name": partner.name}, user=user,
    )
    commit_or_raise(db, "create capital transaction")
    db.refresh(txn)
    return txn


def update_capital_transaction(
    db: Session, txn_id: str, data: dict, user: Optional[User] = None
) -> GherCapitalTransaction:
    txn = get_or_404(db, GherCapitalTransaction, txn_id, "Capital transaction")
    before = audit_service.snapshot(txn)
    if data.get("partner_id") and db.get(GherPartner, data["partner_id"]) is None:
        raise ValidationError(f"Partner with ID {data['partner_id']} not found")
    if data.get("amount") is not None:
        data = {**data, "amount": quantize_money(to_decimal(data["amount"]))}
    apply_changes(txn, data)
    flush_or_raise(db, "update capital transaction")
    audit_service.record(
        db, audit_service.ACTION_UPDATED, "capital_transaction", txn.id, _capital_label(txn),
        before=before, after=audit_service.snapshot(txn), user=user,
    )
    commit_or_raise(db, "update capital transaction")
    db.refresh(txn)
    return txn


def delete_capital_transaction(db: Session, txn_id: str, user: Optional[User] = None):
    txn = get_or_404(db, GherCapitalTransaction, txn_id, "Capital transaction")
    before = audit_service.snapshot(txn)
    label = _capital_label(txn)
    db.delete(txn)
    audit_service.record(
        db, audit_service.ACTION_DELETED, "capital_transaction", txn_id, label, before=before, user=user,
    )
    commit_or_raise(db, "delete capital transaction")


# ========== 统计 ==========

def _tag_breakdown(amounts: Dict[Optional[str], Decimal], names: Dict[str, str], total: Decimal) -> List[dict]:
    rows = [
        {
            "tag_id": tag_id,
            "tag_name": names.get(tag_id, UNTAGGED) if tag_id else UNTAGGED,
            "amount": quantize_money(amount),
            "percentage": percentage(amount, total),
        }
        for tag_id, amount in amounts.items()
    ]
    rows.sort(key=lambda r: r["amount"], reverse=True)
    return rows


def aggregate_entries(db: Session, entries: Iterable[GherEntry]) -> Dict[str, Any]:
    """
    一次遍历计算收支汇总

    返回:
        {total_income, total_expense, net_balance, income_by_tag, expense_by_tag}
        按标签列表按金额倒序，无标签记为 Untagged
    """
    total_income = ZERO
    total_expense = ZERO
    income_by_tag: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
    expense_by_tag: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)

    for entry in entries:
        amount = Decimal(entry.amount)
        if entry.type == "income":
            total_income += amount
            income_by_tag[entry.tag_id] += amount
        elif entry.type == "expense":
            total_expense += amount
            expense_by_tag[entry.tag_id] += amount

    names = {tag.id: tag.name for tag in db.query(GherTag).all()}
    return {
        "total_income": quantize_money(total_income),
        "total_expense": quantize_money(total_expense),
        "net_balance": quantize_money(total_income - total_expense),
        "income_by_tag": _tag_breakdown(income_by_tag, names, total_income),
        "expense_by_tag": _tag_breakdown(expense_by_tag, names, total_expense),
    }


def dashboard_stats(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    partner_id: Optional[str] = None,
) -> Dict[str, Any]:
    entries = list_entries(db, start_date=start_date, end_date=end_date, partner_id=partner_id)
    return aggregate_entries(db, entries)


def _capital_totals(transactions: Iterable[GherCapitalTransaction]) -> Dict[str, Decimal]:
    totals = {"contribution": ZERO, "return": ZERO, "withdrawal": ZERO}
    for txn in transactions:
        if txn.type in totals:
            totals[txn.type] += Decimal(txn.amount)
    return totals


def partner_capital(db: Session, partner_id: str) -> Dict[str, Decimal]:
    """
    合伙人资本汇总（读取时由全部交易推导）

    invested = Σcontribution, returned = Σreturn, withdrawn = Σwithdrawal
    outstanding = invested − returned
    current_balance = outstanding − withdrawn
    """
    transactions = db.query(GherCapitalTransaction).filter(
        GherCapitalTransaction.partner_id == partner_id
    ).all()
    totals = _capital_totals(transactions)
    invested = totals["contribution"]
    returned = totals["return"]
    withdrawn = totals["withdrawal"]
    outstanding = invested - returned
    return {
        "invested": quantize_money(invested),
        "returned": quantize_money(returned),
        "withdrawn": quantize_money(withdrawn),
        "outstanding": quantize_money(outstanding),
        "current_balance": quantize_money(outstanding - withdrawn),
    }


def partners_summary(db: Session) -> List[Dict[str, Any]]:
    """全部合伙人的资本汇总与出资占比"""
    partners = list_partners(db)
    capitals = {partner.id: partner_capital(db, partner.id) for partner in partners}
    total_invested = sum((c["invested"] for c in capitals.values()), ZERO)
    return [
        {
            "partner_id": partner.id,
            "partner_name": partner.name,
            "share_percentage": percentage(capitals[partner.id]["invested"], total_invested),
            **capitals[partner.id],
        }
        for partner in partners
    ]


# ========== 发票 ==========

def _entry_line(entry: GherEntry, tag_names: Dict[str, str], partner_names: Dict[str, str]) -> dict:
    return {
        "id": entry.id,
        "date": entry.date,
        "amount": quantize_money(Decimal(entry.amount)),
        "details": entry.details,
        "tag_name": tag_names.get(entry.tag_id, UNTAGGED) if entry.tag_id else UNTAGGED,
        "partner_name": partner_names.get(entry.partner_id) if entry.partner_id else None,
    }


def invoice_preview(db: Session, month: str, top_n: Optional[int] = None) -> InvoicePreview:
    """月度发票预览：收支汇总、前 N 标签、合伙人资本变动、收支明细"""
    try:
        start, end = month_bounds(month)
    except ValueError as e:
        raise ValidationError(str(e))
    top_n = top_n or settings.INVOICE_TOP_TAGS

    entries = db.query(GherEntry).filter(
        GherEntry.date >= start, GherEntry.date <= end
    ).order_by(GherEntry.date, GherEntry.created_at).all()
    stats = aggregate_entries(db, entries)

    tag_names = {tag.id: tag.name for tag in db.query(GherTag).all()}
    partner_names = {partner.id: partner.name for partner in db.query(GherPartner).all()}

    transactions = db.query(GherCapitalTransaction).filter(
        GherCapitalTransaction.date >= start, GherCapitalTransaction.date <= end
    ).all()
    by_partner: Dict[str, List[GherCapitalTransaction]] = defaultdict(list)
    for txn in transactions:
        by_partner[txn.partner_id].append(txn)

    movements = []
    for partner_id, txns in sorted(by_partner.items(), key=lambda kv: partner_names.get(kv[0], "")):
        totals = _capital_totals(txns)
        movements.append({
            "partner_id": partner_id,
            "partner_name": partner_names.get(partner_id, ""),
            "contribution": quantize_money(totals["contribution"]),
            "return_": quantize_money(totals["return"]),
            "withdrawn": quantize_money(totals["withdrawal"]),
            "net": quantize_money(totals["contribution"] - totals["return"] - totals["withdrawal"]),
        })

    return InvoicePreview(
        month=month,
        total_income=stats["total_income"],
        total_expense=stats["total_expense"],
        net_balance=stats["net_balance"],
        top_income_tags=stats["income_by_tag"][:top_n],
        top_expense_tags=stats["expense_by_tag"][:top_n],
        partner_movements=movements,
        income_entries=[_entry_line(e, tag_names, partner_names) for e in entries if e.type == "income"],
        expense_entries=[_entry_line(e, tag_names, partner_names) for e in entries if e.type == "expense"],
    )


def _claim_invoice_sequence(db: Session, year_month: str) -> int:
    """
    原子地为该月分配下一个序号

    计数器行不存在时先插入（冲突忽略），再用单条 UPDATE ... RETURNING 递增并取回，
    并发请求在该行上串行化。序号只增不减，删除发票不会回收序号。
    """
    insert = dialect_insert(db)
    if insert is not None:
        db.execute(
            insert(GherInvoiceCounter)
            .values(year_month=year_month, last_sequence=0)
            .on_conflict_do_nothing(index_elements=["year_month"])
        )
    elif db.get(GherInvoiceCounter, year_month) is None:
        db.add(GherInvoiceCounter(year_month=year_month, last_sequence=0))
        db.flush()

    stmt = (
        update(GherInvoiceCounter)
        .where(GherInvoiceCounter.year_month == year_month)
        .values(last_sequence=GherInvoiceCounter.last_sequence + 1)
    )
    if db.get_bind().dialect.update_returning:
        return db.execute(stmt.returning(GherInvoiceCounter.last_sequence)).scalar_one()

    db.execute(stmt)
    return db.query(GherInvoiceCounter.last_sequence).filter(
        GherInvoiceCounter.year_month == year_month
    ).scalar()


def format_invoice_number(year_month: str, sequence: int) -> str:
    return f"INV-{year_month.replace('-', '')}-{sequence:03d}"


def generate_invoice(db: Session, month: str, notes: Optional[str] = None, user: Optional[User] = None) -> GherInvoice:
    """生成并持久化发票快照，序号分配与写入在同一事务内"""
    try:
        validate_month(month)
    except ValueError as e:
        raise ValidationError(str(e))
    preview = invoice_preview(db, month)

    sequence = _claim_invoice_sequence(db, month)
    invoice = GherInvoice(
        year_month=month,
        sequence=sequence,
        invoice_number=format_invoice_number(month, sequence),
        notes=notes,
        snapshot=preview.model_dump(mode="json", by_alias=True),
        total_income=preview.total_income,
        total_expense=preview.total_expense,
        net_balance=preview.net_balance,
        generated_by=user.id if user else None,
    )
    db.add(invoice)
    flush_or_raise(db, "generate invoice", f"Invoice {invoice.invoice_number} already exists")
    audit_service.record(
        db, audit_service.ACTION_GENERATED_INVOICE, "invoice", invoice.id, invoice.invoice_number,
        after={
            "invoice_number": invoice.invoice_number,
            "year_month": month,
            "net_balance": preview.net_balance,
        },
        metadata={"notes": notes} if notes else None,
        user=user,
    )
    commit_or_raise(db, "generate invoice")
    db.refresh(invoice)
    logger.info(f"发票已生成: {invoice.invoice_number}", extra={"invoice_id": invoice.id})
    return invoice


def list_invoices(db: Session, month: Optional[str] = None) -> List[GherInvoice]:
    query = db.query(GherInvoice)
    if month:
        query = query.filter(GherInvoice.year_month == month)
    return query.order_by(GherInvoice.year_month.desc(), GherInvoice.sequence.desc()).all()


def get_invoice(db: Session, invoice_id: str) -> GherInvoice:
    return get_or_404(db, GherInvoice, invoice_id, "Invoice")


def delete_invoice(db: Session, invoice_id: str, user: Optional[User] = None):
    invoice = get_or_404(db, GherInvoice, invoice_id, "Invoice")
    before = {
        "invoice_number": invoice.invoice_number,
        "year_month": invoice.year_month,
        "net_balance": invoice.net_balance,
    }
    db.delete(invoice)
    audit_service.record(
        db, audit_service.ACTION_DELETED_INVOICE, "invoice", invoice_id, before["invoice_number"],
        before=before, user=user,
    )
    commit_or_raise(db, "delete invoice")



# ========== CSV 导入导出 ==========

ENTRY_CSV_COLUMNS = ["Date", "Type", "Amount", "Details", "Tag", "Partner"]
CAPITAL_CSV_COLUMNS = ["Partner", "Date", "Type", "Amount (BDT)", "Notes"]


def _find_tag_by_name(db: Session, name: str, tag_type: str) -> Optional[GherTag]:
    return db.query(GherTag).filter(
        func.lower(GherTag.name) == name.strip().lower(),
        GherTag.type == tag_type,
    ).first()


def _find_partner_by_name(db: Session, name: str) -> Optional[GherPartner]:
    return db.query(GherPartner).filter(func.lower(GherPartner.name) == name.strip().lower()).first()


def export_entries_rows(db: Session, **filters) -> List[Dict[str, Any]]:
    rows = []
    for entry in list_entries(db, **filters):
        rows.append({
            "Date": entry.date.isoformat(),
            "Type": entry.type,
            "Amount": str(entry.amount),
            "Details": entry.details,
            "Tag": entry.tag.name if entry.tag else "",
            "Partner": entry.partner.name if entry.partner else "",
        })
    return rows


def import_entries(db: Session, rows: List[Dict[str, str]], user: Optional[User] = None) -> Dict[str, Any]:
    """
    逐行导入流水，单行失败不影响其他行

    标签与合伙人按名称匹配（不区分大小写），标签类型必须与流水类型一致
    """
    imported = 0
    errors: List[str] = []
    for index, row in enumerate(rows):
        row_number = index + 2
        try:
            entry_type = (row.get("Type") or "").strip().lower()
            if entry_type not in ENTRY_TYPES:
                raise ValidationError(f"Invalid type '{row.get('Type')}'")
            details = (row.get("Details") or "").strip()
            if not details:
                raise ValidationError("Details is required")
            try:
                entry_date = parse_flexible_date(row.get("Date") or "")
                amount = to_decimal(row.get("Amount"))
            except ValueError as e:
                raise ValidationError(str(e))
            if amount <= 0:
                raise ValidationError("Amount must be positive")

            tag_id = None
            tag_name = (row.get("Tag") or "").strip()
            if tag_name:
                tag = _find_tag_by_name(db, tag_name, entry_type)
                if tag is None:
                    raise ValidationError(f"{entry_type.capitalize()} tag '{tag_name}' not found")
                tag_id = tag.id

            partner_id = None
            partner_name = (row.get("Partner") or "").strip()
            if partner_name:
                partner = _find_partner_by_name(db, partner_name)
                if partner is None:
                    raise ValidationError(f"Partner '{partner_name}' not found")
                partner_id = partner.id

            create_entry(db, {
                "date": entry_date,
                "type": entry_type,
                "amount": amount,
                "details": details,
                "tag_id": tag_id,
                "partner_id": partner_id,
            }, user=user)
            imported += 1
        except AdvantixError as e:
            errors.append(f"Row {row_number}: {e.message}")

    logger.info(f"流水导入完成: 成功 {imported}, 失败 {len(errors)}")
    return {"imported": imported, "errors": errors}


def export_capital_rows(db: Session, partner_id: Optional[str] = None) -> List[Dict[str, Any]]:
    return [
        {
            "Partner": txn.partner.name if txn.partner else "",
            "Date": txn.date.strftime("%m/%d/%Y"),
            "Type": txn.type,
            "Amount (BDT)": str(txn.amount),
            "Notes": txn.notes or "",
        }
        for txn in list_capital_transactions(db, partner_id=partner_id)
    ]


def import_capital_transactions(
    db: Session, rows: List[Dict[str, str]], user: Optional[User] = None
) -> Dict[str, Any]:
    """逐行导入资本交易，日期支持 MM/DD/YYYY 与 ISO，合伙人按名称匹配"""
    imported = 0
    errors: List[str] = []
    for index, row in enumerate(rows):
        row_number = index + 2
        try:
            partner_name = (row.get("Partner") or "").strip()
            if not partner_name:
                raise ValidationError("Partner is required")
            partner = _find_partner_by_name(db, partner_name)
            if partner is None:
                raise ValidationError(f"Partner '{partner_name}' not found")
            txn_type = (row.get("Type") or "").strip().lower()
            if txn_type not in CAPITAL_TYPES:
                raise ValidationError(f"Invalid type '{row.get('Type')}'")
            try:
                txn_date = parse_flexible_date(row.get("Date") or "")
                amount = to_decimal(row.get("Amount (BDT)") or row.get("Amount"))
            except ValueError as e:
                raise ValidationError(str(e))
            if amount <= 0:
                raise ValidationError("Amount must be positive")

            create_capital_transaction(db, {
                "partner_id": partner.id,
                "date": txn_date,
                "type": txn_type,
                "amount": amount,
                "notes": (row.get("Notes") or "").strip() or None,
            }, user=user)
            imported += 1
        except AdvantixError as e:
            errors.append(f"Row {row_number}: {e.message}")

    logger.info(f"资本交易导入完成: 成功 {imported}, 失败 {len(errors)}")
    return {"imported": imported, "errors": errors}
