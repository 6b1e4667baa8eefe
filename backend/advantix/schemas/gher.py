"""
Gher 记账相关的Pydantic模型
"""
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from advantix.schemas.common import CamelModel

EntryType = Literal["income", "expense"]
CapitalType = Literal["contribution", "return", "withdrawal"]


# ========== 标签 ==========

class GherTagCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    type: EntryType


class GherTagUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[EntryType] = None


class GherTagResponse(GherTagCreate):
    id: str
    created_at: Optional[dt.datetime] = None


# ========== 合伙人 ==========

class GherPartnerCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    phone: Optional[str] = None


class GherPartnerUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = None


class GherPartnerResponse(GherPartnerCreate):
    id: str
    created_at: Optional[dt.datetime] = None


class PartnerSummary(CamelModel):
    partner_id: str
    partner_name: str
    share_percentage: Decimal
    invested: Decimal
    returned: Decimal
    withdrawn: Decimal
    outstanding: Decimal
    current_balance: Decimal


# ========== 流水 ==========

class GherEntryCreate(CamelModel):
    date: dt.date
    type: EntryType
    amount: Decimal = Field(gt=0)
    details: str = Field(min_length=1)
    tag_id: Optional[str] = None
    partner_id: Optional[str] = None


class GherEntryUpdate(CamelModel):
    date: Optional[dt.date] = None
    type: Optional[EntryType] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    details: Optional[str] = Field(default=None, min_length=1)
    tag_id: Optional[str] = None
    partner_id: Optional[str] = None


class GherEntryResponse(GherEntryCreate):
    id: str
    created_at: Optional[dt.datetime] = None


# ========== 资本交易 ==========

class CapitalTransactionCreate(CamelModel):
    partner_id: str
    date: dt.date
    type: CapitalType
    amount: Decimal = Field(gt=0)
    notes: Optional[str] = None


class CapitalTransactionUpdate(CamelModel):
    partner_id: Optional[str] = None
    date: Optional[dt.date] = None
    type: Optional[CapitalType] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    notes: Optional[str] = None


class CapitalTransactionResponse(CapitalTransactionCreate):
    id: str
    created_at: Optional[dt.datetime] = None


# ========== 仪表盘 ==========

class TagAmount(CamelModel):
    tag_id: Optional[str] = None
    tag_name: str
    amount: Decimal
    percentage: Decimal


class DashboardStats(CamelModel):
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    income_by_tag: List[TagAmount]
    expense_by_tag: List[TagAmount]


# ========== 发票 ==========

class PartnerMovement(CamelModel):
    partner_id: str
    partner_name: str
    contribution: Decimal
    # "return" 是关键字，字段名加后缀，对外仍输出 return
    return_: Decimal = Field(alias="return")
    withdrawn: Decimal
    net: Decimal


class InvoiceEntryLine(CamelModel):
    id: str
    date: dt.date
    amount: Decimal
    details: str
    tag_name: str
    partner_name: Optional[str] = None


class InvoicePreview(CamelModel):
    month: str
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    top_income_tags: List[TagAmount]
    top_expense_tags: List[TagAmount]
    partner_movements: List[PartnerMovement]
    income_entries: List[InvoiceEntryLine]
    expense_entries: List[InvoiceEntryLine]


class InvoiceCreate(CamelModel):
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    notes: Optional[str] = None


class InvoiceResponse(CamelModel):
    id: str
    year_month: str
    sequence: int
    invoice_number: str
    notes: Optional[str] = None
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    generated_by: Optional[str] = None
    generated_at: Optional[dt.datetime] = None


class InvoiceDetailResponse(InvoiceResponse):
    snapshot: Dict[str, Any]


# ========== 审计日志 ==========

class AuditLogResponse(CamelModel):
    id: str
    action_type: str
    entity_type: str
    entity_id: Optional[str] = None
    entity_label: Optional[str] = None
    change_summary: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra_metadata")
    user_id: Optional[str] = None
    username: Optional[str] = None
    created_at: Optional[dt.datetime] = None
