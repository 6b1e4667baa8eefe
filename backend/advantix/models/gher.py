"""
Gher（鱼塘）记账模型

- GherPartner / GherCapitalTransaction: 合伙人出资、回本、提取
- GherTag / GherEntry: 带标签的收支流水
- GherInvoice / GherInvoiceCounter: 月度发票快照与按月序号
- GherAuditLog: 只追加的审计日志
"""
import logging

from sqlalchemy import (
    JSON, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, event
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid
from advantix.exceptions import ImmutabilityViolationError

logger = logging.getLogger(__name__)


class GherPartner(Base):
    __tablename__ = "gher_partners"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    capital_transactions = relationship(
        "GherCapitalTransaction", back_populates="partner", cascade="all, delete-orphan"
    )


class GherTag(Base):
    __tablename__ = "gher_tags"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False)  # income / expense
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("name", "type", name="uq_gher_tag_name_type"),
    )


class GherEntry(Base):
    __tablename__ = "gher_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(10), nullable=False)  # income / expense
    amount = Column(Numeric(14, 2), nullable=False)
    details = Column(Text, nullable=False)
    tag_id = Column(String(36), ForeignKey("gher_tags.id", ondelete="SET NULL"), nullable=True, index=True)
    partner_id = Column(String(36), ForeignKey("gher_partners.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    tag = relationship("GherTag")
    partner = relationship("GherPartner")


class GherCapitalTransaction(Base):
    __tablename__ = "gher_capital_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    partner_id = Column(String(36), ForeignKey("gher_partners.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(20), nullable=False)  # contribution / return / withdrawal
    amount = Column(Numeric(14, 2), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    partner = relationship("GherPartner", back_populates="capital_transactions")


class GherInvoice(Base):
    __tablename__ = "gher_invoices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    year_month = Column(String(7), nullable=False, index=True)  # YYYY-MM
    sequence = Column(Integer, nullable=False)
    invoice_number = Column(String(30), nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    snapshot = Column(JSON, nullable=False)
    total_income = Column(Numeric(14, 2), nullable=False)
    total_expense = Column(Numeric(14, 2), nullable=False)
    net_balance = Column(Numeric(14, 2), nullable=False)
    generated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    generated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("year_month", "sequence", name="uq_gher_invoice_month_sequence"),
    )


class GherInvoiceCounter(Base):
    """每月一行，last_sequence 只增不减"""
    __tablename__ = "gher_invoice_counters"

    year_month = Column(String(7), primary_key=True)
    last_sequence = Column(Integer, nullable=False, default=0)


class GherAuditLog(Base):
    __tablename__ = "gher_audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    action_type = Column(String(30), nullable=False, index=True)
    entity_type = Column(String(30), nullable=False, index=True)
    entity_id = Column(String(36), nullable=True)
    entity_label = Column(String(255), nullable=True)
    change_summary = Column(JSON, nullable=True)  # {before, after, changes}
    extra_metadata = Column("metadata", JSON, nullable=True)
    user_id = Column(String(36), nullable=True, index=True)
    username = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


def _block_audit_update(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "GherAuditLog", "entity_id": str(target.id), "operation": "UPDATE"},
    )
    raise ImmutabilityViolationError(
        entity_type="GherAuditLog",
        entity_id=str(target.id),
        reason="Audit logs are append-only and cannot be modified",
    )


def _block_audit_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "GherAuditLog", "entity_id": str(target.id), "operation": "DELETE"},
    )
    raise ImmutabilityViolationError(
        entity_type="GherAuditLog",
        entity_id=str(target.id),
        reason="Audit logs cannot be deleted",
    )


event.listen(GherAuditLog, "before_update", _block_audit_update)
event.listen(GherAuditLog, "before_delete", _block_audit_delete)
