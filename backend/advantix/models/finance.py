"""
财务模型

金额字段统一使用 Numeric(14, 2)，读出为 Decimal。
项目预算与收款以 USD 记账，支出与工资以 BDT 记账。
"""
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid

EXCHANGE_RATE_KEY = "usd_to_bdt_rate"


class FinanceProject(Base):
    __tablename__ = "finance_projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    budget = Column(Numeric(14, 2), nullable=False)              # USD
    expense = Column(Numeric(14, 2), nullable=False, default=0)  # BDT
    status = Column(String(20), nullable=False, default="active")  # active / closed
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    client = relationship("Client")
    payments = relationship("FinancePayment", back_populates="project")
    expenses = relationship("FinanceExpense", back_populates="project")


class FinancePayment(Base):
    __tablename__ = "finance_payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("finance_projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)            # USD
    conversion_rate = Column(Numeric(12, 6), nullable=False)
    converted_amount = Column(Numeric(14, 2), nullable=False)  # BDT
    currency = Column(String(3), nullable=False, default="USD")
    date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client")
    project = relationship("FinanceProject", back_populates="payments")


class FinanceExpense(Base):
    __tablename__ = "finance_expenses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    type = Column(String(20), nullable=False)  # expense / salary
    project_id = Column(String(36), ForeignKey("finance_projects.id", ondelete="SET NULL"), nullable=True, index=True)
    employee_id = Column(String(36), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="BDT")
    date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("FinanceProject", back_populates="expenses")
    employee = relationship("Employee")


class FinanceSetting(Base):
    __tablename__ = "finance_settings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    department = Column(String(100), nullable=True)
    position = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Salary(Base):
    """月度工资单，employee_id 指向 users（工时来自工作日报）"""
    __tablename__ = "salaries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    employee_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_name = Column(String(200), nullable=False)
    month = Column(String(7), nullable=False)  # YYYY-MM

    basic_salary = Column(Numeric(14, 2), nullable=False)
    contractual_hours = Column(Integer, nullable=False)
    actual_working_hours = Column(Numeric(8, 2), nullable=False)
    hourly_rate = Column(Numeric(14, 2), nullable=False)
    base_payment = Column(Numeric(14, 2), nullable=False)

    festival_bonus = Column(Numeric(14, 2), nullable=False, default=0)
    performance_bonus = Column(Numeric(14, 2), nullable=False, default=0)
    other_bonus = Column(Numeric(14, 2), nullable=False, default=0)
    total_bonus = Column(Numeric(14, 2), nullable=False, default=0)
    gross_payment = Column(Numeric(14, 2), nullable=False)
    final_payment = Column(Numeric(14, 2), nullable=False)

    payment_method = Column(String(20), nullable=False, default="bank_transfer")  # cash / bank_transfer / mobile_banking
    payment_status = Column(String(20), nullable=False, default="unpaid")  # paid / unpaid
    salary_approval_status = Column(String(20), nullable=False, default="pending")  # pending / approved / rejected
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("employee_id", "month", name="uq_salary_employee_month"),
    )

    employee = relationship("User")
