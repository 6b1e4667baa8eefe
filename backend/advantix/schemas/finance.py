"""
财务相关的Pydantic模型
"""
import datetime as dt
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import Field

from advantix.schemas.common import CamelModel

ExpenseType = Literal["expense", "salary"]
Currency = Literal["USD", "BDT"]


# ========== 项目 ==========

class FinanceProjectBase(CamelModel):
    name: str = Field(min_length=1)
    client_id: str
    start_date: dt.date
    budget: Decimal = Field(ge=0)
    expense: Decimal = Field(default=Decimal("0"), ge=0)
    status: Literal["active", "closed"] = "active"
    notes: Optional[str] = None


class FinanceProjectCreate(FinanceProjectBase):
    pass


class FinanceProjectUpdate(CamelModel):
    name: Optional[str] = None
    client_id: Optional[str] = None
    start_date: Optional[dt.date] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    expense: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[Literal["active", "closed"]] = None
    notes: Optional[str] = None


class FinanceProjectResponse(FinanceProjectBase):
    id: str
    created_at: Optional[dt.datetime] = None


# ========== 收款 ==========

class FinancePaymentCreate(CamelModel):
    client_id: str
    project_id: str
    amount: Decimal = Field(gt=0)
    # 不传时使用当前汇率
    conversion_rate: Optional[Decimal] = Field(default=None, gt=0)
    currency: Literal["USD"] = "USD"
    date: dt.date
    notes: Optional[str] = None


class FinancePaymentUpdate(CamelModel):
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    conversion_rate: Optional[Decimal] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class FinancePaymentResponse(CamelModel):
    id: str
    client_id: str
    project_id: str
    amount: Decimal
    conversion_rate: Decimal
    converted_amount: Decimal
    currency: str
    date: dt.date
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None


# ========== 支出 ==========

class FinanceExpenseBase(CamelModel):
    type: ExpenseType
    project_id: Optional[str] = None
    employee_id: Optional[str] = None
    amount: Decimal = Field(gt=0)
    currency: Currency = "BDT"
    date: dt.date
    notes: Optional[str] = None


class FinanceExpenseCreate(FinanceExpenseBase):
    pass


class FinanceExpenseUpdate(CamelModel):
    type: Optional[ExpenseType] = None
    project_id: Optional[str] = None
    employee_id: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class FinanceExpenseResponse(FinanceExpenseBase):
    id: str
    created_at: Optional[dt.datetime] = None


class ExpensePreviewRecord(CamelModel):
    row_number: int
    type: ExpenseType
    project_id: Optional[str] = None
    project_name: str = "No Project"
    amount: Decimal
    currency: Currency
    date: dt.date
    notes: str = ""


class ExpensePreviewResponse(CamelModel):
    message: str
    valid_records: List[ExpensePreviewRecord]
    total_rows: int
    valid_count: int
    error_count: int
    errors: List[str]


class ExpenseConfirmRequest(CamelModel):
    valid_records: List[ExpensePreviewRecord]


class ExpenseConfirmResponse(CamelModel):
    message: str
    imported: int
    errors: int
    error_details: List[str]


# ========== 设置 / 汇率 ==========

class FinanceSettingUpsert(CamelModel):
    key: str = Field(min_length=1)
    value: str = Field(min_length=1)
    description: Optional[str] = None


class FinanceSettingResponse(FinanceSettingUpsert):
    id: str


class ExchangeRateResponse(CamelModel):
    rate: Decimal


# ========== 仪表盘 ==========

class FinanceSummary(CamelModel):
    total_payments_usd: Decimal = Field(serialization_alias="totalPaymentsUSD")
    total_payments_bdt: Decimal = Field(serialization_alias="totalPaymentsBDT")
    total_expenses_usd: Decimal = Field(serialization_alias="totalExpensesUSD")
    total_expenses_bdt: Decimal = Field(serialization_alias="totalExpensesBDT")
    available_balance_usd: Decimal = Field(serialization_alias="availableBalanceUSD")
    available_balance_bdt: Decimal = Field(serialization_alias="availableBalanceBDT")
    exchange_rate: Decimal
    expenses_only_bdt: Decimal = Field(serialization_alias="expensesOnlyBDT")
    total_salaries_bdt: Decimal = Field(serialization_alias="totalSalariesBDT")
    net_balance_bdt: Decimal = Field(serialization_alias="netBalanceBDT")


class MonthlyExpense(CamelModel):
    expenses: Decimal
    salaries: Decimal


class FinanceCharts(CamelModel):
    payments_by_month: Dict[str, Decimal]
    expenses_by_month: Dict[str, MonthlyExpense]


class FinanceCounts(CamelModel):
    total_projects: int
    active_projects: int
    total_payments: int
    total_expenses: int


class FinanceDashboardResponse(CamelModel):
    summary: FinanceSummary
    charts: FinanceCharts
    counts: FinanceCounts


# ========== 员工 / 工资 ==========

class EmployeeBase(CamelModel):
    name: str = Field(min_length=1)
    department: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeUpdate(CamelModel):
    name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class EmployeeResponse(EmployeeBase):
    id: str
    created_at: Optional[dt.datetime] = None


PaymentMethod = Literal["cash", "bank_transfer", "mobile_banking"]
PaymentStatus = Literal["paid", "unpaid"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


class SalaryGenerate(CamelModel):
    employee_id: str
    employee_name: str = Field(min_length=1)
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    basic_salary: Decimal = Field(gt=0)
    contractual_hours: int = Field(gt=0)
    actual_working_hours: Decimal = Field(ge=0)
    festival_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    performance_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    other_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = "bank_transfer"
    payment_status: PaymentStatus = "unpaid"
    salary_approval_status: ApprovalStatus = "pending"
    remarks: Optional[str] = None


class SalaryUpdate(CamelModel):
    basic_salary: Optional[Decimal] = Field(default=None, gt=0)
    contractual_hours: Optional[int] = Field(default=None, gt=0)
    actual_working_hours: Optional[Decimal] = Field(default=None, ge=0)
    festival_bonus: Optional[Decimal] = Field(default=None, ge=0)
    performance_bonus: Optional[Decimal] = Field(default=None, ge=0)
    other_bonus: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    salary_approval_status: Optional[ApprovalStatus] = None
    remarks: Optional[str] = None


class SalaryResponse(CamelModel):
    id: str
    employee_id: str
    employee_name: str
    month: str
    basic_salary: Decimal
    contractual_hours: int
    actual_working_hours: Decimal
    hourly_rate: Decimal
    base_payment: Decimal
    festival_bonus: Decimal
    performance_bonus: Decimal
    other_bonus: Decimal
    total_bonus: Decimal
    gross_payment: Decimal
    final_payment: Decimal
    payment_method: str
    payment_status: str
    salary_approval_status: str
    remarks: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class SalaryStatsResponse(CamelModel):
    total_salaries: int
    paid_salaries: int
    unpaid_salaries: int
    total_paid_amount: Decimal
    total_pending_amount: Decimal
    total_salary_amount: Decimal
    total_work_hours: Decimal
    total_salary_hours: Decimal
    hours_difference: Decimal
    user_work_hours: Dict[str, Decimal]
    user_salary_hours: Dict[str, Decimal]
    average_salary: Decimal
    payment_rate: Decimal


class PreviewEmployee(CamelModel):
    id: str
    name: str


class PreviewReport(CamelModel):
    id: str
    title: str
    hours_worked: Decimal
    date: dt.date
    status: str


class PreviewWorkReports(CamelModel):
    count: int
    total_hours: Decimal
    reports: List[PreviewReport]


class SalaryPreviewValues(CamelModel):
    employee_id: str
    employee_name: str
    month: str
    basic_salary: Decimal
    contractual_hours: int
    actual_working_hours: Decimal
    hourly_rate: Decimal
    base_payment: Decimal
    has_previous_salary: bool


class SalaryPreviewResponse(CamelModel):
    """exists=True 时只有 existingSalary，否则为预览数据"""
    exists: bool
    existing_salary: Optional[SalaryResponse] = None
    employee: Optional[PreviewEmployee] = None
    work_reports: Optional[PreviewWorkReports] = None
    preview: Optional[SalaryPreviewValues] = None
