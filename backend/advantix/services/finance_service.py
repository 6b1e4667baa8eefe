"""
财务服务

- 项目 / 收款 / 支出 / 设置 CRUD
- 汇率：finance_settings 中的 usd_to_bdt_rate，缺失时按默认值惰性创建
- 财务仪表盘：USD / BDT 双币种汇总与按月图表
- 支出 CSV 两步导入（预览校验 -> 确认写入）
- 员工与工资单：根据工作日报生成工资预览与工资单
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from advantix.config import settings
from advantix.exceptions import AdvantixError, ConflictError, ValidationError
from advantix.models.client import Client
from advantix.models.finance import (
    EXCHANGE_RATE_KEY,
    Employee,
    FinanceExpense,
    FinancePayment,
    FinanceProject,
    FinanceSetting,
    Salary,
)
from advantix.models.user import User
from advantix.models.work_report import WorkReport
from advantix.utils.data_processor import (
    ZERO,
    month_bounds,
    month_key,
    parse_flexible_date,
    percentage,
    quantize_money,
    quantize_rate,
    to_decimal,
)
from advantix.utils.db_utils import apply_changes, commit_or_raise, get_or_404

logger = logging.getLogger(__name__)

DEFAULT_CONTRACTUAL_HOURS = 160
EXPENSE_CSV_COLUMNS = ["Type", "Project", "Amount", "Currency", "Date", "Notes"]


# ========== 项目 ==========

def list_projects(db: Session, client_id: Optional[str] = None) -> List[FinanceProject]:
    query = db.query(FinanceProject)
    if client_id:
        query = query.filter(FinanceProject.client_id == client_id)
    return query.order_by(FinanceProject.created_at.desc()).all()


def _check_client(db: Session, client_id: Optional[str]):
    if client_id and db.get(Client, client_id) is None:
        raise ValidationError(f"Client with ID {client_id} not found")


def create_project(db: Session, data: dict) -> FinanceProject:
    _check_client(db, data.get("client_id"))
    project = FinanceProject(**data)
    db.add(project)
    commit_or_raise(db, "create project")
    db.refresh(project)
    return project


def update_project(db: Session, project_id: str, data: dict) -> FinanceProject:
    project = get_or_404(db, FinanceProject, project_id, "Project")
    _check_client(db, data.get("client_id"))
    apply_changes(project, data)
    commit_or_raise(db, "update project")
    db.refresh(project)
    return project


def delete_project(db: Session, project_id: str):
    project = get_or_404(db, FinanceProject, project_id, "Project")
    if db.query(FinancePayment).filter(FinancePayment.project_id == project.id).count():
        raise ConflictError("Cannot delete project with recorded payments")
    db.query(FinanceExpense).filter(FinanceExpense.project_id == project.id).update(
        {FinanceExpense.project_id: None}, synchronize_session=False
    )
    db.delete(project)
    commit_or_raise(db, "delete project")


# ========== 汇率与设置 ==========

def list_settings(db: Session) -> List[FinanceSetting]:
    return db.query(FinanceSetting).order_by(FinanceSetting.key).all()


def get_setting(db: Session, key: str) -> Optional[FinanceSetting]:
    return db.query(FinanceSetting).filter(FinanceSetting.key == key).first()


def upsert_setting(db: Session, key: str, value: str, description: Optional[str] = None) -> FinanceSetting:
    if key == EXCHANGE_RATE_KEY:
        try:
            rate = to_decimal(value)
        except ValueError as e:
            raise ValidationError(str(e))
        if rate <= 0:
            raise ValidationError("Exchange rate must be positive")

    setting = get_setting(db, key)
    if setting is None:
        setting = FinanceSetting(key=key, value=value, description=description)
        db.add(setting)
    else:
        setting.value = value
        if description is not None:
            setting.description = description
    commit_or_raise(db, "upsert finance setting", f"Setting '{key}' already exists")
    db.refresh(setting)
    logger.info(f"财务设置已更新: {key}={value}")
    return setting


def get_exchange_rate(db: Session) -> Decimal:
    """
    当前 USD -> BDT 汇率

    设置不存在时写入默认值（DEFAULT_EXCHANGE_RATE）后返回
    """
    setting = get_setting(db, EXCHANGE_RATE_KEY)
    if setting is None:
        default = settings.DEFAULT_EXCHANGE_RATE
        setting = upsert_setting(db, EXCHANGE_RATE_KEY, str(default), "USD to BDT exchange rate")
        logger.info(f"汇率未配置，已使用默认值 {default}")
    try:
        return to_decimal(setting.value)
    except ValueError:
        logger.warning(f"汇率设置无法解析: {setting.value!r}，使用默认值")
        return settings.DEFAULT_EXCHANGE_RATE


# ========== 收款 ==========

def list_payments(db: Session, project_id: Optional[str] = None) -> List[FinancePayment]:
    query = db.query(FinancePayment)
    if project_id:
        query = query.filter(FinancePayment.project_id == project_id)
    return query.order_by(FinancePayment.date.desc()).all()


def _check_payment_refs(db: Session, client_id: Optional[str], project_id: Optional[str]):
    _check_client(db, client_id)
    if project_id and db.get(FinanceProject, project_id) is None:
        raise ValidationError(f"Project with ID {project_id} not found")


def _converted(amount: Decimal, rate: Decimal) -> Decimal:
    return quantize_money(amount * rate)


def create_payment(db: Session, data: dict) -> FinancePayment:
    """收款以 USD 记账；converted_amount = amount × conversion_rate（BDT，按存储的汇率计算）"""
    missing = [key for key in ("client_id", "project_id") if not data.get(key)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    _check_payment_refs(db, data.get("client_id"), data.get("project_id"))
    data = dict(data)
    rate = quantize_rate(to_decimal(data.pop("conversion_rate", None) or get_exchange_rate(db)))
    try:
        amount = quantize_money(to_decimal(data.pop("amount", None)))
    except ValueError as e:
        raise ValidationError(str(e))
    payment = FinancePayment(
        **data,
        amount=amount,
        conversion_rate=rate,
        converted_amount=_converted(amount, rate),
    )
    db.add(payment)
    commit_or_raise(db, "create payment")
    db.refresh(payment)
    return payment


def update_payment(db: Session, payment_id: str, data: dict) -> FinancePayment:
    payment = get_or_404(db, FinancePayment, payment_id, "Payment")
    _check_payment_refs(db, data.get("client_id"), data.get("project_id"))
    apply_changes(payment, data)
    if "amount" in data or "conversion_rate" in data:
        payment.amount = quantize_money(to_decimal(payment.amount))
        payment.conversion_rate = quantize_rate(to_decimal(payment.conversion_rate))
        payment.converted_amount = _converted(payment.amount, payment.conversion_rate)
    commit_or_raise(db, "update payment")
    db.refresh(payment)
    return payment


def delete_payment(db: Session, payment_id: str):
    payment = get_or_404(db, FinancePayment, payment_id, "Payment")
    db.delete(payment)
    commit_or_raise(db, "delete payment")


# ========== 支出 ==========

def list_expenses(db: Session, expense_type: Optional[str] = None, project_id: Optional[str] = None) -> List[FinanceExpense]:
    query = db.query(FinanceExpense)
    if expense_type:
        query = query.filter(FinanceExpense.type == expense_type)
    if project_id:
        query = query.filter(FinanceExpense.project_id == project_id)
    return query.order_by(FinanceExpense.date.desc()).all()


def _check_expense_refs(db: Session, data: dict):
    if data.get("project_id") and db.get(FinanceProject, data["project_id"]) is None:
        raise ValidationError(f"Project with ID {data['project_id']} not found")
    if data.get("employee_id") and db.get(Employee, data["employee_id"]) is None:
        raise ValidationError(f"Employee with ID {data['employee_id']} not found")


def create_expense(db: Session, data: dict) -> FinanceExpense:
    _check_expense_refs(db, data)
    expense = FinanceExpense(**{**data, "amount": quantize_money(to_decimal(data["amount"]))})
    db.add(expense)
    commit_or_raise(db, "create expense")
    db.refresh(expense)
    return expense


def update_expense(db: Session, expense_id: str, data: dict) -> FinanceExpense:
    expense = get_or_404(db, FinanceExpense, expense_id, "Expense")
    _check_expense_refs(db, data)
    apply_changes(expense, data)
    commit_or_raise(db, "update expense")
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense_id: str):
    expense = get_or_404(db, FinanceExpense, expense_id, "Expense")
    db.delete(expense)
    commit_or_raise(db, "delete expense")


def delete_all_expenses(db: Session) -> int:
    count = db.query(FinanceExpense).delete(synchronize_session=False)
    commit_or_raise(db, "delete all expenses")
    logger.warning(f"已删除全部支出: {count}")
    return count


def _expense_bdt(expense: FinanceExpense, rate: Decimal) -> Decimal:
    amount = to_decimal(expense.amount)
    return amount * rate if expense.currency == "USD" else amount


# ========== 仪表盘 ==========

def finance_dashboard(db: Session) -> Dict[str, Any]:
    """
    财务仪表盘

    公式:
        totalExpensesUSD = totalExpensesBDT / rate
        availableBalance = totalPayments - totalExpenses（两种币种分别计算）
        netBalanceBDT = totalPaymentsBDT - expensesOnlyBDT - totalSalariesBDT
    """
    rate = get_exchange_rate(db)
    projects = db.query(FinanceProject).all()
    payments = db.query(FinancePayment).all()
    expenses = db.query(FinanceExpense).all()

    payments_usd = sum((to_decimal(p.amount) for p in payments), ZERO)
    payments_bdt = sum((to_decimal(p.converted_amount) for p in payments), ZERO)

    expenses_only = ZERO
    salaries = ZERO
    payments_by_month: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    expenses_by_month: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {"expenses": ZERO, "salaries": ZERO})

    for payment in payments:
        payments_by_month[month_key(payment.date)] += to_decimal(payment.amount)

    for expense in expenses:
        bdt = _expense_bdt(expense, rate)
        bucket = expenses_by_month[month_key(expense.date)]
        if expense.type == "salary":
            salaries += bdt
            bucket["salaries"] += bdt
        else:
            expenses_only += bdt
            bucket["expenses"] += bdt

    expenses_bdt = expenses_only + salaries
    expenses_usd = expenses_bdt / rate if rate else ZERO

    return {
        "summary": {
            "total_payments_usd": quantize_money(payments_usd),
            "total_payments_bdt": quantize_money(payments_bdt),
            "total_expenses_usd": quantize_money(expenses_usd),
            "total_expenses_bdt": quantize_money(expenses_bdt),
            "available_balance_usd": quantize_money(payments_usd - expenses_usd),
            "available_balance_bdt": quantize_money(payments_bdt - expenses_bdt),
            "exchange_rate": rate,
            "expenses_only_bdt": quantize_money(expenses_only),
            "total_salaries_bdt": quantize_money(salaries),
            "net_balance_bdt": quantize_money(payments_bdt - expenses_only - salaries),
        },
        "charts": {
            "payments_by_month": {k: quantize_money(v) for k, v in sorted(payments_by_month.items())},
            "expenses_by_month": {
                k: {"expenses": quantize_money(v["expenses"]), "salaries": quantize_money(v["salaries"])}
                for k, v in sorted(expenses_by_month.items())
            },
        },
        "counts": {
            "total_projects": len(projects),
            "active_projects": sum(1 for p in projects if p.status == "active"),
            "total_payments": len(payments),
            "total_expenses": len(expenses),
        },
    }


# ========== 支出 CSV ==========

def preview_expense_import(db: Session, rows: List[Dict[str, str]]) -> Dict[str, Any]:
    """
    校验上传的支出 CSV，不写入数据库

    必填列: type, amount, currency, date；projectId 可选但必须存在
    行号从 2 开始（第 1 行为表头）
    """
    valid_records = []
    errors: List[str] = []
    projects = {p.id: p.name for p in db.query(FinanceProject).all()}

    for index, row in enumerate(rows):
        row_number = index + 2
        expense_type = (row.get("type") or "").strip().lower()
        currency = (row.get("currency") or "").strip().upper()
        raw_amount = (row.get("amount") or "").strip()
        raw_date = (row.get("date") or "").strip()
        project_id = (row.get("projectId") or "").strip() or None

        if not expense_type or not raw_amount or not currency or not raw_date:
            errors.append(f"Row {row_number}: Missing required fields (type, amount, currency, date)")
            continue
        if expense_type not in ("expense", "salary"):
            errors.append(f"Row {row_number}: Invalid type '{expense_type}'. Must be 'expense' or 'salary'")
            continue
        if currency not in ("USD", "BDT"):
            errors.append(f"Row {row_number}: Invalid currency '{currency}'. Must be 'USD' or 'BDT'")
            continue
        try:
            amount = to_decimal(raw_amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            errors.append(f"Row {row_number}: Invalid amount '{raw_amount}'. Must be a positive number")
            continue
        try:
            expense_date = parse_flexible_date(raw_date)
        except ValueError:
            errors.append(f"Row {row_number}: Invalid date format '{raw_date}'")
            continue
        if project_id and project_id not in projects:
            errors.append(f"Row {row_number}: Project with ID '{project_id}' not found")
            continue

        valid_records.append({
            "row_number": row_number,
            "type": expense_type,
            "project_id": project_id,
            "project_name": projects.get(project_id, "No Project") if project_id else "No Project",
            "amount": quantize_money(amount),
            "currency": currency,
            "date": expense_date,
            "notes": (row.get("notes") or "").strip(),
        })

    return {
        "message": "CSV preview generated successfully",
        "valid_records": valid_records,
        "total_rows": len(rows),
        "valid_count": len(valid_records),
        "error_count": len(errors),
        "errors": errors,
    }


def confirm_expense_import(db: Session, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """逐条写入预览通过的记录；全部失败时抛出 ValidationError"""
    imported = 0
    errors: List[str] = []
    for record in records:
        try:
            create_expense(db, {
                "type": record["type"],
                "project_id": record.get("project_id"),
                "amount": record["amount"],
                "currency": record["currency"],
                "date": record["date"],
                "notes": record.get("notes") or None,
            })
            imported += 1
        except AdvantixError as e:
            errors.append(f"Row {record.get('row_number')}: {e.message}")

    if imported == 0 and errors:
        raise ValidationError("No expenses were imported", errors=errors)
    return {
        "message": f"Successfully imported {imported} expenses",
        "imported": imported,
        "errors": len(errors),
        "error_details": errors,
    }


def export_expense_rows(db: Session) -> List[Dict[str, Any]]:
    projects = {p.id: p.name for p in db.query(FinanceProject).all()}
    return [
        {
            "Type": e.type,
            "Project": projects.get(e.project_id, "") if e.project_id else "",
            "Amount": str(e.amount),
            "Currency": e.currency,
            "Date": e.date.isoformat(),
            "Notes": e.notes or "",
        }
        for e in list_expenses(db)
    ]


# ========== 员工 ==========

def list_employees(db: Session) -> List[Employee]:
    return db.query(Employee).order_by(Employee.name).all()


def create_employee(db: Session, data: dict) -> Employee:
    employee = Employee(**data)
    db.add(employee)
    commit_or_raise(db, "create employee")
    db.refresh(employee)
    return employee


def update_employee(db: Session, employee_id: str, data: dict) -> Employee:
    employee = get_or_404(db, Employee, employee_id, "Employee")
    apply_changes(employee, data)
    commit_or_raise(db, "update employee")
    db.refresh(employee)
    return employee


def delete_employee(db: Session, employee_id: str):
    employee = get_or_404(db, Employee, employee_id, "Employee")
    db.query(FinanceExpense).filter(FinanceExpense.employee_id == employee.id).update(
        {FinanceExpense.employee_id: None}, synchronize_session=False
    )
    db.delete(employee)
    commit_or_raise(db, "delete employee")


# ========== 工资 ==========

def _month_reports(db: Session, employee_id: str, month: str) -> List[WorkReport]:
    start, end = month_bounds(month)
    return db.query(WorkReport).filter(
        WorkReport.user_id == employee_id,
        WorkReport.date >= start,
        WorkReport.date <= end,
        WorkReport.status.in_(("submitted", "approved")),
    ).order_by(WorkReport.date).all()


def compute_salary(
    basic_salary: Decimal,
    contractual_hours: int,
    actual_working_hours: Decimal,
    festival_bonus: Decimal = ZERO,
    performance_bonus: Decimal = ZERO,
    other_bonus: Decimal = ZERO,
) -> Dict[str, Decimal]:
    """
    工资计算

    公式:
        hourly_rate = basic_salary / contractual_hours
        base_payment = actual_working_hours × hourly_rate
        total_bonus = festival + performance + other
        gross_payment = final_payment = base_payment + total_bonus

    示例:
        >>> compute_salary(Decimal("16000"), 160, Decimal("150"))["base_payment"]
        Decimal('15000.00')
    """
    if contractual_hours <= 0:
        raise ValidationError("Contractual hours must be positive")
    hourly_rate = to_decimal(basic_salary) / Decimal(contractual_hours)
    base_payment = to_decimal(actual_working_hours) * hourly_rate
    total_bonus = to_decimal(festival_bonus) + to_decimal(performance_bonus) + to_decimal(other_bonus)
    gross = base_payment + total_bonus
    return {
        "hourly_rate": quantize_money(hourly_rate),
        "base_payment": quantize_money(base_payment),
        "total_bonus": quantize_money(total_bonus),
        "gross_payment": quantize_money(gross),
        "final_payment": quantize_money(gross),
    }


def salary_preview(db: Session, employee_id: str, month: str) -> Dict[str, Any]:
    """
    工资生成前的预览

    已存在该月工资单时返回 exists=True 与现有记录；
    否则汇总当月已提交/已审批的日报工时，沿用最近一次工资单的基本工资与合同工时（默认 160）
    """
    try:
        month_bounds(month)
    except ValueError as e:
        raise ValidationError(str(e))
    employee = get_or_404(db, User, employee_id, "Employee")

    existing = db.query(Salary).filter(Salary.employee_id == employee_id, Salary.month == month).first()
    if existing is not None:
        return {"exists": True, "existing_salary": existing}

    reports = _month_reports(db, employee_id, month)
    total_hours = sum((to_decimal(r.hours_worked) for r in reports), ZERO)

    previous = db.query(Salary).filter(Salary.employee_id == employee_id).order_by(
        Salary.month.desc()
    ).first()
    basic_salary = to_decimal(previous.basic_salary) if previous else ZERO
    contractual_hours = previous.contractual_hours if previous else DEFAULT_CONTRACTUAL_HOURS
    hourly_rate = basic_salary / Decimal(contractual_hours) if contractual_hours else ZERO

    return {
        "exists": False,
        "employee": {"id": employee.id, "name": employee.display_name},
        "work_reports": {
            "count": len(reports),
            "total_hours": quantize_money(total_hours),
            "reports": reports,
        },
        "preview": {
            "employee_id": employee.id,
            "employee_name": employee.display_name,
            "month": month,
            "basic_salary": quantize_money(basic_salary),
            "contractual_hours": contractual_hours,
            "actual_working_hours": quantize_money(total_hours),
            "hourly_rate": quantize_money(hourly_rate),
            "base_payment": quantize_money(total_hours * hourly_rate),
            "has_previous_salary": previous is not None,
        },
    }


def generate_salary(db: Session, data: dict) -> Salary:
    """生成工资单；同一员工同月重复生成为冲突，当月无日报时拒绝"""
    employee_id = data["employee_id"]
    month = data["month"]
    get_or_404(db, User, employee_id, "Employee")

    if db.query(Salary).filter(Salary.employee_id == employee_id, Salary.month == month).first():
        raise ConflictError("Salary already exists for this employee and month")
    if not _month_reports(db, employee_id, month):
        raise ValidationError("No work reports found for this employee and month")

    computed = compute_salary(
        data["basic_salary"],
        data["contractual_hours"],
        data["actual_working_hours"],
        data.get("festival_bonus") or ZERO,
        data.get("performance_bonus") or ZERO,
        data.get("other_bonus") or ZERO,
    )
    salary = Salary(**data, **computed)
    db.add(salary)
    commit_or_raise(db, "generate salary", "Salary already exists for this employee and month")
    db.refresh(salary)
    logger.info(f"工资单已生成: {salary.employee_name} {month}", extra={"final_payment": str(salary.final_payment)})
    return salary


def list_salaries(db: Session, employee_id: Optional[str] = None, month: Optional[str] = None) -> List[Salary]:
    query = db.query(Salary)
    if employee_id:
        query = query.filter(Salary.employee_id == employee_id)
    if month:
        query = query.filter(Salary.month == month)
    return query.order_by(Salary.month.desc(), Salary.employee_name).all()


def update_salary(db: Session, salary_id: str, data: dict) -> Salary:
    """更新工资单，涉及金额的字段变化时重新计算派生金额"""
    salary = get_or_404(db, Salary, salary_id, "Salary")
    apply_changes(salary, data)
    amount_fields = {
        "basic_salary", "contractual_hours", "actual_working_hours",
        "festival_bonus", "performance_bonus", "other_bonus",
    }
    if amount_fields & set(data):
        computed = compute_salary(
            salary.basic_salary, salary.contractual_hours, salary.actual_working_hours,
            salary.festival_bonus, salary.performance_bonus, salary.other_bonus,
        )
        for key, value in computed.items():
            setattr(salary, key, value)
    commit_or_raise(db, "update salary")
    db.refresh(salary)
    return salary


def delete_salary(db: Session, salary_id: str):
    salary = get_or_404(db, Salary, salary_id, "Salary")
    db.delete(salary)
    commit_or_raise(db, "delete salary")


def salary_stats(db: Session) -> Dict[str, Any]:
    salaries = db.query(Salary).all()
    reports = db.query(WorkReport).all()

    paid = [s for s in salaries if s.payment_status == "paid"]
    unpaid = [s for s in salaries if s.payment_status == "unpaid"]
    total_paid = sum((to_decimal(s.final_payment) for s in paid), ZERO)
    total_pending = sum((to_decimal(s.final_payment) for s in unpaid), ZERO)
    total_amount = sum((to_decimal(s.final_payment) for s in salaries), ZERO)

    user_work_hours: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for report in reports:
        user_work_hours[report.user_id] += to_decimal(report.hours_worked)
    user_salary_hours: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for salary in salaries:
        user_salary_hours[salary.employee_id] += to_decimal(salary.actual_working_hours)

    total_work_hours = sum(user_work_hours.values(), ZERO)
    total_salary_hours = sum(user_salary_hours.values(), ZERO)
    count = len(salaries)

    return {
        "total_salaries": count,
        "paid_salaries": len(paid),
        "unpaid_salaries": len(unpaid),
        "total_paid_amount": quantize_money(total_paid),
        "total_pending_amount": quantize_money(total_pending),
        "total_salary_amount": quantize_money(total_amount),
        "total_work_hours": quantize_money(total_work_hours),
        "total_salary_hours": quantize_money(total_salary_hours),
        "hours_difference": quantize_money(total_work_hours - total_salary_hours),
        "user_work_hours": {k: quantize_money(v) for k, v in user_work_hours.items()},
        "user_salary_hours": {k: quantize_money(v) for k, v in user_salary_hours.items()},
        "average_salary": quantize_money(total_amount / count) if count else Decimal("0.00"),
        "payment_rate": percentage(Decimal(len(paid)), Decimal(count)),
    }
