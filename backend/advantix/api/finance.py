"""
财务API

- /api/finance/*: 项目、收款、支出、设置、汇率、仪表盘（finance 页面权限）
- /api/employees: 员工（仅管理员）
- /api/salaries: 工资单（salary_management 页面权限）
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.exceptions import NotFoundError
from advantix.middleware.auth import require_admin, require_page_permission
from advantix.models.finance import EXCHANGE_RATE_KEY, Employee, FinanceExpense, FinancePayment, FinanceProject, Salary
from advantix.models.user import User
from advantix.schemas.common import CountResponse, MessageResponse
from advantix.schemas.finance import (
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
    ExchangeRateResponse,
    ExpenseConfirmRequest,
    ExpenseConfirmResponse,
    ExpensePreviewResponse,
    FinanceDashboardResponse,
    FinanceExpenseCreate,
    FinanceExpenseResponse,
    FinanceExpenseUpdate,
    FinancePaymentCreate,
    FinancePaymentResponse,
    FinancePaymentUpdate,
    FinanceProjectCreate,
    FinanceProjectResponse,
    FinanceProjectUpdate,
    FinanceSettingResponse,
    FinanceSettingUpsert,
    SalaryGenerate,
    SalaryPreviewResponse,
    SalaryResponse,
    SalaryStatsResponse,
    SalaryUpdate,
)
from advantix.services import export_service, finance_service
from advantix.utils.db_utils import get_or_404

router = APIRouter(prefix="/api/finance", tags=["finance"])
employees_router = APIRouter(prefix="/api/employees", tags=["employees"])
salaries_router = APIRouter(prefix="/api/salaries", tags=["salaries"])


# ========== 项目 ==========

@router.get("/projects", response_model=List[FinanceProjectResponse])
async def list_projects(
    client_id: Optional[str] = Query(None, alias="clientId"),
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.list_projects(db, client_id=client_id)


@router.get("/projects/{project_id}", response_model=FinanceProjectResponse)
async def get_project(
    project_id: str,
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, FinanceProject, project_id, "Project")


@router.post("/projects", response_model=FinanceProjectResponse, status_code=201)
async def create_project(
    payload: FinanceProjectCreate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.create_project(db, payload.model_dump())


@router.put("/projects/{project_id}", response_model=FinanceProjectResponse)
async def update_project(
    project_id: str,
    payload: FinanceProjectUpdate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.update_project(db, project_id, payload.model_dump(exclude_unset=True))


@router.delete("/projects/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    _: User = Depends(require_page_permission("finance", "delete")),
    db: Session = Depends(get_db)
):
    finance_service.delete_project(db, project_id)
    return {"message": "Project deleted successfully"}


# ========== 收款 ==========

@router.get("/payments", response_model=List[FinancePaymentResponse])
async def list_payments(
    project_id: Optional[str] = Query(None, alias="projectId"),
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.list_payments(db, project_id=project_id)


@router.get("/payments/{payment_id}", response_model=FinancePaymentResponse)
async def get_payment(
    payment_id: str,
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, FinancePayment, payment_id, "Payment")


@router.post("/payments", response_model=FinancePaymentResponse, status_code=201)
async def create_payment(
    payload: FinancePaymentCreate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.create_payment(db, payload.model_dump())


@router.put("/payments/{payment_id}", response_model=FinancePaymentResponse)
async def update_payment(
    payment_id: str,
    payload: FinancePaymentUpdate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.update_payment(db, payment_id, payload.model_dump(exclude_unset=True))


@router.delete("/payments/{payment_id}", response_model=MessageResponse)
async def delete_payment(
    payment_id: str,
    _: User = Depends(require_page_permission("finance", "delete")),
    db: Session = Depends(get_db)
):
    finance_service.delete_payment(db, payment_id)
    return {"message": "Payment deleted successfully"}


# ========== 支出 ==========

@router.get("/expenses", response_model=List[FinanceExpenseResponse])
async def list_expenses(
    type: Optional[str] = None,
    project_id: Optional[str] = Query(None, alias="projectId"),
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.list_expenses(db, expense_type=type, project_id=project_id)


@router.post("/expenses/delete-all", response_model=CountResponse)
async def delete_all_expenses(
    _: User = Depends(require_page_permission("finance", "delete")),
    db: Session = Depends(get_db)
):
    count = finance_service.delete_all_expenses(db)
    return {"message": f"Deleted {count} expenses", "count": count}


@router.post("/expenses/import-csv/preview", response_model=ExpensePreviewResponse)
async def preview_expense_import(
    file: UploadFile = File(...),
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    """第一步：校验 CSV 并返回可导入的记录，不写入"""
    rows = export_service.read_csv_rows(await file.read())
    return finance_service.preview_expense_import(db, rows)


@router.post("/expenses/import-csv/confirm", response_model=ExpenseConfirmResponse)
async def confirm_expense_import(
    payload: ExpenseConfirmRequest,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    """第二步：写入预览通过的记录"""
    records = [record.model_dump() for record in payload.valid_records]
    return finance_service.confirm_expense_import(db, records)


@router.get("/expenses/export/csv")
async def export_expenses(
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    text = export_service.rows_to_csv(finance_service.export_expense_rows(db), finance_service.EXPENSE_CSV_COLUMNS)
    return export_service.csv_response(text, export_service.dated_filename("expenses"))


@router.get("/expenses/{expense_id}", response_model=FinanceExpenseResponse)
async def get_expense(
    expense_id: str,
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, FinanceExpense, expense_id, "Expense")


@router.post("/expenses", response_model=FinanceExpenseResponse, status_code=201)
async def create_expense(
    payload: FinanceExpenseCreate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.create_expense(db, payload.model_dump())


@router.put("/expenses/{expense_id}", response_model=FinanceExpenseResponse)
async def update_expense(
    expense_id: str,
    payload: FinanceExpenseUpdate,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.update_expense(db, expense_id, payload.model_dump(exclude_unset=True))


@router.delete("/expenses/{expense_id}", response_model=MessageResponse)
async def delete_expense(
    expense_id: str,
    _: User = Depends(require_page_permission("finance", "delete")),
    db: Session = Depends(get_db)
):
    finance_service.delete_expense(db, expense_id)
    return {"message": "Expense deleted successfully"}


# ========== 设置 / 汇率 / 仪表盘 ==========

@router.get("/settings", response_model=List[FinanceSettingResponse])
async def list_settings(
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.list_settings(db)


@router.get("/settings/{key}", response_model=FinanceSettingResponse)
async def get_setting(
    key: str,
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    setting = finance_service.get_setting(db, key)
    if setting is None:
        raise NotFoundError("Setting", key)
    return setting


@router.put("/settings", response_model=FinanceSettingResponse)
async def upsert_setting(
    payload: FinanceSettingUpsert,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.upsert_setting(db, payload.key, payload.value, payload.description)


@router.get("/exchange-rate", response_model=ExchangeRateResponse)
async def get_exchange_rate(
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return {"rate": finance_service.get_exchange_rate(db)}


@router.put("/exchange-rate", response_model=ExchangeRateResponse)
async def update_exchange_rate(
    payload: ExchangeRateResponse,
    _: User = Depends(require_page_permission("finance", "edit")),
    db: Session = Depends(get_db)
):
    finance_service.upsert_setting(db, EXCHANGE_RATE_KEY, str(payload.rate))
    return {"rate": finance_service.get_exchange_rate(db)}


@router.get("/dashboard", response_model=FinanceDashboardResponse)
async def finance_dashboard(
    _: User = Depends(require_page_permission("finance", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.finance_dashboard(db)


# ========== 员工 ==========

@employees_router.get("", response_model=List[EmployeeResponse])
async def list_employees(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return finance_service.list_employees(db)


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    return get_or_404(db, Employee, employee_id, "Employee")


@employees_router.post("", response_model=EmployeeResponse, status_code=201)
async def create_employee(payload: EmployeeCreate, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    return finance_service.create_employee(db, payload.model_dump())


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return finance_service.update_employee(db, employee_id, payload.model_dump(exclude_unset=True))


@employees_router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(employee_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    finance_service.delete_employee(db, employee_id)
    return {"message": "Employee deleted successfully"}


# ========== 工资 ==========
# 固定路径（/generate-preview, /generate, /stats）必须在 /{salary_id} 之前注册

@salaries_router.get("", response_model=List[SalaryResponse])
async def list_salaries(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    month: Optional[str] = None,
    _: User = Depends(require_page_permission("salary_management", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.list_salaries(db, employee_id=employee_id, month=month)


@salaries_router.get("/generate-preview", response_model=SalaryPreviewResponse)
async def salary_preview(
    employee_id: str = Query(..., alias="employeeId"),
    month: str = Query(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    _: User = Depends(require_page_permission("salary_management", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.salary_preview(db, employee_id, month)


@salaries_router.post("/generate", response_model=SalaryResponse, status_code=201)
async def generate_salary(
    payload: SalaryGenerate,
    _: User = Depends(require_page_permission("salary_management", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.generate_salary(db, payload.model_dump())


@salaries_router.get("/stats", response_model=SalaryStatsResponse)
async def salary_stats(
    _: User = Depends(require_page_permission("salary_management", "view")),
    db: Session = Depends(get_db)
):
    return finance_service.salary_stats(db)


@salaries_router.get("/{salary_id}", response_model=SalaryResponse)
async def get_salary(
    salary_id: str,
    _: User = Depends(require_page_permission("salary_management", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, Salary, salary_id, "Salary")


@salaries_router.put("/{salary_id}", response_model=SalaryResponse)
async def update_salary(
    salary_id: str,
    payload: SalaryUpdate,
    _: User = Depends(require_page_permission("salary_management", "edit")),
    db: Session = Depends(get_db)
):
    return finance_service.update_salary(db, salary_id, payload.model_dump(exclude_unset=True))


@salaries_router.delete("/{salary_id}", response_model=MessageResponse)
async def delete_salary(
    salary_id: str,
    _: User = Depends(require_page_permission("salary_management", "delete")),
    db: Session = Depends(get_db)
):
    finance_service.delete_salary(db, salary_id)
    return {"message": "Salary record deleted successfully"}
