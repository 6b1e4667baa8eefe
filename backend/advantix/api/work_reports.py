"""
工作日报API

非管理员只能访问自己的日报；DELETE /all 仅管理员可用
"""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.middleware.auth import require_admin, require_page_permission
from advantix.models.user import User
from advantix.schemas.common import MessageResponse
from advantix.schemas.work_report import (
    DeleteAllResponse,
    WorkReportCreate,
    WorkReportResponse,
    WorkReportUpdate,
)
from advantix.services import export_service, work_report_service

router = APIRouter(prefix="/api/work-reports", tags=["work-reports"])


@router.get("", response_model=List[WorkReportResponse])
async def list_reports(
    user_id: Optional[str] = Query(None, alias="userId"),
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    current_user: User = Depends(require_page_permission("work_reports", "view")),
    db: Session = Depends(get_db)
):
    return work_report_service.list_reports(
        db, current_user, user_id=user_id, start_date=start_date, end_date=end_date
    )


@router.get("/export/csv")
async def export_reports(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: User = Depends(require_page_permission("work_reports", "view")),
    db: Session = Depends(get_db)
):
    rows = work_report_service.export_report_rows(db, current_user, user_id=user_id)
    text = export_service.rows_to_csv(rows, work_report_service.WORK_REPORT_CSV_COLUMNS)
    return export_service.csv_response(text, export_service.dated_filename("work_reports"))


@router.delete("/all", response_model=DeleteAllResponse)
async def delete_all_reports(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    count = work_report_service.delete_all_reports(db)
    return {"message": f"Deleted {count} work reports", "deleted_count": count}


@router.get("/{report_id}", response_model=WorkReportResponse)
async def get_report(
    report_id: str,
    current_user: User = Depends(require_page_permission("work_reports", "view")),
    db: Session = Depends(get_db)
):
    return work_report_service.get_report(db, report_id, current_user)


@router.post("", response_model=WorkReportResponse, status_code=201)
async def create_report(
    payload: WorkReportCreate,
    current_user: User = Depends(require_page_permission("work_reports", "edit")),
    db: Session = Depends(get_db)
):
    return work_report_service.create_report(db, payload.model_dump(), current_user)


@router.put("/{report_id}", response_model=WorkReportResponse)
async def update_report(
    report_id: str,
    payload: WorkReportUpdate,
    current_user: User = Depends(require_page_permission("work_reports", "edit")),
    db: Session = Depends(get_db)
):
    return work_report_service.update_report(db, report_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(
    report_id: str,
    current_user: User = Depends(require_page_permission("work_reports", "delete")),
    db: Session = Depends(get_db)
):
    work_report_service.delete_report(db, report_id, current_user)
    return {"message": "Work report deleted successfully"}
