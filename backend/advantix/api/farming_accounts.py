"""
养号账户API

所有登录用户可读写；敏感字段只有管理员通过 includeSecrets 才能拿到
"""
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.middleware.auth import get_current_user
from advantix.models.user import User
from advantix.schemas.common import MessageResponse
from advantix.schemas.farming_account import (
    FarmingAccountCreate,
    FarmingAccountResponse,
    FarmingAccountSecretResponse,
    FarmingAccountUpdate,
    FarmingImportResponse,
)
from advantix.services import export_service, farming_service

router = APIRouter(prefix="/api/farming-accounts", tags=["farming-accounts"])


def _ensure_secret_access(current_user: User):
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can view account secrets"
        )


@router.get("", response_model=List[FarmingAccountResponse])
async def list_accounts(
    status_filter: Optional[str] = Query(None, alias="status"),
    social_media: Optional[str] = Query(None, alias="socialMedia"),
    va_id: Optional[str] = Query(None, alias="vaId"),
    search: Optional[str] = None,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return farming_service.list_accounts(
        db, status=status_filter, social_media=social_media, va_id=va_id, search=search
    )


@router.post("/import/csv", response_model=FarmingImportResponse)
async def import_accounts(
    file: UploadFile = File(...),
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    rows = export_service.read_csv_rows(await file.read())
    return farming_service.import_accounts(db, rows)


@router.get("/export/csv")
async def export_accounts(
    include_secrets: bool = Query(False, alias="includeSecrets"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if include_secrets:
        _ensure_secret_access(current_user)
    columns = farming_service.SECRET_CSV_COLUMNS if include_secrets else farming_service.PUBLIC_CSV_COLUMNS
    text = export_service.rows_to_csv(farming_service.export_rows(db, include_secrets), columns)
    return export_service.csv_response(text, export_service.dated_filename("farming_accounts"))


@router.get("/{account_id}", response_model=Union[FarmingAccountSecretResponse, FarmingAccountResponse])
async def get_account(
    account_id: str,
    include_secrets: bool = Query(False, alias="includeSecrets"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    account = farming_service.get_account(db, account_id)
    if include_secrets:
        _ensure_secret_access(current_user)
        return FarmingAccountSecretResponse.model_validate(account)
    return FarmingAccountResponse.model_validate(account)


@router.post("", response_model=FarmingAccountResponse, status_code=201)
async def create_account(
    payload: FarmingAccountCreate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return farming_service.create_account(db, payload.model_dump())


@router.put("/{account_id}", response_model=FarmingAccountResponse)
async def update_account(
    account_id: str,
    payload: FarmingAccountUpdate,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return farming_service.update_account(db, account_id, payload.model_dump(exclude_unset=True))


@router.delete("/{account_id}", response_model=MessageResponse)
async def delete_account(
    account_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    farming_service.delete_account(db, account_id)
    return {"message": "Farming account deleted successfully"}
