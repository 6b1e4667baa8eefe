"""
客户与广告账户API
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.middleware.auth import require_page_permission
from advantix.models.client import AdAccount, Client
from advantix.models.user import User
from advantix.schemas.client import (
    AdAccountCreate,
    AdAccountResponse,
    AdAccountUpdate,
    ClientCreate,
    ClientResponse,
    ClientUpdate,
)
from advantix.schemas.common import ImportResult, MessageResponse
from advantix.services import client_service, export_service
from advantix.utils.db_utils import get_or_404

router = APIRouter(prefix="/api/clients", tags=["clients"])
ad_accounts_router = APIRouter(prefix="/api/ad-accounts", tags=["ad-accounts"])


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    status: Optional[str] = None,
    _: User = Depends(require_page_permission("clients", "view")),
    db: Session = Depends(get_db)
):
    return client_service.list_clients(db, status=status)


@router.get("/export/csv")
async def export_clients(
    _: User = Depends(require_page_permission("clients", "view")),
    db: Session = Depends(get_db)
):
    text = export_service.rows_to_csv(client_service.export_client_rows(db), client_service.CLIENT_CSV_COLUMNS)
    return export_service.csv_response(text, export_service.dated_filename("clients"))


@router.post("/import/csv", response_model=ImportResult)
async def import_clients(
    file: UploadFile = File(...),
    _: User = Depends(require_page_permission("clients", "edit")),
    db: Session = Depends(get_db)
):
    rows = export_service.read_csv_rows(await file.read())
    return client_service.import_clients(db, rows)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    _: User = Depends(require_page_permission("clients", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, Client, client_id, "Client")


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    payload: ClientCreate,
    _: User = Depends(require_page_permission("clients", "edit")),
    db: Session = Depends(get_db)
):
    return client_service.create_client(db, payload.model_dump())


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    payload: ClientUpdate,
    _: User = Depends(require_page_permission("clients", "edit")),
    db: Session = Depends(get_db)
):
    return client_service.update_client(db, client_id, payload.model_dump(exclude_unset=True))


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: str,
    _: User = Depends(require_page_permission("clients", "delete")),
    db: Session = Depends(get_db)
):
    client_service.delete_client(db, client_id)
    return {"message": "Client deleted successfully"}


# ========== 广告账户 ==========

@ad_accounts_router.get("", response_model=List[AdAccountResponse])
async def list_ad_accounts(
    client_id: Optional[str] = Query(None, alias="clientId"),
    _: User = Depends(require_page_permission("ad_accounts", "view")),
    db: Session = Depends(get_db)
):
    return client_service.list_ad_accounts(db, client_id=client_id)


@ad_accounts_router.get("/export/csv")
async def export_ad_accounts(
    _: User = Depends(require_page_permission("ad_accounts", "view")),
    db: Session = Depends(get_db)
):
    text = export_service.rows_to_csv(
        client_service.export_ad_account_rows(db), client_service.AD_ACCOUNT_CSV_COLUMNS
    )
    return export_service.csv_response(text, export_service.dated_filename("ad_accounts"))


@ad_accounts_router.get("/{account_id}", response_model=AdAccountResponse)
async def get_ad_account(
    account_id: str,
    _: User = Depends(require_page_permission("ad_accounts", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, AdAccount, account_id, "Ad account")


@ad_accounts_router.post("", response_model=AdAccountResponse, status_code=201)
async def create_ad_account(
    payload: AdAccountCreate,
    _: User = Depends(require_page_permission("ad_accounts", "edit")),
    db: Session = Depends(get_db)
):
    return client_service.create_ad_account(db, payload.model_dump())


@ad_accounts_router.put("/{account_id}", response_model=AdAccountResponse)
async def update_ad_account(
    account_id: str,
    payload: AdAccountUpdate,
    _: User = Depends(require_page_permission("ad_accounts", "edit")),
    db: Session = Depends(get_db)
):
    return client_service.update_ad_account(db, account_id, payload.model_dump(exclude_unset=True))


@ad_accounts_router.delete("/{account_id}", response_model=MessageResponse)
async def delete_ad_account(
    account_id: str,
    _: User = Depends(require_page_permission("ad_accounts", "delete")),
    db: Session = Depends(get_db)
):
    client_service.delete_ad_account(db, account_id)
    return {"message": "Ad account deleted successfully"}
