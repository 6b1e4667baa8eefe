"""
广告系列API

- 每日花费 upsert 与总花费
- 广告文案组：同一系列最多一个处于激活状态
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.middleware.auth import require_page_permission
from advantix.models.campaign import AdCopySet, Campaign
from advantix.models.user import User
from advantix.schemas.campaign import (
    AdCopySetCreate,
    AdCopySetResponse,
    AdCopySetUpdate,
    CampaignComment,
    CampaignCreate,
    CampaignResponse,
    CampaignUpdate,
    DailySpendResponse,
    DailySpendUpsert,
    TotalSpendResponse,
)
from advantix.schemas.common import MessageResponse
from advantix.services import campaign_service, export_service
from advantix.utils.db_utils import get_or_404

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])
ad_copy_sets_router = APIRouter(prefix="/api/ad-copy-sets", tags=["campaigns"])


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    client_id: Optional[str] = Query(None, alias="clientId"),
    ad_account_id: Optional[str] = Query(None, alias="adAccountId"),
    status: Optional[str] = None,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    return campaign_service.list_campaigns(db, client_id=client_id, ad_account_id=ad_account_id, status=status)


@router.get("/export/csv")
async def export_campaigns(
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    text = export_service.rows_to_csv(
        campaign_service.export_campaign_rows(db), campaign_service.CAMPAIGN_CSV_COLUMNS
    )
    return export_service.csv_response(text, export_service.dated_filename("campaigns"))


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: str,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, Campaign, campaign_id, "Campaign")


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    payload: CampaignCreate,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.create_campaign(db, payload.model_dump())


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: str,
    payload: CampaignUpdate,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.update_campaign(db, campaign_id, payload.model_dump(exclude_unset=True))


@router.delete("/{campaign_id}", response_model=MessageResponse)
async def delete_campaign(
    campaign_id: str,
    _: User = Depends(require_page_permission("campaigns", "delete")),
    db: Session = Depends(get_db)
):
    campaign_service.delete_campaign(db, campaign_id)
    return {"message": "Campaign deleted successfully"}


@router.post("/{campaign_id}/comments", response_model=CampaignResponse)
async def add_comment(
    campaign_id: str,
    payload: CampaignComment,
    current_user: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.add_comment(db, campaign_id, payload.comment, current_user.display_name)


# ========== 每日花费 ==========

@router.get("/{campaign_id}/daily-spends", response_model=List[DailySpendResponse])
async def list_daily_spends(
    campaign_id: str,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    return campaign_service.list_daily_spends(db, campaign_id)


@router.post("/{campaign_id}/daily-spends", response_model=DailySpendResponse)
async def upsert_daily_spend(
    campaign_id: str,
    payload: DailySpendUpsert,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    """同一天重复提交为覆盖"""
    return campaign_service.upsert_daily_spend(db, campaign_id, payload.date, payload.amount)


@router.get("/{campaign_id}/total-spend", response_model=TotalSpendResponse)
async def get_total_spend(
    campaign_id: str,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    return {"campaign_id": campaign_id, "total_spend": campaign_service.get_total_spend(db, campaign_id)}


# ========== 广告文案组 ==========

@router.get("/{campaign_id}/ad-copy-sets", response_model=List[AdCopySetResponse])
async def list_ad_copy_sets(
    campaign_id: str,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    get_or_404(db, Campaign, campaign_id, "Campaign")
    return campaign_service.list_ad_copy_sets(db, campaign_id)


@router.post("/{campaign_id}/ad-copy-sets", response_model=AdCopySetResponse, status_code=201)
async def create_ad_copy_set(
    campaign_id: str,
    payload: AdCopySetCreate,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.create_ad_copy_set(db, campaign_id, payload.model_dump())


@router.put("/{campaign_id}/ad-copy-sets/{set_id}/set-active", response_model=AdCopySetResponse)
async def set_active_ad_copy_set(
    campaign_id: str,
    set_id: str,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.set_active_ad_copy_set(db, campaign_id, set_id)


@ad_copy_sets_router.get("/{set_id}", response_model=AdCopySetResponse)
async def get_ad_copy_set(
    set_id: str,
    _: User = Depends(require_page_permission("campaigns", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, AdCopySet, set_id, "Ad copy set")


@ad_copy_sets_router.put("/{set_id}", response_model=AdCopySetResponse)
async def update_ad_copy_set(
    set_id: str,
    payload: AdCopySetUpdate,
    _: User = Depends(require_page_permission("campaigns", "edit")),
    db: Session = Depends(get_db)
):
    return campaign_service.update_ad_copy_set(db, set_id, payload.model_dump(exclude_unset=True))


@ad_copy_sets_router.delete("/{set_id}", response_model=MessageResponse)
async def delete_ad_copy_set(
    set_id: str,
    _: User = Depends(require_page_permission("campaigns", "delete")),
    db: Session = Depends(get_db)
):
    campaign_service.delete_ad_copy_set(db, set_id)
    return {"message": "Ad copy set deleted successfully"}
