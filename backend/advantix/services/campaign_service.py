"""
广告系列服务

- 每日花费 upsert：(campaign_id, UTC 自然日) 唯一，写入后在同一事务内重新汇总 Campaign.spend
- 广告文案组激活：单条 UPDATE 同时激活目标并停用同系列其他文案组
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from advantix.exceptions import NotFoundError, ValidationError
from advantix.models.campaign import AdCopySet, Campaign, CampaignDailySpend
from advantix.models.client import AdAccount, Client
from advantix.utils.data_processor import quantize_money, to_decimal, to_utc_day
from advantix.utils.db_utils import apply_changes, commit_or_raise, dialect_insert, flush_or_raise, get_or_404

logger = logging.getLogger(__name__)


# ========== 广告系列 ==========

def list_campaigns(
    db: Session,
    client_id: Optional[str] = None,
    ad_account_id: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Campaign]:
    query = db.query(Campaign)
    if client_id:
        query = query.filter(Campaign.client_id == client_id)
    if ad_account_id:
        query = query.filter(Campaign.ad_account_id == ad_account_id)
    if status:
        query = query.filter(Campaign.status == status)
    return query.order_by(Campaign.created_at.desc()).all()


def _check_references(db: Session, data: dict):
    if data.get("ad_account_id") and db.get(AdAccount, data["ad_account_id"]) is None:
        raise ValidationError(f"Ad account with ID {data['ad_account_id']} not found")
    if data.get("client_id") and db.get(Client, data["client_id"]) is None:
        raise ValidationError(f"Client with ID {data['client_id']} not found")


def create_campaign(db: Session, data: dict) -> Campaign:
    data = dict(data)
    data.pop("spend", None)  # spend 只能由每日花费汇总得出
    _check_references(db, data)
    campaign = Campaign(**data, spend=Decimal("0"))
    db.add(campaign)
    commit_or_raise(db, "create campaign")
    db.refresh(campaign)
    logger.info(f"广告系列已创建: {campaign.name}")
    return campaign


def update_campaign(db: Session, campaign_id: str, data: dict) -> Campaign:
    campaign = get_or_404(db, Campaign, campaign_id, "Campaign")
    data = dict(data)
    data.pop("spend", None)
    _check_references(db, data)
    apply_changes(campaign, data)
    commit_or_raise(db, "update campaign")
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, campaign_id: str):
    campaign = get_or_404(db, Campaign, campaign_id, "Campaign")
    db.delete(campaign)
    commit_or_raise(db, "delete campaign")


def add_comment(db: Session, campaign_id: str, comment: str, username: str) -> Campaign:
    """追加评论到 comments 字段（带时间戳与作者）"""
    campaign = get_or_404(db, Campaign, campaign_id, "Campaign")
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    line = f"[{stamp}] {username}: {comment.strip()}"
    campaign.comments = f"{campaign.comments}\n{line}" if campaign.comments else line
    commit_or_raise(db, "add campaign comment")
    db.refresh(campaign)
    return campaign


# ========== 每日花费 ==========

def _recompute_spend(db: Session, campaign: Campaign) -> Decimal:
    total = db.query(func.coalesce(func.sum(CampaignDailySpend.amount), 0)).filter(
        CampaignDailySpend.campaign_id == campaign.id
    ).scalar()
    campaign.spend = quantize_money(to_decimal(total))
    return campaign.spend


def upsert_daily_spend(db: Session, campaign_id: str, spend_date: Any, amount: Any) -> CampaignDailySpend:
    """
    写入某天的花费（同一天重复写入为覆盖），随后重新汇总 Campaign.spend

    参数:
        spend_date: date / datetime / ISO 字符串，归一化为 UTC 自然日
        amount: 非负金额
    """
    campaign = get_or_404(db, Campaign, campaign_id, "Campaign")
    try:
        day = to_utc_day(spend_date)
        value = quantize_money(to_decimal(amount))
    except ValueError as e:
        raise ValidationError(str(e))
    if value < 0:
        raise ValidationError("Amount must not be negative")

    insert = dialect_insert(db)
    if insert is not None:
        stmt = insert(CampaignDailySpend).values(campaign_id=campaign_id, date=day, amount=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=["campaign_id", "date"],
            set_={"amount": value, "updated_at": func.now()},
        )
        db.execute(stmt)
    else:
        existing = db.query(CampaignDailySpend).filter(
            CampaignDailySpend.campaign_id == campaign_id,
            CampaignDailySpend.date == day,
        ).with_for_update().first()
        if existing is None:
            try:
                with db.begin_nested():
                    db.add(CampaignDailySpend(campaign_id=campaign_id, date=day, amount=value))
            except IntegrityError:
                # 并发插入了同一天的行，改为更新
                db.query(CampaignDailySpend).filter(
                    CampaignDailySpend.campaign_id == campaign_id,
                    CampaignDailySpend.date == day,
                ).update({CampaignDailySpend.amount: value}, synchronize_session=False)
        else:
            existing.amount = value
        db.flush()

    total = _recompute_spend(db, campaign)
    commit_or_raise(db, "upsert daily spend")

    row = db.query(CampaignDailySpend).populate_existing().filter(
        CampaignDailySpend.campaign_id == campaign_id,
        CampaignDailySpend.date == day,
    ).one()
    logger.info(
        "每日花费已更新",
        extra={"campaign_id": campaign_id, "date": day.isoformat(), "amount": str(value), "total": str(total)},
    )
    return row


def list_daily_spends(db: Session, campaign_id: str) -> List[CampaignDailySpend]:
    get_or_404(db, Campaign, campaign_id, "Campaign")
    return db.query(CampaignDailySpend).filter(
        CampaignDailySpend.campaign_id == campaign_id
    ).order_by(CampaignDailySpend.date).all()


def get_total_spend(db: Session, campaign_id: str) -> Decimal:
    """始终从每日花费行汇总，不读取冗余字段"""
    get_or_404(db, Campaign, campaign_id, "Campaign")
    total = db.query(func.coalesce(func.sum(CampaignDailySpend.amount), 0)).filter(
        CampaignDailySpend.campaign_id == campaign_id
    ).scalar()
    return quantize_money(to_decimal(total))


# ========== 广告文案组 ==========

def list_ad_copy_sets(db: Session, campaign_id: str) -> List[AdCopySet]:
    return db.query(AdCopySet).filter(AdCopySet.campaign_id == campaign_id).order_by(AdCopySet.created_at).all()


def _activate_exclusive(db: Session, campaign_id: str, set_id: str):
    # 同一条 UPDATE 内完成激活与停用，不存在中间状态
    db.query(AdCopySet).filter(AdCopySet.campaign_id == campaign_id).update(
        {AdCopySet.is_active: case((AdCopySet.id == set_id, True), else_=False)},
        synchronize_session=False,
    )


def create_ad_copy_set(db: Session, campaign_id: str, data: dict) -> AdCopySet:
    get_or_404(db, Campaign, campaign_id, "Campaign")
    data = dict(data)
    make_active = bool(data.pop("is_active", False))
    copy_set = AdCopySet(campaign_id=campaign_id, is_active=False, **data)
    db.add(copy_set)
    flush_or_raise(db, "create ad copy set")
    if make_active:
        _activate_exclusive(db, campaign_id, copy_set.id)
    commit_or_raise(db, "create ad copy set")
    db.refresh(copy_set)
    return copy_set


def update_ad_copy_set(db: Session, set_id: str, data: dict) -> AdCopySet:
    copy_set = get_or_404(db, AdCopySet, set_id, "Ad copy set")
    data = dict(data)
    data.pop("is_active", None)  # 激活只能通过 set_active_ad_copy_set
    apply_changes(copy_set, data)
    commit_or_raise(db, "update ad copy set")
    db.refresh(copy_set)
    return copy_set


def set_active_ad_copy_set(db: Session, campaign_id: str, set_id: str) -> AdCopySet:
    """激活指定文案组并停用同系列其他文案组；文案组不属于该系列时不做任何修改"""
    copy_set = db.query(AdCopySet).filter(
        AdCopySet.id == set_id,
        AdCopySet.campaign_id == campaign_id,
    ).first()
    if copy_set is None:
        raise NotFoundError("Ad copy set", set_id)
    _activate_exclusive(db, campaign_id, set_id)
    commit_or_raise(db, "activate ad copy set")
    db.expire_all()
    return db.get(AdCopySet, set_id)


def delete_ad_copy_set(db: Session, set_id: str):
    copy_set = get_or_404(db, AdCopySet, set_id, "Ad copy set")
    db.delete(copy_set)
    commit_or_raise(db, "delete ad copy set")


# ========== 导出 ==========

CAMPAIGN_CSV_COLUMNS = [
    "Name", "Client", "Ad Account", "Objective", "Status", "Budget", "Spend", "Start Date", "Comments",
]


def export_campaign_rows(db: Session) -> List[dict]:
    return [
        {
            "Name": c.name,
            "Client": c.client.client_name if c.client else "",
            "Ad Account": c.ad_account.account_name if c.ad_account else "",
            "Objective": c.objective,
            "Status": c.status,
            "Budget": str(c.budget),
            "Spend": str(c.spend),
            "Start Date": c.start_date.isoformat(),
            "Comments": c.comments or "",
        }
        for c in list_campaigns(db)
    ]
