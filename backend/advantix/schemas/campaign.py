"""
广告系列相关的Pydantic模型

spend 只出现在响应中，由每日花费汇总得出，请求中不可写。
"""
import datetime as dt
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import Field

from advantix.schemas.common import CamelModel

CampaignStatus = Literal["active", "paused", "completed"]


class CampaignBase(CamelModel):
    name: str = Field(min_length=1)
    start_date: dt.date
    comments: Optional[str] = None
    ad_account_id: str
    client_id: Optional[str] = None
    status: CampaignStatus = "active"
    objective: str = Field(min_length=1)
    budget: Decimal = Field(ge=0)


class CampaignCreate(CampaignBase):
    pass


class CampaignUpdate(CamelModel):
    name: Optional[str] = None
    start_date: Optional[dt.date] = None
    comments: Optional[str] = None
    ad_account_id: Optional[str] = None
    client_id: Optional[str] = None
    status: Optional[CampaignStatus] = None
    objective: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)


class CampaignResponse(CampaignBase):
    id: str
    spend: Decimal
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class CampaignComment(CamelModel):
    comment: str = Field(min_length=1)


class DailySpendUpsert(CamelModel):
    # 接受 YYYY-MM-DD 或带时区的完整时间戳，统一归一化为 UTC 自然日
    date: Union[dt.datetime, dt.date]
    amount: Decimal = Field(ge=0)


class DailySpendResponse(CamelModel):
    id: str
    campaign_id: str
    date: dt.date
    amount: Decimal


class TotalSpendResponse(CamelModel):
    campaign_id: str
    total_spend: Decimal


class AdCopySetBase(CamelModel):
    set_name: str = Field(min_length=1)
    is_active: bool = False
    age: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    ad_type: Optional[str] = None
    creative_link: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    call_to_action: Optional[str] = None
    target_audience: Optional[str] = None
    placement: Optional[str] = None
    schedule: Optional[str] = None
    notes: Optional[str] = None


class AdCopySetCreate(AdCopySetBase):
    pass


class AdCopySetUpdate(CamelModel):
    set_name: Optional[str] = None
    age: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    ad_type: Optional[str] = None
    creative_link: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    call_to_action: Optional[str] = None
    target_audience: Optional[str] = None
    placement: Optional[str] = None
    schedule: Optional[str] = None
    notes: Optional[str] = None


class AdCopySetResponse(AdCopySetBase):
    id: str
    campaign_id: str
    created_at: Optional[dt.datetime] = None
