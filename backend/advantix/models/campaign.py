"""
广告系列模型

Campaign.spend 是 CampaignDailySpend 的汇总冗余字段，只能由
campaign_service.upsert_daily_spend 重新计算后写入。
"""
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=False)
    comments = Column(Text, nullable=True)
    ad_account_id = Column(String(36), ForeignKey("ad_accounts.id", ondelete="RESTRICT"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="active")  # active / paused / completed
    objective = Column(String(100), nullable=False)
    budget = Column(Numeric(14, 2), nullable=False)
    spend = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    ad_account = relationship("AdAccount", back_populates="campaigns")
    client = relationship("Client", back_populates="campaigns")
    daily_spends = relationship("CampaignDailySpend", back_populates="campaign", cascade="all, delete-orphan")
    ad_copy_sets = relationship("AdCopySet", back_populates="campaign", cascade="all, delete-orphan")


class CampaignDailySpend(Base):
    __tablename__ = "campaign_daily_spends"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)  # UTC 自然日
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_campaign_daily_spend_campaign_date"),
        Index("idx_campaign_daily_spend_date", "date"),
    )

    campaign = relationship("Campaign", back_populates="daily_spends")


class AdCopySet(Base):
    __tablename__ = "ad_copy_sets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    set_name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)

    age = Column(String(50), nullable=True)
    budget = Column(Numeric(14, 2), nullable=True)
    ad_type = Column(String(50), nullable=True)
    creative_link = Column(Text, nullable=True)
    headline = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    call_to_action = Column(String(100), nullable=True)
    target_audience = Column(Text, nullable=True)
    placement = Column(Text, nullable=True)
    schedule = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="ad_copy_sets")
