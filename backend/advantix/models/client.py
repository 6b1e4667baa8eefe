"""
客户与广告账户模型
"""
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_name = Column(String(200), nullable=False)
    business_name = Column(String(200), nullable=False)
    contact_person = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active / inactive
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    ad_accounts = relationship("AdAccount", back_populates="client")
    campaigns = relationship("Campaign", back_populates="client")


class AdAccount(Base):
    __tablename__ = "ad_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    platform = Column(String(50), nullable=False)
    account_name = Column(String(200), nullable=False)
    account_id = Column(String(100), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    spend_limit = Column(Numeric(14, 2), nullable=False)
    total_spend = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active / suspended
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    client = relationship("Client", back_populates="ad_accounts")
    campaigns = relationship("Campaign", back_populates="ad_account")
