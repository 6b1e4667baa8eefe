"""
养号账户模型

password / two_fa_secret 属于敏感字段，默认接口不返回。
"""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid


class FarmingAccount(Base):
    __tablename__ = "farming_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    comment = Column(Text, nullable=True)
    social_media = Column(String(20), nullable=False)  # facebook / tiktok
    va_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="new")  # new / farming / active / suspended / banned
    id_name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    recovery_email = Column(String(200), nullable=True)
    password = Column(String(255), nullable=False)
    two_fa_secret = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    va = relationship("User")
