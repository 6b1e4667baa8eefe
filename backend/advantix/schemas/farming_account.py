"""
养号账户的Pydantic模型
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from advantix.schemas.common import CamelModel

SocialMedia = Literal["facebook", "tiktok"]
FarmingStatus = Literal["new", "farming", "active", "suspended", "banned"]


class FarmingAccountBase(CamelModel):
    comment: Optional[str] = None
    social_media: SocialMedia
    va_id: Optional[str] = None
    status: FarmingStatus = "new"
    id_name: str = Field(min_length=1)
    email: str = Field(min_length=3)


class FarmingAccountCreate(FarmingAccountBase):
    recovery_email: Optional[str] = None
    password: str = Field(min_length=1)
    two_fa_secret: Optional[str] = None


class FarmingAccountUpdate(CamelModel):
    comment: Optional[str] = None
    social_media: Optional[SocialMedia] = None
    va_id: Optional[str] = None
    status: Optional[FarmingStatus] = None
    id_name: Optional[str] = None
    email: Optional[str] = None
    recovery_email: Optional[str] = None
    password: Optional[str] = None
    two_fa_secret: Optional[str] = None


class FarmingAccountResponse(FarmingAccountBase):
    """不含敏感字段"""
    id: str
    created_at: Optional[datetime] = None


class FarmingAccountSecretResponse(FarmingAccountResponse):
    recovery_email: Optional[str] = None
    password: str
    two_fa_secret: Optional[str] = None


class FarmingImportResponse(CamelModel):
    message: str
    success: int
    errors: List[str]
