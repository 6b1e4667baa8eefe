"""
客户与广告账户的Pydantic模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from advantix.schemas.common import CamelModel


class ClientBase(CamelModel):
    client_name: str = Field(min_length=1)
    business_name: str = Field(min_length=1)
    contact_person: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    address: Optional[str] = None
    notes: Optional[str] = None
    status: Literal["active", "inactive"] = "active"


class ClientCreate(ClientBase):
    pass


class ClientUpdate(CamelModel):
    client_name: Optional[str] = None
    business_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None


class ClientResponse(ClientBase):
    id: str
    created_at: Optional[datetime] = None


class AdAccountBase(CamelModel):
    platform: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    account_id: str = Field(min_length=1)
    client_id: str
    spend_limit: Decimal = Field(ge=0)
    status: Literal["active", "suspended"] = "active"
    notes: Optional[str] = None


class AdAccountCreate(AdAccountBase):
    pass


class AdAccountUpdate(CamelModel):
    platform: Optional[str] = None
    account_name: Optional[str] = None
    account_id: Optional[str] = None
    client_id: Optional[str] = None
    spend_limit: Optional[Decimal] = Field(default=None, ge=0)
    total_spend: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[Literal["active", "suspended"]] = None
    notes: Optional[str] = None


class AdAccountResponse(AdAccountBase):
    id: str
    total_spend: Decimal
    created_at: Optional[datetime] = None
