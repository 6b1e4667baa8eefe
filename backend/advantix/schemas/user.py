"""
用户相关的Pydantic模型
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from advantix.models.user import UserRole
from advantix.schemas.common import CamelModel


class UserBase(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    name: Optional[str] = None
    role: UserRole = UserRole.USER
    client_id: Optional[str] = None
    is_active: bool = True


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserUpdate(CamelModel):
    name: Optional[str] = None
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role: Optional[UserRole] = None
    client_id: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=6)


class UserResponse(CamelModel):
    id: str
    username: str
    name: Optional[str] = None
    role: str
    client_id: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class Token(CamelModel):
    access_token: str
    token_type: str
    user: UserResponse
