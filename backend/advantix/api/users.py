"""
用户管理API（需要 admin 页面权限）
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.exceptions import ValidationError
from advantix.middleware.auth import require_page_permission
from advantix.models.user import User, UserRole
from advantix.schemas.common import MessageResponse
from advantix.schemas.user import UserCreate, UserResponse, UserUpdate
from advantix.services import user_service
from advantix.utils.db_utils import get_or_404

router = APIRouter(prefix="/api/users", tags=["users"])
client_users_router = APIRouter(prefix="/api/client-users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return user_service.list_users(db)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return get_or_404(db, User, user_id, "User")


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    payload: UserCreate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    return user_service.create_user(db, payload.model_dump())


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    return user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: User = Depends(require_page_permission("admin", "delete")),
    db: Session = Depends(get_db)
):
    user_service.delete_user(db, user_id, current_user)
    return {"message": "User deleted successfully"}


# ========== 客户门户账号 ==========

@client_users_router.get("", response_model=List[UserResponse])
async def list_client_users(
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return user_service.list_users(db, role=UserRole.CLIENT.value)


@client_users_router.post("", response_model=UserResponse, status_code=201)
async def create_client_user(
    payload: UserCreate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    """创建客户门户账号：角色固定为 client，必须关联客户"""
    if not payload.client_id:
        raise ValidationError("clientId is required for client users")
    data = payload.model_dump()
    data["role"] = UserRole.CLIENT.value
    return user_service.create_user(db, data)
