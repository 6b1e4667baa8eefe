"""
页面权限API

- 当前用户的权限检查
- 页面、角色权限、用户菜单覆盖的管理（需要 admin 页面权限）
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from advantix.database import get_db
from advantix.exceptions import NotFoundError
from advantix.middleware.auth import get_current_user, require_page_permission
from advantix.models.user import User
from advantix.schemas.common import MessageResponse
from advantix.schemas.permission import (
    MenuPermissionCreate,
    MenuPermissionFields,
    MenuPermissionResponse,
    PageResponse,
    PermissionAction,
    PermissionCheckResponse,
    RolePermissionBulkUpdate,
    RolePermissionResponse,
    RolePermissionUpdate,
)
from advantix.services import permission_service

router = APIRouter(prefix="/api", tags=["permissions"])


@router.get("/permissions/check/{page_key}", response_model=PermissionCheckResponse)
async def check_permission(
    page_key: str,
    action: PermissionAction = Query("view"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """检查当前用户对页面的权限"""
    allowed = permission_service.check_user_access(db, current_user, page_key, action)
    return {"has_permission": allowed}


@router.get("/pages", response_model=List[PageResponse])
async def list_pages(
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return permission_service.list_pages(db)


@router.get("/role-permissions", response_model=List[RolePermissionResponse])
async def list_role_permissions(
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return permission_service.list_role_permissions(db)


# /bulk 必须在 /{permission_id} 之前注册
@router.put("/role-permissions/bulk", response_model=List[RolePermissionResponse])
async def bulk_update_role_permissions(
    payload: RolePermissionBulkUpdate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    items = [item.model_dump() for item in payload.permissions]
    return permission_service.bulk_update_role_permissions(db, items)


@router.get("/role-permissions/{role}", response_model=List[RolePermissionResponse])
async def list_role_permissions_by_role(
    role: str,
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return permission_service.list_role_permissions(db, role)


@router.put("/role-permissions/{permission_id}", response_model=RolePermissionResponse)
async def update_role_permission(
    permission_id: str,
    payload: RolePermissionUpdate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    return permission_service.update_role_permission(db, permission_id, payload.model_dump(exclude_unset=True))


@router.get("/user-menu-permissions", response_model=List[MenuPermissionResponse])
async def list_menu_permissions(
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    return permission_service.list_menu_permissions(db)


@router.get("/user-menu-permissions/{user_id}", response_model=MenuPermissionResponse)
async def get_menu_permission(
    user_id: str,
    _: User = Depends(require_page_permission("admin", "view")),
    db: Session = Depends(get_db)
):
    row = permission_service.get_menu_permission(db, user_id)
    if row is None:
        raise NotFoundError("UserMenuPermission", user_id)
    return row


@router.post("/user-menu-permissions", response_model=MenuPermissionResponse, status_code=201)
async def create_menu_permission(
    payload: MenuPermissionCreate,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    data = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    return permission_service.upsert_menu_permission(db, payload.user_id, data)


@router.put("/user-menu-permissions/{user_id}", response_model=MenuPermissionResponse)
async def update_menu_permission(
    user_id: str,
    payload: MenuPermissionFields,
    _: User = Depends(require_page_permission("admin", "edit")),
    db: Session = Depends(get_db)
):
    return permission_service.upsert_menu_permission(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/user-menu-permissions/{user_id}", response_model=MessageResponse)
async def delete_menu_permission(
    user_id: str,
    _: User = Depends(require_page_permission("admin", "delete")),
    db: Session = Depends(get_db)
):
    permission_service.delete_menu_permission(db, user_id)
    return {"message": "Menu permission deleted"}
