"""
页面权限服务

解析规则（check_access）:
1. 用户不存在或已停用 -> 拒绝
2. super_admin -> 直接放行
3. view 操作：若用户存在菜单覆盖且对应字段已设置（非 NULL），直接返回该值，
   即使页面已停用也以覆盖为准
4. 否则查页面（不存在或停用 -> 拒绝），再查 角色 × 页面 权限（不存在 -> 拒绝），
   按 action 返回 can_view / can_edit / can_delete，未知 action -> 拒绝

缺失配置一律视为拒绝，不抛异常。
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from advantix.exceptions import NotFoundError, ValidationError
from advantix.models.permission import MENU_FIELDS, Page, RolePermission, UserMenuPermission
from advantix.models.user import User, UserRole
from advantix.utils.db_utils import commit_or_raise

logger = logging.getLogger(__name__)

ACTIONS = ("view", "edit", "delete")

# page_key -> UserMenuPermission 字段。新增页面只需修改此表；未登记的页面不参与覆盖
PAGE_MENU_FIELDS: Dict[str, str] = {
    "dashboard": "dashboard",
    "campaigns": "campaign_management",
    "clients": "client_management",
    "ad_accounts": "ad_accounts",
    "work_reports": "work_reports",
    "fb_ad_management": "fb_ad_management",
    "finance": "advantix_dashboard",
    "admin": "admin_panel",
}

_ACTION_COLUMNS = {
    "view": "can_view",
    "edit": "can_edit",
    "delete": "can_delete",
}


def menu_override(db: Session, user_id: str, page_key: str) -> Optional[bool]:
    """返回用户对该页面的菜单覆盖值；未映射或未设置时返回 None"""
    field = PAGE_MENU_FIELDS.get(page_key)
    if field is None:
        return None
    row = db.query(UserMenuPermission).filter(UserMenuPermission.user_id == user_id).first()
    if row is None:
        return None
    return getattr(row, field)


def check_user_access(db: Session, user: Optional[User], page_key: str, action: str) -> bool:
    """对已加载的用户对象做权限判断"""
    if user is None or not user.is_active:
        return False

    if user.role == UserRole.SUPER_ADMIN.value:
        return True

    if action == "view":
        override = menu_override(db, user.id, page_key)
        if override is not None:
            return bool(override)

    page = db.query(Page).filter(Page.page_key == page_key).first()
    if page is None or not page.is_active:
        return False

    permission = db.query(RolePermission).filter(
        RolePermission.role == user.role,
        RolePermission.page_id == page.id,
    ).first()
    if permission is None:
        return False

    column = _ACTION_COLUMNS.get(action)
    if column is None:
        return False
    return bool(getattr(permission, column))


def check_access(db: Session, user_id: str, page_key: str, action: str) -> bool:
    """checkAccess(userId, pageKey, action)"""
    user = db.query(User).filter(User.id == user_id).first()
    allowed = check_user_access(db, user, page_key, action)
    logger.debug(
        "permission check",
        extra={"user_id": user_id, "page_key": page_key, "action": action, "allowed": allowed},
    )
    return allowed


# ========== 管理操作 ==========

def list_pages(db: Session) -> List[Page]:
    return db.query(Page).order_by(Page.page_key).all()


def list_role_permissions(db: Session, role: Optional[str] = None) -> List[RolePermission]:
    query = db.query(RolePermission)
    if role:
        query = query.filter(RolePermission.role == role)
    return query.all()


def update_role_permission(db: Session, permission_id: str, data: dict) -> RolePermission:
    permission = db.query(RolePermission).filter(RolePermission.id == permission_id).first()
    if permission is None:
        raise NotFoundError("RolePermission", permission_id)
    for key in ("can_view", "can_edit", "can_delete"):
        if data.get(key) is not None:
            setattr(permission, key, bool(data[key]))
    commit_or_raise(db, "update role permission")
    db.refresh(permission)
    logger.info(f"角色权限已更新: {permission.role} / {permission.page_id}")
    return permission


def bulk_update_role_permissions(db: Session, items: Iterable[dict]) -> List[RolePermission]:
    """批量更新（同一事务，任一条不存在则全部回滚）"""
    updated = []
    for item in items:
        permission_id = item.get("id")
        permission = db.query(RolePermission).filter(RolePermission.id == permission_id).first()
        if permission is None:
            db.rollback()
            raise NotFoundError("RolePermission", str(permission_id))
        for key in ("can_view", "can_edit", "can_delete"):
            if item.get(key) is not None:
                setattr(permission, key, bool(item[key]))
        updated.append(permission)
    commit_or_raise(db, "bulk update role permissions")
    for permission in updated:
        db.refresh(permission)
    return updated


def list_menu_permissions(db: Session) -> List[UserMenuPermission]:
    return db.query(UserMenuPermission).all()


def get_menu_permission(db: Session, user_id: str) -> Optional[UserMenuPermission]:
    return db.query(UserMenuPermission).filter(UserMenuPermission.user_id == user_id).first()


def _apply_menu_fields(row: UserMenuPermission, data: dict):
    for field in MENU_FIELDS:
        if field in data:
            value = data[field]
            setattr(row, field, None if value is None else bool(value))


def upsert_menu_permission(db: Session, user_id: str, data: dict) -> UserMenuPermission:
    """创建或更新用户菜单覆盖（每个用户最多一行）"""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User", user_id)
    unknown = [key for key in data if key not in MENU_FIELDS]
    if unknown:
        raise ValidationError("Unknown menu fields", errors=[f"unknown field: {key}" for key in unknown])

    row = get_menu_permission(db, user_id)
    if row is None:
        row = UserMenuPermission(user_id=user_id)
        db.add(row)
    _apply_menu_fields(row, data)
    commit_or_raise(db, "upsert menu permission", f"Menu permission for user {user_id} already exists")
    db.refresh(row)
    return row


def delete_menu_permission(db: Session, user_id: str):
    row = get_menu_permission(db, user_id)
    if row is None:
        raise NotFoundError("UserMenuPermission", user_id)
    db.delete(row)
    commit_or_raise(db, "delete menu permission")
