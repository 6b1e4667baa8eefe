"""
初始化数据（幂等）

启动时和 scripts/init_db.py 调用：
- 页面表为空时写入默认页面目录
- 角色权限表为空时写入默认权限矩阵
- 默认超级管理员不存在时创建（密码哈希存储）
- 汇率设置不存在时写入默认值
"""
import logging
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from advantix.config import settings
from advantix.middleware.auth import get_password_hash
from advantix.models.finance import EXCHANGE_RATE_KEY, FinanceSetting
from advantix.models.permission import Page, RolePermission
from advantix.models.user import User, UserRole

logger = logging.getLogger(__name__)

# (page_key, display_name, path, description)
DEFAULT_PAGES: List[Tuple[str, str, str, str]] = [
    ("dashboard", "Dashboard", "/", "Main dashboard overview"),
    ("campaigns", "Campaign Management", "/campaigns", "Manage advertising campaigns"),
    ("campaign_details", "Campaign Details", "/campaigns/:id", "View campaign details"),
    ("clients", "Client Management", "/clients", "Manage client information"),
    ("ad_accounts", "Ad Accounts", "/ad-accounts", "Manage advertising accounts"),
    ("work_reports", "Work Reports", "/work-reports", "Employee work reports"),
    ("client_mailbox", "Client Mailbox", "/client-mailbox", "Send emails to clients"),
    ("fb_ad_management", "FB Ad Management", "/fb-ad-management", "Facebook ad management"),
    ("advantix_ads_manager", "Advantix Ads Manager", "/advantix-ads-manager", "Ads manager"),
    ("ownFarming", "Own Farming", "/own-farming", "Own farming dashboard"),
    ("newCreated", "New Created", "/own-farming/new-created", "Newly created accounts"),
    ("farmingAccounts", "Farming Accounts", "/own-farming/farming-accounts", "Farming accounts registry"),
    ("gher_management", "Gher Management", "/gher", "Gher bookkeeping"),
    ("gher_invoices", "Gher Invoices", "/gher/invoices", "Gher monthly invoices"),
    ("finance", "Finance", "/finance", "Finance overview"),
    ("advantix_dashboard", "Advantix Dashboard", "/finance/dashboard", "Finance dashboard"),
    ("projects", "Projects", "/finance/projects", "Finance projects"),
    ("payments", "Payments", "/finance/payments", "Client payments"),
    ("expenses_salaries", "Expenses & Salaries", "/finance/expenses", "Expenses and salaries"),
    ("salary_management", "Salary Management", "/salary-management", "Monthly salaries"),
    ("reports", "Reports", "/finance/reports", "Finance reports"),
    ("fishfire", "Fishfire", "/fishfire", "Fishfire"),
    ("admin", "Admin Panel", "/admin", "User and permission administration"),
]

_ALL = (True, True, True)
_VIEW_EDIT = (True, True, False)
_VIEW = (True, False, False)
_NONE = (False, False, False)


def build_permission_matrix() -> Dict[str, Dict[str, Tuple[bool, bool, bool]]]:
    """角色 -> page_key -> (can_view, can_edit, can_delete)"""
    page_keys = [p[0] for p in DEFAULT_PAGES]
    matrix: Dict[str, Dict[str, Tuple[bool, bool, bool]]] = {}

    # 普通员工：仪表盘只读，日报可读写
    matrix[UserRole.USER.value] = {key: _NONE for key in page_keys}
    matrix[UserRole.USER.value]["dashboard"] = _VIEW
    matrix[UserRole.USER.value]["work_reports"] = _VIEW_EDIT

    # 经理：大部分页面只读，不可见工资/fishfire/管理后台
    manager = {}
    for key in page_keys:
        if key in ("salary_management", "fishfire", "admin"):
            manager[key] = _NONE
        elif key in ("work_reports", "client_mailbox"):
            manager[key] = _VIEW_EDIT
        else:
            manager[key] = _VIEW
    matrix[UserRole.MANAGER.value] = manager

    # 管理员：除管理后台外全部权限，部分页面不可删除
    admin = {}
    for key in page_keys:
        if key == "admin":
            admin[key] = _NONE
        elif key in ("dashboard", "campaign_details", "client_mailbox", "salary_management"):
            admin[key] = _VIEW_EDIT
        else:
            admin[key] = _ALL
    matrix[UserRole.ADMIN.value] = admin

    matrix[UserRole.SUPER_ADMIN.value] = {key: _ALL for key in page_keys}
    matrix[UserRole.CLIENT.value] = {key: _NONE for key in page_keys}
    return matrix


def seed_pages(db: Session) -> int:
    if db.query(Page).count() > 0:
        return 0
    for page_key, display_name, path, description in DEFAULT_PAGES:
        db.add(Page(
            page_key=page_key,
            display_name=display_name,
            path=path,
            description=description,
            is_active=True,
        ))
    db.commit()
    logger.info(f"已写入默认页面: {len(DEFAULT_PAGES)}")
    return len(DEFAULT_PAGES)


def seed_role_permissions(db: Session) -> int:
    if db.query(RolePermission).count() > 0:
        return 0
    pages = {page.page_key: page for page in db.query(Page).all()}
    created = 0
    for role, entries in build_permission_matrix().items():
        for page_key, (can_view, can_edit, can_delete) in entries.items():
            page = pages.get(page_key)
            if page is None:
                continue
            db.add(RolePermission(
                role=role,
                page_id=page.id,
                can_view=can_view,
                can_edit=can_edit,
                can_delete=can_delete,
            ))
            created += 1
    db.commit()
    logger.info(f"已写入默认角色权限: {created}")
    return created


def seed_admin_user(db: Session) -> bool:
    username = settings.DEFAULT_ADMIN_USERNAME
    if db.query(User).filter(User.username == username).first():
        return False
    db.add(User(
        name=settings.DEFAULT_ADMIN_NAME,
        username=username,
        password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN.value,
        is_active=True,
    ))
    db.commit()
    logger.warning(f"已创建默认超级管理员 {username}，请尽快修改密码")
    return True


def seed_exchange_rate(db: Session) -> bool:
    if db.query(FinanceSetting).filter(FinanceSetting.key == EXCHANGE_RATE_KEY).first():
        return False
    db.add(FinanceSetting(
        key=EXCHANGE_RATE_KEY,
        value=str(settings.DEFAULT_EXCHANGE_RATE),
        description="USD to BDT exchange rate",
    ))
    db.commit()
    return True


def seed_defaults(db: Session):
    """执行全部初始化步骤"""
    seed_pages(db)
    seed_role_permissions(db)
    seed_admin_user(db)
    seed_exchange_rate(db)
