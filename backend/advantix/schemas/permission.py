"""
页面权限相关的Pydantic模型
"""
from typing import List, Literal, Optional

from advantix.schemas.common import CamelModel

PermissionAction = Literal["view", "edit", "delete"]


class PageResponse(CamelModel):
    id: str
    page_key: str
    display_name: str
    path: str
    description: Optional[str] = None
    is_active: bool


class RolePermissionResponse(CamelModel):
    id: str
    role: str
    page_id: str
    can_view: bool
    can_edit: bool
    can_delete: bool


class RolePermissionUpdate(CamelModel):
    can_view: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_delete: Optional[bool] = None


class RolePermissionBulkItem(RolePermissionUpdate):
    id: str


class RolePermissionBulkUpdate(CamelModel):
    permissions: List[RolePermissionBulkItem]


class MenuPermissionFields(CamelModel):
    """菜单覆盖；None 表示不覆盖，回退到角色权限"""
    dashboard: Optional[bool] = None
    campaign_management: Optional[bool] = None
    client_management: Optional[bool] = None
    ad_accounts: Optional[bool] = None
    work_reports: Optional[bool] = None
    advantix_dashboard: Optional[bool] = None
    projects: Optional[bool] = None
    payments: Optional[bool] = None
    expenses_salaries: Optional[bool] = None
    salary_management: Optional[bool] = None
    reports: Optional[bool] = None
    fb_ad_management: Optional[bool] = None
    advantix_ads_manager: Optional[bool] = None
    own_farming: Optional[bool] = None
    new_created: Optional[bool] = None
    farming_accounts: Optional[bool] = None
    admin_panel: Optional[bool] = None


class MenuPermissionCreate(MenuPermissionFields):
    user_id: str


class MenuPermissionResponse(MenuPermissionFields):
    id: str
    user_id: str


class PermissionCheckResponse(CamelModel):
    has_permission: bool
