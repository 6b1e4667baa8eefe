"""
页面权限模型

- Page: 页面目录（page_key 唯一）
- RolePermission: 角色 × 页面 的查看/编辑/删除矩阵
- UserMenuPermission: 用户级菜单覆盖，NULL 表示未设置
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid


class Page(Base):
    __tablename__ = "pages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    page_key = Column(String(50), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    path = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    role_permissions = relationship("RolePermission", back_populates="page", cascade="all, delete-orphan")


class RolePermission(Base):
    __tablename__ = "role_permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    role = Column(String(20), nullable=False, index=True)
    page_id = Column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False)
    can_view = Column(Boolean, nullable=False, default=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("role", "page_id", name="uq_role_permission_role_page"),
    )

    page = relationship("Page", back_populates="role_permissions")


# 菜单覆盖字段（列名），顺序即前端菜单顺序
MENU_FIELDS = (
    "dashboard",
    "campaign_management",
    "client_management",
    "ad_accounts",
    "work_reports",
    "advantix_dashboard",
    "projects",
    "payments",
    "expenses_salaries",
    "salary_management",
    "reports",
    "fb_ad_management",
    "advantix_ads_manager",
    "own_farming",
    "new_created",
    "farming_accounts",
    "admin_panel",
)


class UserMenuPermission(Base):
    __tablename__ = "user_menu_permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    dashboard = Column(Boolean, nullable=True)
    campaign_management = Column(Boolean, nullable=True)
    client_management = Column(Boolean, nullable=True)
    ad_accounts = Column(Boolean, nullable=True)
    work_reports = Column(Boolean, nullable=True)
    advantix_dashboard = Column(Boolean, nullable=True)
    projects = Column(Boolean, nullable=True)
    payments = Column(Boolean, nullable=True)
    expenses_salaries = Column(Boolean, nullable=True)
    salary_management = Column(Boolean, nullable=True)
    reports = Column(Boolean, nullable=True)
    fb_ad_management = Column(Boolean, nullable=True)
    advantix_ads_manager = Column(Boolean, nullable=True)
    own_farming = Column(Boolean, nullable=True)
    new_created = Column(Boolean, nullable=True)
    farming_accounts = Column(Boolean, nullable=True)
    admin_panel = Column(Boolean, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="menu_permission")
