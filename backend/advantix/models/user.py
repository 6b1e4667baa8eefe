"""
用户模型
"""
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from advantix.database import Base, generate_uuid


class UserRole(str, enum.Enum):
    """用户角色枚举"""
    USER = "user"                # 普通员工
    MANAGER = "manager"          # 经理
    ADMIN = "admin"              # 管理员
    SUPER_ADMIN = "super_admin"  # 超级管理员，绕过所有权限检查
    CLIENT = "client"            # 客户门户账号


ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", foreign_keys=[client_id])
    menu_permission = relationship(
        "UserMenuPermission", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    @property
    def is_admin(self) -> bool:
        """admin 或 super_admin"""
        return self.role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.name or self.username
