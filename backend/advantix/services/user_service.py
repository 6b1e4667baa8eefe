"""
用户管理服务
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from advantix.exceptions import ConflictError, ValidationError
from advantix.middleware.auth import get_password_hash
from advantix.models.client import Client
from advantix.models.user import User, UserRole
from advantix.utils.db_utils import commit_or_raise, get_or_404

logger = logging.getLogger(__name__)


def list_users(db: Session, role: Optional[str] = None) -> List[User]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at).all()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def _check_username(db: Session, username: str, exclude_id: Optional[str] = None):
    existing = get_user_by_username(db, username)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError(f"Username '{username}' already exists")


def _check_client_link(db: Session, role: str, client_id: Optional[str]):
    if role == UserRole.CLIENT.value and not client_id:
        raise ValidationError("Client users must be linked to a client")
    if client_id and db.get(Client, client_id) is None:
        raise ValidationError(f"Client with ID {client_id} not found")


def create_user(db: Session, data: dict) -> User:
    data = dict(data)
    role = data.get("role") or UserRole.USER.value
    role = role.value if isinstance(role, UserRole) else role
    _check_username(db, data["username"])
    _check_client_link(db, role, data.get("client_id"))

    user = User(
        username=data["username"],
        name=data.get("name"),
        role=role,
        client_id=data.get("client_id"),
        is_active=data.get("is_active", True),
        password_hash=get_password_hash(data["password"]),
    )
    db.add(user)
    commit_or_raise(db, "create user", f"Username '{user.username}' already exists")
    db.refresh(user)
    logger.info(f"用户已创建: {user.username}", extra={"role": user.role})
    return user


def update_user(db: Session, user_id: str, data: dict) -> User:
    user = get_or_404(db, User, user_id, "User")
    data = dict(data)
    if data.get("username"):
        _check_username(db, data["username"], exclude_id=user.id)
    if "role" in data and isinstance(data["role"], UserRole):
        data["role"] = data["role"].value

    password = data.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    for key, value in data.items():
        if value is not None or key == "client_id":
            setattr(user, key, value)
    _check_client_link(db, user.role, user.client_id)

    commit_or_raise(db, "update user", f"Username '{user.username}' already exists")
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: str, current_user: User):
    user = get_or_404(db, User, user_id, "User")
    if user.id == current_user.id:
        raise ValidationError("Cannot delete your own account")
    db.delete(user)
    commit_or_raise(db, "delete user")
    logger.info(f"用户已删除: {user.username}")
