"""
认证中间件

- bcrypt 哈希存储密码，绝不保存或比较明文
- Access Token 包含 type: "access" 声明，Refresh Token 使用独立密钥
- require_page_permission: 基于页面权限解析的路由依赖
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from advantix.config import settings
from advantix.database import get_db
from advantix.exceptions import PermissionDeniedError
from advantix.models.user import User, UserRole
from advantix.services.permission_service import check_user_access


def utc_now() -> datetime:
    """获取当前 UTC 时间（naive datetime，兼容 SQLite 和 jose）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _password_bytes(password: str) -> bytes:
    # bcrypt 只使用前 72 字节
    return password.encode('utf-8')[:72]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode('utf-8'))
    except ValueError:
        # 存储的哈希格式不合法
        return False


def get_password_hash(password: str) -> str:
    """获取密码哈希"""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建访问令牌（Access Token）"""
    to_encode = data.copy()
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建刷新令牌（Refresh Token），未配置 REFRESH_SECRET_KEY 时回退到主密钥"""
    to_encode = data.copy()
    expire = utc_now() + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    to_encode.update({"exp": expire, "type": "refresh"})
    secret_key = settings.REFRESH_SECRET_KEY or settings.SECRET_KEY
    return jwt.encode(to_encode, secret_key, algorithm=settings.ALGORITHM)


def verify_refresh_token(token: str) -> Optional[str]:
    """验证 Refresh Token 并返回用户名，失败返回 None"""
    try:
        secret_key = settings.REFRESH_SECRET_KEY or settings.SECRET_KEY
        payload = jwt.decode(token, secret_key, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "refresh":
        return None
    return payload.get("sub")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """获取当前用户

    只接受 type="access" 的 token，已停用用户视为未认证
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception

    if payload.get("type", "access") != "access":
        raise credentials_exception
    username = payload.get("sub")
    if username is None:
        raise credentials_exception

    user = db.query(User).filter(User.username == username).first()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """admin 或 super_admin"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def require_super_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.SUPER_ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required"
        )
    return current_user


def require_page_permission(page_key: str, action: str = "view"):
    """路由依赖工厂

    用法:
        @router.get("", dependencies=[Depends(require_page_permission("campaigns", "view"))])
    或
        current_user: User = Depends(require_page_permission("campaigns", "edit"))
    """
    async def dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> User:
        if not check_user_access(db, current_user, page_key, action):
            raise PermissionDeniedError(page_key, action)
        return current_user

    return dependency
