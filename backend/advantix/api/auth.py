"""
认证API

- 登录接口速率限制（LOGIN_RATE_LIMIT，按 IP），防止暴力破解
- Refresh Token 存放在 httpOnly Cookie
- 已停用的账号不能登录，也不能刷新令牌
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from advantix.config import settings
from advantix.database import get_db
from advantix.middleware.auth import (
    create_access_token,
    create_refresh_token,
    get_current_user,
    verify_password,
    verify_refresh_token,
)
from advantix.models.user import User
from advantix.schemas.common import MessageResponse
from advantix.schemas.user import Token, UserResponse
from advantix.services.user_service import get_user_by_username

logger = logging.getLogger(__name__)

# 速率限制器（main.py 中挂到 app.state）
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/auth", tags=["auth"])

REFRESH_COOKIE = "refresh_token"


def _cookie_kwargs() -> dict:
    is_production = settings.ENVIRONMENT == "production"
    return {"path": "/", "secure": is_production, "httponly": True, "samesite": "lax"}


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,  # 速率限制需要 Request 对象
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """用户登录：Access Token 通过响应体返回，Refresh Token 写入 httpOnly Cookie"""
    user = get_user_by_username(db, form_data.username)

    if not user or not verify_password(form_data.password, user.password_hash):
        logger.warning("登录失败", extra={"username": form_data.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    access_token = create_access_token(data={"sub": user.username})
    refresh_token = create_refresh_token(data={"sub": user.username})
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **_cookie_kwargs(),
    )
    logger.info("登录成功", extra={"username": user.username})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


@router.post("/refresh")
async def refresh_token(request: Request, db: Session = Depends(get_db)):
    """使用 Cookie 中的 Refresh Token 换取新的 Access Token"""
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token not found")

    username = verify_refresh_token(token)
    if not username:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired refresh token")

    user = get_user_by_username(db, username)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return {"accessToken": create_access_token(data={"sub": user.username}), "tokenType": "bearer"}


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """清除 Refresh Token Cookie（参数须与 set_cookie 一致）"""
    response.delete_cookie(key=REFRESH_COOKIE, **_cookie_kwargs())
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """获取当前用户信息"""
    return current_user
