import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

# 速率限制
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from advantix import __version__
from advantix.api import (
    auth,
    campaigns,
    clients,
    farming_accounts,
    finance,
    gher,
    permissions,
    users,
    work_reports,
)
from advantix.config import settings
from advantix.database import init_db
from advantix.exceptions import AdvantixError
from advantix.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时配置日志、建表并写入默认数据"""
    setup_logging(settings.LOG_DIR, settings.LOG_LEVEL)
    init_db()
    logger.info(f"Advantix API 已启动 (环境: {settings.ENVIRONMENT})")
    yield
    logger.info("Advantix API 已关闭")


app = FastAPI(title="Advantix API", version=__version__, lifespan=lifespan)

# 登录接口的限流器定义在 auth 模块
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS配置 - 必须在所有路由之前添加，来源白名单来自 CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,  # refresh token 走 Cookie
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept", "Origin"],
    expose_headers=["Content-Disposition"],
    max_age=3600,
)


# 安全头部中间件
@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """添加安全响应头"""
    response = await call_next(request)

    # 防止点击劫持
    response.headers["X-Frame-Options"] = "DENY"

    # 防止 MIME 类型嗅探
    response.headers["X-Content-Type-Options"] = "nosniff"

    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

    return response


@app.exception_handler(AdvantixError)
async def advantix_exception_handler(request: Request, exc: AdvantixError):
    """业务异常 -> {"detail", "code", "errors"}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 失败: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "errors": exc.errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """未预期的异常：记录堆栈，只向调用方返回通用信息"""
    logger.error(f"未处理的异常 {request.method} {request.url.path}: {type(exc).__name__}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR", "errors": []},
    )


# API routes
app.include_router(auth.router)
app.include_router(permissions.router)
app.include_router(users.router)
app.include_router(users.client_users_router)
app.include_router(clients.router)
app.include_router(clients.ad_accounts_router)
app.include_router(campaigns.router)
app.include_router(campaigns.ad_copy_sets_router)
app.include_router(work_reports.router)
app.include_router(finance.router)
app.include_router(finance.employees_router)
app.include_router(finance.salaries_router)
app.include_router(farming_accounts.router)
app.include_router(gher.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/")
def root():
    return {"message": "Advantix backend is running", "docs": "/docs"}
