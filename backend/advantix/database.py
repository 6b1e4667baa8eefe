"""
数据库连接与会话
"""
import logging
import uuid

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from advantix.config import settings

logger = logging.getLogger(__name__)

_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite 默认禁止跨线程使用连接，FastAPI 的线程池需要关闭该检查
    _connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def generate_uuid() -> str:
    """主键：UUID4 字符串，创建时生成，不复用"""
    return str(uuid.uuid4())


def get_db():
    """FastAPI 依赖：每个请求一个会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(db_engine=None):
    """建表并执行幂等初始化数据"""
    # 导入全部模型，确保注册到 Base.metadata
    import advantix.models  # noqa: F401
    from advantix.services.seed_service import seed_defaults

    bind = db_engine or engine
    Base.metadata.create_all(bind=bind)

    session = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        seed_defaults(session)
    finally:
        session.close()
    logger.info("数据库初始化完成")
