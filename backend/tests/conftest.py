"""
测试夹具

每个测试使用独立的内存 SQLite（StaticPool 保证同一连接），
建表后写入默认页面、角色权限与汇率，get_db 依赖替换为测试会话。
"""
import datetime as dt
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import advantix.models  # noqa: F401
from advantix.api.auth import limiter
from advantix.database import Base, get_db
from advantix.main import app
from advantix.middleware.auth import create_access_token, get_password_hash
from advantix.models.campaign import Campaign
from advantix.models.client import AdAccount, Client
from advantix.models.user import User
from advantix.services.seed_service import seed_exchange_rate, seed_pages, seed_role_permissions

TEST_PASSWORD = "secret-pass-123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_pages(session)
    seed_role_permissions(session)
    seed_exchange_rate(session)
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def make_user(db):
    """创建用户：make_user("admin") / make_user("user", username="bob", is_active=False)"""
    counter = {"n": 0}

    def _make(role: str = "user", username: str = None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            name=kwargs.pop("name", f"{role.title()} {counter['n']}"),
            username=username or f"{role}{counter['n']}",
            password_hash=get_password_hash(kwargs.pop("password", TEST_PASSWORD)),
            role=role,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def super_admin(make_user):
    return make_user("super_admin", username="root")


@pytest.fixture
def admin_headers(super_admin):
    return auth_headers(super_admin)


@pytest.fixture
def sample_client(db):
    record = Client(
        client_name="Acme",
        business_name="Acme Ltd",
        contact_person="Rahim",
        email="ops@acme.test",
        phone="+8801700000000",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def sample_campaign(db, sample_client):
    account = AdAccount(
        platform="facebook",
        account_name="Acme FB",
        account_id="act_1001",
        client_id=sample_client.id,
        spend_limit=Decimal("5000"),
        total_spend=Decimal("0"),
    )
    db.add(account)
    db.flush()
    campaign = Campaign(
        name="Spring Launch",
        start_date=dt.date(2025, 3, 1),
        ad_account_id=account.id,
        client_id=sample_client.id,
        objective="conversions",
        budget=Decimal("1000"),
        spend=Decimal("0"),
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign
