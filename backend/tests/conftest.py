import os
import json
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock

# Окружение должно быть задано до импорта настроек приложения
os.environ['DATABASE_URL'] = "sqlite+aiosqlite:///:memory:"
os.environ['REDIS_HOST'] = "localhost"
os.environ['REDIS_PORT'] = "6379"
os.environ['SECRET_KEY'] = "test-secret-key"
os.environ['ENCRYPTION_KEY'] = "j61NrBRq6XffO4VD14K0uN7GoPO7Qskih_lMHle3UF4="
os.environ['RESEND_API_KEY'] = ""
os.environ['APP_URL'] = "https://coach.test"

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine

from ptcoach.main import create_app
from ptcoach.db.base import Base
from ptcoach.db.models import User, Package, PaytrSetting
from ptcoach.db.session import get_db
from ptcoach.core.config import settings
from ptcoach.core.enums import UserRole, PaytrMode
from ptcoach.core.security import encrypt_data, get_password_hash
from ptcoach.api.dependencies import login_limiter, register_limiter, payment_limiter
from tests.utils.helpers import TEST_MERCHANT_KEY, TEST_MERCHANT_SALT, TEST_PASSWORD, get_auth_headers_for


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    is_sqlite = "sqlite" in settings.database_url

    connect_args = {"check_same_thread": False} if is_sqlite else {}

    engine = create_async_engine(
        settings.database_url,
        poolclass=StaticPool if is_sqlite else None,
        connect_args=connect_args,
        json_serializer=json.dumps,
        json_deserializer=json.loads
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия, работающая внутри одной внешней транзакции,
    которая откатывается после теста.
    """
    connection = await db_engine.connect()
    trans = await connection.begin()
    session = AsyncSession(bind=connection, expire_on_commit=False)

    try:
        yield session
    finally:
        await session.close()
        await trans.rollback()
        await connection.close()


@pytest_asyncio.fixture(scope="function")
async def mock_redis() -> AsyncMock:
    mock = AsyncMock()
    mock.get.return_value = None
    mock.set.return_value = True
    return mock


@pytest.fixture(scope="function")
def test_app(
    db_session: AsyncSession,
    mock_redis: AsyncMock,
    mocker
) -> FastAPI:
    # Lifespan не должен подключаться к реальному Redis
    mocker.patch("ptcoach.main.AsyncRedis.from_url", return_value=mock_redis)
    mocker.patch("ptcoach.main.FastAPILimiter.init", return_value=None)

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    for limiter in (register_limiter, login_limiter, payment_limiter):
        app.dependency_overrides[limiter] = no_rate_limit

    return app


@pytest_asyncio.fixture(scope="function")
async def async_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as client:
        yield client


@pytest.fixture(scope="session")
def hashed_test_password() -> str:
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture
def create_user(db_session: AsyncSession, hashed_test_password: str) -> Callable:
    async def _create_user(email: str, role: UserRole = UserRole.CLIENT, **kwargs) -> User:
        kwargs.setdefault("email_verified", True)
        user = User(email=email, hashed_password=hashed_test_password, role=role, **kwargs)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create_user


@pytest_asyncio.fixture(scope="function")
async def test_user(create_user) -> User:
    return await create_user("client@example.com", first_name="Ayşe", last_name="Yılmaz", phone="+90 (532) 111-22-33")


@pytest_asyncio.fixture(scope="function")
async def trainer_user(create_user) -> User:
    return await create_user("trainer@example.com", role=UserRole.TRAINER, first_name="Mert", last_name="Kaya")


@pytest_asyncio.fixture(scope="function")
async def admin_user(create_user) -> User:
    return await create_user("admin@example.com", role=UserRole.ADMIN)


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict[str, str]:
    return get_auth_headers_for(test_user)


@pytest.fixture(scope="function")
def trainer_headers(trainer_user: User) -> dict[str, str]:
    return get_auth_headers_for(trainer_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict[str, str]:
    return get_auth_headers_for(admin_user)


@pytest.fixture
def create_package(db_session: AsyncSession) -> Callable:
    async def _create_package(slug: str, name: str, price: int, duration_in_days: int = 30, **kwargs) -> Package:
        package = Package(slug=slug, name=name, price=price, duration_in_days=duration_in_days, **kwargs)
        db_session.add(package)
        await db_session.commit()
        await db_session.refresh(package)
        return package
    return _create_package


@pytest_asyncio.fixture(scope="function")
async def premium_package(create_package) -> Package:
    return await create_package("premium", "Premium", 1500, features=["Haftalık kontrol"])


@pytest_asyncio.fixture(scope="function")
async def vip_package(create_package) -> Package:
    return await create_package("vip", "VIP", 3000, is_popular=True)


@pytest_asyncio.fixture(scope="function")
async def paytr_setting(db_session: AsyncSession, admin_user: User) -> PaytrSetting:
    setting = PaytrSetting(
        mode=PaytrMode.TEST,
        merchant_id="123456",
        encrypted_merchant_key=encrypt_data(TEST_MERCHANT_KEY),
        encrypted_merchant_salt=encrypt_data(TEST_MERCHANT_SALT),
        currency="TL",
        language="tr",
        iframe_debug=False,
        non_3d=False,
        max_installment=0,
        updated_by_id=admin_user.id,
        updated_by_email=admin_user.email,
    )
    db_session.add(setting)
    await db_session.commit()
    await db_session.refresh(setting)
    return setting

