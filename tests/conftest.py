import os

# Point the app engine at SQLite before app modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config import settings  # noqa: E402

# Override settings for tests
settings.jwt_secret_key = "test-secret-key-that-is-at-least-32-bytes-long"
settings.cron_secret = "test-cron-secret"
settings.manual_report_allowed_emails = "owner@example.com"
settings.app_env = "development"
settings.prompt_delay_seconds = 0
settings.brand_delay_seconds = 0
settings.url_batch_delay_seconds = 0

from app.core.rate_limit import limiter  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.postgres import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Brand, BrandCompetitor, BrandPrompt, User  # noqa: E402
from tests.fakes import TODAY  # noqa: E402

limiter.enabled = False


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database per test (one shared connection)."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def owner(db: AsyncSession) -> User:
    user = User(email="owner@example.com", subscription_plan="pro")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def brand(db: AsyncSession, owner: User) -> Brand:
    """Brand "Acme" (acme.com) with competitor BetaCorp (betacorp.com) and one active prompt."""
    brand = Brand(owner_user_id=owner.id, name="Acme", domain="acme.com", onboarding_completed=True)
    db.add(brand)
    await db.flush()
    db.add(BrandCompetitor(brand_id=brand.id, competitor_name="BetaCorp", competitor_domain="betacorp.com"))
    db.add(BrandPrompt(brand_id=brand.id, raw_prompt="What is the most reliable CRM for startups?"))
    await db.commit()
    return brand


@pytest.fixture
def auth_headers(owner: User) -> dict[str, str]:
    from tests.fakes import create_access_token

    return {"Authorization": f"Bearer {create_access_token(owner.id, owner.email)}"}


@pytest.fixture
async def prompts(db: AsyncSession, brand: Brand) -> list[BrandPrompt]:
    from sqlalchemy import select

    rows = await db.execute(select(BrandPrompt).where(BrandPrompt.brand_id == brand.id).order_by(BrandPrompt.id))
    return list(rows.scalars().all())


@pytest.fixture
async def report(db: AsyncSession, brand: Brand):
    from app.models import DailyReport

    report = DailyReport(brand_id=brand.id, report_date=TODAY, total_prompts=1)
    db.add(report)
    await db.commit()
    return report
