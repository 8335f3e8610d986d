# Shared pytest configuration and fixtures for all test types
import pytest
import pytest_asyncio
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from api.main import app

from common.core.clock import get_clock
from common.db.session import get_db
from common.db.base import Base
from packages.billing.models.database import (  # noqa: F401
    PaymentCustomerEntity,
    PlanEntity,
    SubscriptionEntity,
    SubscriptionHistoryEntity,
    MonthlyUsageEntity,
)
from packages.billing.models.domain.enums import PaymentProvider, SubscriptionStatus
from packages.billing.models.domain.plan import Plan
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
)
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.store.factory import get_subscription_store
from packages.billing.store.sqlalchemy_store import SqlAlchemySubscriptionStore
from packages.billing.webhooks.reconciler import WebhookReconciler
from packages.billing.webhooks.stripe_webhook import get_webhook_reconciler
from tests.fixtures import (
    REMOTE_PERIOD_END,
    SAMPLE_NOW,
    SAMPLE_PLANS,
    SAMPLE_SUBSCRIPTION_ID,
    SAMPLE_USER_ID,
    FrozenClock,
    stripe_subscription_object,
    unix,
)

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch the session factory to use the test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest.fixture
def frozen_clock():
    """Clock pinned to SAMPLE_NOW; tests move it with advance()."""
    return FrozenClock(SAMPLE_NOW)


@pytest_asyncio.fixture(scope="function")
async def plans(test_db: AsyncSession) -> dict[str, Plan]:
    """Seed the plan catalog: free, basic_monthly and pro_monthly."""
    entities = [PlanEntity(**data) for data in SAMPLE_PLANS]
    test_db.add_all(entities)
    await test_db.commit()
    return {data["id"]: Plan(**data) for data in SAMPLE_PLANS}


@pytest.fixture
def store(frozen_clock) -> SqlAlchemySubscriptionStore:
    return SqlAlchemySubscriptionStore(clock=frozen_clock)


@pytest.fixture
def make_subscription(store):
    """Insert a subscription row directly, bypassing the services."""

    async def _make(
        user_id: str = SAMPLE_USER_ID,
        plan_id: str = "basic_monthly",
        provider_subscription_id: Optional[str] = SAMPLE_SUBSCRIPTION_ID,
        provider_price_id: Optional[str] = "price_basic_monthly",
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        period_start: datetime = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        period_end: datetime = REMOTE_PERIOD_END,
        payment_provider: PaymentProvider = PaymentProvider.STRIPE,
        **fields,
    ) -> Subscription:
        return await store.create_subscription(
            SubscriptionCreateModel(
                user_id=user_id,
                plan_id=plan_id,
                provider_subscription_id=provider_subscription_id,
                provider_price_id=provider_price_id,
                status=status,
                payment_provider=payment_provider,
                current_period_start=period_start,
                current_period_end=period_end,
                **fields,
            )
        )

    return _make


@pytest.fixture
def mock_payment_gateway():
    """Gateway double answering like Stripe does for a basic_monthly subscription."""
    gateway = AsyncMock()
    gateway.update_subscription = AsyncMock(
        return_value=StripeSubscriptionData.model_validate(
            stripe_subscription_object(
                period_start=unix(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)),
                period_end=unix(REMOTE_PERIOD_END),
                cancel_at_period_end=True,
            )
        )
    )
    gateway.get_subscription = AsyncMock(
        return_value=StripeSubscriptionData.model_validate(
            stripe_subscription_object()
        )
    )
    gateway.cancel_subscription = AsyncMock(return_value=None)
    gateway.health_check = AsyncMock(return_value=True)
    return gateway


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, frozen_clock, mock_payment_gateway):
    """Create a test client with the clock and payment gateway replaced."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    def override_get_subscription_store():
        return SqlAlchemySubscriptionStore(clock=frozen_clock)

    def override_get_webhook_reconciler():
        return WebhookReconciler(
            store=SqlAlchemySubscriptionStore(clock=frozen_clock), clock=frozen_clock
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: frozen_clock
    app.dependency_overrides[get_payment_gateway] = lambda: mock_payment_gateway
    app.dependency_overrides[get_subscription_store] = override_get_subscription_store
    app.dependency_overrides[get_webhook_reconciler] = override_get_webhook_reconciler

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
