"""Shared pytest fixtures for unit and integration tests."""

import os
from datetime import date
from decimal import Decimal

# Settings are read at import time; pin the test environment before the app loads.
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rent_backoffice.main import app
from rent_backoffice.config import settings
from rent_backoffice.database import Base, get_db
from rent_backoffice.api import deps
from rent_backoffice.core.exceptions import CollaboratorError
from rent_backoffice.models import Property, Unit, Tenant, TenantUnit, RentPayment, PaymentStatus
from rent_backoffice.services.binding_reconciler import BindingReconciler
from rent_backoffice.services.notification_service import NotificationDispatcher
from rent_backoffice.services.payment_link_service import PaymentLinkProvider
from rent_backoffice.utils.time import FixedClock


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every notice instead of sending it."""

    def __init__(self):
        self.sent = []

    async def notify(self, tenant, obligation, unit_number, property_address, context):
        self.sent.append({
            "tenant": tenant,
            "obligation": obligation,
            "unit": unit_number,
            "address": property_address,
            "context": context,
        })
        return f"msg-{len(self.sent)}"


class FailingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.calls = 0

    async def notify(self, tenant, obligation, unit_number, property_address, context):
        self.calls += 1
        raise CollaboratorError("WhatsApp API unavailable")


class CrashingDispatcher(NotificationDispatcher):
    """Fails with a programming error rather than a collaborator error."""

    def __init__(self):
        self.calls = 0

    async def notify(self, tenant, obligation, unit_number, property_address, context):
        self.calls += 1
        raise RuntimeError("dispatcher crashed")


class StaticLinkProvider(PaymentLinkProvider):
    async def generate_link(self, email, name, amount, memo="Rent payment"):
        return f"https://pay.test/request?amount={amount}"


class FailingLinkProvider(PaymentLinkProvider):
    async def generate_link(self, email, name, amount, memo="Rent payment"):
        raise CollaboratorError("Interac link service unavailable")


class CrashingLinkProvider(PaymentLinkProvider):
    async def generate_link(self, email, name, amount, memo="Rent payment"):
        raise KeyError("reference")


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions get separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rent.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    """Mutable fixed clock; set ``clock.fixed`` to move time."""
    return FixedClock(date(2025, 3, 1))


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def link_provider() -> StaticLinkProvider:
    return StaticLinkProvider()


@pytest.fixture
def reconciler() -> BindingReconciler:
    return BindingReconciler()


@pytest.fixture
def api_base() -> str:
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
async def async_client(session_factory, clock, dispatcher, link_provider, reconciler, api_base):
    """API client bound to the per-test database and collaborator fakes."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[deps.get_link_provider] = lambda: link_provider
    app.dependency_overrides[deps.get_reconciler] = lambda: reconciler

    transport = ASGITransport(app=app)
    client = AsyncClient(transport=transport, base_url=api_base, timeout=30.0)
    yield client
    await client.aclose()
    app.dependency_overrides.clear()


# Seed helpers

async def create_unit(db: AsyncSession, unit_number: str = "101", property_name: str = "Maple Court") -> Unit:
    prop = Property(
        name=property_name,
        address="12 Maple St",
        city="Toronto",
        province="ON",
        postal_code="M4B 1B3",
    )
    db.add(prop)
    await db.flush()
    unit = Unit(property_id=prop.id, unit_number=unit_number)
    db.add(unit)
    await db.commit()
    await db.refresh(unit)
    return unit


async def create_tenant(
    db: AsyncSession,
    first_name: str = "Tara",
    last_name: str = "Singh",
    email: str = "tara@example.com",
    phone: str = "+1 416 555 0100",
) -> Tenant:
    tenant = Tenant(first_name=first_name, last_name=last_name, email=email, phone=phone)
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)
    return tenant


async def create_binding(
    db: AsyncSession,
    tenant: Tenant,
    unit: Unit,
    rent_amount=Decimal("1800.00"),
    rent_due_day=1,
    is_primary: bool = True,
) -> TenantUnit:
    binding = TenantUnit(
        tenant_id=tenant.id,
        unit_id=unit.id,
        rent_amount=rent_amount,
        rent_due_day=rent_due_day,
        is_primary=is_primary,
    )
    db.add(binding)
    await db.commit()
    await db.refresh(binding)
    return binding


async def create_payment(
    db: AsyncSession,
    tenant: Tenant,
    unit: Unit,
    due_date: date,
    status: PaymentStatus = PaymentStatus.PENDING,
    amount=Decimal("1800.00"),
) -> RentPayment:
    payment = RentPayment(
        tenant_id=tenant.id,
        unit_id=unit.id,
        amount=amount,
        due_date=due_date,
        period_start=due_date.replace(day=1),
        status=status,
    )
    db.add(payment)
    await db.commit()
    await db.refresh(payment)
    return payment
