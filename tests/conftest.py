import os
from datetime import date, datetime, timedelta

# Keep imports from touching a real database or Redis
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from servicehub import models, models_commission, models_invoice  # noqa: E402,F401
from servicehub.auth import Actor, create_access_token  # noqa: E402
from servicehub.database import Base  # noqa: E402
from servicehub.domain.availability.allocator import SlotAllocator  # noqa: E402
from servicehub.domain.bookings.schemas import BookingCreate  # noqa: E402
from servicehub.domain.bookings.service import BookingService  # noqa: E402
from servicehub.domain.providers.schemas import ProviderCreate  # noqa: E402
from servicehub.domain.providers.service import ProviderService  # noqa: E402
from servicehub.enums import ActorRole, BookingAction, ProviderTier  # noqa: E402

# Monday morning
FIXED_NOW = datetime(2026, 10, 19, 8, 0)
TUESDAY = date(2026, 10, 20)
SATURDAY = date(2026, 10, 24)
CUSTOMER_EMAIL = "ama@example.com"
ADMIN = Actor(subject="admin-1", email="ops@servicehub.example", role=ActorRole.ADMIN)
CUSTOMER = Actor(subject="cust-1", email=CUSTOMER_EMAIL, role=ActorRole.CUSTOMER)


def fixed_clock():
    return FIXED_NOW


def provider_actor(provider) -> Actor:
    return Actor(subject=f"prov-{provider.id}", email=provider.email, role=ActorRole.PROVIDER, provider_id=provider.id)


def future_weekday(weekday: int = 1, days_ahead: int = 14) -> date:
    """A date at least `days_ahead` from the real today, on the given weekday"""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_HOST", raising=False)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_provider(db):
    counter = {"n": 0}

    def _make(tier: ProviderTier = ProviderTier.VERIFIED, email=None):
        counter["n"] += 1
        data = ProviderCreate(
            email=email or f"provider{counter['n']}@example.com",
            businessName=f"Provider {counter['n']}",
            tier=tier,
        )
        return ProviderService(db, clock=fixed_clock).register_provider(data)

    return _make


@pytest.fixture
def provider(make_provider):
    return make_provider(ProviderTier.VERIFIED)


@pytest.fixture
def booking_service(db):
    return BookingService(db, clock=fixed_clock, allocator=SlotAllocator(db, clock=fixed_clock))


@pytest.fixture
def make_booking(booking_service):
    def _make(provider, day=TUESDAY, time="10:00", details="Deep clean of a two bedroom flat", email=CUSTOMER_EMAIL, **extra):
        data = BookingCreate(providerId=provider.id, date=day, time=time, serviceDetails=details, **extra)
        return booking_service.request_booking(data, email)

    return _make


@pytest.fixture
def completed_booking(make_booking, booking_service):
    """Run a booking through confirm → start → complete"""

    def _make(provider, **kwargs):
        booking = make_booking(provider, **kwargs)
        actor = provider_actor(provider)
        for action in (BookingAction.CONFIRM, BookingAction.START, BookingAction.COMPLETE):
            booking = booking_service.transition(booking.id, action, actor)
        return booking

    return _make


def token_for(role: str, email: str, provider_id=None, subject=None) -> str:
    claims = {"sub": subject or email, "email": email, "role": role}
    if provider_id is not None:
        claims["provider_id"] = provider_id
    return create_access_token(claims)


def auth_header(role: str, email: str, provider_id=None) -> dict:
    return {"Authorization": f"Bearer {token_for(role, email, provider_id)}"}


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from servicehub.database import get_db
    from servicehub.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
