"""Pytest configuration and fixtures for TaxDesk tests.

Every test gets its own in-memory SQLite database. The app's `get_db`
dependency is overridden with a session factory bound to it, so request
handlers and fixtures see the same data while each request still runs in
its own transaction.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "rzp_webhook_secret")

import itertools
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.jwt import create_access_token
from app.auth.password import hash_password
from app.database import Base, get_db
from app.main import app
from app.models import *  # noqa: F401,F403 (registers every table on Base.metadata)
from app.models.client import Client
from app.models.document import Document, DocumentType
from app.models.filing import Filing, FilingStatus, FilingType
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.user import User, UserRole
from app.services.razorpay import RazorpayClient, get_gateway

TEST_PASSWORD = "Password123"

_pan_counter = itertools.count(1)
_order_counter = itertools.count(1)


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data. Fixtures commit what they create."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with `get_db` bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

async def create_user(
    db: AsyncSession,
    email: str,
    role: UserRole = UserRole.CUSTOMER,
    *,
    full_name: str = "Test User",
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        full_name=full_name,
        hashed_password=hash_password(TEST_PASSWORD),
        role=role,
        is_active=is_active,
        is_verified=True,
    )
    db.add(user)
    await db.commit()
    return user


async def create_client_profile(
    db: AsyncSession,
    owner: User,
    ca: User | None = None,
    pan_number: str | None = None,
) -> Client:
    profile = Client(
        user=owner,
        ca=ca,
        pan_number=pan_number or f"ABCDE{next(_pan_counter):04d}F",
        occupation="Engineer",
    )
    db.add(profile)
    await db.commit()
    return profile


def auth_headers_for(user: User) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: `await make_user(email, role, **kwargs)`."""

    async def _make(email: str, role: UserRole = UserRole.CUSTOMER, **kwargs) -> User:
        return await create_user(db_session, email, role, **kwargs)

    return _make


@pytest.fixture
def make_client_profile(db_session: AsyncSession):
    """Factory: `await make_client_profile(owner, ca=None, pan_number=None)`."""

    async def _make(owner: User, ca: User | None = None, pan_number: str | None = None) -> Client:
        return await create_client_profile(db_session, owner, ca, pan_number)

    return _make


@pytest.fixture
def auth_headers():
    """Factory: `auth_headers(user)` -> bearer header for that user."""
    return auth_headers_for


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@example.com", UserRole.ADMIN, full_name="Admin User")


@pytest_asyncio.fixture
async def ca_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "ca@example.com", UserRole.CA, full_name="Chartered Accountant")


@pytest_asyncio.fixture
async def other_ca(db_session: AsyncSession) -> User:
    return await create_user(db_session, "ca2@example.com", UserRole.CA, full_name="Other Accountant")


@pytest_asyncio.fixture
async def customer_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "customer@example.com", full_name="Customer User")


@pytest_asyncio.fixture
async def other_customer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com", full_name="Other Customer")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def ca_headers(ca_user: User) -> dict:
    return auth_headers_for(ca_user)


@pytest.fixture
def customer_headers(customer_user: User) -> dict:
    return auth_headers_for(customer_user)


@pytest.fixture
def other_headers(other_customer: User) -> dict:
    return auth_headers_for(other_customer)


@pytest_asyncio.fixture
async def customer_client(db_session: AsyncSession, customer_user: User, ca_user: User) -> Client:
    """Customer's profile, assigned to `ca_user`."""
    return await create_client_profile(db_session, customer_user, ca_user, "ABCDE1234F")


@pytest_asyncio.fixture
async def other_client(db_session: AsyncSession, other_customer: User) -> Client:
    """Another customer's profile with no CA."""
    return await create_client_profile(db_session, other_customer, None, "ZYXWV9876K")


@pytest.fixture
def make_filing(db_session: AsyncSession):
    """Factory: `await make_filing(client_profile, **fields)`; the CA follows the client."""

    async def _make(profile: Client, **fields) -> Filing:
        fields.setdefault("tax_year", "2024-2025")
        fields.setdefault("filing_type", FilingType.INDIVIDUAL)
        fields.setdefault("status", FilingStatus.DRAFT)
        filing = Filing(client=profile, ca_id=profile.ca_id, **fields)
        db_session.add(filing)
        await db_session.commit()
        return filing

    return _make


@pytest_asyncio.fixture
async def customer_filing(make_filing, customer_client: Client) -> Filing:
    """Draft individual filing of `customer_client`, assigned to `ca_user`."""
    return await make_filing(customer_client)


@pytest.fixture
def make_document(db_session: AsyncSession):
    """Factory: `await make_document(filing, uploader, **fields)`; unverified form16 by default."""

    async def _make(filing: Filing, uploader: User, **fields) -> Document:
        fields.setdefault("document_type", DocumentType.FORM16)
        fields.setdefault("file_name", "form16.pdf")
        fields.setdefault("file_path", "uploads/form16.pdf")
        fields.setdefault("file_size", 20480)
        fields.setdefault("mime_type", "application/pdf")
        fields.setdefault("is_verified", False)
        document = Document(filing=filing, uploaded_by=uploader.id, **fields)
        db_session.add(document)
        await db_session.commit()
        return document

    return _make


@pytest.fixture
def make_payment(db_session: AsyncSession):
    """Factory: `await make_payment(client_profile, filing=None, **fields)`; settled by default."""

    async def _make(profile: Client, filing: Filing | None = None, **fields) -> Payment:
        seq = next(_order_counter)
        fields.setdefault("amount", 1000.0)
        fields.setdefault("currency", "INR")
        fields.setdefault("status", PaymentStatus.SUCCESS)
        fields.setdefault("payment_method", PaymentMethod.UPI)
        fields.setdefault("gateway_order_id", f"order_seed{seq:04d}")
        fields.setdefault("gateway_payment_id", f"pay_seed{seq:04d}")
        fields.setdefault("refund_amount", 0)
        payment = Payment(client=profile, filing=filing, **fields)
        db_session.add(payment)
        await db_session.commit()
        return payment

    return _make


# ── Payment Gateway ──────────────────────────────────────────────

class FakeGateway(RazorpayClient):
    """Records gateway calls and answers like Razorpay's test mode."""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret="rzp_test_secret")
        self.calls: list[tuple[str, dict]] = []
        self.fetched: list[str] = []
        self._orders = itertools.count(1)
        self._refunds = itertools.count(1)

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        if method == "GET":
            payment_id = path.rsplit("/", 1)[-1]
            self.fetched.append(payment_id)
            return {"id": payment_id, "entity": "payment", "status": "captured", "method": "upi"}
        self.calls.append((path, payload))
        if path == "/orders":
            return {
                "id": f"order_test{next(self._orders):04d}",
                "entity": "order",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload["receipt"],
                "status": "created",
            }
        return {
            "id": f"rfnd_test{next(self._refunds):04d}",
            "entity": "refund",
            "amount": payload["amount"],
            "status": "processed",
        }


@pytest.fixture
def fake_gateway() -> FakeGateway:
    gateway = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.pop(get_gateway, None)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "auth: Authentication tests")
    config.addinivalue_line("markers", "integration: Integration tests")
