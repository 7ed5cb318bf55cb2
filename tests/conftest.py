import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from tortoise import Tortoise

from agrohaat.main import app
from agrohaat.core.database import tortoise_config
from agrohaat.core.security.auth import create_access_token
from agrohaat.enums.bid_status import BidStatus
from agrohaat.enums.user_role import UserRole
from agrohaat.models.bid import Bid
from agrohaat.models.product import Product
from agrohaat.models.profile import Profile


@pytest.fixture
async def db():
    """Fresh in-memory database for each test"""
    await Tortoise.init(config=tortoise_config("sqlite://:memory:"))
    await Tortoise.generate_schemas()
    yield
    await Tortoise._drop_databases()


@pytest.fixture
async def client(db) -> AsyncGenerator:
    """Create async HTTP client for testing"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
async def test_buyer(db) -> Profile:
    """Create a test buyer"""
    return await Profile.create(
        name="Rahim Uddin",
        email="buyer@example.com",
        role=UserRole.buyer,
        phone="01700000001"
    )


@pytest.fixture
async def other_buyer(db) -> Profile:
    return await Profile.create(
        name="Karim Mia",
        email="buyer2@example.com",
        role=UserRole.buyer
    )


@pytest.fixture
async def test_seller(db) -> Profile:
    """Create a test seller"""
    return await Profile.create(
        name="Abdul Kader",
        email="seller@example.com",
        role=UserRole.seller,
        address="Bogura"
    )


@pytest.fixture
async def test_admin(db) -> Profile:
    """Create a test admin user"""
    return await Profile.create(
        name="Admin",
        email="admin@example.com",
        role=UserRole.admin
    )


@pytest.fixture
async def test_product(test_seller: Profile) -> Product:
    """Open product with no bidding window limits"""
    return await Product.create(
        seller=test_seller,
        title="আলু (Potato)",
        price=Decimal("1000.00"),
        quantity=Decimal("50"),
        unit="kg",
        location="Bogura",
        category="vegetables"
    )


@pytest.fixture
def make_bid():
    """Insert a bid directly in a given state"""
    async def _make_bid(product: Product, buyer: Profile, amount="1150.00", status=BidStatus.pending, **fields):
        return await Bid.create(
            product=product,
            buyer=buyer,
            amount=Decimal(amount),
            status=status,
            **fields
        )
    return _make_bid


@pytest.fixture
def expired_deadline(now: datetime) -> datetime:
    return now - timedelta(minutes=1)


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id)}"}


@pytest.fixture
def headers_for():
    """Bearer headers for any profile"""
    return auth_headers


@pytest.fixture
def buyer_headers(test_buyer: Profile) -> dict:
    return auth_headers(test_buyer)


@pytest.fixture
def seller_headers(test_seller: Profile) -> dict:
    return auth_headers(test_seller)


@pytest.fixture
def admin_headers(test_admin: Profile) -> dict:
    return auth_headers(test_admin)
