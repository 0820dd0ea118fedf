"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""
import os
import tempfile

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="picwall-test-")
os.environ["SMTP_HOST"] = ""

import json
import struct
import uuid
import zlib
from datetime import datetime, timedelta
from io import BytesIO
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import stripe
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_email_service, get_payment_gateway
from app.core.constants import ImageStatus, SubscriptionStatus
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.database import async_session_local, engine, get_db, seed_plans
from app.db.models.admin import Admin
from app.db.models.image import Image
from app.db.models.subscription import Subscription
from app.db.models.tenant import Tenant
from app.db.repositories.plan_repository import PlanRepository
from app.main import app
from app.services.payments import PaymentIntentInfo
from app.services.realtime import RealtimeNotifier
from app.services.storage import StorageBackend

ADMIN_PASSWORD = "AdminPassword123"


class FakeGateway:
    """In-process stand-in for StripeGateway"""

    def __init__(self):
        self.intents: Dict[str, PaymentIntentInfo] = {}
        self.customers: List[Dict[str, Any]] = []
        self.fail_customer = False

    async def create_customer(self, email, name, metadata, phone=None) -> str:
        if self.fail_customer:
            from app.core.exceptions import DependencyError
            raise DependencyError("Failed to create payment customer")
        customer_id = f"cus_{len(self.customers) + 1}"
        self.customers.append({"id": customer_id, "email": email, "name": name, "metadata": metadata})
        return customer_id

    async def create_payment_intent(
        self, amount, currency, metadata, customer_id=None, description=None, receipt_email=None
    ) -> PaymentIntentInfo:
        intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        intent = PaymentIntentInfo(
            id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret",
            customer=customer_id,
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        if payment_intent_id not in self.intents:
            raise stripe.error.InvalidRequestError(f"No such payment_intent: '{payment_intent_id}'", "id")
        return self.intents[payment_intent_id]

    def add_intent(self, status: str = "succeeded", amount: int = 3500, currency: str = "thb", **metadata) -> PaymentIntentInfo:
        intent_id = f"pi_{uuid.uuid4().hex[:16]}"
        intent = PaymentIntentInfo(
            id=intent_id, status=status, amount=amount, currency=currency, customer="cus_test", metadata=metadata
        )
        self.intents[intent_id] = intent
        return intent

    def succeed(self, payment_intent_id: str):
        self.intents[payment_intent_id].status = "succeeded"

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if signature != "valid-signature":
            raise stripe.error.SignatureVerificationError("No signatures found matching the expected signature", signature)
        return json.loads(payload)


class InMemoryStorage(StorageBackend):

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        self.files[key] = data
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        self.files.pop(key, None)
        self.deleted.append(key)

    def public_url(self, key: str) -> str:
        return f"/uploads/{key}"


class RecordingEmailService:
    """Collects outgoing mail instead of sending it"""

    def __init__(self, succeed: bool = True):
        self.sent: List[Dict[str, Any]] = []
        self.succeed = succeed

    async def send_welcome_email(self, **kwargs) -> bool:
        self.sent.append({"kind": "welcome", **kwargs})
        return self.succeed

    async def send_payment_receipt(self, **kwargs) -> bool:
        self.sent.append({"kind": "receipt", **kwargs})
        return self.succeed

    async def send_expiry_warning(self, **kwargs) -> bool:
        self.sent.append({"kind": "expiry", **kwargs})
        return self.succeed


def make_jpeg(width: int = 640, height: int = 480, color=(200, 40, 40)) -> bytes:
    buffer = BytesIO()
    PILImage.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


def png_header(width: int, height: int) -> bytes:
    """A tiny PNG that only declares its dimensions"""
    def chunk(kind: bytes, payload: bytes) -> bytes:
        crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", zlib.compress(b"")) + chunk(b"IEND", b"")


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create clean database for each test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_local() as session:
        await seed_plans(session)
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def notifier() -> RealtimeNotifier:
    return RealtimeNotifier()


@pytest.fixture
async def client(db_session, gateway, email_service, storage, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and collaborator overrides"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_email_service] = lambda: email_service

    # Lifespan does not run under ASGITransport
    app.state.storage = storage
    app.state.notifier = notifier
    app.state.rate_limiter = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def create_tenant(
    session: AsyncSession,
    slug: str = "wedding",
    plan_key: str = "oneweek",
    period_end: Optional[datetime] = None,
    is_active: bool = True,
    payment_enabled: bool = False,
    price_amount: int = 3500,
    with_subscription: bool = True,
) -> Tenant:
    tenant = Tenant(
        slug=slug,
        name=slug.title(),
        owner_email=f"owner@{slug}.test",
        owner_phone="0800000000",
        is_active=is_active,
        payment_enabled=payment_enabled,
        price_amount=price_amount,
        price_currency="thb",
    )
    session.add(tenant)
    await session.flush()

    if with_subscription:
        plan = await PlanRepository(session).get_by_key(plan_key)
        now = datetime.utcnow()
        session.add(Subscription(
            tenant_id=tenant.id,
            plan_id=plan.id,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=now - timedelta(days=1),
            current_period_end=period_end or now + timedelta(days=6),
        ))

    await session.commit()
    await session.refresh(tenant)
    return tenant


async def create_admin(
    session: AsyncSession,
    username: str,
    tenant: Optional[Tenant] = None,
    is_super_admin: bool = False,
) -> Admin:
    admin = Admin(
        username=username,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        tenant_id=tenant.id if tenant else None,
        is_super_admin=is_super_admin,
        role="super_admin" if is_super_admin else "admin",
    )
    session.add(admin)
    await session.commit()
    await session.refresh(admin)
    return admin


async def create_image(
    session: AsyncSession,
    tenant: Tenant,
    status: ImageStatus = ImageStatus.PENDING,
    approved_at: Optional[datetime] = None,
    expires_at: Optional[datetime] = None,
    like_count: int = 0,
    comment_count: int = 0,
) -> Image:
    filename = f"{uuid.uuid4()}.jpg"
    image = Image(
        tenant_id=tenant.id,
        filename=filename,
        file_path=f"{tenant.slug}/images/{filename}",
        thumbnail_path=f"{tenant.slug}/thumbnails/{filename}",
        file_url=f"/uploads/{tenant.slug}/images/{filename}",
        status=status.value,
        approved_at=approved_at,
        expires_at=expires_at,
        like_count=like_count,
        comment_count=comment_count,
    )
    session.add(image)
    await session.commit()
    await session.refresh(image)
    return image


def auth_headers(admin: Admin) -> dict:
    token = create_access_token({
        "sub": admin.id,
        "tenant_id": admin.tenant_id,
        "is_super_admin": admin.is_super_admin,
        "role": admin.role,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def tenant(db_session) -> Tenant:
    return await create_tenant(db_session)


@pytest.fixture
async def tenant_admin(db_session, tenant) -> Admin:
    return await create_admin(db_session, "wedding_admin", tenant)


@pytest.fixture
async def super_admin(db_session) -> Admin:
    return await create_admin(db_session, "root", is_super_admin=True)
