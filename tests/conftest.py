# Standard Library
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock

# Third-Party Libraries
import pytest_asyncio
import fakeredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# First-Party Libraries
from marketplace.auth.security import create_user_token, get_password_hash
from marketplace.cart.repositories import CartRepository
from marketplace.cart.service import CartService
from marketplace.database import get_db_session, import_models
from marketplace.deliveries.cache import DeliveryCache, get_redis_client
from marketplace.deliveries.models import Delivery
from marketplace.deliveries.repositories import DeliveryRepository
from marketplace.deliveries.service import DeliveryService
from marketplace.livreurs.models import Livreur
from marketplace.livreurs.repositories import LivreurRepository
from marketplace.livreurs.service import LivreurService
from marketplace.main import app
from marketplace.notifications.dependencies import get_notification_dispatcher
from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.notifications.repositories import NotificationRepository
from marketplace.notifications.service import NotificationService
from marketplace.notifications.sender import AbstractNotificationSender
from marketplace.orders.models import Order
from marketplace.orders.repositories import OrderRepository
from marketplace.orders.service import OrderService
from marketplace.payments.repositories import PaymentRepository
from marketplace.payments.service import PaymentService
from marketplace.products.models import Product
from marketplace.products.repositories import ProductRepository
from marketplace.promotions.repositories import PromotionRepository
from marketplace.promotions.service import PromotionService
from marketplace.tickets.repositories import TicketRepository
from marketplace.tickets.service import TicketService
from marketplace.users.models import User
from marketplace.users.repositories import UserRepository

# URL de base pour la DB en mémoire
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

import_models()

# --- Fixtures de Base ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Crée un engine, des tables, et fournit une session DB en mémoire pour chaque test."""
    engine: AsyncEngine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with TestingSessionLocal() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def notification_sender() -> AsyncMock:
    return AsyncMock(spec=AbstractNotificationSender)


@pytest_asyncio.fixture(scope="function")
async def notifier(notification_sender: AsyncMock) -> NotificationDispatcher:
    return NotificationDispatcher(sender=notification_sender)


@pytest_asyncio.fixture(scope="function")
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def test_client(
    db_session: AsyncSession,
    notifier: NotificationDispatcher,
    redis_client,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient httpx branché sur la session de test, le dispatcher mocké et fakeredis."""
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_notification_dispatcher] = lambda: notifier
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    await notifier.drain()

# --- Services construits sur la session de test ---

@pytest_asyncio.fixture(scope="function")
async def promotion_service(db_session: AsyncSession, notifier: NotificationDispatcher) -> PromotionService:
    return PromotionService(PromotionRepository(db_session), notifier)


@pytest_asyncio.fixture(scope="function")
async def payment_service(db_session: AsyncSession) -> PaymentService:
    return PaymentService(PaymentRepository(db_session))


@pytest_asyncio.fixture(scope="function")
async def order_service(
    db_session: AsyncSession,
    promotion_service: PromotionService,
    payment_service: PaymentService,
    notifier: NotificationDispatcher,
) -> OrderService:
    return OrderService(
        order_repository=OrderRepository(db_session),
        product_repository=ProductRepository(db_session),
        promotion_service=promotion_service,
        payment_service=payment_service,
        notifier=notifier,
    )


@pytest_asyncio.fixture(scope="function")
async def delivery_service(db_session: AsyncSession, notifier: NotificationDispatcher, redis_client) -> DeliveryService:
    return DeliveryService(DeliveryRepository(db_session), DeliveryCache(redis_client, ttl=3600), notifier)


@pytest_asyncio.fixture(scope="function")
async def livreur_service(db_session: AsyncSession, notifier: NotificationDispatcher, redis_client) -> LivreurService:
    return LivreurService(
        livreur_repository=LivreurRepository(db_session),
        delivery_repository=DeliveryRepository(db_session),
        cache=DeliveryCache(redis_client, ttl=3600),
        notifier=notifier,
    )

@pytest_asyncio.fixture(scope="function")
async def ticket_service(db_session: AsyncSession, notifier: NotificationDispatcher) -> TicketService:
    return TicketService(TicketRepository(db_session), UserRepository(db_session), notifier, max_open_tickets=2)


@pytest_asyncio.fixture(scope="function")
async def notification_service(db_session: AsyncSession) -> NotificationService:
    return NotificationService(NotificationRepository(db_session))


@pytest_asyncio.fixture(scope="function")
async def cart_service(db_session: AsyncSession) -> CartService:
    return CartService(CartRepository(db_session), ProductRepository(db_session))

# --- Fixtures Utilisateur et Authentification ---

async def _create_user(db_session: AsyncSession, email: str, role: str) -> User:
    user = User(email=email, name=email.split("@")[0], role=role, password_hash=get_password_hash("testpassword"))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers(user: User) -> dict[str, str]:
    token = create_user_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", "admin")


@pytest_asyncio.fixture(scope="function")
async def client_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "client@example.com", "client")


@pytest_asyncio.fixture(scope="function")
async def merchant_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "merchant@example.com", "merchant")


@pytest_asyncio.fixture(scope="function")
async def livreur_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "livreur@example.com", "livreur")


@pytest_asyncio.fixture(scope="function")
async def livreur_user_2(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "livreur2@example.com", "livreur")


@pytest_asyncio.fixture(scope="function")
async def support_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "support@example.com", "support")


@pytest_asyncio.fixture(scope="function")
async def auth_headers_admin(admin_user: User) -> dict[str, str]:
    return _headers(admin_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_client(client_user: User) -> dict[str, str]:
    return _headers(client_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_merchant(merchant_user: User) -> dict[str, str]:
    return _headers(merchant_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_support(support_user: User) -> dict[str, str]:
    return _headers(support_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_livreur(livreur_user: User, livreur: Livreur) -> dict[str, str]:
    return _headers(livreur_user)

# --- Fixtures métier ---

@pytest_asyncio.fixture(scope="function")
async def livreur(db_session: AsyncSession, livreur_user: User) -> Livreur:
    """Livreur positionné à Paris."""
    profile = Livreur(user_id=livreur_user.id, latitude=48.8566, longitude=2.3522)
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest_asyncio.fixture(scope="function")
async def livreur_2(db_session: AsyncSession, livreur_user_2: User) -> Livreur:
    """Livreur positionné à Lyon."""
    profile = Livreur(user_id=livreur_user_2.id, latitude=45.7640, longitude=4.8357)
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest_asyncio.fixture(scope="function")
async def product_a(db_session: AsyncSession, merchant_user: User) -> Product:
    product = Product(name="Rosier", price=Decimal("12.50"), stock=10, merchant_id=merchant_user.id)
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


@pytest_asyncio.fixture(scope="function")
async def product_b(db_session: AsyncSession, merchant_user: User) -> Product:
    product = Product(name="Terreau 20L", price=Decimal("8.00"), stock=3, merchant_id=merchant_user.id)
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


@pytest_asyncio.fixture(scope="function")
async def pending_order(db_session: AsyncSession, client_user: User, merchant_user: User) -> Order:
    order = Order(client_id=client_user.id, merchant_id=merchant_user.id, total_price=Decimal("25.00"))
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


@pytest_asyncio.fixture(scope="function")
async def pending_delivery(db_session: AsyncSession, pending_order: Order) -> Delivery:
    """Livraison en attente au départ de Lyon."""
    delivery = Delivery(
        order_id=pending_order.id,
        payment=Decimal("6.50"),
        start_latitude=45.7640,
        start_longitude=4.8357,
        status_history=[{"status": "pending"}],
    )
    db_session.add(delivery)
    await db_session.commit()
    await db_session.refresh(delivery)
    return delivery
