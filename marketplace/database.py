import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from marketplace.config import settings

logger = logging.getLogger(__name__)

# Créer le moteur de base de données asynchrone
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO_LOG,
)

# Empêche les objets d'expirer après commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides an async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            # Pas de commit ici : les services gèrent leurs transactions.
        except Exception as e:
            logger.error(f"Erreur durant la session DB, rollback: {e}", exc_info=True)
            await session.rollback()
            raise
        finally:
            await session.close()
            logger.debug("Session DB fermée.")


def import_models() -> None:
    """Importe tous les modèles pour enregistrer les tables dans SQLModel.metadata."""
    from marketplace.users import models as _users  # noqa: F401
    from marketplace.products import models as _products  # noqa: F401
    from marketplace.promotions import models as _promotions  # noqa: F401
    from marketplace.orders import models as _orders  # noqa: F401
    from marketplace.payments import models as _payments  # noqa: F401
    from marketplace.deliveries import models as _deliveries  # noqa: F401
    from marketplace.livreurs import models as _livreurs  # noqa: F401
    from marketplace.notifications import models as _notifications  # noqa: F401
    from marketplace.tickets import models as _tickets  # noqa: F401
    from marketplace.cart import models as _cart  # noqa: F401


async def create_tables():
    """Crée toutes les tables définies sur SQLModel.metadata."""
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def drop_tables():
    """Supprime toutes les tables définies sur SQLModel.metadata."""
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
