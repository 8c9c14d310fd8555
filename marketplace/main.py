"""
Module principal de l'application FastAPI de la marketplace.

Configure l'instance FastAPI, le middleware CORS et inclut les routeurs
de chaque domaine (authentification, utilisateurs, produits, promotions,
panier, commandes, paiements, livraisons, livreurs, support, notifications).
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.auth.router import auth_router
from marketplace.cart.router import cart_router
from marketplace.config import settings
from marketplace.database import create_tables
from marketplace.deliveries.router import delivery_router
from marketplace.livreurs.router import livreur_router
from marketplace.notifications.dependencies import get_notification_dispatcher
from marketplace.notifications.router import notification_router
from marketplace.orders.router import order_router
from marketplace.payments.router import payment_router
from marketplace.products.router import product_router
from marketplace.promotions.router import promotion_router
from marketplace.tickets.router import ticket_router
from marketplace.users.router import user_router

# Configurer le logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Tables vérifiées, application prête.")
    yield
    # Laisser partir les notifications encore en vol
    await get_notification_dispatcher().drain()
    logger.info("Arrêt de l'application.")


app = FastAPI(
    title="Marketplace API",
    description="API multi-rôles : commandes, inventaire, promotions, paiements, livraisons et support.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range"],
)

# ======================================================
# Inclure les routeurs
# ======================================================
prefix = settings.API_V1_PREFIX

app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Authentification"])
app.include_router(user_router, prefix=f"{prefix}/users", tags=["Utilisateurs"])

app.include_router(product_router, prefix=f"{prefix}/products", tags=["Produits"])
app.include_router(promotion_router, prefix=f"{prefix}/promotions", tags=["Promotions"])
app.include_router(cart_router, prefix=f"{prefix}/cart", tags=["Panier"])

app.include_router(order_router, prefix=f"{prefix}/orders", tags=["Orders"])
app.include_router(payment_router, prefix=f"{prefix}/payments", tags=["Payments"])

app.include_router(delivery_router, prefix=f"{prefix}/deliveries", tags=["Deliveries"])
app.include_router(livreur_router, prefix=f"{prefix}/livreurs", tags=["Livreurs"])

app.include_router(ticket_router, prefix=f"{prefix}/tickets", tags=["Support"])
app.include_router(notification_router, prefix=f"{prefix}/notifications", tags=["Notifications"])


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok"}
