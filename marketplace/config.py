import logging
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Charger les variables d'environnement AVANT de définir la classe Settings
load_dotenv()

DEFAULT_JWT_SECRET = "remplacer_par_une_vraie_cle_secrete_forte"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignorer les variables d'env non définies dans le modèle
    )

    # --- Base de Données ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./marketplace.db"
    DB_ECHO_LOG: bool = False

    # --- JWT ---
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Cache Redis ---
    # Une URL vide désactive le cache des livraisons
    REDIS_URL: str = ""
    DELIVERY_CACHE_TTL_SECONDS: int = 3600

    # --- Support ---
    SUPPORT_MAX_OPEN_TICKETS: int = 10

    # --- Notifications ---
    # "database" : notifications persistées ; "log" : simple journalisation
    NOTIFICATION_SENDER: str = "database"

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # --- Application ---
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


settings = Settings()

if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
    logger.warning("La variable JWT_SECRET_KEY utilise la valeur par défaut. Veuillez définir une clé secrète forte.")

logger.info(f"Configuration chargée: DB={settings.DATABASE_URL.split('://')[0]}, cache={'on' if settings.REDIS_URL else 'off'}")
