import os
import logging
from functools import lru_cache

from dotenv import load_dotenv

from services.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

load_dotenv()

DEV_ENVIRONMENTS = {"development", "dev", "local", "test"}
DEV_JWT_SECRET = "dev-secret-do-not-use-in-production"


class Settings:
    """Configuration de l'application lue depuis l'environnement (.env supporté)"""

    def __init__(self):
        self.app_env = os.getenv("APP_ENV", "production").strip().lower()
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./finance.db")
        self.jwt_secret = os.getenv("JWT_SECRET") or None
        self.jwt_algorithm = "HS256"
        self.jwt_expire_days = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
        self.db_connect_retries = int(os.getenv("DB_CONNECT_RETRIES", "5"))
        self.db_connect_backoff = float(os.getenv("DB_CONNECT_BACKOFF", "0.5"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        cors_origins = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins = [o.strip() for o in cors_origins.split(",") if o.strip()]

    @property
    def is_dev(self) -> bool:
        return self.app_env in DEV_ENVIRONMENTS

    @property
    def signing_secret(self) -> str:
        if self.jwt_secret:
            return self.jwt_secret
        if self.is_dev:
            return DEV_JWT_SECRET
        raise ConfigurationError("JWT_SECRET must be set when APP_ENV is not a development mode")

    def validate(self):
        """Refuse de démarrer avec une configuration incomplète"""
        if not self.jwt_secret:
            if not self.is_dev:
                raise ConfigurationError(
                    f"JWT_SECRET is not set (APP_ENV={self.app_env}); refusing to start"
                )
            logger.warning("JWT_SECRET non défini, utilisation du secret de développement")
        if self.jwt_expire_days <= 0:
            raise ConfigurationError("JWT_EXPIRE_DAYS must be a positive number of days")
        if self.db_connect_retries < 1:
            raise ConfigurationError("DB_CONNECT_RETRIES must be at least 1")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
