"""
Service d'authentification: hachage des mots de passe et jetons JWT
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from config import get_settings
from services.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def hash_password(self, password: str) -> str:
        """Hache un mot de passe avec bcrypt (sel par utilisateur)"""
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """Compare un mot de passe en clair avec le hash stocké"""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # hash stocké illisible
            logger.warning("Hash de mot de passe invalide en base")
            return False

    def create_access_token(self, user_id: int, now: Optional[datetime] = None) -> str:
        """
        Génère un jeton signé dont le sujet est l'identifiant utilisateur
        """
        now = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(days=self.settings.jwt_expire_days)).timestamp()),
        }
        return jwt.encode(claims, self.settings.signing_secret, algorithm=self.settings.jwt_algorithm)

    def decode_access_token(self, token: str) -> int:
        """
        Vérifie signature et expiration, renvoie l'identifiant utilisateur
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.signing_secret,
                algorithms=[self.settings.jwt_algorithm],
            )
        except ExpiredSignatureError:
            raise UnauthorizedError("Not authorized, token expired")
        except JWTError:
            raise UnauthorizedError("Not authorized, token failed")

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            raise UnauthorizedError("Not authorized, token failed")
