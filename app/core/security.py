import uuid
from datetime import timedelta
from typing import Any, Dict

import bcrypt
import jwt

from app.core.enum import TokenType
from app.core.settings import settings
from app.libs.formats.datetime import now_tzinfo


class SecurityService:
    def __init__(self):
        self.access_secret = settings.JWT_ACCESS_SECRET
        self.refresh_secret = settings.JWT_REFRESH_SECRET
        self.algorithm = settings.ALGORITHM
        self.access_token_expire = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_token_expire = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    # 🔐 JWT
    def create_access_token(self, sub: str, email: str, role: str) -> str:
        issued = now_tzinfo()
        payload: Dict[str, Any] = {
            "sub": sub,
            "email": email,
            "role": role,
            "tokenType": TokenType.ACCESS.value,
            "iat": issued,
            "exp": issued + self.access_token_expire,
        }
        return jwt.encode(payload, self.access_secret, algorithm=self.algorithm)

    def create_refresh_token(self, sub: str, email: str, role: str) -> tuple[str, str]:
        """Returns (token, jti)."""
        jti = str(uuid.uuid4())
        issued = now_tzinfo()
        payload: Dict[str, Any] = {
            "sub": sub,
            "email": email,
            "role": role,
            "tokenType": TokenType.REFRESH.value,
            "jti": jti,
            "iat": issued,
            "exp": issued + self.refresh_token_expire,
        }
        return jwt.encode(payload, self.refresh_secret, algorithm=self.algorithm), jti

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        payload = self._decode(token, self.access_secret)
        if payload.get("tokenType") != TokenType.ACCESS.value:
            raise ValueError("Invalid access token")
        return payload

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.refresh_secret)

    def _decode(self, token: str, secret: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise ValueError("Token expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

    # 🔑 PASSWORD
    @staticmethod
    def hash_password(plain: str) -> str:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")

    @staticmethod
    def verify_password(plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    # 🔢 one-off tokens (email verification, password reset)
    @staticmethod
    def generate_token() -> str:
        return str(uuid.uuid4())
