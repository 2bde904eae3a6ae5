from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from fastapi import Depends, HTTPException, status
from google.auth.transport import requests
from google.oauth2 import id_token
from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.enum import TokenType, UserRole
from app.core.redis import RedisClient, get_redis
from app.core.security import SecurityService
from app.core.settings import settings
from app.db.models.database import RefreshSession, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.libs.formats.mappers import USER_LOAD, to_user
from app.schemas.auth.user import (
    ForgotPassword,
    GoogleLogin,
    LoginUser,
    RefreshToken,
    ResendVerification,
    ResetPassword,
    UserCreate,
    VerifyEmail,
)
from app.services.shares.mailer import RESET_LINK_EXPIRES_MINUTES, MailerService

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = "openid email profile"


def refresh_key(user_id: str, jti: str) -> str:
    return f"rt:{user_id}:{jti}"


def reset_key(token: str) -> str:
    return f"reset:{token}"


class AuthService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
        mail_service: MailerService = Depends(MailerService),
        redis: RedisClient = Depends(get_redis),
    ):
        self.db = db
        self.security = security
        self.mail_service = mail_service
        self.redis = redis

    async def _load_user(self, *criteria) -> User | None:
        return await self.db.scalar(
            select(User).options(*USER_LOAD).where(*criteria).execution_options(populate_existing=True)
        )

    # ==============================
    # 🧩 TOKENS
    # ==============================

    async def issue_tokens_async(self, user: User) -> dict[str, str]:
        access_token = self.security.create_access_token(user.id, user.email, user.role)
        refresh_token, jti = self.security.create_refresh_token(user.id, user.email, user.role)

        ttl = self.security.refresh_token_expire
        await self.redis.setex(refresh_key(user.id, jti), int(ttl.total_seconds()), "1")
        try:
            self.db.add(RefreshSession(id=jti, user_id=user.id, expires_at=get_now() + ttl))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return {"accessToken": access_token, "refreshToken": refresh_token}

    async def _revoke_session(self, user_id: str, jti: str):
        await self.redis.delete(refresh_key(user_id, jti))
        await self.db.execute(
            update(RefreshSession)
            .where(RefreshSession.id == jti, RefreshSession.revoked_at.is_(None))
            .values(revoked_at=get_now())
        )
        await self.db.commit()

    async def _session_payload(self, user: User) -> dict[str, Any]:
        tokens = await self.issue_tokens_async(user)
        return {"user": to_user(user), **tokens}

    # ==============================
    # 🧩 REGISTRATION / VERIFICATION
    # ==============================

    async def register_async(self, schema: UserCreate) -> dict[str, Any]:
        email = schema.email.lower()
        try:
            existing_id = await self.db.scalar(select(User.id).where(User.email == email))
            if existing_id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="An account with this email already exists",
                )
            token = self.security.generate_token()
            new_user = User(
                name=schema.name,
                email=email,
                password_hash=self.security.hash_password(schema.password),
                role=UserRole.LEARNER.value,
                department="General",
                email_verification_token=token,
                is_email_verified=False,
            )
            self.db.add(new_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        try:
            await self.mail_service.send_verification_email(email, token)
        except Exception as e:
            logger.error(f"Failed to send verification email to {email}: {e}")
            if settings.is_production:
                link = self.mail_service.verification_link(token)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=(
                        "Registration successful/created, but failed to send email. "
                        f"MANUAL VERIFICATION LINK: {link} . Error details: {e}"
                    ),
                )

        return {"message": "Registration successful. Please check your email to verify your account."}

    async def verify_email_async(self, schema: VerifyEmail) -> dict[str, Any]:
        try:
            user = await self._load_user(User.email_verification_token == schema.token)
            if not user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or expired verification token",
                )
            user.is_email_verified = True
            user.email_verification_token = None
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return await self._session_payload(user)

    async def resend_verification_async(self, schema: ResendVerification) -> dict[str, str]:
        """Rotate the verification token and send it again."""
        try:
            user = await self.db.scalar(select(User).where(User.email == schema.email.lower()))
            if not user:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
            if user.is_email_verified:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already verified")

            token = self.security.generate_token()
            user.email_verification_token = token
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.mail_service.send_verification_email(user.email, token)
        return {"message": "Verification email sent"}

    # ==============================
    # 🧩 LOGIN / SESSIONS
    # ==============================

    async def login_async(self, schema: LoginUser) -> dict[str, Any]:
        username = schema.username.strip().lower()
        user = await self._load_user(
            or_(
                User.email == username,
                func.lower(User.email).startswith(f"{username}@", autoescape=True),
            )
        )
        logger.info(f"Login attempt for {username}: user found? {user is not None}")

        if not user or not user.password_hash:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )
        if not self.security.verify_password(schema.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )

        # managers and admins may predate email verification
        if not user.is_email_verified and user.role == UserRole.LEARNER.value:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Please verify your email address before logging in.",
            )

        return await self._session_payload(user)

    async def refresh_async(self, schema: RefreshToken) -> dict[str, str]:
        try:
            payload = self.security.decode_refresh_token(schema.refresh_token)
        except ValueError:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
        user_id, jti = payload.get("sub"), payload.get("jti")
        if payload.get("tokenType") != TokenType.REFRESH.value or not jti or not user_id:
            raise HTTPException(status_code=401, detail="Invalid refresh token")

        if not await self.redis.get(refresh_key(user_id, jti)):
            raise HTTPException(status_code=401, detail="Refresh token expired")

        try:
            await self._revoke_session(user_id, jti)
        except Exception:
            await self.db.rollback()
            raise

        user = await self.db.scalar(select(User).where(User.id == user_id))
        if not user:
            raise HTTPException(status_code=401, detail="User not found")
        return await self.issue_tokens_async(user)

    async def logout_async(self, schema: RefreshToken) -> None:
        try:
            payload = self.security.decode_refresh_token(schema.refresh_token)
            if payload.get("jti") and payload.get("sub"):
                await self._revoke_session(payload["sub"], payload["jti"])
        except (ValueError, HTTPException) as e:
            logger.debug(f"Logout ignored: {e}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Logout could not mark session revoked: {e}")

    # ==============================
    # 🧩 PASSWORD RESET
    # ==============================

    async def forgot_password_async(self, schema: ForgotPassword) -> None:
        user = await self.db.scalar(select(User).where(User.email == schema.email.lower()))
        if not user:
            return
        if not user.password_hash and user.google_id:
            # Google-only account, nothing to reset
            return

        token = self.security.generate_token()
        await self.redis.setex(reset_key(token), RESET_LINK_EXPIRES_MINUTES * 60, user.id)
        await self.mail_service.send_password_reset_email(user.email, token)

    async def reset_password_async(self, schema: ResetPassword) -> None:
        user_id = await self.redis.get(reset_key(schema.token))
        if not user_id:
            raise HTTPException(status_code=404, detail="Reset token invalid or expired")
        try:
            user = await self.db.scalar(select(User).where(User.id == user_id))
            if not user:
                raise HTTPException(status_code=404, detail="Reset token invalid or expired")
            user.password_hash = self.security.hash_password(schema.new_password)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.redis.delete(reset_key(schema.token))

    # ==============================
    # 🧩 GOOGLE
    # ==============================

    @staticmethod
    def _require_google():
        if not settings.GOOGLE_CLIENT_ID:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Google login is not configured",
            )

    def google_authorize_url(self) -> str:
        self._require_google()
        params = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.GOOGLE_CALLBACK_URL,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def _verify_google_id_token(self, credential: str) -> dict[str, Any]:
        try:
            return await run_in_threadpool(
                id_token.verify_oauth2_token,
                credential,
                requests.Request(),
                settings.GOOGLE_CLIENT_ID,
            )
        except ValueError as e:
            logger.warning(f"Google ID token rejected: {e}")
            raise HTTPException(status_code=401, detail="Invalid Google credential")

    async def _exchange_google_code(self, code: str) -> str:
        data = {
            "code": code,
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": settings.GOOGLE_CALLBACK_URL,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=15) as client:
                res = await client.post(GOOGLE_TOKEN_URL, data=data)
                res.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Google code exchange failed: {e}")
            raise HTTPException(status_code=401, detail="Google authentication failed")

        token = res.json().get("id_token")
        if not token:
            raise HTTPException(status_code=401, detail="Google authentication failed")
        return token

    async def _resolve_google_user(self, info: dict[str, Any]) -> User:
        google_uid = info.get("sub")
        email = (info.get("email") or "").lower()
        if not google_uid or not email:
            raise HTTPException(400, "Google did not return a valid email")

        try:
            user = await self._load_user(User.google_id == google_uid)
            if user:
                return user

            user = await self._load_user(User.email == email)
            if user:
                user.google_id = google_uid
                user.is_email_verified = True
                user.email_verification_token = None
                await self.db.commit()
                return user

            name = (
                info.get("name")
                or " ".join(p for p in (info.get("given_name"), info.get("family_name")) if p)
                or email.split("@")[0]
            )
            new_user = User(
                name=name,
                email=email,
                google_id=google_uid,
                avatar=info.get("picture"),
                role=UserRole.LEARNER.value,
                department="General",
                is_email_verified=True,
            )
            self.db.add(new_user)
            await self.db.commit()
            logger.info(f"Created learner {email} from Google sign-in")
            return await self._load_user(User.id == new_user.id)
        except Exception:
            await self.db.rollback()
            raise

    async def login_google_async(self, schema: GoogleLogin) -> dict[str, Any]:
        self._require_google()
        info = await self._verify_google_id_token(schema.credential)
        user = await self._resolve_google_user(info)
        return await self._session_payload(user)

    @staticmethod
    def google_denied_url(error: Optional[str] = None) -> str:
        """Where to send the browser when Google returns without a code."""
        logger.info(f"Google sign-in cancelled: {error or 'no code'}")
        return f"{settings.FRONTEND_URL}/login?{urlencode({'error': error or 'google_login_failed'})}"

    async def google_callback_async(self, code: str) -> str:
        """Finish the redirect flow and return the frontend URL carrying the tokens."""
        self._require_google()
        credential = await self._exchange_google_code(code)
        info = await self._verify_google_id_token(credential)
        user = await self._resolve_google_user(info)
        tokens = await self.issue_tokens_async(user)
        return f"{settings.FRONTEND_URL}/auth/success?{urlencode(tokens)}"
