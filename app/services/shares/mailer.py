# app/services/shares/mailer.py
from pathlib import Path

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from loguru import logger
from pydantic import SecretStr

from app.core.settings import settings

RESET_LINK_EXPIRES_MINUTES = 30


class MailerService:
    """Sends account emails (verification, password reset).

    The link is always logged so it can be copied from the console during
    development. Delivery failures are swallowed outside production.
    """

    def __init__(self):
        base_dir = Path(__file__).resolve().parent.parent.parent  # -> app/
        template_dir = base_dir / "templates" / "emails"

        self.conf = ConnectionConfig(
            MAIL_USERNAME=settings.MAIL_USERNAME,
            MAIL_PASSWORD=SecretStr(settings.MAIL_PASSWORD),
            MAIL_FROM=settings.MAIL_FROM,
            MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
            MAIL_PORT=settings.MAIL_PORT,
            MAIL_SERVER=settings.MAIL_SERVER,
            MAIL_STARTTLS=settings.MAIL_TLS,
            MAIL_SSL_TLS=settings.MAIL_SSL,
            USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
            VALIDATE_CERTS=True,
            TEMPLATE_FOLDER=template_dir,
        )
        self.fastmail = FastMail(self.conf)

    @staticmethod
    def verification_link(token: str) -> str:
        return f"{settings.FRONTEND_URL}/verify-email?token={token}"

    @staticmethod
    def reset_link(token: str) -> str:
        return f"{settings.FRONTEND_URL}/reset-password?token={token}"

    async def _send(self, email: str, subject: str, template_name: str, body: dict):
        message = MessageSchema(
            subject=subject,
            recipients=[email],
            template_body={"app_name": settings.MAIL_FROM_NAME, **body},
            subtype=MessageType.html,
        )
        try:
            await self.fastmail.send_message(message, template_name=template_name)
            logger.info(f"Sent '{template_name}' to {email}")
        except Exception as e:
            logger.error(f"Failed to send '{template_name}' to {email}: {e}")
            if settings.is_production:
                raise

    async def send_verification_email(self, email: str, token: str):
        link = self.verification_link(token)
        logger.info(f"Email verification link for {email}: {link}")
        await self._send(
            email,
            f"Verify your email address - {settings.MAIL_FROM_NAME}",
            "verify_email.html",
            {"link": link},
        )

    async def send_password_reset_email(self, email: str, token: str):
        link = self.reset_link(token)
        logger.info(f"Password reset link for {email}: {link}")
        await self._send(
            email,
            f"Reset your password - {settings.MAIL_FROM_NAME}",
            "reset_password.html",
            {"link": link, "expires_minutes": RESET_LINK_EXPIRES_MINUTES},
        )
