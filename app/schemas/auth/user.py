from typing import Annotated

from pydantic import EmailStr, Field

from app.schemas.base import RequestModel


class UserCreate(RequestModel):
    name: Annotated[str, Field(min_length=2)]
    email: EmailStr
    password: Annotated[str, Field(min_length=6, max_length=72)]


class LoginUser(RequestModel):
    # email or the part before "@"
    username: str
    password: str


class VerifyEmail(RequestModel):
    token: str


class ResendVerification(RequestModel):
    email: EmailStr


class RefreshToken(RequestModel):
    refresh_token: str


class ForgotPassword(RequestModel):
    email: EmailStr


class ResetPassword(RequestModel):
    token: str
    new_password: Annotated[str, Field(min_length=6, max_length=72)]


class GoogleLogin(RequestModel):
    credential: str
