from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import RedirectResponse

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
from app.services.shares.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service(auth: AuthService = Depends(AuthService)) -> AuthService:
    return auth


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    schema: UserCreate = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.register_async(schema)


@router.post("/verify-email", status_code=status.HTTP_200_OK)
async def verify_email(
    schema: VerifyEmail = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.verify_email_async(schema)


@router.post("/resend-verification", status_code=status.HTTP_200_OK)
async def resend_verification(
    schema: ResendVerification = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.resend_verification_async(schema)


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(
    schema: LoginUser = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.login_async(schema)


@router.post("/refresh", status_code=status.HTTP_200_OK)
async def refresh(
    schema: RefreshToken = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.refresh_async(schema)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    schema: RefreshToken = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.logout_async(schema)


@router.post("/forgot-password", status_code=status.HTTP_202_ACCEPTED)
async def forgot_password(
    schema: ForgotPassword = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.forgot_password_async(schema)


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    schema: ResetPassword = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.reset_password_async(schema)


@router.get("/google")
async def google_login(auth_service: AuthService = Depends(get_auth_service)):
    return RedirectResponse(auth_service.google_authorize_url())


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    auth_service: AuthService = Depends(get_auth_service),
):
    if not code:
        return RedirectResponse(auth_service.google_denied_url(error))
    return RedirectResponse(await auth_service.google_callback_async(code))


@router.post("/google", status_code=status.HTTP_200_OK)
async def google_credential_login(
    schema: GoogleLogin = Body(),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.login_google_async(schema)
