"""Auth routes: registration, login, tokens, passwords, verification.

Route overview:
  POST /register                 — create an account (admin or client user)
  POST /login                    — email + password login
  GET  /me                       — current user profile + permissions
  POST /logout                   — revoke the presented access token
  POST /refresh                  — exchange a refresh token for a new pair
  POST /change-password          — change own password (revokes old tokens)
  POST /forgot-password          — email a reset link (always 200)
  POST /reset-password/{token}   — set a new password from a reset link
  GET  /verify-email/{token}     — confirm email address
  POST /verify-mobile/request    — SMS an OTP to the user's phone
  POST /verify-mobile/confirm    — confirm the OTP → phone_verified
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import client_ip, get_current_user
from app.auth.jwt import decode_token
from app.auth.otp import OTPCooldownError, send_otp, verify_otp
from app.auth.password import hash_password, verify_password
from app.auth.revocation import TokenRevocation
from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    OTPVerify,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserOut,
)
from app.schemas.common import MessageResponse
from app.services import email as mailer
from app.services.accounts import (
    build_token_response,
    build_user_out,
    change_own_password,
    get_user_by_email,
    resolve_role_assignment,
)
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a reset link has been sent"


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a pending account and send the welcome / verification email.

    The account stays pending until an admin activates it, so the returned
    tokens are rejected until then. Email delivery problems are logged and
    never block registration.
    """
    if await get_user_by_email(db, body.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    role, client_id = await resolve_role_assignment(
        db, body.role_id, body.user_type, body.client_id, self_service=True
    )

    verification_token = secrets.token_hex(32)
    user = User(
        email=body.email.lower(),
        hashed_password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role_id=role.id,
        user_type=body.user_type,
        client_id=client_id,
        status="pending",
        email_verification_token=_hash_token(verification_token),
    )
    user.role = role
    db.add(user)
    await db.flush()

    subject, text_body = mailer.verification_email(user.first_name, verification_token)
    try:
        await mailer.send_email(user.email, subject, text_body)
    except mailer.EmailDeliveryError:
        logger.warning("Verification email for %s could not be sent", user.email)

    return build_token_response(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    """Email + password login. Returns a JWT with role and permissions."""
    user = await get_user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    if not user.is_active:
        raise HTTPException(
            status_code=403,
            detail="Your account is not active. Please contact support",
        )

    user.last_login = datetime.utcnow()
    user.last_login_ip = client_ip(request)
    await log_activity(
        db, user, action="login", entity_type="user",
        entity_id=user.id, entity_code=user.email,
    )
    await db.flush()
    return build_token_response(user)


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return build_user_out(user)


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: User = Depends(get_current_user)):
    token: str = user._token  # type: ignore[attr-defined]
    payload: dict = user._token_payload  # type: ignore[attr-defined]
    await TokenRevocation.revoke_token(token, payload.get("exp", 0))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access + refresh token pair."""
    payload = decode_token(body.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user_id = payload["sub"]
    if await TokenRevocation.is_user_revoked(user_id, payload.get("iat")):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    # Re-resolve permissions (may have changed since last token)
    return build_token_response(user)


# ── POST /change-password ───────────────────────────────────

@router.post("/change-password", response_model=TokenResponse)
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await change_own_password(user, body.current_password, body.new_password)
    await log_activity(
        db, user, action="password_changed", entity_type="user", entity_id=user.id,
    )
    await db.flush()
    return build_token_response(user)


# ── Password reset ──────────────────────────────────────────

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(body: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    """Email a single-use reset link. Answers the same whether or not the
    account exists; only the SHA-256 of the token is stored."""
    user = await get_user_by_email(db, body.email)
    if not user:
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    token = secrets.token_hex(32)
    user.password_reset_token = _hash_token(token)
    user.password_reset_expires = datetime.utcnow() + timedelta(
        minutes=settings.password_reset_expire_minutes
    )
    await db.flush()

    subject, text_body = mailer.password_reset_email(user.first_name, token)
    try:
        await mailer.send_email(user.email, subject, text_body)
    except mailer.EmailDeliveryError:
        user.password_reset_token = None
        user.password_reset_expires = None
        await db.commit()
        raise HTTPException(
            status_code=500,
            detail="There was an error sending the email. Try again later",
        )

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{token}", response_model=TokenResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(User).where(
            User.password_reset_token == _hash_token(token),
            User.password_reset_expires > datetime.utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user.hashed_password = hash_password(body.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.password_changed_at = datetime.utcnow()
    await TokenRevocation.revoke_all_user_tokens(user.id)
    await db.flush()
    return build_token_response(user)


# ── Verification ────────────────────────────────────────────

@router.get("/verify-email/{token}", response_model=MessageResponse)
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(User).where(User.email_verification_token == _hash_token(token))
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid verification token")

    user.email_verified = True
    user.email_verification_token = None
    await db.flush()
    return MessageResponse(message="Email verified")


@router.post("/verify-mobile/request")
async def request_mobile_verification(user: User = Depends(get_current_user)):
    """Send an SMS OTP to the phone on file.

    In dev mode (no Twilio creds) the code is returned in the response.
    """
    if not user.phone:
        raise HTTPException(status_code=400, detail="No phone number on file")
    if user.phone_verified:
        raise HTTPException(status_code=400, detail="Phone number already verified")

    try:
        code = await send_otp(user.phone)
    except OTPCooldownError as e:
        raise HTTPException(status_code=429, detail=str(e))

    response = {"message": "Verification code sent"}
    if not settings.twilio_account_sid:
        response["dev_code"] = code
    return response


@router.post("/verify-mobile/confirm", response_model=MessageResponse)
async def confirm_mobile_verification(
    body: OTPVerify,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not user.phone or not await verify_otp(user.phone, body.code):
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")

    user.phone_verified = True
    await db.flush()
    return MessageResponse(message="Phone number verified")
