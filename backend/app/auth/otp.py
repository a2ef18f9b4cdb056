"""SMS OTP via Twilio with expiry and rate limiting.

Used to verify a user's mobile number:
  1. POST /api/auth/verify-mobile/request → a 6-digit code is stored and
     sent to the phone on file.
  2. POST /api/auth/verify-mobile/confirm with the code → phone_verified.

Codes live in Redis under `otp:{phone}` with a TTL, so they survive
across workers and expire on their own.
"""

import json
import logging
import secrets
import string
import time

from app.config import settings
from app.utils.cache import get_redis

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
OTP_EXPIRY_SECONDS = settings.otp_expiry_seconds
OTP_MAX_ATTEMPTS = 5
OTP_COOLDOWN_SECONDS = 60  # min seconds between sends


class OTPCooldownError(Exception):
    """Raised when an OTP is requested too soon after the previous one."""
    pass


def generate_otp() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(OTP_LENGTH))


async def send_otp(phone: str) -> str:
    """Generate OTP, store it, send via Twilio. Returns the code for dev use."""
    redis_client = await get_redis()
    key = f"otp:{phone}"
    now = time.time()

    existing = await redis_client.get(key)
    if existing:
        created_at = json.loads(existing)["created_at"]
        if (now - created_at) < OTP_COOLDOWN_SECONDS:
            remaining = int(OTP_COOLDOWN_SECONDS - (now - created_at))
            raise OTPCooldownError(f"Wait {remaining}s before requesting another code")

    code = generate_otp()
    await redis_client.setex(
        key,
        OTP_EXPIRY_SECONDS,
        json.dumps({"code": code, "created_at": now, "attempts": 0}),
    )

    # Skip in dev if no credentials configured
    if settings.twilio_account_sid:
        from twilio.rest import Client
        client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        client.messages.create(
            body=f"Your CargoFlow verification code is: {code}",
            from_=settings.twilio_from_number,
            to=phone,
        )
    else:
        logger.info(f"Twilio not configured; OTP for {phone} not sent")

    return code


async def verify_otp(phone: str, code: str) -> bool:
    """Verify an OTP code. Single use; at most OTP_MAX_ATTEMPTS tries."""
    redis_client = await get_redis()
    key = f"otp:{phone}"

    raw = await redis_client.get(key)
    if not raw:
        return False
    entry = json.loads(raw)

    if entry["attempts"] >= OTP_MAX_ATTEMPTS:
        await redis_client.delete(key)
        return False

    if entry["code"] == code:
        await redis_client.delete(key)
        return True

    entry["attempts"] += 1
    ttl = await redis_client.ttl(key)
    await redis_client.setex(key, max(ttl, 1), json.dumps(entry))
    return False
