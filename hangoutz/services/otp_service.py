import hashlib
import hmac
import logging
import secrets

from cachetools import TTLCache

from hangoutz.config import settings

logger = logging.getLogger(__name__)

# phone -> sha256 of the pending code; entries expire on their own
pending_otps = TTLCache(maxsize=100_000, ttl=settings.otp_ttl_seconds)


def generate_otp(length: int = None) -> str:
    length = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_otp(otp: str) -> str:
    return hashlib.sha256(otp.encode()).hexdigest()


def verify_otp_hash(otp: str, otp_hash: str) -> bool:
    return hmac.compare_digest(hash_otp(otp), otp_hash)


def send_otp(phone: str) -> dict:
    """
    Issue a one-time code for a phone number.

    SMS delivery belongs to an external gateway; outside production the code
    is written to the log so it can be used locally.
    """
    otp = generate_otp()
    pending_otps[phone] = hash_otp(otp)

    if not settings.is_production:
        logger.info(f"OTP for {phone}: {otp}")
        return {"sent": True, "dev": True}

    logger.info(f"OTP issued for {phone[:3]}***")
    return {"sent": True, "dev": False}


def consume_otp(phone: str, otp: str) -> bool:
    """
    Check a submitted code and invalidate it on success.

    The configured development code is accepted outside production.
    """
    if not settings.is_production and settings.otp_dev_code and otp == settings.otp_dev_code:
        pending_otps.pop(phone, None)
        return True

    otp_hash = pending_otps.get(phone)
    if otp_hash is None or not verify_otp_hash(otp, otp_hash):
        return False

    pending_otps.pop(phone, None)
    return True
