import logging
from datetime import timedelta
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from hangoutz.config import settings
from hangoutz.core.exceptions import AuthenticationError
from hangoutz.models.user import User
from hangoutz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user_id: Identity the token is bound to
        expires_delta: Lifetime of the token, defaults to the configured expiry

    Returns:
        str: Encoded JWT
    """
    now = utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": user_id, "iat": int(now.timestamp()), "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> str:
    """
    Verify a bearer token and return the identity it carries.

    Raises:
        AuthenticationError: If the token is missing, malformed, expired or has no subject
    """
    if not token:
        raise AuthenticationError("No token provided")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except JWTError as e:
        logger.info(f"Token verification failed: {e}")
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token missing subject")
    return user_id


async def authenticate(db: AsyncSession, token: Optional[str]) -> User:
    """Resolve a bearer token to an existing user. Shared by HTTP and WebSocket."""
    user_id = verify_token(token)
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationError("User not found")
    return user
