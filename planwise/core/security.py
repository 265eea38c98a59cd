from typing import Any, Dict, Optional
import hmac

from jose import JWTError, jwt

from planwise.core.config import settings

# Export the algorithm constant for use in other modules
ALGORITHM = settings.ALGORITHM


class TokenError(Exception):
    """Raised when a user access token cannot be verified."""


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header, if any."""
    value = (authorization or "").strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value[7:].strip()
    return token or None


def secrets_match(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def decode_user_token(token: str) -> Dict[str, Any]:
    if not settings.SUPABASE_JWT_SECRET:
        raise TokenError("SUPABASE_JWT_SECRET is not configured")
    options = {"verify_aud": bool(settings.SUPABASE_JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE or None,
            options=options,
        )
    except JWTError as e:
        raise TokenError(str(e)) from e


def get_user_id_from_token(token: str) -> str:
    payload = decode_user_token(token)
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id.strip():
        raise TokenError("Token has no subject")
    return user_id.strip()
