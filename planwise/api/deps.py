import logging
from datetime import datetime
from typing import Optional

from fastapi import Header, HTTPException, status

from planwise.core import security
from planwise.core.config import settings
from planwise.db.session import get_db  # noqa: F401  re-exported for routers
from planwise.reminders.dispatcher import MessagingGateway, TwilioGateway
from planwise.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class CronConfigurationError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CRON_SECRET ist nicht gesetzt.",
        )


class CronAuthorizationError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Nicht autorisiert.",
        )


def get_messaging_gateway() -> MessagingGateway:
    return TwilioGateway()


def get_now() -> datetime:
    """Clock used by the cron endpoints; overridden in tests."""
    return utc_now()


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    x_cron_secret: Optional[str] = Header(None),
) -> bool:
    """
    Shared-secret check for scheduler calls.

    The secret may arrive as ``Authorization: Bearer <secret>`` or in the
    ``x-cron-secret`` header. The Authorization header must match exactly,
    scheme casing included.
    """
    expected = settings.CRON_SECRET
    if not expected:
        logger.error("CRON_SECRET is not configured, refusing cron request")
        raise CronConfigurationError()

    header_secret = (x_cron_secret or "").strip()
    if security.secrets_match(authorization, f"Bearer {expected}") or security.secrets_match(
        header_secret, expected
    ):
        return True

    logger.warning("Rejected cron request with missing or invalid secret")
    raise CronAuthorizationError()


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    token = security.parse_bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Nicht autorisiert (Bearer Token fehlt).",
        )
    try:
        return security.get_user_id_from_token(token)
    except security.TokenError as e:
        logger.info(f"Rejected user token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token ist ungueltig oder abgelaufen.",
        )


def get_user_or_service_caller(
    authorization: Optional[str] = Header(None),
    x_reminder_secret: Optional[str] = Header(None),
) -> Optional[str]:
    """
    Authenticate either a server-to-server call or an end user.

    Returns ``None`` for a caller holding the reminder secret
    (``REMINDER_API_SECRET``, falling back to ``CRON_SECRET``) and the
    user id for a caller with a valid user token.
    """
    expected = settings.REMINDER_API_SECRET or settings.CRON_SECRET
    bearer = security.parse_bearer_token(authorization)
    header_secret = (x_reminder_secret or "").strip()
    if expected and (
        security.secrets_match(bearer, expected) or security.secrets_match(header_secret, expected)
    ):
        return None

    if bearer:
        try:
            return security.get_user_id_from_token(bearer)
        except security.TokenError as e:
            logger.info(f"Rejected reminder caller token: {e}")

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Nicht autorisiert.")
