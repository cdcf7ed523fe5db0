import hmac
import logging

from app.core.config import get_settings
from app.core.exceptions import AppException
from app.core.security import create_access_token
from app.schemas.auth import GuardTokenResponse

settings = get_settings()
logger = logging.getLogger(__name__)

GUARD_ROLE = "guard"


def guard_login(username: str, password: str) -> GuardTokenResponse:
    if not settings.GUARD_PASSWORD:
        raise AppException("Guard login is not configured", status_code=503)

    username_ok = hmac.compare_digest((username or "").strip().encode(), settings.GUARD_USERNAME.encode())
    password_ok = hmac.compare_digest((password or "").encode(), settings.GUARD_PASSWORD.encode())
    if not (username_ok and password_ok):
        logger.warning("guard.login failed username=%s", username)
        raise AppException("Invalid credentials", status_code=401)

    logger.info("guard.login succeeded username=%s", settings.GUARD_USERNAME)
    return GuardTokenResponse(accessToken=create_access_token(subject=settings.GUARD_USERNAME, role=GUARD_ROLE))
