from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import get_settings
from app.core.security import decode_role_token
from app.services.auth_service import GUARD_ROLE
from app.services.mail_service import get_mailer
from app.services.notification_service import NotificationDispatcher

bearer_scheme = HTTPBearer(auto_error=False)
settings = get_settings()


def require_guard(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> str | None:
    if not settings.GUARD_AUTH_REQUIRED:
        return None

    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    try:
        payload = decode_role_token(credentials.credentials, GUARD_ROLE)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    return payload.get("sub")


def get_dispatcher(background_tasks: BackgroundTasks) -> NotificationDispatcher:
    return NotificationDispatcher(
        mailer=get_mailer(),
        frontend_base_url=settings.FRONTEND_BASE_URL,
        defer=background_tasks.add_task,
    )
