from fastapi import APIRouter

from app.core.config import get_settings

router = APIRouter()
settings = get_settings()


@router.get("/health")
def health():
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "emailConfigured": settings.mail_configured,
        "strictLifecycle": settings.STRICT_LIFECYCLE,
    }
