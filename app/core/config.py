from functools import lru_cache
from pathlib import Path
from typing import List
from urllib.parse import urlparse
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), case_sensitive=False)

    APP_NAME: str = "iVisitor Backend"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = "/api"
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 5000

    DATABASE_URL: str = "sqlite:///./ivisitor.db"

    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 720

    GUARD_USERNAME: str = "guard"
    GUARD_PASSWORD: str = ""
    GUARD_AUTH_REQUIRED: bool = False

    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"
    # Dev-friendly default: localhost plus RFC1918 LAN ranges so a guard tablet on the same Wi-Fi can reach the API.
    CORS_ALLOW_ORIGIN_REGEX: str = (
        r"^https?://("
        r"localhost|127\.0\.0\.1|"
        r"192\.168\.\d{1,3}\.\d{1,3}|"
        r"10\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
        r"172\.(1[6-9]|2\d|3[0-1])\.\d{1,3}\.\d{1,3}"
        r")(\:\d+)?$"
    )

    SOCKET_PATH: str = "/socket.io"
    DASHBOARD_NAMESPACE: str = "/realtime/dashboard"

    FRONTEND_BASE_URL: str = "http://localhost:5173"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SECONDS: float = 30.0
    MAIL_FROM: str = "noreply@ivisitor.com"

    # Hardened state machine: terminal decisions, verify only once and only when approved,
    # check-out only after check-in.
    STRICT_LIFECYCLE: bool = False
    EXPOSE_VERIFICATION_CODE: bool = True

    @property
    def cors_origins(self) -> List[str]:
        origins: list[str] = []
        for raw in self.CORS_ORIGINS.split(","):
            value = raw.strip()
            if not value:
                continue
            parsed = urlparse(value)
            if parsed.scheme and parsed.netloc:
                value = f"{parsed.scheme}://{parsed.netloc}"
            origins.append(value.rstrip("/"))
        return origins

    @property
    def mail_configured(self) -> bool:
        return bool(self.SMTP_HOST.strip())

    @property
    def mail_sender(self) -> str:
        return self.MAIL_FROM.strip() or self.SMTP_USERNAME.strip() or "noreply@ivisitor.com"


@lru_cache
def get_settings() -> Settings:
    return Settings()
