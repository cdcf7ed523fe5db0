from app.core.config import get_settings

settings = get_settings()

host = settings.BACKEND_HOST
port = settings.BACKEND_PORT
log_level = "debug" if settings.DEBUG else "info"
# One worker in every environment: guard dashboards subscribe to an in-process Socket.IO server.
workers = 1
