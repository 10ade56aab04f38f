from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import get_settings


settings = get_settings()

# Protects the dashboard's own endpoints. Per-API rateLimit settings are
# stored configuration only and are not enforced here.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.environment != "test",
)
