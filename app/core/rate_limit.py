from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

# Shared so routers can decorate endpoints with tighter limits than the global default
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
