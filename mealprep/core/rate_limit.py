from slowapi import Limiter
from slowapi.util import get_remote_address

from mealprep.core.config import settings

# Rate limiter keyed on the client address. Only the AI generation endpoints
# are decorated; tests switch it off with RATE_LIMIT_ENABLED=false.
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
