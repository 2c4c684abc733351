import logging
import json
import time
import random
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from mealprep.core.config import settings

# Structured events go to their own logger; it does not propagate so the root
# handlers don't print every event twice.
structured_logger = logging.getLogger("api.structured_log")
structured_logger.propagate = False

# logging.ini normally configures this logger. Fall back to a bare handler so
# events are never silently dropped.
if not structured_logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(message)s")  # Raw message only (JSON)
    handler.setFormatter(formatter)
    structured_logger.addHandler(handler)
    structured_logger.setLevel(logging.INFO)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to implement wide-event structured logging with tail sampling.

    Rules:
    1. Always log errors (Status >= 500)
    2. Always log slow requests (> LOG_SLOW_THRESHOLD_MS)
    3. Otherwise sample at LOG_SAMPLE_RATE

    The auth dependency puts the caller's id on request.state.user_id and the
    domain error handlers put the error code on request.state.error_code;
    both are included when present.
    """

    def __init__(self, app, slow_threshold_ms: float = None, sample_rate: float = None):
        super().__init__(app)
        self.slow_threshold_ms = (
            settings.LOG_SLOW_THRESHOLD_MS if slow_threshold_ms is None else slow_threshold_ms
        )
        self.sample_rate = settings.LOG_SAMPLE_RATE if sample_rate is None else sample_rate

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = None
        error_details = None
        status_code = 500  # Default to 500 if exception occurs

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            error_details = str(e)
            raise e  # Re-raise exception after capturing it
        finally:
            duration = time.perf_counter() - start_time
            duration_ms = duration * 1000

            should_log = False

            # Rule 1: Always log errors
            if status_code >= 500:
                should_log = True

            # Rule 2: Always keep slow requests
            elif duration_ms > self.slow_threshold_ms:
                should_log = True

            # Rule 3: Random sample
            elif random.random() < self.sample_rate:
                should_log = True

            if should_log:
                user_id = getattr(request.state, "user_id", None)
                error_code = getattr(request.state, "error_code", None)

                log_payload = {
                    "timestamp": time.time(),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": request.client.host if request.client else None,
                    "user_agent": request.headers.get("user-agent"),
                    "query_params": dict(request.query_params),
                    "error": error_details,
                    "error_code": error_code,
                    "user_id": str(user_id) if user_id is not None else None,
                }

                structured_logger.info(json.dumps(log_payload))

        return response
