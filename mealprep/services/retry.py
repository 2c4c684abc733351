# services/retry.py
# Retry policy for AI recipe generation.

import logging
import threading
import time
from typing import Callable, Optional

from mealprep.core.config import settings
from mealprep.core.errors import OperationCancelled

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    How many times to retry a generation, how long to wait between transport
    failures, and how to relax the request after a validation failure.

    `attempt` is zero-based throughout: the wait after the first failed call
    is ``2 ** 0 * backoff_seconds``.
    """

    def __init__(
        self,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        max_restrictions: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = settings.AI_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = settings.AI_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.max_restrictions = max_restrictions
        self.sleep = sleep

    def __repr__(self):
        return (
            f"RetryPolicy(max_retries={self.max_retries}, "
            f"backoff_seconds={self.backoff_seconds}, max_restrictions={self.max_restrictions})"
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def has_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries

    def backoff(self, attempt: int) -> float:
        return (2 ** attempt) * self.backoff_seconds

    def simplify(self, generator_input: dict) -> dict:
        """
        Relax an over-constrained request: keep the first few dietary
        restrictions and drop the cuisine.
        """
        simplified = dict(generator_input)
        simplified["dietary_restrictions"] = list(generator_input.get("dietary_restrictions") or [])[
            : self.max_restrictions
        ]
        simplified["cuisine"] = None
        return simplified

    def wait(self, attempt: int, cancel: Optional[threading.Event] = None) -> float:
        """
        Sleep before the next attempt. With a cancel event the sleep ends as
        soon as the event is set, and OperationCancelled is raised.
        """
        delay = self.backoff(attempt)
        logger.debug(f"Backing off {delay:.2f}s before attempt {attempt + 2}")
        if cancel is None:
            self.sleep(delay)
        elif cancel.wait(delay):
            raise OperationCancelled("Recipe generation was cancelled")
        return delay


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Recipe generation was cancelled")
