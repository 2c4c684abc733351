# services/generator.py
# The AI recipe generator boundary.
#
# A generator takes a plain dict
#   {"recipe_name", "cuisine", "dietary_restrictions", "servings"}
# and returns a recipe payload dict
#   {"name", "description", "ingredients": [{"name", "amount", "unit", "notes"}],
#    "instructions", "nutrition": {...}, "cuisine", "prep_time_minutes",
#    "cook_time_minutes", "total_time_minutes", "difficulty", "tags", "image_url"}
# or raises. The payload is untrusted; see services/recipe_validation.py.

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from mealprep.core.config import settings
from mealprep.core.errors import TransientError

logger = logging.getLogger(__name__)


class RecipeGenerator(ABC):
    @abstractmethod
    def generate(self, generator_input: dict) -> dict:
        """Return a recipe payload for `generator_input`, or raise."""


class HttpRecipeGenerator(RecipeGenerator):
    """
    Posts the generator input as JSON to an external service. Every transport
    problem (connection errors, timeouts, non-2xx replies, bodies that are not
    JSON objects) is raised as TransientError so the caller may retry.
    """

    def __init__(self, url: str, api_key: Optional[str] = None, timeout: float = 60.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(self, generator_input: dict) -> dict:
        logger.debug(f"Requesting recipe generation for {generator_input.get('recipe_name')!r}")
        try:
            response = requests.post(
                self.url, json=generator_input, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.warning(f"Recipe generator request failed: {exc}")
            raise TransientError(f"Recipe generator unavailable: {exc}") from exc

        if response.status_code != 200:
            logger.warning(
                f"Recipe generator returned status {response.status_code}: {response.text[:200]}"
            )
            raise TransientError(f"Recipe generator returned status {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise TransientError("Recipe generator returned a body that is not JSON") from exc

        # Some deployments wrap the payload as {"recipe": {...}}.
        if isinstance(body, dict) and isinstance(body.get("recipe"), dict):
            body = body["recipe"]
        if not isinstance(body, dict):
            raise TransientError("Recipe generator returned an unexpected payload")
        return body


def get_recipe_generator() -> RecipeGenerator:
    """
    FastAPI dependency. Tests override it with an in-process fake.
    """
    if not settings.AI_GENERATOR_URL:
        raise TransientError("AI recipe generation is not configured")
    return HttpRecipeGenerator(
        settings.AI_GENERATOR_URL,
        api_key=settings.AI_GENERATOR_API_KEY,
        timeout=settings.AI_GENERATOR_TIMEOUT_SECONDS,
    )
