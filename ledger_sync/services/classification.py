"""Category suggestion collaborator.

Suggestions are advisory: the reconciler stores them on candidates and the
reviewer confirms or overrides them on approval.
"""

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

import httpx

from ledger_sync.config import settings
from ledger_sync.errors import ClassificationError
from ledger_sync.logger import get_logger, log_external_api
from ledger_sync.models import Category
from ledger_sync.prompts import SYSTEM_PROMPT, get_classification_prompt

logger = get_logger(__name__)


class CategorySuggester(Protocol):
    async def suggest_category(
        self, description: str, categories: Sequence[Category]
    ) -> UUID | None: ...


class NullCategorySuggester:
    """Suggester used when no model is configured; never suggests anything."""

    async def suggest_category(self, description: str, categories: Sequence[Category]) -> UUID | None:
        return None


def parse_category_reply(content: str | None, categories: Sequence[Category]) -> UUID | None:
    """Map a model reply onto one of the offered category ids."""
    if not isinstance(content, str) or not content:
        return None
    cleaned = content.strip().strip("'\"` ").lower()
    if not cleaned or cleaned == "null":
        return None
    try:
        candidate = UUID(cleaned)
    except ValueError:
        return None
    return candidate if any(category.id == candidate for category in categories) else None


class OpenRouterCategorySuggester:
    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.model = model or settings.classification_model
        timeout = timeout_seconds or settings.classification_timeout_seconds
        self._timeout = httpx.Timeout(timeout, connect=min(5.0, timeout))
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def suggest_category(self, description: str, categories: Sequence[Category]) -> UUID | None:
        """Ask the model for a category id.

        Returns None when disabled, when no categories are available or when
        the reply does not name one of them. Raises ClassificationError when
        the call itself fails.
        """
        if not self.enabled or not categories:
            return None
        content = await self._complete(
            get_classification_prompt(description, [(c.id, c.name) for c in categories])
        )
        return parse_category_reply(content, categories)

    @log_external_api("openrouter_classification")
    async def _complete(self, prompt: str) -> str | None:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ClassificationError(f"Category suggestion failed: {exc}") from exc

        if not isinstance(data, dict):
            raise ClassificationError("Category suggestion failed: reply is not a JSON object")
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise ClassificationError("Category suggestion failed: malformed choices")
        if not choices:
            return None
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise ClassificationError("Category suggestion failed: malformed choice")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise ClassificationError("Category suggestion failed: content is not text")
        return content


def get_default_suggester() -> CategorySuggester:
    if settings.openrouter_api_key:
        return OpenRouterCategorySuggester()
    logger.warning("OPENROUTER_API_KEY not set, category suggestions disabled")
    return NullCategorySuggester()
