"""System prompt lookup with database overrides."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from portrait_analysis.services.cache import Cache

_logger = logging.getLogger(__name__)


class PromptKey(StrEnum):
    """Prompts used by the analysis gateway."""

    MAIN_ANALYSIS = "OPENAI_MAIN_ANALYSIS"
    SUMMARY = "OPENAI_SUMMARY"


DEFAULT_PROMPTS: dict[PromptKey, str] = {
    PromptKey.MAIN_ANALYSIS: (
        "Ты опытный психолог-физиогномист. Внимательно изучи лицо на фото и "
        "составь развёрнутый психологический портрет: характер, сильные "
        "стороны, зоны роста, стиль общения и отношения с людьми. Пиши тепло, "
        "структурированно и без медицинских диагнозов. Если на фото нет "
        "человеческого лица, ответь одним словом: НЕТ."
    ),
    PromptKey.SUMMARY: (
        "Сожми анализ личности до двух-трёх коротких предложений для "
        "открытки. Без вступлений, только суть."
    ),
}


class PromptRepository(Protocol):
    """Persistence interface for prompt overrides."""

    def get_active_prompt(self, key: str) -> str | None:
        """Return the active prompt content for a key, if any."""


@dataclass
class PromptService:
    """Resolve prompts from the database with fallback to defaults."""

    repository: PromptRepository
    cache: Cache
    ttl_seconds: int = 300

    def get_prompt(self, key: PromptKey) -> str:
        """Return prompt content for a key."""
        cache_key = f"prompt:{key.value}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, str):
            return cached

        try:
            content = self.repository.get_active_prompt(key.value)
        except Exception:
            _logger.exception("Prompt lookup failed, using default: key=%s", key)
            return DEFAULT_PROMPTS[key]

        if not content:
            _logger.debug("Prompt %s not found in database, using default", key)
            content = DEFAULT_PROMPTS[key]
        self.cache.set(cache_key, content, ttl_seconds=self.ttl_seconds)
        return content
