"""AI analysis gateway: model calls plus refusal and sentinel policy."""

import base64
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from uuid import UUID

from portrait_analysis.domain.analysis import (
    AnalysisErrored,
    AnalysisRefused,
    AnalysisSucceeded,
    AnalysisVariant,
    GatewayResult,
    SentinelDetected,
)
from portrait_analysis.services.prompts import PromptKey, PromptService

_logger = logging.getLogger(__name__)

SENTINEL_TOKEN = "НЕТ"

REFUSAL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"I'm sorry, but I can't help with that\.",
        r"Извините, я не могу помочь с этим\.",
        r"I cannot provide[.!?]?",
        r"I can't analyze[.!?]?",
        r"I'm not able to[.!?]?",
        r"Я не могу предоставить[.!?]?",
        r"Я не могу анализировать[.!?]?",
        r"Я не могу помочь[.!?]?",
        r"sorry,? (?:but )?I can't[.!?]?",
        r"I (?:cannot|can't) (?:help|assist|analyze)[.!?]?",
        r"unable to (?:help|assist|analyze|provide)[.!?]?",
        r"не могу (?:помочь|анализировать|предоставить)[.!?]?",
    )
)

_EDGE_NON_WORD = re.compile(r"^\W+|\W+$")


class AnalysisModelClient(Protocol):
    """Interface for the external large-model service."""

    async def generate_analysis(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        system_prompt: str,
        instruction: str,
        image_data_urls: list[str],
    ) -> str:
        """Return the raw analysis text for the given images."""

    async def generate_summary(
        self, *, model: str, system_prompt: str, text: str
    ) -> str:
        """Return a short summary of an analysis text."""


def is_sentinel(text: str) -> bool:
    """Return true when the model answered with the no-face token."""
    return _EDGE_NON_WORD.sub("", text.strip()).upper() == SENTINEL_TOKEN


def is_refusal(text: str, min_length: int) -> bool:
    """Return true for apology/decline answers or unusably short output."""
    if len(text) < min_length:
        return True
    return any(pattern.search(text) for pattern in REFUSAL_PATTERNS)


@dataclass
class AnalysisGateway:
    """Wraps model calls for full analysis and summary generation."""

    client: AnalysisModelClient
    prompts: PromptService
    model: str
    summary_model: str
    reasoning_effort: str | None
    store: bool
    min_response_length: int = 1000
    refusal_retries: int = 1

    async def analyze(
        self,
        photo_paths: Sequence[Path],
        variant: AnalysisVariant,
        *,
        user_id: UUID,
    ) -> GatewayResult:
        """Run the analysis with one extra attempt for refusals."""
        variant.validate_photo_count(len(photo_paths))
        _logger.info(
            "Starting photo analysis for user %s, variant %s with %s photos",
            user_id,
            variant,
            len(photo_paths),
        )
        try:
            image_data_urls = [_to_data_url(path.read_bytes()) for path in photo_paths]
        except OSError as exc:
            _logger.exception("Failed to read photos for user %s", user_id)
            return AnalysisErrored(reason=f"Failed to process image file: {exc}")

        system_prompt = self.prompts.get_prompt(PromptKey.MAIN_ANALYSIS)
        instruction = _instruction(len(photo_paths))
        max_attempts = 1 + self.refusal_retries

        for attempt in range(1, max_attempts + 1):
            try:
                text = await self.client.generate_analysis(
                    model=self.model,
                    reasoning_effort=self.reasoning_effort,
                    store=self.store,
                    system_prompt=system_prompt,
                    instruction=instruction,
                    image_data_urls=image_data_urls,
                )
            except Exception as exc:
                _logger.exception("Photo analysis failed for user %s", user_id)
                return AnalysisErrored(reason=str(exc) or type(exc).__name__)

            if not text or not text.strip():
                return AnalysisErrored(reason="No analysis result received from AI model")
            if is_sentinel(text):
                _logger.info("No face detected for user %s", user_id)
                return SentinelDetected(raw_text=text)
            if not is_refusal(text, self.min_response_length):
                _logger.info("Photo analysis completed for user %s", user_id)
                return AnalysisSucceeded(text=text)
            _logger.warning(
                "AI model refused to analyze photo for user %s, attempt %s/%s",
                user_id,
                attempt,
                max_attempts,
            )

        _logger.error("AI model refused analysis after retry for user %s", user_id)
        return AnalysisRefused(attempts=max_attempts)

    async def summarize(self, text: str, *, user_id: UUID) -> str | None:
        """Generate a short summary; None when the model call fails."""
        try:
            summary = await self.client.generate_summary(
                model=self.summary_model,
                system_prompt=self.prompts.get_prompt(PromptKey.SUMMARY),
                text=text,
            )
        except Exception:
            _logger.exception("Summary generation failed for user %s", user_id)
            return None
        if not summary or not summary.strip():
            _logger.warning("Empty summary received for user %s", user_id)
            return None
        return summary.strip()


def _instruction(photo_count: int) -> str:
    if photo_count > 1:
        return f"Проанализируй эти {photo_count} фото согласно инструкции."
    return "Проанализируй это фото согласно инструкции."


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
