"""Telegram Bot API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramClient(Protocol):
    """Interface for Telegram Bot API calls made by the pipeline."""

    async def send_message(
        self, chat_id: int, text: str, parse_mode: str | None = None
    ) -> None:
        """Send a text message to a Telegram chat."""

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Show a chat action such as ``typing``."""

    async def get_user_avatar_file_id(self, telegram_user_id: int) -> str | None:
        """Return the file id of the user's current profile photo, if any."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    def _url(self, method: str) -> str:
        return f"{TELEGRAM_API_URL}/bot{self.bot_token}/{method}"

    async def send_message(
        self, chat_id: int, text: str, parse_mode: str | None = None
    ) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        response = await self.http_client.post(
            self._url("sendMessage"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Send a chat action using Telegram's sendChatAction API."""
        response = await self.http_client.post(
            self._url("sendChatAction"),
            json={"chat_id": chat_id, "action": action},
            timeout=10,
        )
        response.raise_for_status()

    async def get_user_avatar_file_id(self, telegram_user_id: int) -> str | None:
        """Return the largest size of the user's most recent profile photo."""
        response = await self.http_client.get(
            self._url("getUserProfilePhotos"),
            params={"user_id": telegram_user_id, "limit": 1},
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok"):
            raise RuntimeError("Telegram getUserProfilePhotos failed")
        photos = payload["result"].get("photos") or []
        if not photos or not photos[0]:
            return None
        largest = max(photos[0], key=lambda size: size.get("file_size") or 0)
        return largest["file_id"]

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
