"""Telegram file download client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from portrait_analysis.adapters.telegram_client import TELEGRAM_API_URL


class TelegramFileClient(Protocol):
    """Interface for downloading Telegram files."""

    async def download_file_bytes(self, file_id: str) -> bytes:
        """Download a Telegram file and return its bytes."""


@dataclass
class HttpxTelegramFileClient:
    """Resolve a file id with getFile, then fetch the file contents."""

    bot_token: str
    http_client: httpx.AsyncClient
    download_timeout: float = 30.0

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramFileClient":
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def download_file_bytes(self, file_id: str) -> bytes:
        response = await self.http_client.get(
            f"{TELEGRAM_API_URL}/bot{self.bot_token}/getFile",
            params={"file_id": file_id},
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok") or not payload.get("result", {}).get("file_path"):
            raise RuntimeError(f"Telegram getFile failed for {file_id}")
        file_path = payload["result"]["file_path"]
        file_response = await self.http_client.get(
            f"{TELEGRAM_API_URL}/file/bot{self.bot_token}/{file_path}",
            timeout=self.download_timeout,
        )
        file_response.raise_for_status()
        if not file_response.content:
            raise RuntimeError(f"Telegram returned an empty file for {file_id}")
        return file_response.content

    async def close(self) -> None:
        await self.http_client.aclose()
