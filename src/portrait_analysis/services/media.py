"""Media fetching from the messaging platform."""

import logging
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from portrait_analysis.adapters.telegram_client import TelegramClient
from portrait_analysis.adapters.telegram_file_client import TelegramFileClient
from portrait_analysis.domain.errors import MediaDownloadError

_logger = logging.getLogger(__name__)


@dataclass
class MediaFetcher:
    """Download Telegram files into transient local storage."""

    file_client: TelegramFileClient
    telegram_client: TelegramClient
    upload_dir: Path

    async def fetch(self, ref: str) -> Path:
        """Download a file by Telegram file id and return its local path."""
        try:
            content = await self.file_client.download_file_bytes(ref)
            return self._store(content)
        except Exception as exc:
            raise MediaDownloadError(f"Telegram file download failed: {exc}") from exc

    async def fetch_avatar(self, telegram_user_id: int) -> Path | None:
        """Download the user's current profile photo, if there is one."""
        try:
            file_id = await self.telegram_client.get_user_avatar_file_id(
                telegram_user_id
            )
            if file_id is None:
                _logger.debug("No avatar found for user %s", telegram_user_id)
                return None
            content = await self.file_client.download_file_bytes(file_id)
            return self._store(content, prefix=f"avatar_{telegram_user_id}")
        except Exception:
            _logger.warning(
                "Failed to get avatar for user %s", telegram_user_id, exc_info=True
            )
            return None

    def _store(self, content: bytes, prefix: str | None = None) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        name = f"{prefix}_{uuid4().hex}" if prefix else uuid4().hex
        path = self.upload_dir / f"{name}.jpg"
        path.write_bytes(content)
        return path
