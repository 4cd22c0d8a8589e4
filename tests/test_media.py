"""Tests for media fetching."""

import asyncio
from pathlib import Path

import pytest

from portrait_analysis.domain.errors import MediaDownloadError
from portrait_analysis.services.media import MediaFetcher
from tests.conftest import FakeTelegramClient, FakeTelegramFileClient


def test_fetch_writes_file_under_upload_dir(tmp_path: Path) -> None:
    fetcher = MediaFetcher(
        FakeTelegramFileClient(content=b"jpeg"), FakeTelegramClient(), tmp_path / "up"
    )

    path = asyncio.run(fetcher.fetch("file-1"))

    assert path.parent == tmp_path / "up"
    assert path.suffix == ".jpg"
    assert path.read_bytes() == b"jpeg"


def test_fetch_failure_is_download_error(tmp_path: Path) -> None:
    fetcher = MediaFetcher(
        FakeTelegramFileClient(failing_ids={"gone"}), FakeTelegramClient(), tmp_path
    )

    with pytest.raises(MediaDownloadError, match="gone"):
        asyncio.run(fetcher.fetch("gone"))


def test_fetch_avatar_returns_none_without_photo(tmp_path: Path) -> None:
    fetcher = MediaFetcher(FakeTelegramFileClient(), FakeTelegramClient(), tmp_path)

    assert asyncio.run(fetcher.fetch_avatar(1001)) is None


def test_fetch_avatar_downloads_profile_photo(tmp_path: Path) -> None:
    files = FakeTelegramFileClient(content=b"avatar")
    fetcher = MediaFetcher(
        files, FakeTelegramClient(avatar_file_id="avatar-file"), tmp_path
    )

    path = asyncio.run(fetcher.fetch_avatar(1001))

    assert path is not None
    assert path.read_bytes() == b"avatar"
    assert files.requested == ["avatar-file"]


def test_fetch_avatar_swallows_download_errors(tmp_path: Path) -> None:
    fetcher = MediaFetcher(
        FakeTelegramFileClient(failing_ids={"avatar-file"}),
        FakeTelegramClient(avatar_file_id="avatar-file"),
        tmp_path,
    )

    assert asyncio.run(fetcher.fetch_avatar(1001)) is None
