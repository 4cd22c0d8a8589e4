"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from portrait_analysis.adapters.openai_analysis_client import OpenAIAnalysisClient
from portrait_analysis.adapters.telegram_client import HttpxTelegramClient
from portrait_analysis.adapters.telegram_file_client import HttpxTelegramFileClient


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeCompletions:
    def __init__(self, content: str) -> None:
        self.content = content
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        message = type("Message", (), {"content": self.content})()
        choice = type("Choice", (), {"message": message})()
        return type("Resp", (), {"choices": [choice]})()


class _FakeOpenAI:
    def __init__(self, output_text: str = "analysis", summary: str = "summary") -> None:
        self.responses = _FakeResponses(output_text)
        self.chat = type("Chat", (), {"completions": _FakeCompletions(summary)})()


def test_openai_analysis_request_shape() -> None:
    fake = _FakeOpenAI(output_text="Подробный анализ")
    client = OpenAIAnalysisClient(client=fake)

    result = asyncio.run(
        client.generate_analysis(
            model="o3",
            reasoning_effort="medium",
            store=True,
            system_prompt="system",
            instruction="Проанализируй эти 2 фото согласно инструкции.",
            image_data_urls=["data:image/jpeg;base64,YQ==", "data:image/jpeg;base64,Yg=="],
        )
    )

    payload = fake.responses.last_payload
    assert result == "Подробный анализ"
    assert payload is not None
    assert payload["reasoning"] == {"effort": "medium"}
    assert payload["store"] is True
    developer, user = payload["input"]
    assert developer["role"] == "developer"
    assert [part["type"] for part in user["content"]] == [
        "input_text",
        "input_image",
        "input_image",
    ]


def test_openai_summary_uses_chat_completions() -> None:
    fake = _FakeOpenAI(summary="Кратко.")
    client = OpenAIAnalysisClient(client=fake)

    summary = asyncio.run(
        client.generate_summary(model="gpt-4.1-nano", system_prompt="sum", text="long")
    )

    payload = fake.chat.completions.last_payload
    assert summary == "Кратко."
    assert payload["max_tokens"] == 150
    assert payload["temperature"] == 0.1


def test_telegram_client_chat_action_and_message() -> None:
    seen: list[tuple[str, dict[str, object]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content.decode())))
        return httpx.Response(200, json={"ok": True, "result": True})

    client = HttpxTelegramClient(
        bot_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    asyncio.run(client.send_chat_action(5001, "typing"))
    asyncio.run(client.send_message(5001, "<b>hi</b>", parse_mode="HTML"))

    assert seen[0] == ("/bottoken/sendChatAction", {"chat_id": 5001, "action": "typing"})
    assert seen[1][1]["parse_mode"] == "HTML"


def test_telegram_client_avatar_picks_largest_size() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/getUserProfilePhotos")
        assert request.url.params["limit"] == "1"
        return httpx.Response(
            200,
            json={
                "ok": True,
                "result": {
                    "total_count": 1,
                    "photos": [
                        [
                            {"file_id": "small", "file_size": 100},
                            {"file_id": "large", "file_size": 9000},
                            {"file_id": "medium", "file_size": 800},
                        ]
                    ],
                },
            },
        )

    client = HttpxTelegramClient(
        bot_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.get_user_avatar_file_id(1001)) == "large"


def test_telegram_client_avatar_absent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"ok": True, "result": {"total_count": 0, "photos": []}}
        )

    client = HttpxTelegramClient(
        bot_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.get_user_avatar_file_id(1001)) is None


def test_telegram_file_client_downloads_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/getFile"):
            return httpx.Response(
                200, json={"ok": True, "result": {"file_path": "photos/file.jpg"}}
            )
        assert request.url.path == "/file/bottoken/photos/file.jpg"
        return httpx.Response(200, content=b"image-bytes")

    client = HttpxTelegramFileClient(
        bot_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.download_file_bytes("file-id")) == b"image-bytes"


def test_telegram_file_client_raises_on_missing_file() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"ok": False, "description": "Bad Request: file not found"}
        )

    client = HttpxTelegramFileClient(
        bot_token="token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.download_file_bytes("missing"))
