"""OpenAI client for portrait analysis and summaries."""

from dataclasses import dataclass

from openai import AsyncOpenAI

SUMMARY_MAX_TOKENS = 150
SUMMARY_TEMPERATURE = 0.1


@dataclass
class OpenAIAnalysisClient:
    """Analysis via the Responses API, summaries via chat completions."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIAnalysisClient":
        """Create an OpenAI analysis client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

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
        """Call the Responses API with the system prompt and every image."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "developer",
                    "content": [{"type": "input_text", "text": system_prompt}],
                },
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": instruction},
                        *(
                            {"type": "input_image", "image_url": url}
                            for url in image_data_urls
                        ),
                    ],
                },
            ],
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        return response.output_text or ""

    async def generate_summary(
        self, *, model: str, system_prompt: str, text: str
    ) -> str:
        """Summarize an analysis with a small chat model."""
        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
        )
        if not response.choices:
            raise RuntimeError("OpenAI returned no summary choices")
        return response.choices[0].message.content or ""
