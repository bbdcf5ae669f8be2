"""OpenAI Responses API client for food classification."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from calorie_tracker.errors import ClassificationError
from calorie_tracker.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVisionClient":
        """Create an OpenAI vision client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Ask the model for foods in the image as schema-shaped JSON."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "food_classification",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        if not response.output_text:
            raise ClassificationError("OpenAI returned an empty response")
        try:
            return json.loads(response.output_text)
        except json.JSONDecodeError as exc:
            raise ClassificationError("OpenAI returned invalid JSON") from exc

    async def close(self) -> None:
        await self.client.close()
