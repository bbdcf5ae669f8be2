"""Clarifai food-item recognition API client."""

from dataclasses import dataclass

import httpx

from calorie_tracker.services.vision import ClarifaiClient

FOOD_MODEL_PATH = (
    "models/food-item-recognition/versions/1d5fd481e0cf4826aa72ec3ff049e044/outputs"
)


@dataclass
class HttpxClarifaiClient(ClarifaiClient):
    """HTTPX-backed Clarifai client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxClarifaiClient":
        """Create a Clarifai client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def predict(self, image_base64: str) -> dict[str, object]:
        """Run the food model on a base64 image."""
        response = await self.http_client.post(
            f"{self.base_url.rstrip('/')}/{FOOD_MODEL_PATH}",
            headers={"Authorization": f"Key {self.api_key}"},
            json={"inputs": [{"data": {"image": {"base64": image_base64}}}]},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
