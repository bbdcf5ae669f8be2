"""Food classification chain over vision models and local heuristics."""

import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from calorie_tracker.domain.catalog import FoodCatalogEntry
from calorie_tracker.domain.meals import FoodItem
from calorie_tracker.domain.vision import BatchItemResult, Classification, VisionExtract
from calorie_tracker.errors import ClassificationError, ValidationError
from calorie_tracker.services.catalog import DEFAULT_FOODS, FoodCatalogService

_logger = logging.getLogger(__name__)

DEFAULT_MAX_IMAGE_BYTES = 5_000_000
MAX_BATCH_IMAGES = 5
CLARIFAI_TOP_CONCEPTS = 3
FILENAME_MATCH_CONFIDENCE = 0.9
SIGNATURE_MIN_CONFIDENCE = 0.65
SIGNATURE_CONFIDENCE_SPREAD = 0.25
SIGNATURE_MAX_FOODS = 3

CLARIFAI_CALORIE_ESTIMATES: dict[str, int] = {
    "apple": 95,
    "banana": 105,
    "chicken": 165,
    "rice": 130,
    "bread": 80,
    "egg": 70,
    "milk": 60,
    "cheese": 110,
}
CLARIFAI_DEFAULT_CALORIES = 100

VISION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                    "calories": {"type": "integer", "minimum": 0},
                    "serving_unit": {"anyOf": [{"type": "string"}, {"type": "null"}]},
                },
                "required": ["name", "confidence", "calories", "serving_unit"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["foods"],
    "additionalProperties": False,
}


@dataclass(frozen=True)
class ClassificationRequest:
    """Inputs a classifier may use; at least one is set."""

    image_bytes: bytes | None = None
    filename: str | None = None
    description: str | None = None


class FoodClassifier(Protocol):
    """One provider in the classification chain."""

    name: str

    async def classify(self, request: ClassificationRequest) -> Classification | None:
        """Return guessed foods, or None when this provider has no answer."""


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

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
        """Return structured vision extraction data."""


class ClarifaiClient(Protocol):
    """Interface for the Clarifai food-item recognition model."""

    async def predict(self, image_base64: str) -> dict[str, object]:
        """Return the raw model output for a base64 image."""


@dataclass
class ClassificationService:
    """Tries providers in order and returns the first non-empty guess."""

    providers: Sequence[FoodClassifier]
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES

    async def classify(
        self,
        image_bytes: bytes | None = None,
        filename: str | None = None,
        description: str | None = None,
    ) -> Classification:
        """Guess the foods in an image or description."""
        if image_bytes is not None:
            validate_image(image_bytes, self.max_image_bytes)
        elif not (description or "").strip():
            raise ValidationError("An image or a description is required")
        request = ClassificationRequest(
            image_bytes=image_bytes, filename=filename, description=description
        )
        for provider in self.providers:
            try:
                result = await provider.classify(request)
            except Exception:  # noqa: BLE001
                _logger.warning(
                    "Food classifier failed",
                    exc_info=True,
                    extra={"provider": provider.name},
                )
                continue
            if result is not None and result.foods:
                return result
            _logger.info("Food classifier had no result", extra={"provider": provider.name})
        raise ClassificationError("Unable to classify food")

    async def classify_batch(
        self, requests: Sequence[ClassificationRequest]
    ) -> list[BatchItemResult]:
        """Classify up to five images; one bad image does not fail the rest."""
        if not requests:
            raise ValidationError("At least one image is required")
        if len(requests) > MAX_BATCH_IMAGES:
            raise ValidationError(
                f"Maximum {MAX_BATCH_IMAGES} images allowed per batch"
            )
        results: list[BatchItemResult] = []
        for request in requests:
            try:
                classification = await self.classify(
                    image_bytes=request.image_bytes,
                    filename=request.filename,
                    description=request.description,
                )
            except (ValidationError, ClassificationError) as exc:
                _logger.info(
                    "Batch image failed", extra={"image_filename": request.filename}
                )
                results.append(BatchItemResult(filename=request.filename, error=exc.message))
                continue
            results.append(
                BatchItemResult(filename=request.filename, classification=classification)
            )
        return results


@dataclass
class OpenAIFoodClassifier:
    """Classifier backed by a structured-output vision model."""

    client: VisionClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    name: str = "openai"

    async def classify(self, request: ClassificationRequest) -> Classification | None:
        if request.image_bytes is None:
            return None
        prompt = (
            "Identify the foods in the image. "
            "Return each food with a short lower-case name, confidence (0-1), "
            "estimated calories for the visible portion and a serving unit."
        )
        if request.description:
            prompt += f" The user describes the meal as: {request.description}"
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=_to_data_url(request.image_bytes),
            schema=VISION_SCHEMA,
            prompt=prompt,
        )
        try:
            extract = VisionExtract.model_validate(raw)
        except PydanticValidationError as exc:
            raise ClassificationError("Vision model returned malformed output") from exc
        foods = [
            FoodItem(
                name=food.name.strip().lower(),
                calories=food.calories,
                serving_size={"amount": 1, "unit": food.serving_unit or "serving"},
                confidence=food.confidence,
            )
            for food in extract.foods
            if food.name.strip()
        ]
        return _classification(foods, self.name)


@dataclass
class ClarifaiFoodClassifier:
    """Classifier backed by Clarifai's food-item recognition model."""

    client: ClarifaiClient
    name: str = "clarifai"

    async def classify(self, request: ClassificationRequest) -> Classification | None:
        if request.image_bytes is None:
            return None
        encoded = base64.b64encode(request.image_bytes).decode("utf-8")
        raw = await self.client.predict(encoded)
        try:
            concepts = raw["outputs"][0]["data"]["concepts"]  # type: ignore[index]
        except (KeyError, IndexError, TypeError) as exc:
            raise ClassificationError("Clarifai returned malformed output") from exc
        foods = [
            FoodItem(
                name=str(concept["name"]).strip().lower(),
                calories=estimate_calories(str(concept["name"])),
                confidence=min(1.0, max(0.0, float(concept.get("value", 0.0)))),
            )
            for concept in concepts[:CLARIFAI_TOP_CONCEPTS]
            if str(concept.get("name", "")).strip()
        ]
        return _classification(foods, self.name)


@dataclass
class FilenameHeuristicClassifier:
    """Matches catalog food names against the filename and description."""

    catalog: FoodCatalogService = field(default_factory=FoodCatalogService)
    name: str = "filename"

    async def classify(self, request: ClassificationRequest) -> Classification | None:
        text = f"{request.filename or ''} {request.description or ''}"
        matches = [
            _catalog_food(entry, FILENAME_MATCH_CONFIDENCE)
            for entry in self.catalog.match_text(text)
        ]
        return _classification(matches, self.name)


@dataclass
class ImageSignatureClassifier:
    """Deterministic guess of one to three catalog foods from payload size."""

    foods: tuple[FoodCatalogEntry, ...] = field(default=DEFAULT_FOODS)
    name: str = "signature"

    async def classify(self, request: ClassificationRequest) -> Classification | None:
        if not self.foods:
            return None
        payload = request.image_bytes
        if payload is None:
            payload = (request.description or request.filename or "").encode("utf-8")
        size = len(payload)
        count = len(self.foods)
        offset = size % count
        picked: list[FoodItem] = []
        for index in range(1 + size % SIGNATURE_MAX_FOODS):
            entry = self.foods[(offset + index * 3) % count]
            if any(food.name == entry.name for food in picked):
                continue
            spread = ((size + index) % 11) / 10
            confidence = SIGNATURE_MIN_CONFIDENCE + SIGNATURE_CONFIDENCE_SPREAD * spread
            picked.append(_catalog_food(entry, round(confidence, 2)))
        return _classification(picked, self.name)


def estimate_calories(concept_name: str) -> int:
    """Rough calories for a recognized concept by keyword."""
    lowered = concept_name.lower()
    for keyword, calories in CLARIFAI_CALORIE_ESTIMATES.items():
        if keyword in lowered:
            return calories
    return CLARIFAI_DEFAULT_CALORIES


def validate_image(image_bytes: bytes, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> None:
    """Reject empty, oversized or non JPEG/PNG/WEBP payloads."""
    if not image_bytes:
        raise ValidationError("No image file provided")
    if len(image_bytes) > max_bytes:
        raise ValidationError(
            f"File too large. Maximum size: {round(max_bytes / 1_000_000)}MB"
        )
    if _detect_mime_type(image_bytes) is None:
        raise ValidationError(
            "Invalid file type. Allowed types: image/jpeg, image/png, image/webp"
        )


def _classification(foods: list[FoodItem], method: str) -> Classification | None:
    if not foods:
        return None
    confidence = sum(food.confidence for food in foods) / len(foods)
    return Classification(foods=foods, confidence=round(confidence, 3), method=method)


def _catalog_food(entry: FoodCatalogEntry, confidence: float) -> FoodItem:
    return FoodItem(
        name=entry.name,
        calories=entry.calories,
        nutrition=dict(entry.nutrition),
        serving_size=dict(entry.serving_size),
        confidence=confidence,
    )


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes) or "image/jpeg"
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str | None:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return None
