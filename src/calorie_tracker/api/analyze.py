"""Food classification endpoints."""

import base64
import binascii

from fastapi import APIRouter, Depends

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.schemas import (
    AnalyzeBatchRequest,
    AnalyzeImageRequest,
    AnalyzeTextRequest,
)
from calorie_tracker.api.serializers import batch_to_dict, classification_to_dict, envelope
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.meals import recommended_steps_for
from calorie_tracker.domain.vision import Classification
from calorie_tracker.errors import ValidationError
from calorie_tracker.services.vision import ClassificationRequest

router = APIRouter(
    prefix="/analyze", tags=["analyze"], dependencies=[Depends(current_user)]
)


@router.post("")
async def analyze_image(
    payload: AnalyzeImageRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = await container.classification_service.classify(
        image_bytes=decode_image(payload.image_base64),
        filename=payload.filename,
        description=payload.description,
    )
    return _response(container, result, "Image analyzed successfully")


@router.post("/text")
async def analyze_text(
    payload: AnalyzeTextRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = await container.classification_service.classify(
        description=payload.description
    )
    return _response(container, result, "Description analyzed successfully")


@router.post("/batch")
async def analyze_batch(
    payload: AnalyzeBatchRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    requests = [
        ClassificationRequest(
            image_bytes=decode_image(image.image_base64),
            filename=image.filename,
            description=image.description,
        )
        for image in payload.images
    ]
    results = await container.classification_service.classify_batch(requests)
    return envelope(
        batch_to_dict(results, container.settings.step_factor),
        message="Batch analysis completed",
    )


def decode_image(raw: str) -> bytes:
    """Decode a base64 payload, accepting an optional data URL prefix."""
    _, _, encoded = raw.rpartition(",")
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image must be base64 encoded") from exc


def _response(
    container: AppContainer, result: Classification, message: str
) -> dict[str, object]:
    steps = recommended_steps_for(result.total_calories, container.settings.step_factor)
    return envelope(classification_to_dict(result, steps), message=message)
