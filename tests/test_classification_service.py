"""Tests for the food classification chain."""

import asyncio

import pytest

from calorie_tracker.errors import ClassificationError, ValidationError
from calorie_tracker.services.catalog import FoodCatalogService
from calorie_tracker.services.vision import (
    ClarifaiFoodClassifier,
    ClassificationRequest,
    ClassificationService,
    FilenameHeuristicClassifier,
    ImageSignatureClassifier,
    OpenAIFoodClassifier,
    _to_data_url,
    estimate_calories,
    validate_image,
)
from tests.conftest import (
    JPEG_HEADER,
    PNG_HEADER,
    EmptyClassifier,
    FailingClassifier,
    FakeClarifaiClient,
    FakeVisionClient,
)


def _image(size: int = 64) -> bytes:
    return JPEG_HEADER + b"\x00" * (size - len(JPEG_HEADER))


def test_openai_provider_wins_when_available() -> None:
    service = ClassificationService(
        providers=[
            OpenAIFoodClassifier(client=FakeVisionClient(), model="gpt-5.2"),
            ImageSignatureClassifier(),
        ]
    )

    result = asyncio.run(service.classify(image_bytes=_image()))

    assert result.method == "openai"
    assert result.foods[0].name == "rice"
    assert result.foods[0].serving_size == {"amount": 1, "unit": "cup cooked"}
    assert result.total_calories == 206
    assert result.confidence == 0.72


def test_failing_provider_falls_through_to_next() -> None:
    failing = FailingClassifier()
    service = ClassificationService(
        providers=[failing, EmptyClassifier(), FilenameHeuristicClassifier()]
    )

    result = asyncio.run(
        service.classify(image_bytes=_image(), filename="my_Banana_and_apple.jpg")
    )

    assert failing.calls == 1
    assert result.method == "filename"
    assert [food.name for food in result.foods] == ["apple", "banana"]
    assert result.confidence == 0.9


def test_all_providers_failing_raises_classification_error() -> None:
    service = ClassificationService(providers=[FailingClassifier(), EmptyClassifier()])

    with pytest.raises(ClassificationError):
        asyncio.run(service.classify(image_bytes=_image()))


def test_clarifai_uses_top_three_concepts_with_estimates() -> None:
    service = ClassificationService(
        providers=[ClarifaiFoodClassifier(client=FakeClarifaiClient())]
    )

    result = asyncio.run(service.classify(image_bytes=_image()))

    assert [food.name for food in result.foods] == ["banana", "bread", "salmon"]
    assert [food.calories for food in result.foods] == [105, 80, 100]
    assert result.method == "clarifai"


def test_estimate_calories_defaults_to_100() -> None:
    assert estimate_calories("Fried Egg") == 70
    assert estimate_calories("durian") == 100


def test_signature_mock_is_deterministic_and_non_empty() -> None:
    service = ClassificationService(providers=[ImageSignatureClassifier()])
    image = _image(100)

    first = asyncio.run(service.classify(image_bytes=image))
    second = asyncio.run(service.classify(image_bytes=image))

    assert first.foods == second.foods
    assert 1 <= len(first.foods) <= 3
    assert len({food.name for food in first.foods}) == len(first.foods)
    assert all(0.65 <= food.confidence <= 0.9 for food in first.foods)


def test_signature_mock_picks_catalog_foods_by_size() -> None:
    # 100 % 11 selects pizza first; 1 + 100 % 3 gives two foods at stride 3.
    result = asyncio.run(
        ImageSignatureClassifier().classify(ClassificationRequest(image_bytes=_image(100)))
    )

    assert result is not None
    assert [food.name for food in result.foods] == ["pizza", "rice"]


def test_text_only_request_uses_description() -> None:
    service = ClassificationService(
        providers=[
            OpenAIFoodClassifier(client=FakeVisionClient(), model="gpt-5.2"),
            FilenameHeuristicClassifier(),
            ImageSignatureClassifier(),
        ]
    )

    matched = asyncio.run(service.classify(description="Two eggs and yogurt"))
    guessed = asyncio.run(service.classify(description="something unusual"))

    assert matched.method == "filename"
    assert [food.name for food in matched.foods] == ["eggs", "yogurt"]
    assert guessed.method == "signature"
    assert guessed.foods


def test_classify_requires_image_or_description() -> None:
    service = ClassificationService(providers=[ImageSignatureClassifier()])

    with pytest.raises(ValidationError):
        asyncio.run(service.classify(description="   "))


@pytest.mark.parametrize(
    "payload",
    [b"", b"GIF89a-not-allowed", JPEG_HEADER + b"\x00" * 20],
)
def test_validate_image_rejects_bad_payloads(payload: bytes) -> None:
    with pytest.raises(ValidationError):
        validate_image(payload, max_bytes=16)


def test_validate_image_accepts_supported_signatures() -> None:
    validate_image(PNG_HEADER + b"rest")
    validate_image(b"RIFF\x00\x00\x00\x00WEBPVP8 ")
    validate_image(_image())


def test_to_data_url_uses_png_header() -> None:
    url = _to_data_url(PNG_HEADER + b"rest")

    assert url.startswith("data:image/png;base64,")


def test_filename_heuristic_matches_against_its_catalog() -> None:
    catalog = FoodCatalogService(foods=(FoodCatalogService().get_food("yogurt"),))
    classifier = FilenameHeuristicClassifier(catalog=catalog)

    matched = asyncio.run(
        classifier.classify(ClassificationRequest(description="Greek YOGURT and apple"))
    )
    missed = asyncio.run(classifier.classify(ClassificationRequest(filename="apple.png")))

    assert matched is not None
    assert [food.name for food in matched.foods] == ["yogurt"]
    assert matched.confidence == 0.9
    assert missed is None


def test_batch_reports_each_image_separately() -> None:
    service = ClassificationService(providers=[FilenameHeuristicClassifier()])

    results = asyncio.run(
        service.classify_batch(
            [
                ClassificationRequest(image_bytes=_image(), filename="apple.jpg"),
                ClassificationRequest(image_bytes=b"GIF89a-data", filename="cat.gif"),
                ClassificationRequest(image_bytes=_image(), filename="IMG_0001.jpg"),
            ]
        )
    )

    assert [result.succeeded for result in results] == [True, False, False]
    assert results[0].classification.foods[0].name == "apple"  # type: ignore[union-attr]
    assert results[1].filename == "cat.gif"
    assert results[1].error is not None
    assert results[1].error.startswith("Invalid file type")
    assert results[2].error == "Unable to classify food"


@pytest.mark.parametrize(
    ("count", "message"),
    [(0, "At least one image is required"), (6, "Maximum 5 images allowed per batch")],
)
def test_batch_size_is_bounded(count: int, message: str) -> None:
    service = ClassificationService(providers=[ImageSignatureClassifier()])
    requests = [ClassificationRequest(image_bytes=_image()) for _ in range(count)]

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.classify_batch(requests))

    assert excinfo.value.message == message
