"""Tests for container wiring."""

import asyncio

import pytest

from calorie_tracker.containers import build_container
from calorie_tracker.errors import ValidationError


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.meal_service is not None
    assert container.stats_service is not None
    assert [provider.name for provider in container.classification_service.providers] == [
        "filename",
        "signature",
    ]
    asyncio.run(container.close_resources())


def test_smart_log_shares_ledger_and_classifier(settings) -> None:
    container = build_container(settings)

    assert container.smart_log_service.ledger is container.meal_service
    assert container.smart_log_service.classifier is container.classification_service
    assert container.insights_service.catalog is container.catalog_service
    asyncio.run(container.close_resources())


def test_build_container_adds_remote_classifiers(settings) -> None:
    configured = settings.model_copy(
        update={"openai_api_key": "sk-test", "clarifai_api_key": "clarifai-key"}
    )

    container = build_container(configured)

    assert [provider.name for provider in container.classification_service.providers] == [
        "openai",
        "clarifai",
        "filename",
        "signature",
    ]
    asyncio.run(container.close_resources())


def test_build_container_rejects_unknown_backend(settings) -> None:
    with pytest.raises(ValidationError):
        build_container(settings.model_copy(update={"storage_backend": "mongo"}))


def test_build_container_requires_supabase_credentials(settings) -> None:
    with pytest.raises(ValidationError):
        build_container(settings.model_copy(update={"storage_backend": "supabase"}))
