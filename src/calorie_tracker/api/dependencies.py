"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import UserAccount
from calorie_tracker.errors import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    container: AppContainer = Depends(get_container),
) -> UserAccount:
    """Resolve the caller from the bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    return container.user_service.authenticate(credentials.credentials)
