"""Shared test fixtures and configuration."""

from typing import Optional
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def isolate_keyring():
    """
    Automatically mock the keyring module for all tests so no test touches the
    real system keyring.

    TokenStorage imports keyring in __init__, so patching sys.modules is enough.
    """
    mock_keyring_module = MagicMock()
    mock_keyring_module.get_password.return_value = None
    mock_keyring_module.set_password.return_value = None
    mock_keyring_module.delete_password.return_value = None

    with patch.dict("sys.modules", {"keyring": mock_keyring_module}):
        yield mock_keyring_module


class FakeTokenProvider:
    """Stands in for OAuthManager in link-client tests."""

    def __init__(self, token: str = "test-access-token"):
        self.token = token
        self.acquire_calls = 0
        self.reauthenticate_calls = 0

    async def acquire(self, timeout: Optional[float] = None) -> str:
        self.acquire_calls += 1
        return self.token

    async def force_reauthenticate(self, timeout: Optional[float] = None) -> None:
        self.reauthenticate_calls += 1


@pytest.fixture
def token_provider():
    return FakeTokenProvider()
