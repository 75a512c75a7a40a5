"""Tests for lazy imports in dropbox_linker.auth."""

import pytest

from dropbox_linker import auth as auth_module


def test_auth_getattr_oauth_manager() -> None:
    oauth_manager = getattr(auth_module, "OAuthManager")
    assert oauth_manager.__name__ == "OAuthManager"


def test_auth_getattr_token_storage() -> None:
    token_storage = getattr(auth_module, "TokenStorage")
    assert token_storage.__name__ == "TokenStorage"


def test_auth_getattr_callback_server() -> None:
    callback_server = getattr(auth_module, "CallbackServer")
    assert callback_server.__name__ == "CallbackServer"


def test_auth_getattr_unknown_attribute() -> None:
    with pytest.raises(AttributeError):
        getattr(auth_module, "DoesNotExist")
