"""
Authentication module for Dropbox Linker.
Provides the OAuth 2.0 PKCE flow, access-token caching and refresh-token storage.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dropbox_linker.auth.callback_server import CallbackServer
    from dropbox_linker.auth.oauth_manager import OAuthManager
    from dropbox_linker.auth.token_storage import TokenStorage

__all__ = ["OAuthManager", "TokenStorage", "CallbackServer"]


def __getattr__(name: str) -> object:
    if name == "OAuthManager":
        from dropbox_linker.auth.oauth_manager import OAuthManager

        return OAuthManager
    if name == "TokenStorage":
        from dropbox_linker.auth.token_storage import TokenStorage

        return TokenStorage
    if name == "CallbackServer":
        from dropbox_linker.auth.callback_server import CallbackServer

        return CallbackServer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
