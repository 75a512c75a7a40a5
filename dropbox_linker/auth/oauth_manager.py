"""
OAuth 2.0 authentication manager for Dropbox.
Handles the PKCE authorization flow, access-token caching and refresh.
"""

import asyncio
import logging
import secrets
import time
import webbrowser
from typing import Callable, Dict, Optional

import httpx

from dropbox_linker.auth import pkce
from dropbox_linker.auth.callback_server import CallbackServer
from dropbox_linker.auth.constants import (
    CALLBACK_PORT,
    CALLBACK_TIMEOUT_SECONDS,
    DROPBOX_ACCESS_TOKEN_EXPIRY_SECONDS,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    TOKEN_REQUEST_TIMEOUT_SECONDS,
    TOKEN_URL,
    redirect_uri,
)
from dropbox_linker.auth.token_storage import TokenStorage
from dropbox_linker.exceptions import (
    AuthenticationError,
    AuthorizationDeniedError,
    StateMismatchError,
    TokenRequestError,
)


class OAuthManager:
    """
    Owns the access token used for every Dropbox API call.

    ``acquire`` returns the cached token while it is valid, otherwise refreshes
    it with the stored refresh token, otherwise runs the interactive browser
    flow. Concurrent callers that miss the cache are serialized behind one
    lock, so only the first of them refreshes or opens a browser and the rest
    pick up its result.
    """

    def __init__(
        self,
        app_key: str,
        token_storage: Optional[TokenStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        callback_port: int = CALLBACK_PORT,
        expiry_buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
        callback_timeout: float = CALLBACK_TIMEOUT_SECONDS,
        open_browser: Callable[[str], bool] = webbrowser.open,
        callback_server_factory: Callable[[int], CallbackServer] = CallbackServer,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize OAuth manager.

        Args:
            app_key: Dropbox app key
            token_storage: Refresh-token store (default: system keyring)
            http_client: Client used for token endpoint calls
            callback_port: Loopback port registered as the app's redirect URI
            expiry_buffer_seconds: Safety margin subtracted from expires_in
            callback_timeout: Default seconds to wait for the browser redirect
            open_browser: Opens the authorization URL, returns False on failure
            callback_server_factory: Builds the loopback listener for a port
            clock: Returns the current Unix time
        """
        if not app_key:
            raise ValueError("app_key is required")

        self.app_key = app_key
        self.token_storage = token_storage or TokenStorage()
        self.callback_port = callback_port
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self.callback_timeout = callback_timeout
        self.logger = logging.getLogger(__name__)

        self._http_client = http_client or httpx.AsyncClient(timeout=TOKEN_REQUEST_TIMEOUT_SECONDS)
        self._owns_http_client = http_client is None
        self._open_browser = open_browser
        self._callback_server_factory = callback_server_factory
        self._clock = clock

        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def redirect_uri(self) -> str:
        return redirect_uri(self.callback_port)

    @property
    def expires_at(self) -> float:
        """Unix time after which the cached token is no longer handed out."""
        return self._expires_at

    def _cached_token(self) -> Optional[str]:
        if self._access_token and self._clock() < self._expires_at:
            return self._access_token
        return None

    def has_valid_token(self) -> bool:
        return self._cached_token() is not None

    async def acquire(self, timeout: Optional[float] = None) -> str:
        """
        Return a valid access token, refreshing or re-authenticating as needed.

        Args:
            timeout: Seconds to wait for the browser redirect if the
                     interactive flow is needed (default: callback_timeout)

        Returns:
            Access token

        Raises:
            AuthenticationError: If the interactive flow fails
        """
        token = self._cached_token()
        if token:
            return token

        async with self._lock:
            # Another caller may have finished while we waited for the lock
            token = self._cached_token()
            if token:
                return token

            # Keyring backends may block on D-Bus or the system keychain
            refresh_token = await asyncio.to_thread(self.token_storage.retrieve)
            if refresh_token:
                try:
                    await self._refresh(refresh_token)
                except Exception as e:
                    self.logger.warning(f"Token refresh failed, signing in again: {e}")
                else:
                    token = self._cached_token()
                    if token:
                        return token

            await self._authorize_interactively(timeout)
            return self._require_token()

    async def force_reauthenticate(self, timeout: Optional[float] = None) -> None:
        """
        Discard all stored credentials and run the interactive flow.

        Args:
            timeout: Seconds to wait for the browser redirect

        Raises:
            AuthenticationError: If the interactive flow fails
        """
        async with self._lock:
            await asyncio.to_thread(self.token_storage.delete)
            self._clear_cache()
            await self._authorize_interactively(timeout)
            self._require_token()

    def _clear_cache(self) -> None:
        self._access_token = None
        self._expires_at = 0.0

    def _require_token(self) -> str:
        token = self._cached_token()
        if not token:
            raise AuthenticationError("Authentication failed: no usable access token was issued")
        return token

    async def _authorize_interactively(self, timeout: Optional[float]) -> None:
        self.logger.info("Starting Dropbox OAuth authentication...")

        code_verifier = pkce.generate_code_verifier()
        state = pkce.generate_state()
        authorize_url = pkce.build_authorize_url(
            self.app_key, self.redirect_uri, pkce.code_challenge(code_verifier), state
        )

        server = self._callback_server_factory(self.callback_port)
        await server.start()
        try:
            if not self._open_browser(authorize_url):
                self.logger.warning(f"Could not open a browser. Please visit this URL to sign in:\n{authorize_url}")
            self.logger.info("Waiting for user to complete Dropbox authentication...")
            params = await server.wait_for_callback(timeout if timeout is not None else self.callback_timeout)
        finally:
            await server.stop()

        code = self._validate_callback(params, state)
        await self._exchange_code(code, code_verifier)
        self.logger.info("Dropbox authentication completed successfully.")

    def _validate_callback(self, params: Dict[str, str], expected_state: str) -> str:
        returned_state = params.get("state") or ""
        if not secrets.compare_digest(returned_state, expected_state):
            raise StateMismatchError()

        code = params.get("code")
        if not code:
            raise AuthorizationDeniedError(params.get("error") or "Unknown error", params.get("error_description"))
        return code

    async def _exchange_code(self, code: str, code_verifier: str) -> None:
        data = {
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
            "client_id": self.app_key,
        }
        payload = await self._post_token_request(data, "Token exchange")
        await self._process_token_response(payload, "Token exchange")

    async def _refresh(self, refresh_token: str) -> None:
        data = {
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "client_id": self.app_key,
        }
        payload = await self._post_token_request(data, "Token refresh")
        await self._process_token_response(payload, "Token refresh")
        self.logger.info("Access token refreshed successfully")

    async def _post_token_request(self, data: Dict[str, str], operation: str) -> dict:
        try:
            response = await self._http_client.post(TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            raise TokenRequestError(f"{operation} failed: {e}") from e

        if response.status_code >= 400:
            raise TokenRequestError(
                f"{operation} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenRequestError(
                f"{operation} returned invalid JSON", status_code=response.status_code, body=response.text
            ) from e
        if not isinstance(payload, dict):
            raise TokenRequestError(f"{operation} returned an unexpected response", body=response.text)
        return payload

    async def _process_token_response(self, payload: dict, operation: str) -> None:
        access_token = payload.get("access_token")
        if not access_token:
            raise TokenRequestError(f"{operation} response contained no access_token")

        try:
            expires_in = int(payload.get("expires_in", DROPBOX_ACCESS_TOKEN_EXPIRY_SECONDS))
        except (TypeError, ValueError):
            self.logger.warning(f"Invalid expires_in value: {payload.get('expires_in')!r}")
            expires_in = DROPBOX_ACCESS_TOKEN_EXPIRY_SECONDS

        self._access_token = access_token
        self._expires_at = self._clock() + expires_in - self.expiry_buffer_seconds

        # Dropbox may rotate the refresh token
        rotated = payload.get("refresh_token")
        if rotated:
            if not await asyncio.to_thread(self.token_storage.store, rotated):
                self.logger.warning("Refresh token could not be saved; you will need to sign in again next time")

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()
