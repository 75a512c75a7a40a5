"""
Dropbox shared-link client.
Creates expiring public links, reusing the existing link when Dropbox reports one.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Union

import httpx

from dropbox_linker.exceptions import DropboxApiError, SharedLinkNotFoundError
from dropbox_linker.models import LinkRequest, LinkResult
from dropbox_linker.utils.formatting import clean_display_name

API_BASE_URL = "https://api.dropboxapi.com/2"
CREATE_SHARED_LINK_ROUTE = "/sharing/create_shared_link_with_settings"
LIST_SHARED_LINKS_ROUTE = "/sharing/list_shared_links"
PATH_ROOT_HEADER = "Dropbox-API-Path-Root"

SHARED_LINK_ALREADY_EXISTS = "shared_link_already_exists"
UNKNOWN_ERROR_TAG = "unknown"

DEFAULT_TIMEOUT_SECONDS = 30.0


class TokenProvider(Protocol):
    async def acquire(self, timeout: Optional[float] = None) -> str:
        ...

    async def force_reauthenticate(self, timeout: Optional[float] = None) -> None:
        ...


def classify_error(body: Union[str, bytes, dict, None]) -> str:
    """
    Extract the error tag from a Dropbox error response body.

    Prefers ``error[".tag"]``, falls back to the part of ``error_summary``
    before the first "/", and returns "unknown" when neither is present.
    """
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError:
            return UNKNOWN_ERROR_TAG
    if not isinstance(body, dict):
        return UNKNOWN_ERROR_TAG

    error = body.get("error")
    if isinstance(error, dict):
        tag = error.get(".tag")
        if isinstance(tag, str) and tag:
            return tag

    summary = body.get("error_summary")
    if isinstance(summary, str):
        tag = summary.split("/", 1)[0].strip()
        if tag:
            return tag

    return UNKNOWN_ERROR_TAG


def format_expiry(expires_at: datetime) -> str:
    """Format a timezone-aware datetime the way Dropbox expects (UTC, seconds)."""
    return expires_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ApiCallResult:
    """Either a decoded JSON payload or a classified error, never both."""

    payload: Optional[dict] = None
    error: Optional[DropboxApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_tag(self) -> Optional[str]:
        return self.error.tag if self.error else None


class SharedLinkClient:
    """Client for the Dropbox sharing API."""

    def __init__(
        self,
        token_provider: TokenProvider,
        http_client: Optional[httpx.AsyncClient] = None,
        root_namespace_id: Optional[str] = None,
        api_base_url: str = API_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize the shared-link client.

        Args:
            token_provider: Supplies bearer tokens (usually an OAuthManager)
            http_client: Client used for API calls
            root_namespace_id: Team-space root namespace; paths resolve against it when set
            api_base_url: Base URL of the Dropbox RPC API
            timeout_seconds: Per-request timeout
        """
        self.token_provider = token_provider
        self.root_namespace_id = root_namespace_id
        self.api_base_url = api_base_url.rstrip("/")
        self.logger = logging.getLogger(__name__)
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_http_client = http_client is None

    def _headers(self, access_token: str) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"}
        if self.root_namespace_id:
            headers[PATH_ROOT_HEADER] = json.dumps({".tag": "root", "root": self.root_namespace_id})
        return headers

    async def _call(self, route: str, body: dict, access_token: str) -> ApiCallResult:
        try:
            response = await self._http_client.post(
                f"{self.api_base_url}{route}", json=body, headers=self._headers(access_token)
            )
        except httpx.HTTPError as e:
            self.logger.error(f"Request to {route} failed: {e}")
            return ApiCallResult(error=DropboxApiError(UNKNOWN_ERROR_TAG, str(e)))

        if response.status_code >= 400:
            tag = classify_error(response.text)
            self.logger.error(f"Dropbox API error on {route} ({response.status_code}): {tag}")
            self.logger.debug(f"Error body: {response.text}")
            return ApiCallResult(error=DropboxApiError(tag, response.text, response.status_code))

        try:
            payload = response.json()
        except ValueError:
            return ApiCallResult(error=DropboxApiError(UNKNOWN_ERROR_TAG, response.text, response.status_code))
        return ApiCallResult(payload=payload if isinstance(payload, dict) else {})

    async def create_or_reuse(self, request: LinkRequest, dropbox_path: str) -> LinkResult:
        """
        Create a shared link for a file, or return the one that already exists.

        Args:
            request: The link request
            dropbox_path: The file's path inside Dropbox (e.g. "/Reports/q3.pdf")

        Returns:
            LinkResult with reused_existing set when an existing link was returned

        Raises:
            ValueError: If dropbox_path is empty
            DropboxApiError: For any provider error other than an existing link
            SharedLinkNotFoundError: If Dropbox reports an existing link that cannot be listed
        """
        if not dropbox_path or not dropbox_path.strip():
            raise ValueError("dropbox_path is required")

        file_name = os.path.basename(request.source_file)
        self.logger.info(f"Creating shared link for: {file_name}")
        self.logger.debug(f"Dropbox path: {dropbox_path}")

        access_token = await self.token_provider.acquire()

        created = await self._call(
            CREATE_SHARED_LINK_ROUTE,
            {
                "path": dropbox_path,
                "settings": {
                    "requested_visibility": "public",
                    "expires": format_expiry(request.expires_at),
                    "audience": "public",
                },
            },
            access_token,
        )

        if created.ok:
            url = self._link_url(created.payload)
            self.logger.info(f"Shared link created for: {file_name}")
            return LinkResult(url, clean_display_name(file_name), dropbox_path, reused_existing=False)

        if created.error_tag != SHARED_LINK_ALREADY_EXISTS:
            raise created.error

        self.logger.info("Shared link already exists, retrieving existing link...")
        url = await self._existing_link_url(dropbox_path, access_token)
        return LinkResult(url, clean_display_name(file_name), dropbox_path, reused_existing=True)

    async def _existing_link_url(self, dropbox_path: str, access_token: str) -> str:
        listed = await self._call(LIST_SHARED_LINKS_ROUTE, {"path": dropbox_path, "direct_only": True}, access_token)
        if not listed.ok:
            raise listed.error

        links = listed.payload.get("links") or []
        for link in links:
            url = link.get("url") if isinstance(link, dict) else None
            if url:
                return url
        raise SharedLinkNotFoundError(f"Existing shared link expected but not found for {dropbox_path}")

    @staticmethod
    def _link_url(payload: Optional[dict]) -> str:
        url = (payload or {}).get("url")
        if not url:
            raise DropboxApiError(UNKNOWN_ERROR_TAG, json.dumps(payload or {}))
        return url

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()
