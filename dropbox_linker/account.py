"""
Dropbox account inspection.
Uses the Dropbox SDK to look up the signed-in account and its namespaces.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import dropbox
from dropbox.exceptions import ApiError, AuthError


@dataclass(frozen=True)
class AccountInfo:
    email: str
    display_name: str
    root_namespace_id: Optional[str]
    home_namespace_id: Optional[str]

    @property
    def team_root_namespace_id(self) -> Optional[str]:
        """Root namespace to send as path root, or None for personal accounts."""
        if self.root_namespace_id and self.root_namespace_id != self.home_namespace_id:
            return self.root_namespace_id
        return None


class AccountInspector:
    """Reads account details for an access token."""

    def __init__(self, dropbox_factory=dropbox.Dropbox):
        self.logger = logging.getLogger(__name__)
        self._dropbox_factory = dropbox_factory

    def get_account_info(self, access_token: str) -> AccountInfo:
        """
        Fetch the current account.

        Args:
            access_token: Valid Dropbox access token

        Returns:
            AccountInfo for the token's account

        Raises:
            AuthError: If the token is rejected
            ApiError: If the account lookup fails
        """
        dbx = self._dropbox_factory(oauth2_access_token=access_token)
        try:
            account = dbx.users_get_current_account()
        except AuthError as e:
            self.logger.error(f"Authentication failed: {e}")
            raise
        except ApiError as e:
            self.logger.error(f"Account lookup failed: {e}")
            raise

        root_info = getattr(account, "root_info", None)
        info = AccountInfo(
            email=account.email,
            display_name=getattr(account.name, "display_name", "") if account.name else "",
            root_namespace_id=getattr(root_info, "root_namespace_id", None),
            home_namespace_id=getattr(root_info, "home_namespace_id", None),
        )
        self.logger.info(f"Connected to Dropbox account: {info.email}")
        return info

    async def get_account_info_async(self, access_token: str) -> AccountInfo:
        # The SDK is synchronous; keep the event loop free while it runs
        return await asyncio.to_thread(self.get_account_info, access_token)

    async def resolve_root_namespace(self, access_token: str) -> Optional[str]:
        info = await self.get_account_info_async(access_token)
        if info.team_root_namespace_id:
            self.logger.info(f"Using team space root namespace: {info.team_root_namespace_id}")
        return info.team_root_namespace_id
