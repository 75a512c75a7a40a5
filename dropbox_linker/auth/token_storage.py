"""
Secure storage for the Dropbox refresh token.
Backed by the system keyring (Keychain, Secret Service, Windows Credential Manager).
"""

import logging
from typing import Optional

from dropbox_linker.auth.constants import KEYRING_SERVICE_NAME, KEYRING_USERNAME


class TokenStorage:
    """
    Best-effort persistence for a single refresh token.

    Every operation reports failure through its return value; keyring faults
    are logged and never raised, so an unavailable store only forces
    re-authentication.
    """

    def __init__(self, service_name: str = KEYRING_SERVICE_NAME, username: str = KEYRING_USERNAME):
        """
        Initialize token storage.

        Args:
            service_name: Service name of the keyring entry
            username: Username of the keyring entry
        """
        self.service_name = service_name
        self.username = username
        self.logger = logging.getLogger(__name__)

        # keyring may be missing or have no usable backend on headless machines
        try:
            import keyring

            self.keyring = keyring
            self.keyring_available = True
            self.logger.debug("Keyring available for secure token storage")
        except ImportError:
            self.keyring = None
            self.keyring_available = False
            self.logger.warning(
                "Keyring not available. Refresh tokens will not be persisted and "
                "you will be asked to sign in on every start. Install with: pip install keyring"
            )

    def store(self, refresh_token: str) -> bool:
        """
        Save the refresh token.

        Args:
            refresh_token: Long-lived refresh token

        Returns:
            True if successful, False otherwise
        """
        if not refresh_token:
            return False
        if not self.keyring_available:
            self.logger.warning("Keyring not available. Cannot save refresh token.")
            return False

        try:
            self.keyring.set_password(self.service_name, self.username, refresh_token)
            self.logger.info("Refresh token saved to system keyring")
            return True
        except Exception as e:
            self.logger.error(f"Failed to save refresh token: {e}")
            return False

    def retrieve(self) -> Optional[str]:
        """
        Load the refresh token.

        Returns:
            The refresh token, or None if absent or the keyring failed
        """
        if not self.keyring_available:
            return None

        try:
            refresh_token = self.keyring.get_password(self.service_name, self.username)
        except Exception as e:
            self.logger.error(f"Failed to load refresh token: {e}")
            return None

        if not refresh_token:
            self.logger.debug("No refresh token found in keyring")
            return None
        return refresh_token

    def delete(self) -> bool:
        """
        Delete the refresh token.

        Returns:
            True if an entry was deleted, False otherwise
        """
        if not self.keyring_available:
            return False

        try:
            self.keyring.delete_password(self.service_name, self.username)
            self.logger.info("Refresh token deleted from system keyring")
            return True
        except Exception as e:
            # keyring raises PasswordDeleteError when there is nothing to delete
            self.logger.debug(f"Could not delete refresh token: {e}")
            return False
