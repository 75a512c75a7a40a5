"""Constants for OAuth 2.0 authentication."""

AUTHORIZE_URL = "https://www.dropbox.com/oauth2/authorize"
TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"

# Loopback listener for the authorization redirect
CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = 17823
CALLBACK_PATH = "/callback"

# How long to wait for the user to finish logging in
CALLBACK_TIMEOUT_SECONDS = 300  # 5 minutes

# Used when the token response carries no expires_in
# Dropbox OAuth 2.0 access tokens typically expire after 4 hours
DROPBOX_ACCESS_TOKEN_EXPIRY_SECONDS = 14400  # 4 hours = 14400 seconds

# Subtracted from the provider-declared lifetime so tokens are refreshed early
TOKEN_EXPIRY_BUFFER_SECONDS = 300  # 5 minutes = 300 seconds

# Timeout for calls to the token endpoint
TOKEN_REQUEST_TIMEOUT_SECONDS = 30.0

# Keyring entry holding the refresh token
KEYRING_SERVICE_NAME = "dropbox-linker"
KEYRING_USERNAME = "DropboxRefreshToken"


def redirect_uri(port: int = CALLBACK_PORT) -> str:
    return f"http://localhost:{port}{CALLBACK_PATH}"
