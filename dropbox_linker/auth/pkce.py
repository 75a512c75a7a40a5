"""PKCE (RFC 7636) helpers and the authorization URL."""

import base64
import hashlib
import secrets
from urllib.parse import urlencode

from dropbox_linker.auth.constants import AUTHORIZE_URL


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier() -> str:
    """Return a 43-character verifier built from 32 random bytes."""
    return _base64url(secrets.token_bytes(32))


def code_challenge(code_verifier: str) -> str:
    """Derive the S256 challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _base64url(digest)


def generate_state() -> str:
    """Return an unpredictable anti-forgery token."""
    return _base64url(secrets.token_bytes(16))


def build_authorize_url(app_key: str, redirect_uri: str, challenge: str, state: str) -> str:
    params = {
        "client_id": app_key,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
        "state": state,
        "token_access_type": "offline",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"
