"""Tests for account inspection via the Dropbox SDK."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from dropbox.exceptions import AuthError

from dropbox_linker.account import AccountInfo, AccountInspector


def make_account(root="100", home="200"):
    return SimpleNamespace(
        email="me@example.com",
        name=SimpleNamespace(display_name="Me Example"),
        root_info=SimpleNamespace(root_namespace_id=root, home_namespace_id=home),
    )


def make_factory(account=None, error=None):
    dbx = MagicMock()
    if error is not None:
        dbx.users_get_current_account.side_effect = error
    else:
        dbx.users_get_current_account.return_value = account
    factory = MagicMock(return_value=dbx)
    return factory, dbx


class TestAccountInfo:
    def test_team_root_when_root_differs_from_home(self):
        assert AccountInfo("e", "n", "100", "200").team_root_namespace_id == "100"

    def test_personal_account_has_no_team_root(self):
        assert AccountInfo("e", "n", "200", "200").team_root_namespace_id is None
        assert AccountInfo("e", "n", None, None).team_root_namespace_id is None


class TestAccountInspector:
    def test_get_account_info(self):
        factory, dbx = make_factory(make_account())

        info = AccountInspector(dropbox_factory=factory).get_account_info("token-1")

        factory.assert_called_once_with(oauth2_access_token="token-1")
        assert info == AccountInfo("me@example.com", "Me Example", "100", "200")

    def test_auth_error_propagates(self):
        factory, _ = make_factory(error=AuthError("req-id", "invalid_access_token"))

        with pytest.raises(AuthError):
            AccountInspector(dropbox_factory=factory).get_account_info("bad")

    @pytest.mark.asyncio
    async def test_resolve_team_namespace(self):
        factory, _ = make_factory(make_account(root="100", home="200"))

        assert await AccountInspector(dropbox_factory=factory).resolve_root_namespace("t") == "100"

    @pytest.mark.asyncio
    async def test_resolve_personal_namespace(self):
        factory, _ = make_factory(make_account(root="200", home="200"))

        assert await AccountInspector(dropbox_factory=factory).resolve_root_namespace("t") is None
