#!/usr/bin/env python3
"""
Dropbox Linker command line.

Usage:
    dropbox-linker authorize
    dropbox-linker reauthorize
    dropbox-linker check
    dropbox-linker link FILE [FILE ...] [--days N] [--html]

`link` converts each file into an expiring shared link, prints a block per
file and exits with status 1 when any link could not be created (the
situation in which a message would be blocked from sending).
"""

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from dropbox_linker.account import AccountInspector
from dropbox_linker.auth.oauth_manager import OAuthManager
from dropbox_linker.config_loader import DEFAULT_CONFIG_PATH, LinkerConfig, load_config
from dropbox_linker.conversion_tracker import ConversionTracker
from dropbox_linker.exceptions import AuthenticationError, ConfigError
from dropbox_linker.link_client import SharedLinkClient
from dropbox_linker.link_conversion import LinkConversionService
from dropbox_linker.logging_utils import setup_logging
from dropbox_linker.utils.folder_locator import find_dropbox_root
from dropbox_linker.utils.link_block import build_html_block, build_plain_text_block

logger = logging.getLogger(__name__)


def positive_days(value: str) -> int:
    try:
        days = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number of days, got {value!r}") from None
    if days <= 0:
        raise argparse.ArgumentTypeError(f"must be at least 1 day, got {days}")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dropbox-linker", description="Share files from your Dropbox folder as expiring links"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("authorize", help="Sign in to Dropbox if no valid credentials are stored")
    subparsers.add_parser("reauthorize", help="Forget stored credentials and sign in again")
    subparsers.add_parser("check", help="Show the connected account")

    link_parser = subparsers.add_parser("link", help="Create shared links for files")
    link_parser.add_argument("files", nargs="+", help="Files inside your Dropbox folder")
    link_parser.add_argument("--days", type=positive_days, default=None, help="Days until the links expire")
    link_parser.add_argument("--html", action="store_true", help="Print HTML blocks instead of plain text")
    return parser


async def _resolve_namespace(config: LinkerConfig, oauth: OAuthManager) -> Optional[str]:
    if not config.discover_namespace:
        return config.root_namespace_id
    access_token = await oauth.acquire()
    return await AccountInspector().resolve_root_namespace(access_token)


async def run_authorize(oauth: OAuthManager) -> int:
    await oauth.acquire()
    print("✓ Signed in to Dropbox. Credentials are stored in the system keyring.")
    return 0


async def run_reauthorize(oauth: OAuthManager) -> int:
    await oauth.force_reauthenticate()
    print("✓ Signed in to Dropbox again.")
    return 0


async def run_check(oauth: OAuthManager) -> int:
    access_token = await oauth.acquire()
    info = await AccountInspector().get_account_info_async(access_token)
    print(f"Account: {info.display_name} <{info.email}>")
    if info.team_root_namespace_id:
        print(f"Team space root namespace: {info.team_root_namespace_id}")
    else:
        print("Personal account (no team space root)")
    return 0


async def run_link(config: LinkerConfig, oauth: OAuthManager, files: List[str], days: Optional[int], html: bool) -> int:
    dropbox_root = config.local_root or find_dropbox_root()
    namespace = await _resolve_namespace(config, oauth)

    link_client = SharedLinkClient(oauth, root_namespace_id=namespace)
    service = LinkConversionService(
        link_client,
        ConversionTracker(),
        dropbox_root,
        link_expiration_days=days if days is not None else config.link_expiration_days,
    )
    message_id = str(uuid.uuid4())
    try:
        outcomes = await service.convert_files(message_id, [str(Path(f).expanduser().resolve()) for f in files])
    finally:
        await link_client.aclose()

    for outcome in outcomes:
        if outcome.succeeded:
            block = build_html_block if html else build_plain_text_block
            print(block(outcome.result, outcome.size_bytes))
        else:
            print(f"✗ {Path(outcome.local_path).name}: {outcome.error}", file=sys.stderr)

    verdict = service.validate_send(message_id, threshold_bytes=config.large_attachment_threshold_bytes)
    if verdict.block_send:
        print(f"\n{verdict.message}", file=sys.stderr)
        return 1
    service.mark_sent(message_id)
    return 0


async def _dispatch(args: argparse.Namespace, config: LinkerConfig) -> int:
    oauth = OAuthManager(config.app_key, callback_port=config.callback_port)
    try:
        if args.command == "authorize":
            return await run_authorize(oauth)
        if args.command == "reauthorize":
            return await run_reauthorize(oauth)
        if args.command == "check":
            return await run_check(oauth)
        return await run_link(config, oauth, args.files, args.days, args.html)
    finally:
        await oauth.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(verbose=args.verbose or config.verbose, log_file=config.log_file)

    if not config.is_valid():
        print("Error: Dropbox app key not configured.", file=sys.stderr)
        print(f"Set dropbox.app_key in {args.config} or the DROPBOX_APP_KEY environment variable.", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_dispatch(args, config))
    except KeyboardInterrupt:
        print("\nCancelled by user.", file=sys.stderr)
        return 130
    except AuthenticationError as e:
        logger.error(f"Authentication failed: {e}", exc_info=args.verbose)
        print(f"\nError: {e}\nPlease try signing in again.", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
