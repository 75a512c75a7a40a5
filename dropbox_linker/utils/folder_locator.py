"""
Locate the local Dropbox folder.

The Dropbox desktop client records its folders in info.json, e.g.
{"personal": {"path": "..."}, "business": {"path": "..."}}.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

INFO_FILE_NAME = "info.json"

logger = logging.getLogger(__name__)


def candidate_info_files() -> List[Path]:
    """info.json locations used by the desktop client on Windows, macOS and Linux."""
    candidates = [Path.home() / ".dropbox" / INFO_FILE_NAME]
    for env_var in ("APPDATA", "LOCALAPPDATA"):
        base = os.environ.get(env_var)
        if base:
            candidates.append(Path(base) / "Dropbox" / INFO_FILE_NAME)
    return candidates


def _read_account_path(info_file: Path, account_type: str) -> Optional[str]:
    if not info_file.is_file():
        return None
    try:
        with open(info_file, encoding="utf-8") as f:
            info = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Skipping unreadable Dropbox info file {info_file}: {e}")
        return None

    account = info.get(account_type) if isinstance(info, dict) else None
    path = account.get("path") if isinstance(account, dict) else None
    if not path or not str(path).strip() or not os.path.isdir(path):
        return None
    return path


def find_dropbox_root(
    prefer_business: bool = True,
    allow_personal: bool = True,
    info_files: Optional[List[Path]] = None,
) -> str:
    """
    Find the local Dropbox folder from the desktop client's configuration.

    Args:
        prefer_business: Look for the business (team) folder first
        allow_personal: Fall back to the personal folder
        info_files: info.json files to inspect (default: platform locations)

    Returns:
        Absolute path of the Dropbox folder

    Raises:
        FileNotFoundError: If no usable folder is configured
    """
    account_types = ["business"] if prefer_business else []
    if allow_personal:
        account_types.append("personal")

    files = info_files if info_files is not None else candidate_info_files()
    for account_type in account_types:
        for info_file in files:
            path = _read_account_path(info_file, account_type)
            if path:
                logger.debug(f"Using {account_type} Dropbox folder: {path}")
                return path

    raise FileNotFoundError(
        "Dropbox folder not found. Ensure the Dropbox desktop app is installed and you are signed in, "
        "or set 'dropbox.local_root' in the configuration file."
    )
