"""Map local files inside the synced Dropbox folder to Dropbox API paths."""

import os


def _normalized_root(dropbox_root: str) -> str:
    return os.path.abspath(dropbox_root).rstrip("/\\") + os.sep


def to_dropbox_path(dropbox_root: str, local_path: str) -> str:
    """
    Convert a local path to its Dropbox path.

    Args:
        dropbox_root: Local Dropbox folder, e.g. "/Users/me/Dropbox (Acme)"
        local_path: File inside that folder

    Returns:
        Dropbox path starting with "/" and using forward slashes

    Raises:
        ValueError: If either path is blank or the file is outside the root
    """
    if not dropbox_root or not dropbox_root.strip():
        raise ValueError("Dropbox root path is required.")
    if not local_path or not local_path.strip():
        raise ValueError("Local path is required.")

    root = _normalized_root(dropbox_root)
    local = os.path.abspath(local_path)

    if not local.lower().startswith(root.lower()):
        raise ValueError(f"The file is not inside the Dropbox folder. Expected path under: {root}")

    relative = local[len(root):]
    return "/" + relative.replace(os.sep, "/").replace("\\", "/")


def is_inside_root(dropbox_root: str, local_path: str) -> bool:
    if not dropbox_root or not dropbox_root.strip() or not local_path or not local_path.strip():
        return False
    return os.path.abspath(local_path).lower().startswith(_normalized_root(dropbox_root).lower())
