"""Display-name cleanup and byte-size formatting."""

import re

# Version and draft markers that add noise to a shared file's title
_TOKEN_PATTERN = re.compile(r"\b(v\d+|rev\d+|r\d+|draft|copy|final)\b", re.IGNORECASE)
_WHITESPACE_PATTERN = re.compile(r"\s+")

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024


def clean_display_name(file_name: str) -> str:
    """
    Turn a file name into a readable title.

    "q3_report-v2_FINAL.pdf" becomes "Q3 Report.pdf".

    Args:
        file_name: File name including extension

    Returns:
        Cleaned name; blank input is returned unchanged
    """
    if not file_name or not file_name.strip():
        return file_name or ""

    last_dot = file_name.rfind(".")
    if last_dot > 0:
        base_name, extension = file_name[:last_dot], file_name[last_dot:]
    else:
        base_name, extension = file_name, ""

    base_name = base_name.replace("_", " ").replace("-", " ")
    base_name = _TOKEN_PATTERN.sub(" ", base_name)
    base_name = _WHITESPACE_PATTERN.sub(" ", base_name).strip()
    base_name = " ".join(word[:1].upper() + word[1:].lower() for word in base_name.split(" ") if word)

    return f"{base_name}{extension}"


def human_readable_size(size_bytes: int) -> str:
    """Format a byte count as B, KB, MB or GB; negative counts give ""."""
    if size_bytes < 0:
        return ""
    if size_bytes >= _GB:
        return f"{size_bytes / _GB:.1f} GB"
    if size_bytes >= _MB:
        return f"{size_bytes / _MB:.1f} MB"
    if size_bytes >= _KB:
        return f"{size_bytes / _KB:.1f} KB"
    return f"{size_bytes} B"
