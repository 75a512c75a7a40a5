"""Value objects shared by the link client, the tracker and the send guard."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class LinkRequest:
    """
    A request to share one local file.

    Args:
        source_file: Local path (or other opaque identifier) of the file
        size_bytes: File size in bytes
        expires_at: Absolute link expiry; must be timezone-aware

    Raises:
        ValueError: If any field is missing or out of range
    """

    source_file: str
    size_bytes: int
    expires_at: datetime

    def __post_init__(self):
        if not self.source_file or not self.source_file.strip():
            raise ValueError("source_file is required")
        if self.size_bytes is None or self.size_bytes < 0:
            raise ValueError("size_bytes must be a non-negative integer")
        if self.expires_at is None:
            raise ValueError("expires_at is required")
        if self.expires_at.tzinfo is None or self.expires_at.utcoffset() is None:
            raise ValueError("expires_at must be timezone-aware")


@dataclass(frozen=True)
class LinkResult:
    """Outcome of a successful link request."""

    url: str
    display_name: str
    dropbox_path: str
    reused_existing: bool = False


class ConversionStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ConversionState:
    """Progress of one file's conversion within a message."""

    file_name: str
    local_path: str
    status: ConversionStatus = ConversionStatus.PENDING
    result_url: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class AttachmentInfo:
    """Name and size of a regular attachment, extracted by the caller."""

    file_name: str
    size_bytes: int


@dataclass(frozen=True)
class SendValidationResult:
    block_send: bool = False
    show_large_attachment_warning: bool = False
    message: str = ""
    failed_conversions: List[ConversionState] = field(default_factory=list)
    large_attachments: List[AttachmentInfo] = field(default_factory=list)
