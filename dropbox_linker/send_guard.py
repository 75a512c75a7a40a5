"""
Send validation.

Decides whether a message may be sent given its link conversions and the
sizes of its regular attachments. Pure: no I/O, no host-application types.
"""

from typing import Iterable, List, Optional

from dropbox_linker.models import AttachmentInfo, ConversionState, ConversionStatus, SendValidationResult
from dropbox_linker.utils.formatting import human_readable_size

DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES = 10 * 1024 * 1024  # 10 MB

_RESOLUTION_HINT = "Please retry, re-authenticate, or remove the failed block."


def _failed_message(failed: List[ConversionState]) -> str:
    if len(failed) == 1:
        return f"Cannot send: Dropbox link creation failed for '{failed[0].file_name}'. {_RESOLUTION_HINT}"
    names = ", ".join(f"'{c.file_name}'" for c in failed)
    return f"Cannot send: Dropbox link creation failed for {len(failed)} files: {names}. {_RESOLUTION_HINT}"


def _large_attachment_message(large: List[AttachmentInfo], threshold_bytes: int) -> str:
    if len(large) == 1:
        attachment = large[0]
        return (
            f"The attachment '{attachment.file_name}' is {human_readable_size(attachment.size_bytes)}. "
            "Consider sharing it as a Dropbox link instead."
        )
    total = sum(a.size_bytes for a in large)
    return (
        f"{len(large)} attachments are {human_readable_size(threshold_bytes)} or larger "
        f"({human_readable_size(total)} total). Consider sharing them as Dropbox links instead."
    )


def validate_send(
    conversion_states: Optional[Iterable[ConversionState]] = None,
    attachments: Optional[Iterable[AttachmentInfo]] = None,
    threshold_bytes: int = DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES,
) -> SendValidationResult:
    """
    Validate a message before it is sent.

    Failed conversions block first, then unfinished conversions; large
    attachments (size >= threshold_bytes) only warn.

    Args:
        conversion_states: The message's link conversions, if any
        attachments: Names and sizes of the message's regular attachments
        threshold_bytes: Size at which an attachment counts as large

    Returns:
        The verdict; never raises
    """
    states = list(conversion_states or [])

    failed = [s for s in states if s.status == ConversionStatus.FAILED]
    if failed:
        return SendValidationResult(block_send=True, message=_failed_message(failed), failed_conversions=failed)

    if any(s.status in (ConversionStatus.PENDING, ConversionStatus.IN_PROGRESS) for s in states):
        return SendValidationResult(
            block_send=True,
            message="Cannot send: Dropbox links are still being created. Please wait for them to finish.",
        )

    large = [a for a in (attachments or []) if a.size_bytes >= threshold_bytes]
    if large:
        return SendValidationResult(
            show_large_attachment_warning=True,
            message=_large_attachment_message(large, threshold_bytes),
            large_attachments=large,
        )

    return SendValidationResult()
