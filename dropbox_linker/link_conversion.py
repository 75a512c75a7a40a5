"""
Conversion of selected files into shared links for one message.

Registers each file with the ConversionTracker, converts files concurrently,
and answers the send-time question through the send guard.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

from dropbox_linker.config_loader import DEFAULT_LINK_EXPIRATION_DAYS
from dropbox_linker.conversion_tracker import ConversionTracker
from dropbox_linker.link_client import SharedLinkClient
from dropbox_linker.models import (
    AttachmentInfo,
    ConversionState,
    ConversionStatus,
    LinkRequest,
    LinkResult,
    SendValidationResult,
)
from dropbox_linker.send_guard import DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES, validate_send
from dropbox_linker.utils.path_mapper import to_dropbox_path


@dataclass(frozen=True)
class ConversionOutcome:
    local_path: str
    size_bytes: int
    result: Optional[LinkResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkConversionService:
    """Turns local files into shared links on behalf of a message."""

    def __init__(
        self,
        link_client: SharedLinkClient,
        tracker: ConversionTracker,
        dropbox_root: str,
        link_expiration_days: int = DEFAULT_LINK_EXPIRATION_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.link_client = link_client
        self.tracker = tracker
        self.dropbox_root = dropbox_root
        self.link_expiration_days = link_expiration_days
        self.logger = logging.getLogger(__name__)
        self._clock = clock

    def _build_request(self, local_path: str) -> LinkRequest:
        size = os.path.getsize(local_path) if os.path.isfile(local_path) else 0
        return LinkRequest(
            source_file=local_path,
            size_bytes=size,
            expires_at=self._clock() + timedelta(days=self.link_expiration_days),
        )

    async def convert_files(self, message_id: str, local_paths: Iterable[str]) -> List[ConversionOutcome]:
        """
        Create links for several files concurrently.

        All files are registered as Pending before any conversion starts, so
        the tracker's order matches the selection order. A file listed more
        than once is converted once.

        Args:
            message_id: Identifier of the message being composed
            local_paths: Files to share

        Returns:
            One outcome per distinct file, in the given order
        """
        paths = list(dict.fromkeys(local_paths))
        for path in paths:
            self.tracker.add(message_id, ConversionState(file_name=os.path.basename(path), local_path=path))
        return list(await asyncio.gather(*(self._convert(message_id, path) for path in paths)))

    async def convert_file(self, message_id: str, local_path: str) -> ConversionOutcome:
        self.tracker.add(message_id, ConversionState(file_name=os.path.basename(local_path), local_path=local_path))
        return await self._convert(message_id, local_path)

    async def retry_failed(self, message_id: str, reauthenticate: bool = False) -> List[ConversionOutcome]:
        """
        Run every failed conversion of a message again.

        Args:
            message_id: Identifier of the message
            reauthenticate: Sign in again before retrying

        Returns:
            Outcomes of the retried conversions
        """
        failed = self.tracker.get_failed(message_id)
        if not failed:
            return []

        if reauthenticate:
            await self.link_client.token_provider.force_reauthenticate()

        self.logger.info(f"Retrying {len(failed)} failed conversion(s)")
        return list(await asyncio.gather(*(self._convert(message_id, c.local_path) for c in failed)))

    async def _convert(self, message_id: str, local_path: str) -> ConversionOutcome:
        file_name = os.path.basename(local_path)
        self.tracker.update(message_id, local_path, ConversionStatus.IN_PROGRESS)
        size = 0
        try:
            request = self._build_request(local_path)
            size = request.size_bytes
            dropbox_path = to_dropbox_path(self.dropbox_root, local_path)
            result = await self.link_client.create_or_reuse(request, dropbox_path)
        except asyncio.CancelledError:
            self.tracker.update(message_id, local_path, ConversionStatus.FAILED, error_message="Cancelled")
            raise
        except Exception as e:
            self.logger.error(f"Error creating link for {file_name}: {e}")
            self.tracker.update(message_id, local_path, ConversionStatus.FAILED, error_message=str(e))
            return ConversionOutcome(local_path, size, error=str(e))

        self.tracker.update(message_id, local_path, ConversionStatus.SUCCESS, result_url=result.url)
        self.logger.info(f"Link ready for {file_name} (reused: {result.reused_existing})")
        return ConversionOutcome(local_path, size, result=result)

    def validate_send(
        self,
        message_id: str,
        attachments: Optional[Iterable[AttachmentInfo]] = None,
        threshold_bytes: int = DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES,
    ) -> SendValidationResult:
        return validate_send(self.tracker.get(message_id), attachments, threshold_bytes)

    def mark_sent(self, message_id: str) -> None:
        """Forget a message's conversions once it has been sent or discarded."""
        self.tracker.clear(message_id)
