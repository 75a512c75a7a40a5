"""
Per-message registry of link conversions.

Entries are kept in insertion order and addressed by (message id, local path);
there is at most one entry per pair.
A single lock guards the whole registry; callers always receive copies.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from dropbox_linker.models import ConversionState, ConversionStatus

_ACTIVE_STATUSES = (ConversionStatus.PENDING, ConversionStatus.IN_PROGRESS)


class ConversionTracker:
    """Thread-safe tracker of link conversions keyed by message id."""

    def __init__(self):
        self._conversions: Dict[str, List[ConversionState]] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def add(self, message_id: str, conversion: ConversionState) -> None:
        """
        Register a conversion for a message.

        A conversion for a file the message already tracks replaces the
        existing entry in place; otherwise it is appended.
        """
        with self._lock:
            conversions = self._conversions.setdefault(message_id, [])
            for index, existing in enumerate(conversions):
                if existing.local_path == conversion.local_path:
                    conversions[index] = replace(conversion)
                    return
            conversions.append(replace(conversion))

    def get(self, message_id: str) -> Optional[List[ConversionState]]:
        """
        Return a snapshot of a message's conversions.

        Returns:
            The conversions in insertion order, or None if the message has none
        """
        with self._lock:
            conversions = self._conversions.get(message_id)
            if conversions is None:
                return None
            return [replace(c) for c in conversions]

    def get_failed(self, message_id: str) -> List[ConversionState]:
        with self._lock:
            return [replace(c) for c in self._conversions.get(message_id, []) if c.status == ConversionStatus.FAILED]

    def update(
        self,
        message_id: str,
        local_path: str,
        status: ConversionStatus,
        result_url: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """
        Update the conversion matching (message_id, local_path).

        Returns:
            True if a conversion was updated, False if none matched
        """
        with self._lock:
            for conversion in self._conversions.get(message_id, []):
                if conversion.local_path == local_path:
                    conversion.status = status
                    conversion.result_url = result_url
                    conversion.error_message = error_message
                    return True
        self.logger.debug(f"No conversion to update for message {message_id}")
        return False

    def remove(self, message_id: str, local_path: str) -> None:
        """Remove a message's conversions for a file; drop the message once empty."""
        with self._lock:
            conversions = self._conversions.get(message_id)
            if conversions is None:
                return
            conversions[:] = [c for c in conversions if c.local_path != local_path]
            if not conversions:
                del self._conversions[message_id]

    def clear(self, message_id: str) -> None:
        with self._lock:
            self._conversions.pop(message_id, None)

    def has_failed(self, message_id: str) -> bool:
        with self._lock:
            return any(c.status == ConversionStatus.FAILED for c in self._conversions.get(message_id, []))

    def has_pending(self, message_id: str) -> bool:
        """True if any conversion is still Pending or InProgress."""
        with self._lock:
            return any(c.status in _ACTIVE_STATUSES for c in self._conversions.get(message_id, []))
