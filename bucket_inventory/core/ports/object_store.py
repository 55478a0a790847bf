"""Object store protocol for inventory data files.

This module defines the remote-storage boundary used by the reader factory.
Concrete implementations adapt a specific provider SDK to this protocol.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Protocol

from bucket_inventory.core.errors import DownloadCancelledError


@dataclass(frozen=True, slots=True)
class DownloadContext:
    """Cancellation scope for blocking downloads.

    ``deadline`` is a ``time.monotonic()`` value. Callers own both the event
    and the deadline; nothing inside the package sets either.
    """

    cancel_event: threading.Event = field(default_factory=threading.Event)
    deadline: float | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> DownloadContext:
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self.cancel_event.set()

    def is_cancelled(self) -> bool:
        if self.cancel_event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, *, key: str | None = None) -> None:
        """Raise DownloadCancelledError if the context is no longer live."""
        if self.cancel_event.is_set():
            raise DownloadCancelledError("download cancelled", key=key)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DownloadCancelledError("download deadline exceeded", key=key)


class ObjectStore(Protocol):
    """Remote-storage boundary.

    Implementations raise TransportError (with the key attached) on failure.
    """

    def download_to_file(
        self,
        bucket: str,
        key: str,
        destination: str | Path,
        *,
        ctx: DownloadContext | None = None,
    ) -> int:
        """Write the object to ``destination`` and return the bytes written."""

    def open_stream(self, bucket: str, key: str) -> BinaryIO:
        """Return a seekable, read-only binary handle on the remote object."""
