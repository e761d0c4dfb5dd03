from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Optional

ProgressCallback = Callable[[int], None]


class StorageService(ABC):
    @property
    @abstractmethod
    def provider(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def upload_file(
        self,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload ``length`` bytes from ``data`` and return the public URL.

        ``on_progress`` receives whole percentages (0..100) computed from the
        bytes actually sent; it is called from the uploading thread.
        """
        raise NotImplementedError

    @abstractmethod
    def presign_put_object(self, object_name: str, expires_in: int) -> str:
        raise NotImplementedError

    @abstractmethod
    def public_url(self, object_name: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def delete_file(self, object_name: str) -> None:
        raise NotImplementedError


class ProgressTracker:
    """Turns byte counts into de-duplicated percentage callbacks."""

    def __init__(self, total_length: int, on_progress: Optional[ProgressCallback]) -> None:
        self.total_length = max(0, total_length)
        self.sent = 0
        self._on_progress = on_progress
        self._last_percent = -1

    def advance(self, size: int) -> None:
        self.sent += size
        self._emit()

    def finish(self) -> None:
        self.sent = self.total_length
        self._emit()

    def _emit(self) -> None:
        if self._on_progress is None:
            return
        if self.total_length == 0:
            percent = 100
        else:
            percent = min(100, int(self.sent * 100 / self.total_length))
        if percent != self._last_percent:
            self._last_percent = percent
            self._on_progress(percent)
