from __future__ import annotations

from abc import ABC, abstractmethod
from functools import lru_cache
import logging
import os
from pathlib import Path
import tempfile
import threading

from app.core.config import Settings

logger = logging.getLogger(__name__)


class FeedCacheError(Exception):
    pass


class FeedCache(ABC):
    @abstractmethod
    def write(self, document: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def read_all(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def exists(self) -> bool:
        raise NotImplementedError


class InMemoryFeedCache(FeedCache):
    def __init__(self, document: str | None = None) -> None:
        self._document = document
        self._lock = threading.Lock()

    def write(self, document: str) -> None:
        with self._lock:
            self._document = document

    def read_all(self) -> str:
        with self._lock:
            if self._document is None:
                raise FeedCacheError("Calendar feed has not been rendered yet.")
            return self._document

    def exists(self) -> bool:
        with self._lock:
            return self._document is not None


class FileFeedCache(FeedCache):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, document: str) -> None:
        """Replace the cached document atomically.

        The new content goes to a temporary file in the same directory and is
        then moved over the old one, so readers never observe a partial file.
        """
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
                newline="",
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(document)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise FeedCacheError(f"Could not write calendar feed to {self.path}: {exc}") from exc
        logger.info("Calendar feed written path=%s bytes=%s", self.path, len(document.encode("utf-8")))

    def read_all(self) -> str:
        try:
            with self.path.open("r", encoding="utf-8", newline="") as handle:
                return handle.read()
        except FileNotFoundError as exc:
            raise FeedCacheError("Calendar feed has not been rendered yet.") from exc
        except OSError as exc:
            raise FeedCacheError(f"Could not read calendar feed from {self.path}: {exc}") from exc

    def exists(self) -> bool:
        return self.path.is_file()


def create_feed_cache(settings: Settings) -> FeedCache:
    return _create_feed_cache_cached(feed_cache_path=settings.feed_cache_path)


@lru_cache
def _create_feed_cache_cached(*, feed_cache_path: str) -> FeedCache:
    return FileFeedCache(feed_cache_path)


def clear_feed_cache_cache() -> None:
    _create_feed_cache_cached.cache_clear()
