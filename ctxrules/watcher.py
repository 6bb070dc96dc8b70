"""
File system watcher that invalidates a session when declaration files change.

This module provides:
- Watchdog-based monitoring of a project root
- Debounced, hash-checked change detection (editor save cycles and
  touch-without-change do not invalidate)
- Whole-entry invalidation through a callback
"""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .context import find_manifests, is_manifest_path

logger = logging.getLogger(__name__)


def compute_file_hash(path: Path) -> str | None:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


class ManifestEventHandler(FileSystemEventHandler):
    """
    Turns raw file system events on declaration files into invalidations.

    Events are held for DEBOUNCE_SECONDS; `flush_pending` then compares
    content hashes and calls `on_change(path, reason)` once per real change.
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(self, project_root: Path, on_change: Callable[[Path, str], None]):
        super().__init__()
        self.project_root = project_root.resolve()
        self.on_change = on_change

        # path -> (reason, timestamp)
        self.pending: dict[str, tuple[str, float]] = {}

        # path -> hash at last flush
        self.file_hashes: dict[str, str] = {}
        for path in find_manifests(self.project_root):
            digest = compute_file_hash(path)
            if digest:
                self.file_hashes[str(path)] = digest

    def _is_relevant(self, path: str) -> bool:
        return is_manifest_path(Path(path), self.project_root)

    def _key(self, path: str) -> str:
        return str(Path(path).resolve())

    def _queue(self, path: str, reason: str) -> None:
        self.pending[self._key(path)] = (reason, time.time())

    def flush_pending(self, *, force: bool = False) -> list[Path]:
        """Emit changes whose debounce window has passed. Returns the changed paths."""
        now = time.time()
        changed = []

        for path_str, (reason, timestamp) in list(self.pending.items()):
            if not force and now - timestamp < self.DEBOUNCE_SECONDS:
                continue
            del self.pending[path_str]

            path = Path(path_str)
            new_hash = compute_file_hash(path) if path.exists() else None
            old_hash = self.file_hashes.get(path_str)
            if new_hash == old_hash:
                continue

            if new_hash:
                self.file_hashes[path_str] = new_hash
            else:
                self.file_hashes.pop(path_str, None)

            logger.debug("declaration file %s: %s", path, reason)
            self.on_change(path, reason)
            changed.append(path)

        return changed

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._queue(event.src_path, "created")

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        key = self._key(event.src_path)
        # Don't override pending creation with modification
        if key in self.pending and self.pending[key][0] == "created":
            return
        self._queue(event.src_path, "modified")

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        self._queue(event.src_path, "deleted")

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        if self._is_relevant(event.src_path):
            self._queue(event.src_path, "moved away")
        if self._is_relevant(event.dest_path):
            self._queue(event.dest_path, "moved in")


class ManifestWatcher:
    """Invalidates one session whenever the project's declaration files change.

    `invalidate` is usually `DiscoveryEngine.invalidate`.
    """

    def __init__(
        self,
        project_root: Path,
        session_key: str,
        invalidate: Callable[[str], object],
        *,
        poll_interval: float = 0.5,
    ):
        self.session_key = session_key
        self._invalidate = invalidate
        self.poll_interval = poll_interval
        self.handler = ManifestEventHandler(project_root, self._on_change)
        self.observer: Observer | None = None

    def _on_change(self, path: Path, reason: str) -> None:
        logger.info("%s %s; invalidating session %s", path.name, reason, self.session_key)
        self._invalidate(self.session_key)

    def start(self) -> None:
        observer = Observer()
        # declaration files live at the root or one level down (ios/, prisma/, ...)
        observer.schedule(self.handler, str(self.handler.project_root), recursive=True)
        observer.start()
        self.observer = observer

    def poll(self) -> list[Path]:
        return self.handler.flush_pending()

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        self.handler.flush_pending(force=True)

    def run_forever(self) -> None:
        """Block, flushing pending changes, until interrupted."""
        if self.observer is None:
            self.start()
        try:
            while True:
                time.sleep(self.poll_interval)
                self.poll()
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def __enter__(self) -> "ManifestWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
