"""
Session-scoped memoization of discovery results.

An entry is replaced or discarded as a whole, never patched. Readers see the
last committed entry; writers for one session are serialized by that
session's lock. Sessions share no state.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from .models import Candidate, DiscoveryContext, ManifestFile, ResolvedRuleList, Scope

logger = logging.getLogger(__name__)


def manifest_digest(manifests: Iterable[ManifestFile]) -> str:
    """SHA-256 over sorted declaration paths and their raw text."""
    h = hashlib.sha256()
    for manifest in sorted(manifests, key=lambda m: m.path):
        h.update(manifest.path.encode("utf-8"))
        h.update(b"\0")
        if manifest.text is None:
            h.update(b"\1unreadable")
        else:
            h.update(manifest.text.encode("utf-8"))
        h.update(b"\0")
    return h.hexdigest()


@dataclass(frozen=True)
class ProjectSignature:
    manifest_digest: str
    scope: Scope

    @classmethod
    def of(cls, context: DiscoveryContext, scope: Scope | str) -> "ProjectSignature":
        return cls(manifest_digest=manifest_digest(context.manifests), scope=Scope(scope))


@dataclass(frozen=True)
class SessionCacheEntry:
    timestamp: str
    signature: ProjectSignature
    resolved: ResolvedRuleList
    candidates: tuple[Candidate, ...] = ()  # merged scores and sources, ranked
    file_types: frozenset[str] = frozenset()  # every file type seen in the session


class SessionCache:
    """Last discovery result per session key."""

    def __init__(self) -> None:
        self._entries: dict[str, SessionCacheEntry] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def writer(self, session_key: str) -> threading.RLock:
        """The lock serializing writes for one session."""
        with self._guard:
            lock = self._locks.get(session_key)
            if lock is None:
                lock = self._locks[session_key] = threading.RLock()
            return lock

    def entry(self, session_key: str) -> SessionCacheEntry | None:
        return self._entries.get(session_key)

    def get(self, session_key: str) -> ResolvedRuleList | None:
        """Cached list, or None on a miss."""
        entry = self._entries.get(session_key)
        return entry.resolved if entry is not None else None

    def put(
        self,
        session_key: str,
        resolved: ResolvedRuleList,
        signature: ProjectSignature,
        *,
        candidates: Iterable[Candidate] = (),
        file_types: Iterable[str] = (),
    ) -> SessionCacheEntry:
        entry = SessionCacheEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            signature=signature,
            resolved=resolved,
            candidates=tuple(candidates),
            file_types=frozenset(file_types),
        )
        with self.writer(session_key):
            self._entries[session_key] = entry
        logger.debug("cached %d rules for session %s", len(resolved), session_key)
        return entry

    def invalidate(self, session_key: str, reason: str = "explicit") -> bool:
        """Discard the session's entry. Returns True if there was one."""
        with self.writer(session_key):
            removed = self._entries.pop(session_key, None)
        if removed is not None:
            logger.info("invalidated session %s (%s)", session_key, reason)
        return removed is not None

    def stale_reason(
        self,
        session_key: str,
        signature: ProjectSignature,
        file_types: Iterable[str],
    ) -> str | None:
        """Why the current entry no longer matches the project, if it does not."""
        entry = self._entries.get(session_key)
        if entry is None:
            return None
        if entry.signature.manifest_digest != signature.manifest_digest:
            return "declaration files changed"
        if entry.signature.scope != signature.scope:
            return f"scope changed to {signature.scope.value}"
        unseen = set(file_types) - entry.file_types
        if unseen:
            return f"new file types {', '.join(sorted(unseen))}"
        return None

    def __contains__(self, session_key: object) -> bool:
        return session_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
