"""Building discovery contexts from a project directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .models import DiscoveryContext, ManifestFile
from .scanners.manifest_parsers import KNOWN_MANIFESTS

logger = logging.getLogger(__name__)


def find_manifests(project_root: Path) -> list[Path]:
    """Declaration files present under the project root, sorted."""
    found = {project_root / rel for rel in KNOWN_MANIFESTS if (project_root / rel).is_file()}
    found.update(p for p in project_root.glob("requirements*.txt") if p.is_file())
    return sorted(found)


def read_manifest(path: Path, project_root: Path) -> ManifestFile:
    """Read one declaration file; unreadable files keep `text=None`."""
    rel = path.relative_to(project_root).as_posix()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("cannot read %s: %s", path, exc)
        text = None
    return ManifestFile(path=rel, text=text)


def context_from_project(
    project_root: Path,
    *,
    session_key: str | None = None,
    active_file: str | None = None,
    open_files: Iterable[str] = (),
    request: str = "",
) -> DiscoveryContext:
    """Snapshot a project on disk.

    The session key defaults to the resolved project root.
    """
    root = project_root.resolve()
    return DiscoveryContext(
        session_key=session_key or str(root),
        active_file=active_file,
        open_files=tuple(open_files),
        manifests=tuple(read_manifest(p, root) for p in find_manifests(root)),
        request=request,
    )


def is_manifest_path(path: Path, project_root: Path) -> bool:
    """True if `path` is a declaration file the context builder would read."""
    try:
        rel = path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return False
    if rel in KNOWN_MANIFESTS:
        return True
    return "/" not in rel and rel.startswith("requirements") and rel.endswith(".txt")
