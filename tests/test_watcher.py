from __future__ import annotations

from pathlib import Path

from watchdog.events import FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from ctxrules import DiscoveryEngine
from ctxrules.models import DiscoveryContext, Scope
from ctxrules.watcher import ManifestEventHandler, ManifestWatcher


def _handler(root: Path) -> tuple[ManifestEventHandler, list[tuple[str, str]]]:
    seen: list[tuple[str, str]] = []
    handler = ManifestEventHandler(root, lambda path, reason: seen.append((path.name, reason)))
    return handler, seen


def test_modified_declaration_file_is_reported(tmp_path: Path) -> None:
    manifest = tmp_path / "package.json"
    manifest.write_text('{"dependencies": {}}', encoding="utf-8")
    handler, seen = _handler(tmp_path)

    manifest.write_text('{"dependencies": {"react": "18"}}', encoding="utf-8")
    handler.on_modified(FileModifiedEvent(str(manifest)))
    assert handler.flush_pending(force=True) == [manifest.resolve()]
    assert seen == [("package.json", "modified")]


def test_touch_without_content_change_is_ignored(tmp_path: Path) -> None:
    manifest = tmp_path / "go.mod"
    manifest.write_text("module m\n", encoding="utf-8")
    handler, seen = _handler(tmp_path)

    handler.on_modified(FileModifiedEvent(str(manifest)))
    assert handler.flush_pending(force=True) == []
    assert seen == []


def test_debounce_holds_recent_events(tmp_path: Path) -> None:
    manifest = tmp_path / "package.json"
    handler, seen = _handler(tmp_path)

    manifest.write_text("{}", encoding="utf-8")
    handler.on_created(FileCreatedEvent(str(manifest)))
    handler.on_modified(FileModifiedEvent(str(manifest)))
    assert handler.flush_pending() == []
    assert handler.flush_pending(force=True) == [manifest.resolve()]
    assert seen == [("package.json", "created")]


def test_deleted_and_moved_files(tmp_path: Path) -> None:
    manifest = tmp_path / "requirements.txt"
    manifest.write_text("django\n", encoding="utf-8")
    handler, seen = _handler(tmp_path)

    manifest.unlink()
    handler.on_deleted(FileDeletedEvent(str(manifest)))
    handler.flush_pending(force=True)
    assert seen == [("requirements.txt", "deleted")]

    staged = tmp_path / "pyproject.new"
    staged.write_text("[project]\nname = 'x'\n", encoding="utf-8")
    target = tmp_path / "pyproject.toml"
    staged.rename(target)
    handler.on_moved(FileMovedEvent(str(staged), str(target)))
    handler.flush_pending(force=True)
    assert seen[-1] == ("pyproject.toml", "moved in")


def test_unrelated_files_are_ignored(tmp_path: Path) -> None:
    source = tmp_path / "src" / "app.ts"
    source.parent.mkdir()
    source.write_text("export {}", encoding="utf-8")
    nested = tmp_path / "src" / "package.json"
    nested.write_text("{}", encoding="utf-8")
    handler, seen = _handler(tmp_path)

    handler.on_modified(FileModifiedEvent(str(source)))
    handler.on_created(FileCreatedEvent(str(nested)))
    assert handler.pending == {}
    assert handler.flush_pending(force=True) == []
    assert seen == []


def test_watcher_invalidates_engine_session(tmp_path: Path, basic_registry) -> None:
    manifest = tmp_path / "package.json"
    manifest.write_text('{"dependencies": {"react": "18"}}', encoding="utf-8")

    engine = DiscoveryEngine(basic_registry)
    engine.discover(DiscoveryContext(session_key="s1", active_file="a.py"), Scope.FEATURE_BUILD)
    assert "s1" in engine.cache

    watcher = ManifestWatcher(tmp_path, "s1", engine.invalidate)
    manifest.write_text('{"dependencies": {"vue": "3"}}', encoding="utf-8")
    watcher.handler.on_modified(FileModifiedEvent(str(manifest)))
    watcher.handler.flush_pending(force=True)

    assert "s1" not in engine.cache
