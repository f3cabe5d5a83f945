import os
import shutil
import time
import pytest
from watchdog.events import (
    DirCreatedEvent, DirDeletedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent,
)
from watchdog.observers.polling import PollingObserver
from catalog.catalog import AssetCatalog
from catalog.watcher import CategoryChanged, ChangeWatcher


@pytest.fixture
def assets(tmp_path):
    root = tmp_path / "assets"
    (root / "cats").mkdir(parents=True)
    (root / "dogs").mkdir()
    (root / "cats" / "a.png").write_bytes(b"a")
    (root / "cats" / "b.png").write_bytes(b"b")
    return root


def _watcher(root):
    catalog = AssetCatalog.from_root(str(root))
    return catalog, ChangeWatcher(catalog)


def test_file_created_reloads_category(assets):
    catalog, watcher = _watcher(assets)
    new = assets / "cats" / "c.png"
    new.write_bytes(b"c")
    assert watcher.feed([FileCreatedEvent(str(new))]) == 1
    assert watcher.drain() == 1
    assert catalog.get_files("cats") == ["a.png", "b.png", "c.png"]


def test_file_deleted_reloads_category(assets):
    catalog, watcher = _watcher(assets)
    os.remove(assets / "cats" / "b.png")
    watcher.feed([FileDeletedEvent(str(assets / "cats" / "b.png"))])
    watcher.drain()
    assert catalog.get_files("cats") == ["a.png"]


def test_modify_and_root_file_events_ignored(assets):
    catalog, watcher = _watcher(assets)
    assert watcher.feed([FileModifiedEvent(str(assets / "cats" / "a.png"))]) == 0
    assert watcher.feed([FileCreatedEvent(str(assets / "notes.txt"))]) == 0
    assert watcher.drain() == 0


def test_move_reloads_both_categories(assets):
    catalog, watcher = _watcher(assets)
    src, dest = assets / "cats" / "a.png", assets / "dogs" / "a.png"
    os.rename(src, dest)
    queued = watcher.handle_event(FileMovedEvent(str(src), str(dest)))
    assert queued == [CategoryChanged("cats"), CategoryChanged("dogs")]
    watcher.drain()
    assert catalog.get_files("cats") == ["b.png"]
    assert catalog.get_files("dogs") == ["a.png"]


def test_new_directory_is_discovered(assets):
    catalog, watcher = _watcher(assets)
    birds = assets / "birds"
    birds.mkdir()
    (birds / "tweety.gif").write_bytes(b"GIF89a")
    queued = watcher.handle_event(DirCreatedEvent(str(birds)))
    assert queued == [CategoryChanged("birds", discovered=True)]
    assert catalog.category_path("birds") == str(birds)
    watcher.drain()
    assert "birds" in catalog.categories()
    assert catalog.get_files("birds") == ["tweety.gif"]
    assert catalog.get_image_meta("birds", "tweety.gif").mime_type == "image/gif"


def test_deleted_category_keeps_snapshot(assets):
    catalog, watcher = _watcher(assets)
    shutil.rmtree(assets / "cats")
    watcher.feed([DirDeletedEvent(str(assets / "cats"))])
    watcher.drain()
    assert catalog.get_files("cats") == ["a.png", "b.png"]
    assert "cats" in catalog.categories()


def test_handler_errors_do_not_escape(assets, monkeypatch):
    catalog, watcher = _watcher(assets)

    def boom(category):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(catalog, "load_category", boom)
    watcher.feed([FileCreatedEvent(str(assets / "cats" / "x.png"))])
    assert watcher.drain() == 1


def test_live_observer_picks_up_changes(assets):
    catalog = AssetCatalog.from_root(str(assets))
    with ChangeWatcher(catalog, observer_factory=lambda: PollingObserver(timeout=0.1)) as watcher:
        assert watcher.running
        assert watcher.watched_categories() == ["cats", "dogs"]
        (assets / "dogs" / "rex.jpg").write_bytes(b"\xff\xd8\xff\xe0")
        (assets / "fish").mkdir()

        deadline = time.time() + 10
        while time.time() < deadline:
            if catalog.get_files("dogs") == ["rex.jpg"] and "fish" in catalog.categories():
                break
            time.sleep(0.05)
    assert catalog.get_files("dogs") == ["rex.jpg"]
    assert catalog.get_files("fish") == []
    assert not watcher.running


def test_dot_dot_prefixed_category_is_tracked(assets):
    catalog, watcher = _watcher(assets)
    archive = assets / "..archive"
    archive.mkdir()
    (archive / "old.png").write_bytes(b"o")
    assert watcher.handle_event(DirCreatedEvent(str(archive))) == [CategoryChanged("..archive", discovered=True)]
    watcher.drain()
    assert catalog.get_files("..archive") == ["old.png"]
    assert watcher.feed([FileCreatedEvent(str(assets.parent / "elsewhere.png"))]) == 0


def test_discovered_category_is_logged_when_served(assets, caplog):
    catalog, watcher = _watcher(assets)
    (assets / "birds").mkdir()
    watcher.feed([DirCreatedEvent(str(assets / "birds"))])
    with caplog.at_level("INFO", logger="catalog.watcher"):
        watcher.drain()
    assert any("'birds' is now served" in r.getMessage() for r in caplog.records)


def test_restart_schedules_fresh_watches(assets):
    catalog = AssetCatalog.from_root(str(assets))
    watcher = ChangeWatcher(catalog, observer_factory=lambda: PollingObserver(timeout=0.1))
    watcher.start()
    watcher.stop()
    assert watcher.watched_categories() == []
    watcher.start()
    try:
        assert watcher.watched_categories() == ["cats", "dogs"]
        (assets / "cats" / "c.png").write_bytes(b"c")
        deadline = time.time() + 10
        while time.time() < deadline and "c.png" not in catalog.get_files("cats"):
            time.sleep(0.05)
        assert "c.png" in catalog.get_files("cats")
    finally:
        watcher.stop()
