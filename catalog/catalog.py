"""
catalog/catalog.py

In-memory index of categorized assets backed by a directory tree:

    root/<category>/<asset-file>

Each category is held as an immutable CategorySnapshot (sorted names plus a
name -> AssetEntry map). A reload scans the directory into a fresh snapshot
first and only then swaps the reference under the writer lock, so readers
never block on a scan and never see a list from one snapshot paired with
metadata from another.

Readers take no lock: a snapshot lookup is a single dict read of an object
that is never mutated after construction.
"""

import logging
import os
import random
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from core.errors import DirectoryReadError, NotFoundError
from io_utils.file_utils import human_file_size, sniff_file_mime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetEntry:
    name: str
    size_bytes: int
    size: str
    mime_type: str
    modified_at: int


@dataclass(frozen=True)
class CategorySnapshot:
    names: Tuple[str, ...]
    entries: Mapping[str, AssetEntry] = field(default_factory=lambda: MappingProxyType({}))

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: str) -> bool:
        return name in self.entries


def scan_directory(folder: str) -> CategorySnapshot:
    """
    Build a snapshot of the regular files directly inside `folder`.
    Subdirectories are ignored; files that vanish or cannot be stat'ed
    between listing and stat are skipped.
    Raises DirectoryReadError if the folder itself cannot be listed.
    """
    try:
        with os.scandir(folder) as it:
            dir_entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise DirectoryReadError(folder, e.strerror or str(e)) from e

    names: List[str] = []
    entries: Dict[str, AssetEntry] = {}
    for entry in dir_entries:
        try:
            if entry.is_dir():
                continue
            st = entry.stat()
        except OSError:
            continue
        names.append(entry.name)
        entries[entry.name] = AssetEntry(
            name=entry.name,
            size_bytes=st.st_size,
            size=human_file_size(st.st_size),
            mime_type=sniff_file_mime(entry.path),
            modified_at=int(st.st_mtime),
        )
    return CategorySnapshot(names=tuple(names), entries=MappingProxyType(entries))


class AssetCatalog:
    """
    Category -> snapshot index rooted at `root`.

    - register_category / load_category mutate (serialized by a lock)
    - get_random / get_files / get_image_path / get_image_meta / describe read
    """

    def __init__(self, root: str, rng: Optional[random.Random] = None):
        self.root = os.path.abspath(root)
        self._rng = rng or random.Random()
        self._paths: Dict[str, str] = {}
        self._snapshots: Dict[str, CategorySnapshot] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_root(cls, root: str, rng: Optional[random.Random] = None) -> "AssetCatalog":
        """Create a catalog and load every immediate subdirectory of `root` as a category."""
        catalog = cls(root, rng=rng)
        catalog.load_all()
        return catalog

    def load_all(self) -> int:
        """Load every category under root. Returns the number of categories loaded."""
        try:
            with os.scandir(self.root) as it:
                names = sorted(e.name for e in it if e.is_dir())
        except OSError as e:
            raise DirectoryReadError(self.root, e.strerror or str(e)) from e

        loaded = sum(1 for name in names if self.load_category(name))
        logger.info("Loaded %d categories from %s", loaded, self.root)
        return loaded

    def register_category(self, category: str) -> str:
        """
        Record the directory of `category` (root/category) if not known yet.
        The first recorded path is kept for the catalog's lifetime.
        """
        with self._lock:
            path = self._paths.get(category)
            if path is None:
                path = os.path.join(self.root, category)
                self._paths[category] = path
            return path

    def category_path(self, category: str) -> Optional[str]:
        return self._paths.get(category)

    def load_category(self, category: str) -> bool:
        """
        Rescan the category directory and atomically replace its snapshot.
        On a read failure the failure is logged, the previous snapshot is kept
        and False is returned.
        """
        folder = self._paths.get(category) or os.path.join(self.root, category)
        try:
            snapshot = scan_directory(folder)
        except DirectoryReadError as e:
            logger.warning("Keeping previous snapshot for category '%s': %s", category, e,
                           extra={"category": category, "path": folder})
            return False

        with self._lock:
            self._paths.setdefault(category, folder)
            self._snapshots[category] = snapshot

        logger.info("Loaded %d files for category '%s'", len(snapshot), category,
                    extra={"category": category})
        return True

    # --- reads ---
    def categories(self) -> List[str]:
        return sorted(self._snapshots)

    def snapshot(self, category: str) -> Optional[CategorySnapshot]:
        return self._snapshots.get(category)

    def get_random(self, category: str) -> str:
        snap = self._snapshots.get(category)
        if snap is None or not snap.names:
            raise NotFoundError(category)
        return self._rng.choice(snap.names)

    def get_files(self, category: str) -> Optional[List[str]]:
        snap = self._snapshots.get(category)
        if snap is None:
            return None
        return list(snap.names)

    def get_image_path(self, category: str, name: str) -> str:
        snap = self._snapshots.get(category)
        if snap is None or name not in snap:
            raise NotFoundError(category, name)
        return os.path.join(self._paths[category], name)

    def get_image_meta(self, category: str, name: str) -> AssetEntry:
        snap = self._snapshots.get(category)
        if snap is None or name not in snap:
            raise NotFoundError(category, name)
        return snap.entries[name]

    def describe(self, category: str, name: str) -> dict:
        """Metadata record exposed to callers for one asset."""
        snap = self._snapshots.get(category)
        if snap is None or name not in snap:
            raise NotFoundError(category, name)
        meta = snap.entries[name]
        return {
            "name": meta.name,
            "category": category,
            "path": os.path.join(self._paths[category], name),
            "size": meta.size,
            "size_bytes": meta.size_bytes,
            "modified_at": meta.modified_at,
            "mime_type": meta.mime_type,
        }
