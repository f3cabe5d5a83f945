"""
Asset catalog package: filesystem-backed category index and its change watcher.
"""
from .catalog import AssetCatalog, AssetEntry, CategorySnapshot, scan_directory
from .watcher import CategoryChanged, ChangeWatcher

__all__ = [
    "AssetCatalog",
    "AssetEntry",
    "CategorySnapshot",
    "scan_directory",
    "CategoryChanged",
    "ChangeWatcher",
]
