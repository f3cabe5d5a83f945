"""Process wiring: settings -> logging -> catalog -> watcher -> ImageService.

build_service() owns the startup order; the returned Runtime owns the
catalog and the watcher and is handed to whatever serves requests.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from catalog.catalog import AssetCatalog
from catalog.watcher import ChangeWatcher
from .config import Settings, get_settings
from .image_service import ImageService
from .observability import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    catalog: AssetCatalog
    service: ImageService
    watcher: Optional[ChangeWatcher] = None

    def close(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def build_service(settings: Optional[Settings] = None, configure_logging: bool = True) -> Runtime:
    """
    Scan the asset root, start the change watcher (unless disabled) and
    return the wired Runtime. Raises DirectoryReadError if the root itself
    cannot be read.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_format)

    catalog = AssetCatalog.from_root(settings.assets_root)
    watcher = None
    if settings.watch_enabled:
        watcher = ChangeWatcher(catalog)
        watcher.start()

    logger.info("Image catalog initialized with root: %s", catalog.root)
    return Runtime(settings=settings, catalog=catalog, service=ImageService(catalog), watcher=watcher)
