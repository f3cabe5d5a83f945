"""
Service wiring: configuration, logging and the request-level ImageService.
"""
from .bootstrap import Runtime, build_service
from .config import Settings, get_settings
from .image_service import FilterResult, ImageService, filter_image_bytes
from .observability import setup_logging

__all__ = [
    "Runtime",
    "build_service",
    "Settings",
    "get_settings",
    "FilterResult",
    "ImageService",
    "filter_image_bytes",
    "setup_logging",
]
