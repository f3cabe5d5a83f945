"""
Core package: pixel filters, palette re-quantization and animation frame processing.
Exposes public modules for import in tests and scripts.
"""
__all__ = ["errors", "filters", "palette", "frames"]
