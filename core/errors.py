"""
core/errors.py

Exception taxonomy shared by the catalog, the codec and the frame pipeline.

- NotFoundError       : category or asset absent from the current snapshot
- DirectoryReadError  : a category/root directory could not be scanned
- DecodeError         : source bytes are not an image in a supported format
- EmptySequenceError  : animation with zero frames
- EncodeError         : writing the target format failed
"""


class AssetError(Exception):
    """Base exception for asset catalog and image pipeline failures."""


class NotFoundError(AssetError, LookupError):
    def __init__(self, category: str, name: str = None):
        self.category = category
        self.name = name
        if name is None:
            msg = f"category '{category}' not found or empty"
        else:
            msg = f"asset '{name}' not found in category '{category}'"
        super().__init__(msg)


class DirectoryReadError(AssetError, OSError):
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        super().__init__(f"cannot read directory '{path}': {reason}" if reason else f"cannot read directory '{path}'")


class DecodeError(AssetError, ValueError):
    pass


class EmptySequenceError(AssetError, ValueError):
    pass


class EncodeError(AssetError):
    pass
