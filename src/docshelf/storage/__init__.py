"""File storage backends for uploaded documents."""

from docshelf.storage.local import LocalFileStorage, get_storage

__all__ = ["LocalFileStorage", "get_storage"]
