"""Storage backends for PurgeStat."""
from .base import StorageBackend, LocalStorage, S3Storage
from .table_writer import TableWriter

__all__ = [
    "StorageBackend",
    "LocalStorage",
    "S3Storage",
    "TableWriter",
]
