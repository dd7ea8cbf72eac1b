"""
Storage factory for creating storage backends and table path utilities.

Provides a unified way to create the appropriate storage backend
from configuration and to locate tables and snapshots inside it.
"""
import logging
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from config import PurgeStatConfig

from storage.base import StorageBackend, LocalStorage, S3Storage

logger = logging.getLogger(__name__)

SNAPSHOTS_DIR = "snapshots"
TABLE_DESCRIPTOR = "table.yaml"


def _create_backend_from_storage_config(storage_config) -> StorageBackend:
    """
    Create storage backend from a StorageConfig.

    Args:
        storage_config: StorageConfig

    Returns:
        StorageBackend instance
    """
    backend = storage_config.backend
    base_dir = storage_config.base_dir

    if backend == "local":
        logger.info(f"[storage] Initializing local storage: {base_dir}")
        return LocalStorage(base_path=base_dir)

    elif backend == "s3":
        if not storage_config.s3:
            raise ValueError("S3 backend selected but no S3 configuration provided")

        # Use s3.bucket if specified, otherwise base_dir
        bucket = storage_config.s3.bucket or base_dir

        logger.info(f"[storage] Initializing S3 storage: {bucket}")
        return S3Storage(
            bucket=bucket,
            region=storage_config.s3.region,
            aws_access_key_id=storage_config.s3.aws_access_key_id,
            aws_secret_access_key=storage_config.s3.aws_secret_access_key,
            aws_session_token=storage_config.s3.aws_session_token,
            endpoint_url=storage_config.s3.endpoint_url,
        )

    else:
        raise ValueError(f"Unknown storage backend: {backend}")


def create_storage(config: "PurgeStatConfig") -> StorageBackend:
    """
    Create the storage backend holding table data files.

    Args:
        config: PurgeStat configuration

    Returns:
        StorageBackend instance
    """
    return _create_backend_from_storage_config(config.storage)


def get_table_path(keyspace: str, table: str, snapshot: Optional[str] = None) -> str:
    """
    Get path of a table's data files.

    Args:
        keyspace: Keyspace (table group) name
        table: Table name
        snapshot: Optional snapshot name; points at the snapshot copy instead of live files

    Returns:
        Relative path from storage root
    """
    if snapshot:
        return f"{keyspace}/{table}/{SNAPSHOTS_DIR}/{snapshot}"
    return f"{keyspace}/{table}"
