"""
Base storage abstraction for PurgeStat.

Provides a unified interface over local and cloud storage backends.
All paths are relative to the storage root (local base_dir or S3 bucket).
"""
import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, List, Dict, Any, BinaryIO

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All implementations must support:
    - Path operations relative to a root (base_dir or bucket)
    - Whole-object reads/writes and streaming reads
    - List and exists operations
    """

    def __init__(self, base_path: str):
        """
        Initialize storage backend.

        Args:
            base_path: Root path for all operations (local dir or S3 bucket)
        """
        self.base_path = base_path

    @abstractmethod
    def write_bytes(self, data: bytes, path: str) -> str:
        """
        Write bytes to storage.

        Args:
            data: Bytes to write
            path: Relative path from base_path

        Returns:
            Full path where data was written
        """
        pass

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """
        Read bytes from storage.

        Args:
            path: Relative path from base_path

        Returns:
            File contents as bytes
        """
        pass

    @abstractmethod
    def open_read(self, path: str) -> BinaryIO:
        """
        Open a file for streaming, seekable reads.

        The caller owns the returned handle and must close it.

        Args:
            path: Relative path from base_path
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """
        Check if path exists.

        Args:
            path: Relative path from base_path

        Returns:
            True if path exists
        """
        pass

    @abstractmethod
    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List files directly inside a directory (not recursive).

        Args:
            path: Relative directory path from base_path
            pattern: Optional glob pattern matched against the file name (e.g., "*.parquet")

        Returns:
            List of file info dicts with keys: path, size, modified
        """
        pass

    @abstractmethod
    def get_full_path(self, path: str) -> str:
        """
        Get full path for a relative path.

        Args:
            path: Relative path from base_path

        Returns:
            Full path (local path or s3:// URI)
        """
        pass

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Return backend type identifier ('local' or 's3')."""
        pass

    def join_path(self, *parts: str) -> str:
        """
        Join path components using forward slashes.

        Works consistently across local and S3 backends.

        Args:
            *parts: Path components

        Returns:
            Joined path with forward slashes
        """
        clean_parts = [p.strip("/") for p in parts if p]
        return "/".join(clean_parts)


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: str):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for all operations (e.g., "/var/lib/tables")
        """
        super().__init__(base_path)
        self.base_dir = Path(base_path).resolve()

    @property
    def backend_type(self) -> str:
        return "local"

    def _resolve_path(self, path: str) -> Path:
        """Convert relative path to absolute local path."""
        return self.base_dir / path

    def write_bytes(self, data: bytes, path: str) -> str:
        full_path = self._resolve_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(data)
        return str(full_path)

    def read_bytes(self, path: str) -> bytes:
        return self._resolve_path(path).read_bytes()

    def open_read(self, path: str) -> BinaryIO:
        return open(self._resolve_path(path), "rb")

    def exists(self, path: str) -> bool:
        return self._resolve_path(path).exists()

    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        full_path = self._resolve_path(path)

        if not full_path.is_dir():
            return []

        result = []
        for f in sorted(full_path.glob(pattern or "*")):
            if f.is_file():
                stat = f.stat()
                result.append({
                    "path": f.relative_to(self.base_dir).as_posix(),
                    "size": stat.st_size,
                    "modified": stat.st_mtime,
                })

        return result

    def get_full_path(self, path: str) -> str:
        return str(self._resolve_path(path))


class S3Storage(StorageBackend):
    """AWS S3 storage backend."""

    max_retries = 3

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        """
        Initialize S3 storage.

        Args:
            bucket: S3 bucket name (this is the base_path)
            region: AWS region (auto-detected if None)
            aws_access_key_id: AWS access key (uses environment/IAM if None)
            aws_secret_access_key: AWS secret key
            aws_session_token: Session token for temporary credentials
            endpoint_url: Custom endpoint for S3-compatible services
        """
        super().__init__(bucket)
        self.bucket = bucket
        self.region = region

        import boto3

        session_kwargs = {}
        if aws_access_key_id:
            session_kwargs["aws_access_key_id"] = aws_access_key_id
        if aws_secret_access_key:
            session_kwargs["aws_secret_access_key"] = aws_secret_access_key
        if aws_session_token:
            session_kwargs["aws_session_token"] = aws_session_token
        if region:
            session_kwargs["region_name"] = region

        self.s3_client = boto3.client("s3", **session_kwargs, endpoint_url=endpoint_url)

        # s3fs gives pyarrow a seekable handle without downloading whole objects
        import s3fs

        s3fs_kwargs = {
            "anon": False,
        }
        if aws_access_key_id and aws_secret_access_key:
            s3fs_kwargs["key"] = aws_access_key_id
            s3fs_kwargs["secret"] = aws_secret_access_key
        if aws_session_token:
            s3fs_kwargs["token"] = aws_session_token
        if endpoint_url:
            s3fs_kwargs["client_kwargs"] = {"endpoint_url": endpoint_url}

        self.s3fs = s3fs.S3FileSystem(**s3fs_kwargs)

    @property
    def backend_type(self) -> str:
        return "s3"

    def _get_s3_key(self, path: str) -> str:
        """Convert relative path to S3 key."""
        return path.lstrip("/")

    def write_bytes(self, data: bytes, path: str) -> str:
        key = self._get_s3_key(path)

        for attempt in range(self.max_retries):
            try:
                self.s3_client.put_object(Bucket=self.bucket, Key=key, Body=data)
                return f"s3://{self.bucket}/{key}"
            except Exception as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"Failed to upload {key} after {self.max_retries} attempts: {e}")
                    raise
                logger.warning(f"Upload attempt {attempt + 1} failed for {key}, retrying...")
                time.sleep(2 ** attempt)  # Exponential backoff

    def read_bytes(self, path: str) -> bytes:
        key = self._get_s3_key(path)

        for attempt in range(self.max_retries):
            try:
                response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
                return response["Body"].read()
            except Exception as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"Failed to read {key} after {self.max_retries} attempts: {e}")
                    raise
                logger.warning(f"Read attempt {attempt + 1} failed for {key}, retrying...")
                time.sleep(2 ** attempt)  # Exponential backoff

    def open_read(self, path: str) -> BinaryIO:
        key = self._get_s3_key(path)
        return self.s3fs.open(f"{self.bucket}/{key}", "rb")

    def exists(self, path: str) -> bool:
        try:
            key = self._get_s3_key(path)
            self.s3_client.head_object(Bucket=self.bucket, Key=key)
            return True
        except self.s3_client.exceptions.ClientError:
            return False

    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        prefix = self._get_s3_key(path)
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        result = []
        paginator = self.s3_client.get_paginator("list_objects_v2")

        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
            for obj in page.get("Contents", []):
                key = obj["Key"]

                # Pattern matches against the file name only
                if pattern and not fnmatch.fnmatch(key.split("/")[-1], pattern):
                    continue

                result.append({
                    "path": key,
                    "size": obj["Size"],
                    "modified": obj["LastModified"].timestamp(),
                })

        return sorted(result, key=lambda info: info["path"])

    def get_full_path(self, path: str) -> str:
        key = self._get_s3_key(path)
        return f"s3://{self.bucket}/{key}"
