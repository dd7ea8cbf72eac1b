"""Configuration management for PurgeStat."""
import os
import yaml
from pathlib import Path
from typing import Optional, Literal
from pydantic import BaseModel, Field


class S3Config(BaseModel):
    """S3-specific configuration."""
    bucket: str = ""
    region: Optional[str] = None  # Auto-detected if None
    aws_access_key_id: Optional[str] = None  # Uses environment/IAM role if None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    endpoint_url: Optional[str] = None  # For S3-compatible services (MinIO, etc.)


class StorageConfig(BaseModel):
    """
    Where table data files live.

    Tables are laid out as {keyspace}/{table}/gen-<N>.parquet relative to
    base_dir (local) or the bucket (S3).
    """
    backend: Literal["local", "s3"] = "local"
    base_dir: str = "./data"
    s3: Optional[S3Config] = Field(default_factory=S3Config)


class AnalysisConfig(BaseModel):
    """Defaults for a purge statistics pass."""
    top_partitions: int = Field(10, ge=0, description="Number of partitions to report")
    throughput_mb: int = Field(0, ge=0, description="Read throughput ceiling in MB/s, 0 = unlimited")
    gc_grace_seconds: int = Field(864000, ge=0, description="Age after which tombstones are purgeable")
    interactive: bool = True


class PurgeStatConfig(BaseModel):
    """Root configuration for PurgeStat."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_config(config_path: Optional[str] = None) -> PurgeStatConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, looks for:
            1. PURGESTAT_CONFIG environment variable
            2. ./config/config.yaml
            3. ~/.purgestat/config.yaml
            and falls back to built-in defaults when none exists.

    Returns:
        PurgeStatConfig instance
    """
    if config_path is None:
        config_path = os.environ.get("PURGESTAT_CONFIG")

        if config_path is None:
            candidates = [
                Path("./config/config.yaml"),
                Path.home() / ".purgestat" / "config.yaml",
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = str(candidate)
                    break

    if config_path is None:
        return PurgeStatConfig()

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        yaml_data = yaml.safe_load(f)

    return PurgeStatConfig(**(yaml_data or {}))


def save_example_config(output_path: str = "./config/config.example.yaml"):
    """
    Save an example configuration file.

    Args:
        output_path: Where to save the example config
    """
    example = {
        "storage": {
            "backend": "local",
            "base_dir": "/var/lib/tables",
            "s3": {
                "bucket": "my-table-bucket",
                "region": "us-east-1",
            },
        },
        "analysis": {
            "top_partitions": 10,
            "throughput_mb": 0,
            "gc_grace_seconds": 864000,
            "interactive": True,
        },
        "log_level": "INFO",
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        yaml.dump(example, f, default_flow_style=False, sort_keys=False)

    print(f"Example config saved to {output_path}")
