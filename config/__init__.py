"""Config package."""
from .config import PurgeStatConfig, load_config, save_example_config

__all__ = ["PurgeStatConfig", "load_config", "save_example_config"]
