"""PurgeStat - estimate reclaimable space in columnar table storage files."""

__author__ = "PurgeStat Contributors"
__license__ = "MIT"

from analysis import __version__
from config import PurgeStatConfig, load_config

__all__ = ["PurgeStatConfig", "load_config", "__version__"]
