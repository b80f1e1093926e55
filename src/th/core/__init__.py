"""th core modules."""

from th.core.config import Settings, get_auth_path, load_config
from th.core.logging import setup_logging

__all__ = ["Settings", "get_auth_path", "load_config", "setup_logging"]
