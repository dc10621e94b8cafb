"""Top-level package for the ScholarFlow writing assistant."""

from .config import ConfigManager, get_user_config_dir  # noqa: F401
from .logging import setup_logging  # noqa: F401
