"""
twiggit - worktree orchestration for collections of git repositories
"""

from .__version__ import __version__
from .config import Config
from .core import Twiggit
from .logging_config import setup_logging

__all__ = ["Config", "Twiggit", "setup_logging", "__version__"]
