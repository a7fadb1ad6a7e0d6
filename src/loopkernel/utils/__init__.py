"""
loopkernel utilities package
"""

from .config import env_flag

__all__ = ["env_flag"]
