"""
VibeCraft utilities module.

Provides caching and logging helpers.
"""

from .caching import TTLCache, content_hash
from .logging import StructuredLogger, ProcessingStats, setup_logging, setup_console_logging

__all__ = [
    'TTLCache',
    'content_hash',
    'StructuredLogger',
    'ProcessingStats',
    'setup_logging',
    'setup_console_logging',
]
