"""
Cache Services

Read-through and write-through cache operations and the value codec.
"""

from .cache_service import CacheService
from .codec import CacheCodec, CacheDecodeError, CacheEncodeError

__all__ = ["CacheService", "CacheCodec", "CacheDecodeError", "CacheEncodeError"]
