"""
Repository Pattern Implementation

All durable-store access goes through these repositories.
"""

from .base import BaseRepository
from .user import UserRepository
from .property import PropertyRepository, PropertySearchCriteria
from .favorite import FavoriteRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PropertyRepository",
    "PropertySearchCriteria",
    "FavoriteRepository",
]
