"""
Repository Layer.

Supabase-backed data access.  Services depend on the ``ProfileStore``
protocol; ``ProfileRepository`` is its production implementation.
"""

from vasudha_access.repositories.base_repository import BaseRepository
from vasudha_access.repositories.profile_repository import ProfileRepository

__all__ = [
    "BaseRepository",
    "ProfileRepository",
]
