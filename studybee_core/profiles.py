"""
Learner profile store boundary.

The orchestrator only reads profiles, once, while initializing for an
owner. Any repository that may fail is acceptable: a failed or empty
lookup is treated as "no profile available".
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ProfileRepository(ABC):
    """Read access to stored learner profiles."""

    @abstractmethod
    async def fetch_profile(self, owner_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored profile for ``owner_id`` or None. May raise."""
        ...


class InMemoryProfileRepository(ProfileRepository):
    """Dict-backed repository for local runs and tests."""

    def __init__(self, profiles: Optional[Dict[str, Dict[str, Any]]] = None):
        self._profiles: Dict[str, Dict[str, Any]] = dict(profiles or {})

    def put_profile(self, owner_id: str, profile: Dict[str, Any]):
        self._profiles[owner_id] = dict(profile)

    async def fetch_profile(self, owner_id: str) -> Optional[Dict[str, Any]]:
        profile = self._profiles.get(owner_id)
        return dict(profile) if profile is not None else None
