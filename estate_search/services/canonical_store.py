import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ..models.documents import PropertyStatus, PropertyView
from ..models.query import UserProfile

logger = logging.getLogger(__name__)


class CanonicalStore(ABC):
    """Read-only port to the system of record for properties and users.

    Implementations return fully denormalized views (address, location,
    features, amenities, images and owner joined in) so that callers never
    issue follow-up lookups.
    """

    @abstractmethod
    async def get_property_by_id(self, property_id: str) -> Optional[PropertyView]:
        ...

    @abstractmethod
    async def list_eligible_properties(self) -> List[PropertyView]:
        ...

    @abstractmethod
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        ...


class InMemoryCanonicalStore(CanonicalStore):
    def __init__(
        self,
        properties: Iterable[PropertyView] = (),
        users: Iterable[UserProfile] = (),
        eligible_statuses: Sequence[str] = (PropertyStatus.ACTIVE.value, PropertyStatus.PENDING.value),
    ):
        self.properties: Dict[str, PropertyView] = {p.id: p for p in properties}
        self.users: Dict[str, UserProfile] = {u.id: u for u in users}
        self.eligible_statuses = set(eligible_statuses)

    @classmethod
    def from_json_file(cls, path: str, eligible_statuses: Sequence[str]) -> "InMemoryCanonicalStore":
        """Load ``{"properties": [...], "users": [...]}`` from a JSON file"""
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls(
            properties=[PropertyView.model_validate(p) for p in data.get("properties", [])],
            users=[UserProfile.model_validate(u) for u in data.get("users", [])],
            eligible_statuses=eligible_statuses,
        )
        logger.info(
            "Loaded %d properties and %d users from %s", len(store.properties), len(store.users), path
        )
        return store

    def put_property(self, view: PropertyView) -> None:
        self.properties[view.id] = view

    def drop_property(self, property_id: str) -> None:
        self.properties.pop(property_id, None)

    def put_user(self, profile: UserProfile) -> None:
        self.users[profile.id] = profile

    async def get_property_by_id(self, property_id: str) -> Optional[PropertyView]:
        return self.properties.get(property_id)

    async def list_eligible_properties(self) -> List[PropertyView]:
        return [
            view for view in self.properties.values()
            if view.is_active and view.status.value in self.eligible_statuses
        ]

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.users.get(user_id)
