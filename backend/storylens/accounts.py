"""Account collaborators consumed by the captioning service.

Account management, relationships and per-account settings live outside this
service; it only needs the small contract in :class:`AccountDirectory`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

ROLE_CHILD = "child"
ROLE_ADULT = "adult"

MIN_TIER = 1
MAX_TIER = 3


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = ROLE_ADULT


class AccountDirectory(Protocol):
    def complexity_tier_for(self, user_id: str) -> int | None: ...

    def can_upload(self, user_id: str) -> bool: ...

    def is_linked(self, requester_id: str, owner_id: str) -> bool: ...


@dataclass
class InMemoryAccountDirectory:
    """Dict-backed directory. Links are symmetric (adult ↔ child)."""

    tiers: dict[str, int] = field(default_factory=dict)
    upload_blocked: set[str] = field(default_factory=set)
    links: set[frozenset[str]] = field(default_factory=set)

    def complexity_tier_for(self, user_id: str) -> int | None:
        return self.tiers.get(user_id)

    def can_upload(self, user_id: str) -> bool:
        return user_id not in self.upload_blocked

    def is_linked(self, requester_id: str, owner_id: str) -> bool:
        return frozenset((requester_id, owner_id)) in self.links

    def link(self, adult_id: str, child_id: str) -> None:
        self.links.add(frozenset((adult_id, child_id)))
