"""Explicit permission objects handed to the service layer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from estateportal.core.constants import ROLE_ADMIN, ROLE_BOARD
from estateportal.errors import ForbiddenError

MANAGER_ROLES = frozenset({ROLE_ADMIN, ROLE_BOARD})


@dataclass(frozen=True)
class Permissions:
    """What the acting user may do.

    Built once per request from the logged-in user and passed to every
    service call that mutates competition data.
    """

    user_id: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def from_user(cls, user: Optional[dict[str, Any]]) -> Permissions:
        """Build permissions from a user document loaded into the request."""
        if not user:
            return cls.anonymous()
        return cls(user_id=user.get("uid"), role=user.get("role"))

    @classmethod
    def anonymous(cls) -> Permissions:
        """Return permissions for a visitor without a session."""
        return cls()

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_manage_content(self) -> bool:
        """Admins and board members manage competitions."""
        return self.role in MANAGER_ROLES

    def can_modify_matches(self, referee_user_ids: Iterable[str] = ()) -> bool:
        """Managers and the competition's referees may record results."""
        if self.can_manage_content():
            return True
        return self.user_id is not None and self.user_id in set(referee_user_ids)

    def require_manage(self) -> None:
        if not self.can_manage_content():
            raise ForbiddenError("Only administrators can manage competitions.")

    def require_match_access(self, referee_user_ids: Iterable[str] = ()) -> None:
        if not self.can_modify_matches(referee_user_ids):
            raise ForbiddenError("Only referees or administrators can update matches.")
