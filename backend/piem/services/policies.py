"""
PIEM Backend — Caller Identity and Ownership Policies
======================================================

What:  The caller-id/caller-role pair the core consumes, and the named
       policies deciding who may read or modify a given document.
How:   Each policy answers `can_read(caller, doc)` and
       `can_modify(caller, doc)` using plain equality over opaque ids.
Who:   ResourceService (enforcement), security.py (builds Caller).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Caller:
    """Authenticated identity attached to a request."""

    id: str
    role: str = "user"
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class OwnershipPolicy:
    """Base policy: anyone may read and modify. Subclasses narrow it."""

    read_denied_message = "Access denied."
    modify_denied_message = "Access denied."

    def can_read(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        return True

    def can_modify(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        return True


class OpenAccess(OwnershipPolicy):
    """Open read and write (inventory, suppliers)."""


class CreatorOrAdmin(OwnershipPolicy):
    """
    Open read; only the document's creator or an admin may modify it.

    `field` names the document attribute holding the creator's user id.
    """

    def __init__(self, field: str = "createdBy", noun: str = "categories"):
        self.field = field
        self.modify_denied_message = f"Access denied. You can only modify {noun} you created."

    def can_modify(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        if caller is None:
            return False
        return caller.is_admin or str(doc.get(self.field)) == caller.id


class SelfOrAdmin(OwnershipPolicy):
    """A document is visible and editable only by itself (users) or an admin."""

    read_denied_message = "Access denied. You can only view your own profile."
    modify_denied_message = "Access denied. You can only update your own profile."

    def _is_self_or_admin(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        if caller is None:
            return False
        return caller.is_admin or str(doc.get("_id")) == caller.id

    def can_read(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        return self._is_self_or_admin(caller, doc)

    def can_modify(self, caller: Optional[Caller], doc: Dict[str, Any]) -> bool:
        return self._is_self_or_admin(caller, doc)
