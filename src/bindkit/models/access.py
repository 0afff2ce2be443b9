"""
Access record models.

``AccessRecord`` is the platform-neutral unit produced by the pull direction.
``DesiredAccessRecord`` is its push counterpart, carrying previously deleted
membership and scope next to the current ones. ``AccessRecordFeedback`` is
what the push direction reports back per desired record.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, model_validator
from typing_extensions import Self

from .base import BaseSyncModel
from .enums import Action
from .identities import Identity

# Longest naming hint accepted by the access platform
MAX_NAMING_HINT_LENGTH = 128

# Access record type used for binding based records
ACL_SET_TYPE = "aclSet"


def generate_naming_hint(name: str) -> str:
    """
    Truncate a name to the allowed naming hint length.

    Keeps the trailing characters so the most specific part of a
    hierarchical name survives.
    """
    if len(name) > MAX_NAMING_HINT_LENGTH:
        return name[-MAX_NAMING_HINT_LENGTH:]
    return name


class WhoItem(BaseSyncModel):
    """Users and groups an access record applies to."""

    users: List[str] = Field(default_factory=list, description="User and service account emails")
    groups: List[str] = Field(default_factory=list, description="Group emails")

    def add_user(self, email: str) -> Self:
        if email not in self.users:
            self.users.append(email)
        return self

    def add_group(self, email: str) -> Self:
        if email not in self.groups:
            self.groups.append(email)
        return self

    def add_identity(self, identity: Identity) -> Self:
        """
        Add an identity to users or groups.

        Service accounts count as users. Domains and other kinds have no
        place in a who item and are ignored.
        """
        if identity.is_user_like:
            self.add_user(identity.value)
        elif identity.is_group:
            self.add_group(identity.value)
        return self

    def is_empty(self) -> bool:
        return not self.users and not self.groups


class WhatItem(BaseSyncModel):
    """A resource and the permissions granted on it."""

    resource: str = Field(..., description="Full name of the data object")
    resource_type: str = Field(..., description="Data object type")
    permissions: List[str] = Field(default_factory=list)


def who_to_members(who: Optional[WhoItem]) -> List[str]:
    """
    IAM members for the users and groups of a who item.

    Users whose email holds the service account domain become
    ``serviceAccount:`` members, other users ``user:`` members.
    """
    if who is None:
        return []
    members = [Identity.from_email(user).member for user in who.users]
    members.extend(Identity.group(group).member for group in who.groups)
    return members


class Locks(BaseSyncModel):
    """Which parts of an access record may be edited on the platform."""

    who: bool = False
    what: bool = False
    name: bool = False
    delete: bool = False


class AccessRecord(BaseSyncModel):
    """
    An access record imported from GCP.

    Grant records must carry at least one permission per ``what`` entry.
    Mask records list the masked columns without permissions.
    """

    external_id: str
    name: str
    naming_hint: str
    action: Action = Action.GRANT
    type: Optional[str] = Field(default=ACL_SET_TYPE, description="Record type or mask type")
    who: WhoItem = Field(default_factory=WhoItem)
    what: List[WhatItem] = Field(default_factory=list)
    not_internalizable: bool = False
    locks: Locks = Field(default_factory=Locks)
    actual_name: Optional[str] = None

    @model_validator(mode="after")
    def validate_permissions(self) -> Self:
        """Every what entry of a grant record needs a permission."""
        if self.action is Action.GRANT:
            for item in self.what:
                if not item.permissions:
                    raise ValueError(
                        f"Access record '{self.name}' has no permissions on {item.resource}"
                    )
        return self


class DesiredAccessRecord(BaseSyncModel):
    """
    An access record as requested by the platform for the push direction.

    Attributes:
        id: Platform id, used for feedback attribution
        delete: Whether the whole record is being removed
        deleted_who: Members removed since the previous push
        delete_what: Scope removed since the previous push
    """

    id: str
    name: str
    naming_hint: str = ""
    description: str = ""
    action: Action = Action.GRANT
    type: Optional[str] = None
    external_id: Optional[str] = None
    actual_name: Optional[str] = None
    delete: bool = False
    who: WhoItem = Field(default_factory=WhoItem)
    deleted_who: Optional[WhoItem] = None
    what: List[WhatItem] = Field(default_factory=list)
    delete_what: List[WhatItem] = Field(default_factory=list)

    @property
    def effective_naming_hint(self) -> str:
        return self.naming_hint or self.name


class AccessRecordFeedback(BaseSyncModel):
    """Outcome of pushing one desired access record."""

    access_record_id: str
    actual_name: str
    external_id: Optional[str] = None
    type: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Record an error once."""
        if message not in self.errors:
            self.errors.append(message)

    @property
    def success(self) -> bool:
        return not self.errors
