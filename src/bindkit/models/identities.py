"""
Identity model for IAM member strings.

GCP encodes the kind of an identity as a prefix of the member string
(``user:``, ``serviceAccount:``, ``group:``, ``domain:``). ``Identity`` parses
that prefix once at the boundary so conversion code can branch on
``IdentityKind`` instead of matching strings.
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import IdentityKind

# Marker in an email that identifies a GCP service account
SERVICE_ACCOUNT_DOMAIN_MARKER = "gserviceaccount.com"

_PREFIXED_KINDS = {
    kind.value: kind for kind in IdentityKind if kind is not IdentityKind.OTHER
}


@dataclass(frozen=True)
class Identity:
    """
    A tagged IAM identity.

    Attributes:
        kind: Identity kind derived from the member prefix
        value: Email, domain or special group tag without the prefix
    """

    kind: IdentityKind
    value: str

    @classmethod
    def parse(cls, member: str) -> Identity:
        """
        Parse an IAM member string.

        Members without a recognised prefix (``allUsers``, ``deleted:...``,
        ``principal://...``) are kept verbatim as ``IdentityKind.OTHER``.
        """
        prefix, sep, value = member.partition(":")
        if sep and prefix in _PREFIXED_KINDS:
            return cls(kind=_PREFIXED_KINDS[prefix], value=value)
        return cls(kind=IdentityKind.OTHER, value=member)

    @classmethod
    def from_email(cls, email: str) -> Identity:
        """Build a user or service account identity from a bare email."""
        if SERVICE_ACCOUNT_DOMAIN_MARKER in email:
            return cls(kind=IdentityKind.SERVICE_ACCOUNT, value=email)
        return cls(kind=IdentityKind.USER, value=email)

    @classmethod
    def group(cls, email: str) -> Identity:
        """Build a group identity."""
        return cls(kind=IdentityKind.GROUP, value=email)

    @property
    def member(self) -> str:
        """The IAM member string for this identity."""
        if self.kind is IdentityKind.OTHER:
            return self.value
        return f"{self.kind.value}:{self.value}"

    @property
    def is_user_like(self) -> bool:
        """Users and service accounts both land in an access record's users."""
        return self.kind in (IdentityKind.USER, IdentityKind.SERVICE_ACCOUNT)

    @property
    def is_group(self) -> bool:
        return self.kind is IdentityKind.GROUP

    def __str__(self) -> str:
        return self.member
