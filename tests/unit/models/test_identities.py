"""
Unit tests for IAM member parsing.
"""

from bindkit.models import Identity, IdentityKind


class TestIdentityParse:
    """Tests for Identity.parse."""

    def test_user_prefix(self) -> None:
        """Test that user members are parsed."""
        identity = Identity.parse("user:alice@example.com")
        assert identity.kind is IdentityKind.USER
        assert identity.value == "alice@example.com"
        assert identity.is_user_like

    def test_service_account_prefix(self) -> None:
        """Test that service accounts count as users."""
        identity = Identity.parse("serviceAccount:etl@proj.iam.gserviceaccount.com")
        assert identity.kind is IdentityKind.SERVICE_ACCOUNT
        assert identity.is_user_like

    def test_group_prefix(self) -> None:
        """Test that group members are parsed."""
        identity = Identity.parse("group:eng@example.com")
        assert identity.is_group
        assert not identity.is_user_like

    def test_unknown_member_kept_verbatim(self) -> None:
        """Test that members without a known prefix are kept whole."""
        identity = Identity.parse("allUsers")
        assert identity.kind is IdentityKind.OTHER
        assert identity.member == "allUsers"

        deleted = Identity.parse("deleted:user:bob@example.com?uid=1")
        assert deleted.kind is IdentityKind.OTHER
        assert deleted.value == "deleted:user:bob@example.com?uid=1"

    def test_member_round_trip(self) -> None:
        """Test that the member string is rebuilt from kind and value."""
        assert Identity.parse("domain:example.com").member == "domain:example.com"
        assert str(Identity.parse("group:eng@example.com")) == "group:eng@example.com"


class TestIdentityFromEmail:
    """Tests for building identities from bare emails."""

    def test_plain_email_is_user(self) -> None:
        """Test that plain emails become users."""
        assert Identity.from_email("alice@example.com").member == "user:alice@example.com"

    def test_service_account_email(self) -> None:
        """Test that the service account domain is detected."""
        identity = Identity.from_email("etl@proj.iam.gserviceaccount.com")
        assert identity.member == "serviceAccount:etl@proj.iam.gserviceaccount.com"

    def test_group(self) -> None:
        """Test the group constructor."""
        assert Identity.group("eng@example.com").member == "group:eng@example.com"
