"""Tests for service version helpers."""

import pytest

from edgewaf.errors import NoActiveVersionError, NotFoundError
from edgewaf.waf.versions import clone_version, get_active_version, validate_version

SERVICE = "svc123"


class TestVersions:
    """Tests for version lookup, cloning and validation."""

    def test_active_version(self, api) -> None:
        """Test finding the active version."""
        assert get_active_version(api, SERVICE) == 7

    def test_no_active_version(self, fake_api, api) -> None:
        """Test that a service without an active version raises."""
        for version in fake_api.versions:
            version["active"] = False

        with pytest.raises(NoActiveVersionError):
            get_active_version(api, SERVICE)

    def test_unknown_service(self, api) -> None:
        """Test that an unknown service raises NotFoundError."""
        with pytest.raises(NotFoundError):
            get_active_version(api, "nope")

    def test_clone(self, fake_api, api) -> None:
        """Test cloning returns the new draft number."""
        assert clone_version(api, SERVICE, 7) == 8
        assert fake_api.paths("POST") == [f"/service/{SERVICE}/version/7/clone"]

    def test_validate(self, fake_api, api) -> None:
        """Test validation verdicts."""
        assert validate_version(api, SERVICE, 8) is True

        fake_api.validation_error = "Syntax error in VCL"
        assert validate_version(api, SERVICE, 8) is False
