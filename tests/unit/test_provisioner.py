"""Tests for WAF provisioning."""

import pytest

from edgewaf.api.models import OwaspSettings
from edgewaf.config import EdgeWafConfig
from edgewaf.errors import NotFoundError, ProvisioningError
from edgewaf.waf.provisioner import WAF_LOG_PLACEMENT, Provisioner

SERVICE = "svc123"
VERSION = 8


class TestProvisioner:
    """Tests for Provisioner."""

    def test_provision_creates_objects_in_order(self, fake_api, api, sample_config) -> None:
        """Test the full provisioning sequence."""
        waf_id = Provisioner(api, sample_config).provision(SERVICE, VERSION)

        base = f"/service/{SERVICE}/version/{VERSION}"
        assert fake_api.paths("POST") == [
            f"{base}/condition",
            f"{base}/response_object",
            f"{base}/snippet",
            f"{base}/wafs",
            f"/service/{SERVICE}/wafs/{waf_id}/owasp",
            f"{base}/logging/syslog",
            f"{base}/logging/syslog",
        ]
        assert fake_api.paths("PATCH") == [f"/service/{SERVICE}/wafs/{waf_id}/owasp"]
        assert waf_id == "waf1"

    def test_container_references_prefetch_and_response(self, fake_api, api, sample_config) -> None:
        """Test that the WAF container names its prefetch condition and response object."""
        Provisioner(api, sample_config).provision(SERVICE, VERSION)

        attributes = fake_api.wafs[0]["attributes"]
        assert attributes == {"prefetch_condition": "WAF_Prefetch", "response": "WAF_Response"}

    def test_existing_response_object_skipped(self, fake_api, api, sample_config) -> None:
        """Test that a response object differing only in case is not recreated."""
        fake_api.response_objects.append({"name": "waf_response", "status": "403"})

        created = Provisioner(api, sample_config).ensure_response_object(SERVICE, VERSION)

        assert created is False
        assert fake_api.names(fake_api.response_objects) == ["waf_response"]

    def test_existing_prefetch_condition_not_updated(self, fake_api, api, sample_config) -> None:
        """Test that an existing prefetch condition is left untouched."""
        fake_api.conditions.append(
            {"name": "WAF_Prefetch", "statement": "false", "type": "PREFETCH", "priority": "10"}
        )

        created = Provisioner(api, sample_config).ensure_prefetch_condition(SERVICE, VERSION)

        assert created is False
        assert fake_api.conditions[0]["statement"] == "false"
        assert fake_api.paths("PUT") == []

    def test_snippet_match_is_exact(self, fake_api, api, sample_config) -> None:
        """Test that a snippet differing in case does not block creation."""
        fake_api.snippets.append({"name": "fastly_waf_snippet"})

        created = Provisioner(api, sample_config).ensure_vcl_snippet(SERVICE, VERSION)

        assert created is True
        assert fake_api.names(fake_api.snippets) == ["fastly_waf_snippet", "Fastly_WAF_Snippet"]

    def test_second_provision_creates_second_container(self, fake_api, api, sample_config) -> None:
        """Test that provisioning twice yields two containers and one of each leaf object."""
        provisioner = Provisioner(api, sample_config)

        first = provisioner.provision(SERVICE, VERSION)
        second = provisioner.provision(SERVICE, VERSION)

        assert first != second
        assert len(fake_api.wafs) == 2
        assert len(fake_api.conditions) == 1
        assert len(fake_api.response_objects) == 1
        assert len(fake_api.snippets) == 1
        assert len(fake_api.syslogs) == 2

    def test_owasp_upsert_keeps_identity(self, fake_api, api, sample_config) -> None:
        """Test that a second upsert updates the same OWASP object."""
        first = Provisioner(api, sample_config).upsert_owasp(SERVICE, "waf1")
        changed = sample_config.model_copy(update={"owasp": OwaspSettings(paranoia_level=4)})
        second = Provisioner(api, changed).upsert_owasp(SERVICE, "waf1")

        assert first.id == second.id
        assert second.settings.paranoia_level == 4
        assert len(fake_api.paths("POST")) == 1
        assert len(fake_api.paths("PATCH")) == 2

    def test_owasp_settings_applied(self, fake_api, api) -> None:
        """Test that configured OWASP settings reach the platform."""
        config = EdgeWafConfig(owasp={"paranoia_level": 3, "max_num_args": 512})

        owasp = Provisioner(api, config).upsert_owasp(SERVICE, "waf1")

        assert owasp.settings.paranoia_level == 3
        assert fake_api.owasp["waf1"]["attributes"]["max_num_args"] == 512

    def test_owasp_not_found_error_treated_as_absent(self, api, sample_config, monkeypatch) -> None:
        """Test that a NotFoundError from the lookup leads to creation."""

        def missing(service_id: str, waf_id: str) -> None:
            raise NotFoundError("OWASP settings")

        monkeypatch.setattr(api, "get_owasp", missing)

        owasp = Provisioner(api, sample_config).upsert_owasp(SERVICE, "waf1")

        assert owasp.id == "owasp1"

    def test_waf_log_placement(self, fake_api, api, sample_config) -> None:
        """Test that only the WAF log is placed as waf_debug."""
        Provisioner(api, sample_config).create_logging_endpoints(SERVICE, VERSION)

        by_name = {s["name"]: s for s in fake_api.syslogs}
        assert by_name["WAF_Logs"]["placement"] == WAF_LOG_PLACEMENT
        assert "placement" not in by_name["WAF_Web_Logs"]
        assert by_name["WAF_Logs"]["use_tls"] == "1"

    def test_duplicate_logging_endpoint_tolerated(self, fake_api, api, sample_config) -> None:
        """Test that an already existing endpoint is not an error."""
        fake_api.syslogs.append({"name": "WAF_Logs"})

        Provisioner(api, sample_config).create_logging_endpoints(SERVICE, VERSION)

        assert fake_api.names(fake_api.syslogs) == ["WAF_Logs", "WAF_Web_Logs"]

    def test_failure_aborts_sequence(self, fake_api, api, sample_config, monkeypatch) -> None:
        """Test that a failing step stops provisioning before the container."""

        def refuse(*args: object, **kwargs: object) -> None:
            raise NotFoundError("version")

        monkeypatch.setattr(api, "create_snippet", refuse)

        with pytest.raises(ProvisioningError) as exc_info:
            Provisioner(api, sample_config).provision(SERVICE, VERSION)

        assert "VCL snippet" in exc_info.value.message
        assert fake_api.wafs == []
        assert len(fake_api.conditions) == 1
