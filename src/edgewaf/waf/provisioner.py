"""WAF provisioning orchestrator.

Creates the remote objects a WAF depends on, in the order the platform
requires:
1. Prefetch condition
2. Response object
3. VCL snippet
4. WAF container (references 1 and 2 by name)
5. OWASP settings (need the container ID)
6. Logging endpoints (need the container to exist)
"""

import logging

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import Condition, Owasp, ResponseObject, Snippet
from edgewaf.config import EdgeWafConfig, WaflogSettings, WeblogSettings
from edgewaf.errors import (
    DuplicateResourceError,
    EdgeWafError,
    NotFoundError,
    ProvisioningError,
)
from edgewaf.utils.logging import get_logger
from edgewaf.waf.existence import (
    condition_exists,
    response_object_exists,
    snippet_exists,
)

WAF_LOG_PLACEMENT = "waf_debug"


class Provisioner:
    """Provisions a WAF container and its supporting objects on a draft version.

    Leaf objects (condition, response object, snippet) are skipped with a
    warning when they already exist. The container itself is always created,
    so provisioning the same version twice yields two containers.
    """

    def __init__(
        self,
        api: EdgeApiClient,
        config: EdgeWafConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the provisioner.

        Args:
            api: Edge API client.
            config: Loaded configuration.
            logger: Logger for progress messages.
        """
        self._api = api
        self._config = config
        self._logger = logger or get_logger(__name__)

    def provision(self, service_id: str, version: int) -> str:
        """Run every provisioning step in order.

        Any error aborts the sequence. Objects created by earlier steps are
        left in place.

        Args:
            service_id: Service identifier.
            version: Draft version number.

        Returns:
            ID of the created WAF container.

        Raises:
            ProvisioningError: Naming the step that failed.
        """
        step = "prefetch condition"
        try:
            self.ensure_prefetch_condition(service_id, version)
            step = "response object"
            self.ensure_response_object(service_id, version)
            step = "VCL snippet"
            self.ensure_vcl_snippet(service_id, version)

            step = "WAF container"
            waf_id = self.create_waf_container(service_id, version)

            step = "OWASP settings"
            self.upsert_owasp(service_id, waf_id)

            # Logging endpoints may only reference the WAF once it exists.
            step = "logging endpoints"
            self.create_logging_endpoints(service_id, version)
        except EdgeWafError as e:
            raise ProvisioningError(
                f"Provisioning stopped at the {step} step: {e.message}",
                hint=e.hint,
            ) from e

        return waf_id

    def ensure_prefetch_condition(self, service_id: str, version: int) -> bool:
        """Create the prefetch condition unless one with the same name exists.

        An existing condition is never updated.

        Returns:
            True if the condition was created.
        """
        prefetch = self._config.prefetch
        conditions = self._api.list_conditions(service_id, version)

        if condition_exists(conditions, prefetch.name):
            self._logger.warning(
                "Prefetch condition %r already exists, skipping", prefetch.name
            )
            return False

        self._api.create_condition(
            service_id,
            version,
            Condition(
                name=prefetch.name,
                statement=prefetch.statement,
                type=prefetch.type,
                priority=prefetch.priority,
            ),
        )
        self._logger.info("Prefetch condition %r created", prefetch.name)
        return True

    def ensure_response_object(self, service_id: str, version: int) -> bool:
        """Create the response object unless one with the same name exists.

        Returns:
            True if the response object was created.
        """
        settings = self._config.response
        responses = self._api.list_response_objects(service_id, version)

        if response_object_exists(responses, settings.name):
            self._logger.warning(
                "Response object %r already exists, skipping", settings.name
            )
            return False

        self._api.create_response_object(
            service_id,
            version,
            ResponseObject(
                name=settings.name,
                status=settings.http_status_code,
                response=settings.http_response,
                content_type=settings.content_type,
                content=settings.content,
            ),
        )
        self._logger.info("Response object %r created", settings.name)
        return True

    def ensure_vcl_snippet(self, service_id: str, version: int) -> bool:
        """Create the VCL snippet unless one with exactly the same name exists.

        Returns:
            True if the snippet was created.
        """
        settings = self._config.vcl_snippet
        snippets = self._api.list_snippets(service_id, version)

        if snippet_exists(snippets, settings.name):
            self._logger.warning("VCL snippet %r already exists, skipping", settings.name)
            return False

        self._api.create_snippet(
            service_id,
            version,
            Snippet(
                name=settings.name,
                type=settings.type,
                priority=settings.priority,
                dynamic=settings.dynamic,
                content=settings.content,
            ),
        )
        self._logger.info("VCL snippet %r created", settings.name)
        return True

    def create_waf_container(self, service_id: str, version: int) -> str:
        """Create a WAF container. No existence check is made.

        Returns:
            ID of the new container.
        """
        waf = self._api.create_waf(
            service_id,
            version,
            prefetch_condition=self._config.prefetch.name,
            response_object=self._config.response.name,
        )
        self._logger.info("WAF %r created", waf.id)
        return waf.id

    def upsert_owasp(self, service_id: str, waf_id: str) -> Owasp:
        """Create the OWASP object if absent, then apply every configured setting.

        Returns:
            The OWASP object as stored remotely.
        """
        try:
            owasp = self._api.get_owasp(service_id, waf_id)
        except NotFoundError:
            owasp = None

        created = owasp is None
        if owasp is None:
            owasp = self._api.create_owasp(service_id, waf_id)

        owasp = self._api.update_owasp(service_id, waf_id, owasp.id, self._config.owasp)

        if created:
            self._logger.info("OWASP settings created with the following settings:")
        else:
            self._logger.info("OWASP settings updated with the following settings:")
        for name, value in owasp.settings.to_api().items():
            self._logger.info(" - %s: %s", name, value)

        return owasp

    def create_logging_endpoints(self, service_id: str, version: int) -> None:
        """Create the web log and WAF log syslog endpoints.

        A duplicate record reported by the platform counts as success.

        Raises:
            ApiError: For any other failure.
        """
        self._create_syslog(service_id, version, self._config.weblog)
        self._create_syslog(
            service_id, version, self._config.waflog, placement=WAF_LOG_PLACEMENT
        )

    def _create_syslog(
        self,
        service_id: str,
        version: int,
        settings: WeblogSettings | WaflogSettings,
        placement: str | None = None,
    ) -> bool:
        try:
            self._api.create_syslog(
                service_id,
                version,
                name=settings.name,
                address=settings.address,
                port=settings.port,
                format=settings.format,
                tls_ca_cert=settings.tls_ca_cert,
                tls_hostname=settings.tls_hostname,
                placement=placement,
            )
        except DuplicateResourceError:
            self._logger.warning("Logging endpoint %r already exists, skipping", settings.name)
            return False
        self._logger.info("Logging endpoint %r created", settings.name)
        return True
