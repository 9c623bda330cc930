"""WAF deprovisioning.

Removes, for every WAF container of a version:
1. The logging endpoints and logging conditions
2. The WAF container
3. The response object
4. The prefetch condition
5. The VCL snippet (best effort)

Objects that are already gone are tolerated.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from edgewaf.api.client import EdgeApiClient
from edgewaf.config import EdgeWafConfig
from edgewaf.errors import EdgeWafError, NotFoundError
from edgewaf.utils.http import status_line
from edgewaf.utils.logging import get_logger
from edgewaf.waf.existence import condition_exists, syslog_exists
from edgewaf.waf.logging_conditions import (
    LOGGING_CONDITION,
    LOGGING_CONDITION_WITH_EXPIRY,
)

# Teardown uses the default names rather than the configured ones.
WAF_RESPONSE_NAME = "WAF_Response"
WAF_PREFETCH_NAME = "WAF_Prefetch"

LEGACY_PERIMETERX_CONDITION = "waf-soc-with-px"
LEGACY_SHIELDING_CONDITION = "waf-soc-with-shielding"

LOGGING_CONDITIONS = (
    LOGGING_CONDITION,
    LOGGING_CONDITION_WITH_EXPIRY,
    LEGACY_PERIMETERX_CONDITION,
    LEGACY_SHIELDING_CONDITION,
)


@dataclass
class ContainerTeardown:
    """Teardown outcome of one WAF container."""

    waf_id: str
    logging_removed: bool = False
    container_removed: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every step succeeded."""
        return not self.errors


@dataclass
class DeprovisionResult:
    """Teardown outcome of every WAF container of a version."""

    containers: list[ContainerTeardown] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether at least one container was found and every teardown succeeded."""
        return bool(self.containers) and all(c.success for c in self.containers)


class Deprovisioner:
    """Removes WAF containers and the objects provisioned with them."""

    def __init__(
        self,
        api: EdgeApiClient,
        config: EdgeWafConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the deprovisioner.

        Args:
            api: Edge API client.
            config: Loaded configuration.
            logger: Logger for progress messages.
        """
        self._api = api
        self._config = config
        self._logger = logger or get_logger(__name__)

    def deprovision(self, service_id: str, version: int) -> DeprovisionResult:
        """Remove every WAF container of a draft version.

        Each container is attempted even if an earlier one failed.

        Args:
            service_id: Service identifier.
            version: Draft version number.

        Returns:
            Per-container teardown outcome.
        """
        result = DeprovisionResult()

        wafs = self._api.list_wafs(service_id, version)
        if not wafs:
            self._logger.error(
                "No WAF object exists in current service %s version #%d",
                service_id,
                version,
            )
            return result

        conditions = self._api.list_conditions(service_id, version)
        prefetch_present = condition_exists(conditions, WAF_PREFETCH_NAME)

        for index, waf in enumerate(wafs, start=1):
            teardown = ContainerTeardown(waf_id=waf.id)
            result.containers.append(teardown)

            self._logger.info("Deleting WAF #%d logging", index)
            teardown.logging_removed = self.delete_logging(service_id, version)
            if not teardown.logging_removed:
                self._logger.error("Deleting WAF #%d logging failed", index)
                teardown.errors.append("logging")

            self._logger.info("Deleting WAF #%d container", index)
            teardown.container_removed = self._delete(
                teardown, "container", self._api.delete_waf, service_id, version, waf.id
            )

            self._logger.info("Deleting WAF #%d response object", index)
            self._delete(
                teardown,
                "response object",
                self._api.delete_response_object,
                service_id,
                version,
                WAF_RESPONSE_NAME,
            )

            if prefetch_present:
                self._logger.info("Deleting WAF #%d prefetch condition", index)
                self._delete(
                    teardown,
                    "prefetch condition",
                    self._api.delete_condition,
                    service_id,
                    version,
                    WAF_PREFETCH_NAME,
                )

            self._logger.info("Deleting WAF #%d VCL snippet", index)
            self._delete_snippet(service_id, version, index)

        return result

    def delete_logging(self, service_id: str, version: int) -> bool:
        """Remove both logging endpoints and every logging condition.

        Returns:
            True if everything present was removed.
        """
        try:
            syslogs = self._api.list_syslogs(service_id, version)
            for name in (self._config.weblog.name, self._config.waflog.name):
                if syslog_exists(syslogs, name):
                    self._logger.info("Deleting logging endpoint: %r", name)
                    self._ignore_missing(self._api.delete_syslog, service_id, version, name)

            conditions = self._api.list_conditions(service_id, version)
            for name in LOGGING_CONDITIONS:
                if condition_exists(conditions, name):
                    self._logger.info("Deleting logging condition: %r", name)
                    self._ignore_missing(self._api.delete_condition, service_id, version, name)
        except EdgeWafError as e:
            self._logger.error("%s", e.message)
            return False

        return True

    def _delete(
        self,
        teardown: ContainerTeardown,
        label: str,
        delete: Callable[..., None],
        *args: object,
    ) -> bool:
        """Run one delete call, tolerating objects that are already gone."""
        try:
            self._ignore_missing(delete, *args)
        except EdgeWafError as e:
            self._logger.error("Deleting %s failed: %s", label, e.message)
            teardown.errors.append(label)
            return False
        return True

    def _ignore_missing(self, delete: Callable[..., None], *args: object) -> None:
        try:
            delete(*args)
        except NotFoundError:
            self._logger.warning("%s already absent, skipping", args[-1])

    def _delete_snippet(self, service_id: str, version: int, index: int) -> None:
        name = self._config.vcl_snippet.name
        try:
            response = self._api.delete_snippet_raw(service_id, version, name)
        except EdgeWafError as e:
            self._logger.error("Deleting WAF #%d VCL snippet failed: %s", index, e.message)
            return
        if not response.is_success:
            self._logger.warning(
                "Deleting WAF #%d VCL snippet %r returned %s",
                index,
                name,
                status_line(response),
            )
