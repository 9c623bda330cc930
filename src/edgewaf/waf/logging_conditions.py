"""Logging conditions gating the WAF syslog endpoints.

The WAF log is always attached to ``waf-soc-logging``. The web log is
attached to ``waf-soc-logging-with-expiry`` when an expiry is configured and
to ``waf-soc-logging`` otherwise. Only one of the two names is attached to the
web log at a time.

The expiry clause compares the platform clock with an epoch fixed when the
condition is built, so the condition has to be regenerated periodically for
the expiry to stay meaningful.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import Condition
from edgewaf.config import EdgeWafConfig
from edgewaf.utils.logging import get_logger
from edgewaf.waf.existence import condition_exists

LOGGING_CONDITION = "waf-soc-logging"
LOGGING_CONDITION_WITH_EXPIRY = "waf-soc-logging-with-expiry"
LOGGING_CONDITION_TYPE = "RESPONSE"
LOGGING_CONDITION_PRIORITY = 10

SHIELDING_CLAUSE = '(waf.executed || fastly_info.state !~ "(MISS|PASS)")'
PERIMETERX_CLAUSE = "(req.http.x-request-id)"
# Statement used when no clause is selected, so the endpoint logs everything.
ALWAYS_TRUE = "true"


def expiry_epoch(days: int, now: datetime | None = None) -> int:
    """Compute the UNIX epoch ``days`` days after ``now``."""
    now = now or datetime.now(timezone.utc)
    return int((now + timedelta(days=days)).timestamp())


def expiry_clause(days: int, now: datetime | None = None) -> str:
    """Build the expiry clause for a day count, fixed at build time."""
    return f"(std.atoi(now.sec) > {expiry_epoch(days, now)})"


def join_clauses(clauses: list[str]) -> str:
    """AND clauses together."""
    return " && ".join(clauses) if clauses else ALWAYS_TRUE


@dataclass
class LoggingConditionResult:
    """Names attached to each endpoint by a composer run."""

    waflog_condition: str
    weblog_condition: str
    deleted: list[str]


class LoggingConditionComposer:
    """Creates, updates or retires the logging conditions of a version."""

    def __init__(
        self,
        api: EdgeApiClient,
        config: EdgeWafConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the composer.

        Args:
            api: Edge API client.
            config: Loaded configuration.
            logger: Logger for progress messages.
        """
        self._api = api
        self._config = config
        self._logger = logger or get_logger(__name__)

    @staticmethod
    def build_clauses(with_shielding: bool, with_perimeterx: bool) -> tuple[list[str], list[str]]:
        """Select clauses from feature flags.

        Returns:
            Tuple of (clauses, human readable descriptions).
        """
        clauses: list[str] = []
        descriptions: list[str] = []
        if with_shielding:
            descriptions.append("Shielding")
            clauses.append(SHIELDING_CLAUSE)
        if with_perimeterx:
            descriptions.append("PerimeterX")
            clauses.append(PERIMETERX_CLAUSE)
        return clauses, descriptions

    def apply(
        self,
        service_id: str,
        version: int,
        with_shielding: bool = False,
        with_perimeterx: bool = False,
        now: datetime | None = None,
    ) -> LoggingConditionResult:
        """Create or update the logging conditions and attach them.

        Args:
            service_id: Service identifier.
            version: Draft version number.
            with_shielding: Only log at the edge node that ran the WAF.
            with_perimeterx: Only log requests carrying the legacy request ID header.
            now: Clock used for the expiry epoch.

        Returns:
            The condition names attached to each endpoint.
        """
        conditions = self._api.list_conditions(service_id, version)
        clauses, descriptions = self.build_clauses(with_shielding, with_perimeterx)
        deleted: list[str] = []

        name = LOGGING_CONDITION
        self._upsert(service_id, version, conditions, name, join_clauses(clauses))
        self._attach(service_id, version, self._config.waflog.name, name, descriptions, "WAF log")
        waflog_condition = name

        expiry = self._config.weblog.expiry
        if expiry > 0:
            name = LOGGING_CONDITION_WITH_EXPIRY
            clauses = [*clauses, expiry_clause(expiry, now)]
            descriptions = [*descriptions, f"{expiry} day expiry"]
            self._upsert(service_id, version, conditions, name, join_clauses(clauses))
        elif condition_exists(conditions, LOGGING_CONDITION_WITH_EXPIRY):
            self._logger.info("Deleting logging condition: %r", LOGGING_CONDITION_WITH_EXPIRY)
            self._api.delete_condition(service_id, version, LOGGING_CONDITION_WITH_EXPIRY)
            deleted.append(LOGGING_CONDITION_WITH_EXPIRY)

        self._attach(service_id, version, self._config.weblog.name, name, descriptions, "web log")

        return LoggingConditionResult(
            waflog_condition=waflog_condition,
            weblog_condition=name,
            deleted=deleted,
        )

    def _upsert(
        self,
        service_id: str,
        version: int,
        conditions: list[Condition],
        name: str,
        statement: str,
    ) -> None:
        condition = Condition(
            name=name,
            statement=statement,
            type=LOGGING_CONDITION_TYPE,
            priority=LOGGING_CONDITION_PRIORITY,
        )
        if condition_exists(conditions, name):
            self._logger.info("Updating WAF logging condition: %r", name)
            self._api.update_condition(service_id, version, condition)
        else:
            self._logger.info("Creating WAF logging condition: %r", name)
            self._api.create_condition(service_id, version, condition)

    def _attach(
        self,
        service_id: str,
        version: int,
        endpoint: str,
        condition: str,
        descriptions: list[str],
        label: str,
    ) -> None:
        self._logger.info(
            "Assigning condition %r (%s) to %s %r",
            condition,
            ", ".join(descriptions),
            label,
            endpoint,
        )
        self._api.update_syslog(service_id, version, endpoint, response_condition=condition)
