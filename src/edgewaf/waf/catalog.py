"""Read-only listings of rules, rule statuses and configuration sets."""

import logging
from dataclasses import dataclass, field

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import ConfigurationSet, Rule, RuleAction
from edgewaf.api.pagination import PaginatedCollector
from edgewaf.errors import NoRecordsError
from edgewaf.utils.logging import get_logger

KNOWN_PUBLISHERS = ("owasp", "fastly", "trustwave")
RULES_PATH = "/wafs/rules"
CONFIGURATION_SETS_PATH = "/wafs/configuration_sets"


def rule_statuses_path(service_id: str, waf_id: str) -> str:
    """Path of the rule status listing of a WAF."""
    return f"/service/{service_id}/wafs/{waf_id}/rule_statuses"


@dataclass
class RuleStatusGroups:
    """Rule statuses of a WAF partitioned by status."""

    block: list[Rule] = field(default_factory=list)
    log: list[Rule] = field(default_factory=list)
    disabled: list[Rule] = field(default_factory=list)

    @classmethod
    def from_rules(cls, rules: list[Rule]) -> "RuleStatusGroups":
        """Partition rules by status. Unknown statuses are dropped."""
        groups = cls()
        for rule in rules:
            if rule.status == RuleAction.LOG.value:
                groups.log.append(rule)
            elif rule.status == RuleAction.BLOCK.value:
                groups.block.append(rule)
            elif rule.status == RuleAction.DISABLED.value:
                groups.disabled.append(rule)
        return groups


class RuleCatalog:
    """Reads the rule catalog and the rule statuses of a WAF."""

    def __init__(
        self,
        api: EdgeApiClient,
        collector: PaginatedCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api = api
        self._logger = logger or get_logger(__name__)
        self._collector = collector or PaginatedCollector(api, self._logger)

    def rule_statuses(self, service_id: str, waf_id: str) -> RuleStatusGroups:
        """List every rule status of a WAF, grouped by status."""
        records = self._collector.collect(rule_statuses_path(service_id, waf_id))
        return RuleStatusGroups.from_rules([Rule.from_api(r) for r in records])

    def rule_info(self, rule_id: str) -> Rule | None:
        """Look up a catalog rule by its rule ID.

        Returns:
            The rule, or None if the catalog has no such rule.
        """
        page = self._api.get_page(
            RULES_PATH,
            {"page[size]": 10, "page[number]": 1, "filter[rule_id]": rule_id},
        )
        if not page.data:
            self._logger.error("No rule found with ID %s", rule_id)
            return None
        return Rule.from_api(page.data[-1])

    def all_rules(self, configuration_set_id: str | None = None) -> dict[str, list[Rule]]:
        """List the rule catalog grouped by publisher.

        Args:
            configuration_set_id: Restrict the listing to one configuration set.

        Returns:
            Mapping of publisher to rules, for the known publishers.
        """
        params = {}
        if configuration_set_id:
            params["filter[configuration_set_id]"] = configuration_set_id

        records = self._collector.collect(RULES_PATH, params)

        grouped: dict[str, list[Rule]] = {p: [] for p in KNOWN_PUBLISHERS}
        for record in records:
            rule = Rule.from_api(record)
            if rule.publisher in grouped:
                grouped[rule.publisher].append(rule)
        return grouped

    def configuration_sets(self) -> list[ConfigurationSet]:
        """List every configuration set.

        Raises:
            NoRecordsError: If the platform reports no configuration sets.
        """
        try:
            records = self._collector.collect(
                CONFIGURATION_SETS_PATH, resource="configuration sets"
            )
        except NoRecordsError:
            self._logger.error("No configuration sets found")
            raise
        return [ConfigurationSet.from_api(r) for r in records]

