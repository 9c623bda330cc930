"""Rule status reconciliation.

Rules are selected by explicit ID, by tag or by publisher. Each selection is
an independent partition of the rule space: every PATCH is idempotent on the
rule's status, so partitions may be applied in any order.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import Rule, RuleAction
from edgewaf.api.pagination import PaginatedCollector
from edgewaf.config import EdgeWafConfig
from edgewaf.errors import NoRecordsError
from edgewaf.utils.http import status_line
from edgewaf.utils.logging import get_logger
from edgewaf.waf.catalog import RULES_PATH

RULE_STATUS_SUCCESS = "200 OK"
WAF_STATUS_SUCCESS = "202 Accepted"

TAGS_PATH = "/wafs/tags"


@dataclass
class ReconcileResult:
    """Outcome of a rule status reconciliation.

    Attributes:
        applied: Rule IDs or tags whose status was set.
        failed: Rule IDs or tags the platform refused.
        skipped: Tags that resolved to no rules.
    """

    applied: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether no item failed."""
        return not self.failed

    def merge(self, other: "ReconcileResult") -> "ReconcileResult":
        """Append the items of another result to this one."""
        self.applied.extend(other.applied)
        self.failed.extend(other.failed)
        self.skipped.extend(other.skipped)
        return self


class RuleStatusReconciler:
    """Sets rule statuses on a WAF to the configured action."""

    def __init__(
        self,
        api: EdgeApiClient,
        collector: PaginatedCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            api: Edge API client.
            collector: Paginated collector (built from api if omitted).
            logger: Logger for progress messages.
        """
        self._api = api
        self._logger = logger or get_logger(__name__)
        self._collector = collector or PaginatedCollector(api, self._logger)

    def reconcile(
        self,
        service_id: str,
        waf_id: str,
        config: EdgeWafConfig,
        force: bool = False,
    ) -> ReconcileResult:
        """Apply every rule selection of a configuration.

        Tags, publishers and explicit rules get the configured action; the
        disabled rules override is applied last.

        Args:
            service_id: Service identifier.
            waf_id: WAF container ID.
            config: Loaded configuration.
            force: Override the platform's conflict detection for tags.

        Returns:
            Combined result of every selection.
        """
        action = RuleAction(config.action)
        result = ReconcileResult()

        if config.tags:
            result.merge(self.apply_tags(service_id, waf_id, config.tags, action, force))
        if config.publishers:
            result.merge(self.apply_publishers(service_id, waf_id, config.publishers, action))
        if config.rules:
            result.merge(self.apply_rules(service_id, waf_id, config.rules, action))
        if config.disabled_rules:
            result.merge(self.apply_disabled_rules(service_id, waf_id, config.disabled_rules))

        return result

    def apply_rules(
        self,
        service_id: str,
        waf_id: str,
        rule_ids: Iterable[int | str],
        action: RuleAction,
    ) -> ReconcileResult:
        """Set the status of each rule with one PATCH per rule.

        A rule counts as configured only when the platform answers exactly
        ``200 OK``. Any other answer is logged and the loop continues.
        """
        result = ReconcileResult()
        for rule_id in map(str, rule_ids):
            if self._patch_rule(service_id, waf_id, rule_id, action):
                self._logger.info(
                    "Rule %s was configured in the WAF with action %s", rule_id, action.value
                )
                result.applied.append(rule_id)
            else:
                result.failed.append(rule_id)
        return result

    def apply_disabled_rules(
        self,
        service_id: str,
        waf_id: str,
        rule_ids: Iterable[int | str],
    ) -> ReconcileResult:
        """Force each rule to ``disabled`` whatever the configured action."""
        result = ReconcileResult()
        for rule_id in map(str, rule_ids):
            if self._patch_rule(service_id, waf_id, rule_id, RuleAction.DISABLED):
                self._logger.info(
                    "Rule %s was configured in the WAF with action disabled "
                    "via disabled_rules parameter",
                    rule_id,
                )
                result.applied.append(rule_id)
            else:
                result.failed.append(rule_id)
        return result

    def apply_tags(
        self,
        service_id: str,
        waf_id: str,
        tags: Iterable[str],
        action: RuleAction,
        force: bool = False,
    ) -> ReconcileResult:
        """Set the status of every rule carrying each tag.

        Tags that resolve to no rules are logged and skipped. Each remaining
        tag gets one bulk status call.
        """
        result = ReconcileResult()
        for tag in tags:
            try:
                records = self._collector.collect(
                    TAGS_PATH,
                    {"filter[name]": tag, "include": "rules"},
                    resource=f"rules with tag {tag!r}",
                )
            except NoRecordsError:
                self._logger.error(
                    "Could not find any rules with tag: %s please make sure it exists.."
                    "moving to the next tag",
                    tag,
                )
                result.skipped.append(tag)
                continue

            response = self._api.post_tag_rule_status(
                service_id, waf_id, tag, action.value, force
            )
            if status_line(response) == RULE_STATUS_SUCCESS:
                self._logger.info(
                    "%s rules on the WAF for tag: %s (%d tag records)",
                    action.value,
                    tag,
                    len(records),
                )
                result.applied.append(tag)
            else:
                self._logger.error(
                    "Could not set status: %s on rule tag: %s the response was: %s",
                    action.value,
                    tag,
                    response.text,
                )
                result.failed.append(tag)
        return result

    def apply_publishers(
        self,
        service_id: str,
        waf_id: str,
        publishers: Iterable[str],
        action: RuleAction,
    ) -> ReconcileResult:
        """Set the status of every rule of each publisher.

        The full rule list of a publisher is resolved across all pages before
        any rule is patched. Resolution failures, including a publisher with
        no rules, abort the whole loop.

        Raises:
            NoRecordsError: If a publisher has no rules.
            NetworkError: If the rule catalog cannot be read.
            ApiError: If the rule catalog returns an error status.
        """
        result = ReconcileResult()
        for publisher in publishers:
            records = self._collector.collect(
                RULES_PATH,
                {"filter[publisher]": publisher},
                resource=f"rules of publisher {publisher!r}",
            )
            rules = [Rule.from_api(r) for r in records]
            self._logger.info("- Publisher %s (%d rules)", publisher, len(rules))
            result.merge(self.apply_rules(service_id, waf_id, [r.id for r in rules], action))
        return result

    def change_waf_status(self, waf_id: str, status: str) -> bool:
        """Request a WAF status transition, such as ``enable`` or ``disable``.

        Returns:
            True if the platform accepted the transition.
        """
        response = self._api.change_waf_status(waf_id, status)
        if status_line(response) == WAF_STATUS_SUCCESS:
            self._logger.info("WAF %s status was changed to %s", waf_id, status)
            return True
        self._logger.error(
            "Could not change the status of WAF %s to %s. Received %s with response: %s",
            waf_id,
            status,
            status_line(response),
            response.text,
        )
        return False

    def patch_rule_sets(self, service_id: str, waf_id: str) -> None:
        """Regenerate the WAF ruleset so status changes take effect."""
        self._api.update_rule_sets(service_id, waf_id)
        self._logger.info("Ruleset of WAF %s updated", waf_id)

    def set_configuration_set(self, waf_id: str, configuration_set_id: str) -> None:
        """Bind a WAF to a configuration set."""
        self._api.update_configuration_set(waf_id, configuration_set_id)
        self._logger.info(
            "WAF %s now uses configuration set %s", waf_id, configuration_set_id
        )

    def _patch_rule(
        self,
        service_id: str,
        waf_id: str,
        rule_id: str,
        action: RuleAction,
    ) -> bool:
        response = self._api.patch_rule_status(service_id, waf_id, rule_id, action.value)
        if status_line(response) == RULE_STATUS_SUCCESS:
            return True
        self._logger.error(
            "Could not set status: %s on rule: %s the response was: %s",
            action.value,
            rule_id,
            response.text,
        )
        return False
