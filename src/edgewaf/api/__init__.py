"""Remote API access for the edge platform."""

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import (
    ConfigurationSet,
    Condition,
    OwaspSettings,
    Page,
    ResponseObject,
    Rule,
    RuleAction,
    ServiceVersion,
    Snippet,
    Syslog,
    Waf,
)
from edgewaf.api.pagination import PaginatedCollector

__all__ = [
    "ConfigurationSet",
    "Condition",
    "EdgeApiClient",
    "OwaspSettings",
    "Page",
    "PaginatedCollector",
    "ResponseObject",
    "Rule",
    "RuleAction",
    "ServiceVersion",
    "Snippet",
    "Syslog",
    "Waf",
]
