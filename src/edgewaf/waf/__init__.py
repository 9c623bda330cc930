"""WAF provisioning and rule management.

Components:
- provisioner: Creates the WAF container and the objects it depends on
- rules: Sets rule statuses by ID, tag or publisher
- logging_conditions: Gates the syslog endpoints with logging conditions
- deprovisioner: Removes WAF containers and their supporting objects
- backup: Snapshots rule statuses and OWASP settings
- catalog: Read-only rule and configuration set listings
"""

from edgewaf.waf.backup import BackupRecord, BackupSerializer
from edgewaf.waf.catalog import RuleCatalog, RuleStatusGroups
from edgewaf.waf.deprovisioner import (
    ContainerTeardown,
    DeprovisionResult,
    Deprovisioner,
)
from edgewaf.waf.logging_conditions import (
    LOGGING_CONDITION,
    LOGGING_CONDITION_WITH_EXPIRY,
    LoggingConditionComposer,
    LoggingConditionResult,
)
from edgewaf.waf.provisioner import Provisioner
from edgewaf.waf.rules import ReconcileResult, RuleStatusReconciler
from edgewaf.waf.versions import clone_version, get_active_version, validate_version

__all__ = [
    # Provisioning
    "Provisioner",
    "Deprovisioner",
    "ContainerTeardown",
    "DeprovisionResult",
    # Logging
    "LOGGING_CONDITION",
    "LOGGING_CONDITION_WITH_EXPIRY",
    "LoggingConditionComposer",
    "LoggingConditionResult",
    # Rules
    "ReconcileResult",
    "RuleCatalog",
    "RuleStatusGroups",
    "RuleStatusReconciler",
    # Backup
    "BackupRecord",
    "BackupSerializer",
    # Versions
    "clone_version",
    "get_active_version",
    "validate_version",
]
