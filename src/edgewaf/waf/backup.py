"""Backups of WAF rule statuses and OWASP settings."""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import toml

from edgewaf.api.client import EdgeApiClient
from edgewaf.api.models import OwaspSettings, Rule
from edgewaf.api.pagination import PaginatedCollector
from edgewaf.errors import BackupError, NoRecordsError
from edgewaf.utils.logging import get_logger
from edgewaf.waf.catalog import RuleStatusGroups, rule_statuses_path

BACKUP_FORMAT_VERSION = 1


def backup_id(service_id: str, captured_at: datetime) -> str:
    """Derive the identity of a backup from its service and capture time."""
    return hashlib.sha1(f"{service_id}{captured_at.isoformat()}".encode()).hexdigest()


@dataclass
class BackupRecord:
    """Point-in-time snapshot of a WAF's rule statuses and OWASP settings."""

    id: str
    service_id: str
    updated: datetime
    owasp: OwaspSettings
    log: list[str] = field(default_factory=list)
    block: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)
    format_version: int = BACKUP_FORMAT_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for TOML serialization."""
        return {
            "format_version": self.format_version,
            "id": self.id,
            "service_id": self.service_id,
            "updated": self.updated,
            "disabled": self.disabled,
            "block": self.block,
            "log": self.log,
            # Only what the live policy holds, never local defaults.
            "owasp": self.owasp.to_api(reported_only=True),
        }

    def to_toml(self) -> str:
        """Render the record as a TOML document."""
        return toml.dumps(self.to_dict())


class BackupSerializer:
    """Captures a WAF's configuration into a backup file."""

    def __init__(
        self,
        api: EdgeApiClient,
        collector: PaginatedCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the serializer.

        Args:
            api: Edge API client.
            collector: Paginated collector (built from api if omitted).
            logger: Logger for progress messages.
        """
        self._api = api
        self._logger = logger or get_logger(__name__)
        self._collector = collector or PaginatedCollector(api, self._logger)

    def capture(self, service_id: str, waf_id: str, now: datetime | None = None) -> BackupRecord:
        """Capture the current rule statuses and OWASP settings of a WAF.

        Raises:
            BackupError: If there are no rule statuses or no OWASP object.
        """
        try:
            records = self._collector.collect(
                rule_statuses_path(service_id, waf_id), resource="rules to back up"
            )
        except NoRecordsError as e:
            raise BackupError("No rules found to back up") from e

        self._logger.info("Backing up %d rules", len(records))
        groups = RuleStatusGroups.from_rules([Rule.from_api(r) for r in records])

        owasp = self._api.get_owasp(service_id, waf_id)
        if owasp is None:
            raise BackupError(
                "No OWASP object to back up",
                hint="Provision the WAF before taking a backup.",
            )

        captured_at = now or datetime.now(timezone.utc)
        return BackupRecord(
            id=backup_id(service_id, captured_at),
            service_id=service_id,
            updated=captured_at,
            owasp=owasp.settings,
            log=[r.modsec_rule_id for r in groups.log],
            block=[r.modsec_rule_id for r in groups.block],
            disabled=[r.modsec_rule_id for r in groups.disabled],
        )

    def backup(
        self,
        service_id: str,
        waf_id: str,
        path: Path,
        now: datetime | None = None,
    ) -> BackupRecord:
        """Capture a WAF's configuration and write it to a file.

        Args:
            service_id: Service identifier.
            waf_id: WAF container ID.
            path: Output file. Its directory must already exist.
            now: Capture time (defaults to the current time).

        Returns:
            The written record.

        Raises:
            BackupError: If the output directory is missing or nothing can be backed up.
        """
        if not path.parent.is_dir():
            raise BackupError(f"Output path does not exist: {path.parent}")

        record = self.capture(service_id, waf_id, now)
        content = record.to_toml()
        path.write_text(content)

        self._logger.info("Bytes written: %d to %s", len(content.encode()), path)
        return record
