"""Typed records returned by the edge API."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RuleAction(str, Enum):
    """Enforcement mode of a WAF rule."""

    LOG = "log"
    BLOCK = "block"
    DISABLED = "disabled"


class OwaspSettings(BaseModel):
    """OWASP ruleset tunables of a WAF container.

    Field names match the attribute names of the edge API's ``owasp``
    resource, so the same model is used for configuration, API payloads
    and backups.
    """

    allowed_http_versions: str = "HTTP/1.0 HTTP/1.1 HTTP/2"
    allowed_methods: str = "GET HEAD POST OPTIONS PUT PATCH DELETE"
    allowed_request_content_type: str = (
        "application/x-www-form-urlencoded|multipart/form-data|text/xml|"
        "application/xml|application/x-amf|application/json|text/plain"
    )
    allowed_request_content_type_charset: str = "utf-8|iso-8859-1|iso-8859-15|windows-1252"
    arg_length: int = Field(default=400, ge=0)
    arg_name_length: int = Field(default=100, ge=0)
    combined_file_sizes: int = Field(default=10000000, ge=0)
    critical_anomaly_score: int = 6
    crs_validate_utf8_encoding: bool = False
    error_anomaly_score: int = 5
    http_violation_score_threshold: int = 20
    inbound_anomaly_score_threshold: int = 20
    lfi_score_threshold: int = 20
    max_file_size: int = Field(default=10000000, ge=0)
    max_num_args: int = Field(default=255, ge=0)
    notice_anomaly_score: int = 4
    paranoia_level: int = Field(default=1, ge=1, le=4)
    php_injection_score_threshold: int = 20
    rce_score_threshold: int = 20
    restricted_extensions: str = (
        ".asa/ .asax/ .ascx/ .axd/ .backup/ .bak/ .bat/ .cdx/ .cer/ .cfg/ .cmd/ "
        ".com/ .config/ .conf/ .cs/ .csproj/ .csr/ .dat/ .db/ .dbf/ .dll/ .dos/ "
        ".htr/ .htw/ .ida/ .idc/ .idq/ .inc/ .ini/ .key/ .licx/ .lnk/ .log/ .mdb/ "
        ".old/ .pass/ .pdb/ .pol/ .printer/ .pwd/ .resources/ .resx/ .sql/ .sys/ "
        ".vb/ .vbs/ .vbproj/ .vsdisco/ .webinfo/ .xsd/ .xsx"
    )
    restricted_headers: str = (
        "/proxy/ /lock-token/ /content-range/ /translate/ /if/"
    )
    rfi_score_threshold: int = 20
    session_fixation_score_threshold: int = 20
    sql_injection_score_threshold: int = 20
    xss_score_threshold: int = 20
    total_arg_length: int = Field(default=6400, ge=0)
    warning_anomaly_score: int = 3

    @classmethod
    def from_api(cls, attributes: dict[str, Any]) -> "OwaspSettings":
        """Build settings from the attributes of an API record.

        Unknown attributes are ignored. Missing or null ones keep their
        defaults but are not counted as reported, see ``to_api``.
        """
        known = {k: v for k, v in attributes.items() if k in cls.model_fields and v is not None}
        return cls(**known)

    def to_api(self, reported_only: bool = False) -> dict[str, Any]:
        """Return the settings as API attributes.

        Args:
            reported_only: Drop settings that were never given explicitly,
                such as attributes a live policy omitted.
        """
        return self.model_dump(exclude_unset=reported_only)


@dataclass
class ServiceVersion:
    """A numbered configuration version of a service."""

    service_id: str
    number: int
    active: bool = False
    locked: bool = False

    @classmethod
    def from_api(cls, service_id: str, data: dict[str, Any]) -> "ServiceVersion":
        """Create from an API version record."""
        return cls(
            service_id=service_id,
            number=int(data["number"]),
            active=bool(data.get("active", False)),
            locked=bool(data.get("locked", False)),
        )


@dataclass
class Condition:
    """A named boolean gating expression."""

    name: str
    statement: str
    type: str
    priority: int = 10

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Condition":
        """Create from an API condition record."""
        return cls(
            name=data["name"],
            statement=data.get("statement") or "",
            type=data.get("type") or "",
            priority=int(data.get("priority") or 10),
        )


@dataclass
class ResponseObject:
    """A synthetic response served when the WAF blocks a request."""

    name: str
    status: int = 403
    response: str = "Forbidden"
    content_type: str = ""
    content: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ResponseObject":
        """Create from an API response object record."""
        return cls(
            name=data["name"],
            status=int(data.get("status") or 0),
            response=data.get("response") or "",
            content_type=data.get("content_type") or "",
            content=data.get("content") or "",
        )


@dataclass
class Snippet:
    """A VCL snippet."""

    name: str
    type: str = "recv"
    priority: int = 100
    dynamic: int = 0
    content: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Snippet":
        """Create from an API snippet record."""
        return cls(
            name=data["name"],
            type=data.get("type") or "",
            priority=int(data.get("priority") or 0),
            dynamic=int(data.get("dynamic") or 0),
            content=data.get("content") or "",
        )


@dataclass
class Syslog:
    """A syslog logging endpoint."""

    name: str
    address: str = ""
    port: int = 514
    format: str = ""
    placement: str | None = None
    response_condition: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Syslog":
        """Create from an API syslog record."""
        return cls(
            name=data["name"],
            address=data.get("address") or "",
            port=int(data.get("port") or 0),
            format=data.get("format") or "",
            placement=data.get("placement"),
            response_condition=data.get("response_condition") or "",
        )


@dataclass
class Waf:
    """A WAF container attached to a service version."""

    id: str
    prefetch_condition: str = ""
    response: str = ""
    disabled: bool = False

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Waf":
        """Create from a JSON:API ``waf`` record."""
        attributes = record.get("attributes") or {}
        return cls(
            id=record["id"],
            prefetch_condition=attributes.get("prefetch_condition") or "",
            response=attributes.get("response") or "",
            disabled=bool(attributes.get("disabled", False)),
        )


@dataclass
class Owasp:
    """The OWASP object of a WAF container."""

    id: str
    settings: OwaspSettings

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Owasp":
        """Create from a JSON:API ``owasp`` record."""
        return cls(
            id=record["id"],
            settings=OwaspSettings.from_api(record.get("attributes") or {}),
        )


@dataclass
class Rule:
    """A rule catalog entry or rule status record."""

    id: str
    status: str = ""
    message: str = ""
    publisher: str = ""
    paranoia_level: int = 0
    revision: int = 0
    rule_id: str = ""
    modsec_rule_id: str = ""
    unique_rule_id: str = ""
    version: str = ""

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Rule":
        """Create from a JSON:API ``rule`` or ``rule_status`` record."""
        attributes = record.get("attributes") or {}
        return cls(
            id=str(record["id"]),
            status=attributes.get("status") or "",
            message=attributes.get("message") or "",
            publisher=attributes.get("publisher") or "",
            paranoia_level=int(attributes.get("paranoia_level") or 0),
            revision=int(attributes.get("revision") or 0),
            rule_id=str(attributes.get("rule_id") or ""),
            modsec_rule_id=str(attributes.get("modsec_rule_id") or ""),
            unique_rule_id=str(attributes.get("unique_rule_id") or ""),
            version=str(attributes.get("version") or ""),
        )


@dataclass
class ConfigurationSet:
    """A versioned bundle of rule definitions."""

    id: str
    name: str
    active: bool = False

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "ConfigurationSet":
        """Create from a JSON:API ``configuration_set`` record."""
        attributes = record.get("attributes") or {}
        return cls(
            id=str(record["id"]),
            name=attributes.get("name") or "",
            active=bool(attributes.get("active", False)),
        )


@dataclass
class Page:
    """One page of a paginated JSON:API listing."""

    data: list[dict[str, Any]] = field(default_factory=list)
    current_page: int = 1
    per_page: int = 0
    record_count: int = 0
    total_pages: int = 1
    links: dict[str, str] = field(default_factory=dict)
    included: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_json(cls, body: dict[str, Any]) -> "Page":
        """Create from a decoded response body."""
        meta = body.get("meta") or {}
        data = body.get("data") or []
        return cls(
            data=list(data),
            current_page=int(meta.get("current_page") or 1),
            per_page=int(meta.get("per_page") or len(data)),
            record_count=int(meta.get("record_count") or len(data)),
            total_pages=int(meta.get("total_pages") or 1),
            links=dict(body.get("links") or {}),
            included=list(body.get("included") or []),
        )
