"""Configuration management for edgewaf."""

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from edgewaf.api.models import OwaspSettings, RuleAction
from edgewaf.errors import ConfigurationError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_CONFIG_FILE = "edgewaf.toml"
API_KEY_ENV = "EDGEWAF_API_KEY"


class WeblogSettings(BaseModel):
    """Syslog endpoint receiving general request logs."""

    name: str = Field(default="WAF_Web_Logs", description="Logging endpoint name")
    address: str = Field(default="", description="Destination hostname or IP address")
    port: int = Field(default=514, ge=1, le=65535, description="Destination port")
    tls_ca_cert: str = Field(default="", description="CA certificate of the destination")
    tls_hostname: str = Field(default="", description="Hostname to verify the destination against")
    format: str = Field(default="", description="Log line format template")
    expiry: int = Field(
        default=0,
        ge=0,
        description="Days until web logging expires (0 disables expiry)",
    )


class WaflogSettings(BaseModel):
    """Syslog endpoint receiving WAF verdict logs."""

    name: str = Field(default="WAF_Logs", description="Logging endpoint name")
    address: str = Field(default="", description="Destination hostname or IP address")
    port: int = Field(default=514, ge=1, le=65535, description="Destination port")
    tls_ca_cert: str = Field(default="", description="CA certificate of the destination")
    tls_hostname: str = Field(default="", description="Hostname to verify the destination against")
    format: str = Field(default="", description="Log line format template")


class VclSnippetSettings(BaseModel):
    """VCL snippet installed alongside the WAF."""

    name: str = Field(default="Fastly_WAF_Snippet", description="Snippet name")
    content: str = Field(default="", description="VCL content")
    type: str = Field(default="recv", description="VCL subroutine the snippet is placed in")
    priority: int = Field(default=10, ge=0, description="Snippet priority")
    dynamic: int = Field(default=0, ge=0, le=1, description="1 for a dynamic snippet")


class ResponseSettings(BaseModel):
    """Response object served for blocked requests."""

    name: str = Field(default="WAF_Response", description="Response object name")
    http_status_code: int = Field(default=403, ge=100, le=599, description="HTTP status code")
    http_response: str = Field(default="Forbidden", description="HTTP reason phrase")
    content_type: str = Field(default="text/html", description="Content-Type of the body")
    content: str = Field(default="", description="Response body")


class PrefetchSettings(BaseModel):
    """Condition deciding which requests the WAF inspects."""

    name: str = Field(default="WAF_Prefetch", description="Condition name")
    statement: str = Field(
        default="req.backend.is_origin",
        description="Condition statement",
    )
    type: str = Field(default="PREFETCH", description="Condition type")
    priority: int = Field(default=10, ge=0, description="Condition priority")


class EdgeWafConfig(BaseModel):
    """Complete edgewaf configuration."""

    log_path: str = Field(default="", description="Optional log file path")
    api_endpoint: str = Field(
        default="https://api.fastly.com",
        description="Edge API base URL",
    )
    api_key: str | None = Field(
        default=None,
        description="Edge API key (prefer the EDGEWAF_API_KEY env var)",
    )
    tags: list[str] = Field(default_factory=list, description="Rule tags to configure")
    publishers: list[str] = Field(
        default_factory=list,
        description="Rule publishers to configure (owasp, fastly, trustwave)",
    )
    action: str = Field(default="log", description="Status applied to selected rules")
    rules: list[int] = Field(default_factory=list, description="Rule IDs to configure")
    disabled_rules: list[int] = Field(
        default_factory=list,
        description="Rule IDs always forced to disabled",
    )
    owasp: OwaspSettings = Field(default_factory=OwaspSettings)
    weblog: WeblogSettings = Field(default_factory=WeblogSettings)
    waflog: WaflogSettings = Field(default_factory=WaflogSettings)
    vcl_snippet: VclSnippetSettings = Field(default_factory=VclSnippetSettings)
    response: ResponseSettings = Field(default_factory=ResponseSettings)
    prefetch: PrefetchSettings = Field(default_factory=PrefetchSettings)

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        """Validate rule action value."""
        allowed = {a.value for a in RuleAction}
        if v.lower() not in allowed:
            raise ValueError(f"action must be one of: {sorted(allowed)}")
        return v.lower()

    @field_validator("publishers", "tags")
    @classmethod
    def strip_blank_entries(cls, v: list[str]) -> list[str]:
        """Drop empty entries from name lists."""
        return [item.strip() for item in v if item.strip()]


def load_config(
    config_path: Path | None = None,
    api_key_env: str = API_KEY_ENV,
) -> EdgeWafConfig:
    """Load configuration from a TOML file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Defaults

    Args:
        config_path: Path to config file (defaults to ./edgewaf.toml).
        api_key_env: Environment variable holding the API key.

    Returns:
        Loaded configuration.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            hint="Create one with 'edgewaf config init'.",
        )

    # Strict TOML 1.0: a truncated file must fail rather than load partially.
    try:
        with open(config_path, "rb") as f:
            config_data: dict[str, Any] = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Cannot parse {config_path}: {e}",
            hint="Check the file for unterminated arrays or strings.",
        ) from e

    api_key = os.environ.get(api_key_env)
    if api_key:
        config_data["api_key"] = api_key

    try:
        return EdgeWafConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}:\n{e}") from e


def generate_example_config() -> str:
    """Generate an example configuration file.

    Returns:
        TOML string of example configuration.
    """
    example = """# edgewaf configuration

# Optional log file, in addition to console output
log_path = ""

# Edge API base URL (API key via EDGEWAF_API_KEY env var)
api_endpoint = "https://api.fastly.com"

# Rules to configure, selected by tag, publisher or explicit ID
tags = ["OWASP", "language-php"]
publishers = ["owasp"]
rules = [1010090]

# Status applied to selected rules: log, block or disabled
action = "log"

# Rules always disabled whatever the action
disabled_rules = [2029718, 2037405]

[owasp]
allowed_http_versions = "HTTP/1.0 HTTP/1.1 HTTP/2"
allowed_methods = "GET HEAD POST OPTIONS PUT PATCH DELETE"
arg_length = 400
arg_name_length = 100
combined_file_sizes = 10000000
critical_anomaly_score = 6
crs_validate_utf8_encoding = false
error_anomaly_score = 5
http_violation_score_threshold = 20
inbound_anomaly_score_threshold = 20
lfi_score_threshold = 20
max_file_size = 10000000
max_num_args = 255
notice_anomaly_score = 4
paranoia_level = 1
php_injection_score_threshold = 20
rce_score_threshold = 20
rfi_score_threshold = 20
session_fixation_score_threshold = 20
sql_injection_score_threshold = 20
xss_score_threshold = 20
total_arg_length = 6400
warning_anomaly_score = 3

[weblog]
name = "WAF_Web_Logs"
address = "logs.example.com"
port = 6514
tls_hostname = "logs.example.com"
format = "%h %l %u %t \\"%r\\" %>s %b"
# Days until web logging stops being gated (0 disables expiry)
expiry = 0

[waflog]
name = "WAF_Logs"
address = "logs.example.com"
port = 6515
tls_hostname = "logs.example.com"
format = "req.http.waf.rule_id %{waf.rule_id}V"

[vcl_snippet]
name = "Fastly_WAF_Snippet"
type = "recv"
priority = 10
dynamic = 0
content = "set req.http.X-Request-Id = digest.hash_sha256(now randomstr(64) req.http.host req.url req.http.Fastly-Client-IP server.identity);"

[response]
name = "WAF_Response"
http_status_code = 403
http_response = "Forbidden"
content_type = "text/html"
content = "<html><body>Access denied</body></html>"

[prefetch]
name = "WAF_Prefetch"
statement = "req.backend.is_origin"
type = "PREFETCH"
priority = 10
"""
    return example
