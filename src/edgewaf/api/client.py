"""Edge API client for WAF provisioning operations."""

from typing import Any
from urllib.parse import quote

import httpx

from edgewaf.api.models import (
    Condition,
    Owasp,
    OwaspSettings,
    Page,
    ResponseObject,
    ServiceVersion,
    Snippet,
    Syslog,
    Waf,
)
from edgewaf.errors import (
    DUPLICATE_RECORD_MARKER,
    ApiError,
    AuthenticationError,
    DuplicateResourceError,
    NotFoundError,
)
from edgewaf.utils.http import HttpClient


class EdgeApiClient:
    """Client for the edge platform's service, logging and WAF resources.

    Every method performs exactly one HTTP call. Non-success statuses are
    classified into the ``edgewaf.errors`` hierarchy, except for the few
    calls documented as returning the raw response.
    """

    def __init__(self, http: HttpClient):
        """Initialize the client.

        Args:
            http: HTTP client bound to the API endpoint and key.
        """
        self._http = http

    @property
    def http(self) -> HttpClient:
        """Get the underlying HTTP client."""
        return self._http

    @staticmethod
    def _version_path(service_id: str, version: int) -> str:
        return f"/service/{service_id}/version/{version}"

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, str]:
        """Extract the message and detail from an error payload.

        Handles both the classic ``{"msg", "detail"}`` shape and the
        JSON:API ``{"errors": [{"title", "detail"}]}`` shape.
        """
        try:
            body = response.json()
        except ValueError:
            return "", response.text

        if not isinstance(body, dict):
            return "", response.text

        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            return str(first.get("title") or ""), str(first.get("detail") or "")

        return str(body.get("msg") or ""), str(body.get("detail") or "")

    def _raise_for_status(self, response: httpx.Response, resource: str = "") -> None:
        """Convert a non-success response into a user-friendly error.

        Args:
            response: The HTTP response.
            resource: Human readable resource description for context.

        Raises:
            AuthenticationError: For 401 and 403 responses.
            DuplicateResourceError: When the remote reports a duplicate record.
            NotFoundError: For 404 responses.
            ApiError: For any other non-success response.
        """
        if response.is_success:
            return

        status_code = response.status_code
        message, detail = self._error_details(response)

        if status_code in (401, 403):
            raise AuthenticationError(status_code, detail=message or detail)

        if message == DUPLICATE_RECORD_MARKER or DUPLICATE_RECORD_MARKER in response.text:
            raise DuplicateResourceError(status_code, resource, detail=detail)

        if status_code == 404:
            raise NotFoundError(resource, detail=message or detail)

        if resource:
            raise ApiError(status_code, f"Cannot process {resource}", message or detail)
        raise ApiError(status_code, detail=message or detail)

    def _json(self, response: httpx.Response, resource: str = "") -> Any:
        """Check the status of a response and decode its JSON body."""
        self._raise_for_status(response, resource)
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, f"Invalid JSON returned for {resource}") from e

    # Services and versions

    def get_service_versions(self, service_id: str) -> list[ServiceVersion]:
        """List every version of a service.

        Args:
            service_id: Service identifier.

        Returns:
            Versions of the service.
        """
        body = self._json(self._http.get(f"/service/{service_id}"), f"service {service_id!r}")
        return [ServiceVersion.from_api(service_id, v) for v in body.get("versions") or []]

    def clone_version(self, service_id: str, version: int) -> ServiceVersion:
        """Clone a version into a new draft version."""
        response = self._http.post(f"{self._version_path(service_id, version)}/clone")
        body = self._json(response, f"version {version} of service {service_id!r}")
        return ServiceVersion.from_api(service_id, body)

    def validate_version(self, service_id: str, version: int) -> tuple[bool, str]:
        """Validate a version.

        Returns:
            Tuple of (valid, message reported by the API).
        """
        response = self._http.get(f"{self._version_path(service_id, version)}/validate")
        body = self._json(response, f"version {version} of service {service_id!r}")
        return body.get("status") == "ok", str(body.get("msg") or "")

    # Conditions

    def list_conditions(self, service_id: str, version: int) -> list[Condition]:
        """List the conditions of a version."""
        response = self._http.get(f"{self._version_path(service_id, version)}/condition")
        return [Condition.from_api(c) for c in self._json(response, "conditions")]

    def create_condition(self, service_id: str, version: int, condition: Condition) -> Condition:
        """Create a condition."""
        response = self._http.post(
            f"{self._version_path(service_id, version)}/condition",
            data={
                "name": condition.name,
                "statement": condition.statement,
                "type": condition.type,
                "priority": condition.priority,
            },
        )
        return Condition.from_api(self._json(response, f"condition {condition.name!r}"))

    def update_condition(self, service_id: str, version: int, condition: Condition) -> Condition:
        """Update the statement, type and priority of a condition."""
        response = self._http.put(
            f"{self._version_path(service_id, version)}/condition/{quote(condition.name, safe='')}",
            data={
                "statement": condition.statement,
                "type": condition.type,
                "priority": condition.priority,
            },
        )
        return Condition.from_api(self._json(response, f"condition {condition.name!r}"))

    def delete_condition(self, service_id: str, version: int, name: str) -> None:
        """Delete a condition."""
        response = self._http.delete(
            f"{self._version_path(service_id, version)}/condition/{quote(name, safe='')}"
        )
        self._raise_for_status(response, f"condition {name!r}")

    # Response objects

    def list_response_objects(self, service_id: str, version: int) -> list[ResponseObject]:
        """List the response objects of a version."""
        response = self._http.get(f"{self._version_path(service_id, version)}/response_object")
        return [ResponseObject.from_api(r) for r in self._json(response, "response objects")]

    def create_response_object(
        self,
        service_id: str,
        version: int,
        response_object: ResponseObject,
    ) -> ResponseObject:
        """Create a response object."""
        response = self._http.post(
            f"{self._version_path(service_id, version)}/response_object",
            data={
                "name": response_object.name,
                "status": response_object.status,
                "response": response_object.response,
                "content": response_object.content,
                "content_type": response_object.content_type,
            },
        )
        return ResponseObject.from_api(
            self._json(response, f"response object {response_object.name!r}")
        )

    def delete_response_object(self, service_id: str, version: int, name: str) -> None:
        """Delete a response object."""
        response = self._http.delete(
            f"{self._version_path(service_id, version)}/response_object/{quote(name, safe='')}"
        )
        self._raise_for_status(response, f"response object {name!r}")

    # VCL snippets

    def list_snippets(self, service_id: str, version: int) -> list[Snippet]:
        """List the VCL snippets of a version."""
        response = self._http.get(f"{self._version_path(service_id, version)}/snippet")
        return [Snippet.from_api(s) for s in self._json(response, "VCL snippets")]

    def create_snippet(self, service_id: str, version: int, snippet: Snippet) -> Snippet:
        """Create a VCL snippet."""
        response = self._http.post(
            f"{self._version_path(service_id, version)}/snippet",
            data={
                "name": snippet.name,
                "type": snippet.type,
                "priority": snippet.priority,
                "dynamic": snippet.dynamic,
                "content": snippet.content,
            },
        )
        return Snippet.from_api(self._json(response, f"VCL snippet {snippet.name!r}"))

    def delete_snippet_raw(self, service_id: str, version: int, name: str) -> httpx.Response:
        """Delete a VCL snippet and return the raw response.

        The status is not checked; callers decide how to treat failures.
        """
        return self._http.delete(
            f"{self._version_path(service_id, version)}/snippet/{quote(name, safe='')}"
        )

    # Syslog logging endpoints

    def list_syslogs(self, service_id: str, version: int) -> list[Syslog]:
        """List the syslog endpoints of a version."""
        response = self._http.get(f"{self._version_path(service_id, version)}/logging/syslog")
        return [Syslog.from_api(s) for s in self._json(response, "logging endpoints")]

    def create_syslog(
        self,
        service_id: str,
        version: int,
        name: str,
        address: str,
        port: int,
        format: str,
        tls_ca_cert: str = "",
        tls_hostname: str = "",
        placement: str | None = None,
    ) -> Syslog:
        """Create a TLS syslog endpoint.

        Args:
            service_id: Service identifier.
            version: Draft version number.
            name: Endpoint name.
            address: Destination hostname or IP address.
            port: Destination port.
            format: Log line format template.
            tls_ca_cert: CA certificate used to verify the destination.
            tls_hostname: Hostname to verify the destination certificate against.
            placement: Optional placement marker, such as ``waf_debug``.

        Returns:
            The created endpoint.
        """
        data: dict[str, Any] = {
            "name": name,
            "address": address,
            "port": port,
            "use_tls": 1,
            "ipv4": address,
            "tls_ca_cert": tls_ca_cert,
            "tls_hostname": tls_hostname,
            "format": format,
            "format_version": 2,
            "message_type": "blank",
        }
        if placement:
            data["placement"] = placement
        response = self._http.post(
            f"{self._version_path(service_id, version)}/logging/syslog",
            data=data,
        )
        return Syslog.from_api(self._json(response, f"logging endpoint {name!r}"))

    def update_syslog(
        self,
        service_id: str,
        version: int,
        name: str,
        response_condition: str,
    ) -> Syslog:
        """Attach a response condition to a syslog endpoint."""
        response = self._http.put(
            f"{self._version_path(service_id, version)}/logging/syslog/{quote(name, safe='')}",
            data={"response_condition": response_condition},
        )
        return Syslog.from_api(self._json(response, f"logging endpoint {name!r}"))

    def delete_syslog(self, service_id: str, version: int, name: str) -> None:
        """Delete a syslog endpoint."""
        response = self._http.delete(
            f"{self._version_path(service_id, version)}/logging/syslog/{quote(name, safe='')}"
        )
        self._raise_for_status(response, f"logging endpoint {name!r}")

    # WAF containers

    def list_wafs(self, service_id: str, version: int) -> list[Waf]:
        """List the WAF containers of a version."""
        response = self._http.get(f"{self._version_path(service_id, version)}/wafs")
        body = self._json(response, "WAFs")
        return [Waf.from_api(w) for w in body.get("data") or []]

    def create_waf(
        self,
        service_id: str,
        version: int,
        prefetch_condition: str,
        response_object: str,
    ) -> Waf:
        """Create a WAF container referencing a prefetch condition and response object."""
        response = self._http.post(
            f"{self._version_path(service_id, version)}/wafs",
            json={
                "data": {
                    "type": "waf",
                    "attributes": {
                        "prefetch_condition": prefetch_condition,
                        "response": response_object,
                    },
                }
            },
        )
        return Waf.from_api(self._json(response, "WAF")["data"])

    def delete_waf(self, service_id: str, version: int, waf_id: str) -> None:
        """Delete a WAF container."""
        response = self._http.delete(f"{self._version_path(service_id, version)}/wafs/{waf_id}")
        self._raise_for_status(response, f"WAF {waf_id!r}")

    def change_waf_status(self, waf_id: str, status: str) -> httpx.Response:
        """Request a WAF status transition and return the raw response."""
        return self._http.patch(
            f"/wafs/{waf_id}/{status}",
            json={"data": {"id": waf_id, "type": "waf"}},
        )

    # OWASP settings

    def get_owasp(self, service_id: str, waf_id: str) -> Owasp | None:
        """Get the OWASP object of a WAF.

        Returns:
            The OWASP object, or None if the WAF has none yet.
        """
        response = self._http.get(f"/service/{service_id}/wafs/{waf_id}/owasp")
        if response.status_code == 404:
            return None
        record = self._json(response, f"OWASP settings of WAF {waf_id!r}").get("data")
        if not record or not record.get("id"):
            return None
        return Owasp.from_api(record)

    def create_owasp(self, service_id: str, waf_id: str) -> Owasp:
        """Create the OWASP object of a WAF with platform defaults."""
        response = self._http.post(
            f"/service/{service_id}/wafs/{waf_id}/owasp",
            json={"data": {"type": "owasp"}},
        )
        return Owasp.from_api(self._json(response, f"OWASP settings of WAF {waf_id!r}")["data"])

    def update_owasp(
        self,
        service_id: str,
        waf_id: str,
        owasp_id: str,
        settings: OwaspSettings,
    ) -> Owasp:
        """Update the OWASP object of a WAF in place."""
        response = self._http.patch(
            f"/service/{service_id}/wafs/{waf_id}/owasp",
            json={
                "data": {
                    "id": owasp_id,
                    "type": "owasp",
                    "attributes": settings.to_api(),
                }
            },
        )
        return Owasp.from_api(self._json(response, f"OWASP settings of WAF {waf_id!r}")["data"])

    # Rules, rule statuses and configuration sets

    def get_page(self, path: str, params: dict[str, Any] | None = None) -> Page:
        """Fetch one page of a paginated JSON:API listing."""
        return Page.from_json(self._json(self._http.get(path, params=params), path))

    def patch_rule_status(
        self,
        service_id: str,
        waf_id: str,
        rule_id: str,
        status: str,
    ) -> httpx.Response:
        """Set the status of one rule and return the raw response."""
        return self._http.patch(
            f"/service/{service_id}/wafs/{waf_id}/rules/{rule_id}/rule_status",
            json={
                "data": {
                    "attributes": {"status": status},
                    "id": f"{waf_id}-{rule_id}",
                    "type": "rule_status",
                }
            },
        )

    def post_tag_rule_status(
        self,
        service_id: str,
        waf_id: str,
        tag: str,
        status: str,
        force: bool,
    ) -> httpx.Response:
        """Set the status of every rule carrying a tag and return the raw response."""
        return self._http.post(
            f"/service/{service_id}/wafs/{waf_id}/rule_statuses",
            json={
                "data": {
                    "attributes": {"status": status, "name": tag, "force": force},
                    "id": waf_id,
                    "type": "rule_status",
                }
            },
        )

    def update_rule_sets(self, service_id: str, waf_id: str) -> None:
        """Regenerate the ruleset of a WAF after rule status changes."""
        response = self._http.patch(
            f"/service/{service_id}/wafs/{waf_id}/ruleset",
            json={"data": {"id": waf_id, "type": "ruleset"}},
        )
        self._raise_for_status(response, f"ruleset of WAF {waf_id!r}")

    def update_configuration_set(self, waf_id: str, configuration_set_id: str) -> None:
        """Bind a WAF to a configuration set."""
        response = self._http.patch(
            f"/wafs/configuration_sets/{configuration_set_id}/relationships/wafs",
            json={"data": [{"type": "waf", "id": waf_id}]},
        )
        self._raise_for_status(response, f"configuration set {configuration_set_id!r}")
