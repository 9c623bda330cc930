"""Pytest configuration and fixtures for edgewaf tests."""

import json
import math
import re
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from edgewaf.api.client import EdgeApiClient
from edgewaf.config import EdgeWafConfig
from edgewaf.utils.http import HttpClient

SERVICE_ID = "svc123"
ACTIVE_VERSION = 7

VERSION = r"/service/(?P<sid>[^/]+)/version/(?P<version>\d+)"
SERVICE_WAF = r"/service/(?P<sid>[^/]+)/wafs/(?P<waf>[^/]+)"


class FakeEdgeApi:
    """In-memory edge API served through httpx.MockTransport.

    Objects are shared across versions. Every request is recorded as a
    ``(method, path)`` tuple in ``requests``.
    """

    def __init__(self, service_id: str = SERVICE_ID, page_size: int = 100) -> None:
        self.service_id = service_id
        self.page_size = page_size
        self.versions: list[dict[str, Any]] = [
            {"number": ACTIVE_VERSION - 1, "active": False, "locked": True},
            {"number": ACTIVE_VERSION, "active": True, "locked": True},
        ]
        self.conditions: list[dict[str, Any]] = []
        self.response_objects: list[dict[str, Any]] = []
        self.snippets: list[dict[str, Any]] = []
        self.syslogs: list[dict[str, Any]] = []
        self.wafs: list[dict[str, Any]] = []
        self.owasp: dict[str, dict[str, Any]] = {}
        self.catalog: list[dict[str, Any]] = []
        self.tags: dict[str, list[str]] = {}
        self.rule_statuses: dict[str, list[dict[str, Any]]] = {}
        self.configuration_sets: list[dict[str, Any]] = []

        self.patched_rules: list[tuple[str, str]] = []
        self.tag_updates: list[dict[str, Any]] = []
        self.ruleset_updates: list[str] = []
        self.status_changes: list[tuple[str, str]] = []
        self.configuration_set_bindings: list[tuple[str, str]] = []
        self.requests: list[tuple[str, str]] = []

        self.rejected_rules: set[str] = set()
        self.rule_patch_status: dict[str, int] = {}
        self.tag_post_status: dict[str, int] = {}
        self.snippet_delete_status = 200
        self.validation_error = ""
        self._waf_seq = 0
        self._owasp_seq = 0

        self._routes: list[tuple[str, str, Callable[..., httpx.Response]]] = [
            ("GET", r"/service/(?P<sid>[^/]+)", self._get_service),
            ("POST", VERSION + r"/clone", self._clone),
            ("GET", VERSION + r"/validate", self._validate),
            ("GET", VERSION + r"/condition", self._lister(self.conditions)),
            ("POST", VERSION + r"/condition", self._creator(self.conditions)),
            ("PUT", VERSION + r"/condition/(?P<name>[^/]+)", self._updater(self.conditions)),
            ("DELETE", VERSION + r"/condition/(?P<name>[^/]+)", self._deleter(self.conditions)),
            ("GET", VERSION + r"/response_object", self._lister(self.response_objects)),
            ("POST", VERSION + r"/response_object", self._creator(self.response_objects)),
            (
                "DELETE",
                VERSION + r"/response_object/(?P<name>[^/]+)",
                self._deleter(self.response_objects),
            ),
            ("GET", VERSION + r"/snippet", self._lister(self.snippets)),
            ("POST", VERSION + r"/snippet", self._creator(self.snippets)),
            ("DELETE", VERSION + r"/snippet/(?P<name>[^/]+)", self._delete_snippet),
            ("GET", VERSION + r"/logging/syslog", self._lister(self.syslogs)),
            ("POST", VERSION + r"/logging/syslog", self._creator(self.syslogs)),
            ("PUT", VERSION + r"/logging/syslog/(?P<name>[^/]+)", self._updater(self.syslogs)),
            ("DELETE", VERSION + r"/logging/syslog/(?P<name>[^/]+)", self._deleter(self.syslogs)),
            ("GET", VERSION + r"/wafs", self._list_wafs),
            ("POST", VERSION + r"/wafs", self._create_waf),
            ("DELETE", VERSION + r"/wafs/(?P<waf>[^/]+)", self._delete_waf),
            ("GET", SERVICE_WAF + r"/owasp", self._get_owasp),
            ("POST", SERVICE_WAF + r"/owasp", self._create_owasp),
            ("PATCH", SERVICE_WAF + r"/owasp", self._update_owasp),
            ("PATCH", SERVICE_WAF + r"/rules/(?P<rule>[^/]+)/rule_status", self._patch_rule),
            ("GET", SERVICE_WAF + r"/rule_statuses", self._list_rule_statuses),
            ("POST", SERVICE_WAF + r"/rule_statuses", self._post_tag_status),
            ("PATCH", SERVICE_WAF + r"/ruleset", self._update_ruleset),
            ("GET", r"/wafs/rules", self._list_rules),
            ("GET", r"/wafs/tags", self._list_tags),
            ("GET", r"/wafs/configuration_sets", self._list_configuration_sets),
            (
                "PATCH",
                r"/wafs/configuration_sets/(?P<cs>[^/]+)/relationships/wafs",
                self._bind_configuration_set,
            ),
            ("PATCH", r"/wafs/(?P<waf>[^/]+)/(?P<status>[^/]+)", self._change_status),
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        for method, pattern, handler in self._routes:
            if request.method != method:
                continue
            match = re.fullmatch(pattern, path)
            if match:
                return handler(request, **match.groupdict())
        return self._not_found(path)

    # Helpers

    @staticmethod
    def rule(
        rule_id: str,
        publisher: str = "owasp",
        status: str = "",
        paranoia_level: int = 1,
        message: str = "",
    ) -> dict[str, Any]:
        """Build a JSON:API rule (or rule status) record."""
        attributes: dict[str, Any] = {
            "publisher": publisher,
            "paranoia_level": paranoia_level,
            "message": message or f"Rule {rule_id}",
            "modsec_rule_id": rule_id,
            "rule_id": rule_id,
            "revision": 1,
            "version": "1",
        }
        if status:
            attributes["status"] = status
        return {"id": rule_id, "type": "rule", "attributes": attributes}

    def paths(self, method: str) -> list[str]:
        """Paths requested with a method, in order."""
        return [p for m, p in self.requests if m == method]

    def names(self, collection: list[dict[str, Any]]) -> list[str]:
        return [item["name"] for item in collection]

    @staticmethod
    def _form(request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    @staticmethod
    def _body(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content)

    @staticmethod
    def _not_found(what: str) -> httpx.Response:
        return httpx.Response(404, json={"msg": "Record not found", "detail": what})

    def _page(self, request: httpx.Request, records: list[dict[str, Any]]) -> httpx.Response:
        params = request.url.params
        number = int(params.get("page[number]", 1))
        size = int(params.get("page[size]", self.page_size))
        total_pages = max(1, math.ceil(len(records) / size))
        start = (number - 1) * size
        return httpx.Response(
            200,
            json={
                "data": records[start : start + size],
                "meta": {
                    "current_page": number,
                    "per_page": size,
                    "record_count": len(records),
                    "total_pages": total_pages,
                },
            },
        )

    @staticmethod
    def _find(collection: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
        for item in collection:
            if item["name"] == name:
                return item
        return None

    # Services and versions

    def _get_service(self, request: httpx.Request, sid: str) -> httpx.Response:
        if sid != self.service_id:
            return self._not_found(sid)
        return httpx.Response(200, json={"id": sid, "versions": self.versions})

    def _clone(self, request: httpx.Request, sid: str, version: str) -> httpx.Response:
        draft = {"number": max(v["number"] for v in self.versions) + 1, "active": False}
        self.versions.append(draft)
        return httpx.Response(200, json=draft)

    def _validate(self, request: httpx.Request, sid: str, version: str) -> httpx.Response:
        if self.validation_error:
            return httpx.Response(200, json={"status": "error", "msg": self.validation_error})
        return httpx.Response(200, json={"status": "ok", "msg": None})

    # Classic named resources

    def _lister(self, collection: list[dict[str, Any]]) -> Callable[..., httpx.Response]:
        def handler(request: httpx.Request, **_: str) -> httpx.Response:
            return httpx.Response(200, json=collection)

        return handler

    def _creator(self, collection: list[dict[str, Any]]) -> Callable[..., httpx.Response]:
        def handler(request: httpx.Request, **_: str) -> httpx.Response:
            item: dict[str, Any] = self._form(request)
            if self._find(collection, item["name"]):
                return httpx.Response(
                    409, json={"msg": "Duplicate record", "detail": item["name"]}
                )
            collection.append(item)
            return httpx.Response(200, json=item)

        return handler

    def _updater(self, collection: list[dict[str, Any]]) -> Callable[..., httpx.Response]:
        def handler(request: httpx.Request, name: str, **_: str) -> httpx.Response:
            item = self._find(collection, name)
            if item is None:
                return self._not_found(name)
            item.update(self._form(request))
            return httpx.Response(200, json=item)

        return handler

    def _deleter(self, collection: list[dict[str, Any]]) -> Callable[..., httpx.Response]:
        def handler(request: httpx.Request, name: str, **_: str) -> httpx.Response:
            item = self._find(collection, name)
            if item is None:
                return self._not_found(name)
            collection.remove(item)
            return httpx.Response(200, json={"status": "ok"})

        return handler

    def _delete_snippet(self, request: httpx.Request, name: str, **_: str) -> httpx.Response:
        if self.snippet_delete_status != 200:
            return httpx.Response(self.snippet_delete_status, json={"msg": "Cannot delete"})
        return self._deleter(self.snippets)(request, name=name)

    # WAF containers

    def _list_wafs(self, request: httpx.Request, **_: str) -> httpx.Response:
        return httpx.Response(200, json={"data": self.wafs})

    def _create_waf(self, request: httpx.Request, **_: str) -> httpx.Response:
        self._waf_seq += 1
        record = {
            "id": f"waf{self._waf_seq}",
            "type": "waf",
            "attributes": self._body(request)["data"]["attributes"],
        }
        self.wafs.append(record)
        return httpx.Response(201, json={"data": record})

    def _delete_waf(self, request: httpx.Request, waf: str, **_: str) -> httpx.Response:
        for record in self.wafs:
            if record["id"] == waf:
                self.wafs.remove(record)
                return httpx.Response(202)
        return self._not_found(waf)

    def _change_status(self, request: httpx.Request, waf: str, status: str) -> httpx.Response:
        if waf not in {w["id"] for w in self.wafs}:
            return self._not_found(waf)
        self.status_changes.append((waf, status))
        return httpx.Response(202, json={"data": {"id": waf, "type": "waf"}})

    # OWASP

    def _get_owasp(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        if waf not in self.owasp:
            return self._not_found(waf)
        return httpx.Response(200, json={"data": self.owasp[waf]})

    def _create_owasp(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        self._owasp_seq += 1
        self.owasp[waf] = {"id": f"owasp{self._owasp_seq}", "type": "owasp", "attributes": {}}
        return httpx.Response(201, json={"data": self.owasp[waf]})

    def _update_owasp(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        if waf not in self.owasp:
            return self._not_found(waf)
        self.owasp[waf]["attributes"].update(self._body(request)["data"]["attributes"])
        return httpx.Response(200, json={"data": self.owasp[waf]})

    # Rules

    def _patch_rule(self, request: httpx.Request, sid: str, waf: str, rule: str) -> httpx.Response:
        if rule in self.rejected_rules:
            return httpx.Response(400, json={"errors": [{"title": "Bad request", "detail": rule}]})
        status = self._body(request)["data"]["attributes"]["status"]
        self.patched_rules.append((rule, status))
        code = self.rule_patch_status.get(rule, 200)
        if code == 204:
            return httpx.Response(204)
        return httpx.Response(code, json={"data": {"id": f"{waf}-{rule}"}})

    def _list_rule_statuses(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        return self._page(request, self.rule_statuses.get(waf, []))

    def _post_tag_status(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        attributes = self._body(request)["data"]["attributes"]
        self.tag_updates.append(attributes)
        return httpx.Response(self.tag_post_status.get(attributes["name"], 200), json={"data": []})

    def _update_ruleset(self, request: httpx.Request, sid: str, waf: str) -> httpx.Response:
        self.ruleset_updates.append(waf)
        return httpx.Response(200, json={"data": {"id": waf, "type": "ruleset"}})

    def _list_rules(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        records = self.catalog
        if "filter[publisher]" in params:
            records = [r for r in records if r["attributes"]["publisher"] == params["filter[publisher]"]]
        if "filter[rule_id]" in params:
            records = [r for r in records if r["id"] == params["filter[rule_id]"]]
        return self._page(request, records)

    def _list_tags(self, request: httpx.Request) -> httpx.Response:
        tag = request.url.params.get("filter[name]", "")
        records = []
        if tag in self.tags:
            records = [{"id": f"tag-{tag}", "type": "tag", "attributes": {"name": tag}}]
        return self._page(request, records)

    def _list_configuration_sets(self, request: httpx.Request) -> httpx.Response:
        return self._page(request, self.configuration_sets)

    def _bind_configuration_set(self, request: httpx.Request, cs: str) -> httpx.Response:
        for item in self._body(request)["data"]:
            self.configuration_set_bindings.append((item["id"], cs))
        return httpx.Response(200, json={"data": []})


def make_api(handler: Callable[[httpx.Request], httpx.Response]) -> EdgeApiClient:
    """Build an EdgeApiClient whose requests are answered by a handler."""
    http = HttpClient(
        "https://api.example.test",
        "test-key",
        transport=httpx.MockTransport(handler),
    )
    return EdgeApiClient(http)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def client_for() -> Callable[[Callable[[httpx.Request], httpx.Response]], EdgeApiClient]:
    """Return a factory building clients answered by a request handler."""
    return make_api


@pytest.fixture
def fake_api() -> FakeEdgeApi:
    """Create an empty in-memory edge API."""
    return FakeEdgeApi()


@pytest.fixture
def api(fake_api: FakeEdgeApi) -> Generator[EdgeApiClient, None, None]:
    """Create a client talking to the in-memory edge API."""
    client = make_api(fake_api)
    yield client
    client.http.close()


@pytest.fixture
def sample_config() -> EdgeWafConfig:
    """Create a configuration with both logging endpoints filled in."""
    return EdgeWafConfig(
        api_key="test-key",
        weblog={"address": "logs.example.com", "port": 6514, "format": "%h %r"},
        waflog={"address": "logs.example.com", "port": 6515, "format": "%{waf.rule_id}V"},
        vcl_snippet={"content": "set req.http.X-Test = 1;"},
    )


@pytest.fixture
def sample_config_file(temp_dir: Path) -> Path:
    """Create a minimal configuration file."""
    config_file = temp_dir / "edgewaf.toml"
    config_file.write_text(
        """
api_endpoint = "https://api.example.test"
tags = ["OWASP", " ", "language-php"]
publishers = ["owasp"]
rules = [1010090]
action = "BLOCK"
disabled_rules = [2029718]

[owasp]
paranoia_level = 2

[weblog]
address = "logs.example.com"
expiry = 7
"""
    )
    return config_file
