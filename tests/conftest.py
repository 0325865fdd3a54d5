"""Shared fixtures: isolated settings, local store and a fake Airtable API."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import structlog

from adapters.airtable_client import AirtableClient
from adapters.kv_store import JsonFileKeyValueStore
from adapters.local_store import LocalDomainStore
from core.config import AppSettings
from core.domain.models import RemoteConfig

API_ROOT = "https://api.airtable.test/v0"
API_KEY = "key123"
BASE_ID = "appBASE"
TABLE = "Domains"


class FakeAirtable:
    """In-memory stand-in for one Airtable table, served through httpx.MockTransport."""

    def __init__(self, page_size: int = 100) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.page_size = page_size
        self.fail_with: int | None = None
        self.raise_error: type[httpx.HTTPError] | None = None
        self.fail_posts_after: int | None = None
        self._posts = 0
        self._seq = 0

    def seed(self, fields: dict[str, Any]) -> str:
        self._seq += 1
        record_id = f"rec{self._seq:04d}"
        self.rows[record_id] = dict(fields)
        return record_id

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def _record(self, record_id: str) -> dict[str, Any]:
        return {"id": record_id, "createdTime": "2026-01-01T00:00:00.000Z", "fields": self.rows[record_id]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error("simulated transport failure", request=request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": {"type": "SIMULATED"}})
        if request.headers.get("Authorization") != f"Bearer {API_KEY}":
            return httpx.Response(401, json={"error": "AUTHENTICATION_REQUIRED"})

        parts = request.url.path.split("/")
        assert parts[1:4] == ["v0", BASE_ID, TABLE]
        record_id = parts[4] if len(parts) > 4 else None

        if request.method == "GET":
            items = list(self.rows)
            start = int(request.url.params.get("offset", "0"))
            page = items[start : start + self.page_size]
            body: dict[str, Any] = {"records": [self._record(rid) for rid in page]}
            if start + self.page_size < len(items):
                body["offset"] = str(start + self.page_size)
            return httpx.Response(200, json=body)

        if request.method == "POST":
            self._posts += 1
            if self.fail_posts_after is not None and self._posts > self.fail_posts_after:
                return httpx.Response(503, json={"error": "SERVICE_UNAVAILABLE"})
            records = json.loads(request.content)["records"]
            if len(records) > 10:
                return httpx.Response(422, json={"error": "INVALID_RECORDS"})
            created = [self._record(self.seed(r["fields"])) for r in records]
            return httpx.Response(200, json={"records": created})

        if record_id not in self.rows:
            return httpx.Response(404, json={"error": "NOT_FOUND"})

        if request.method == "PATCH":
            self.rows[record_id].update(json.loads(request.content)["fields"])
            return httpx.Response(200, json=self._record(record_id))

        if request.method == "DELETE":
            del self.rows[record_id]
            return httpx.Response(200, json={"id": record_id, "deleted": True})

        return httpx.Response(405)


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        data_dir=tmp_path / "data",
        airtable_api_url=API_ROOT,
        http_timeout_seconds=2.0,
        remote_operation_timeout_seconds=5.0,
    )


@pytest.fixture
def kv(settings) -> JsonFileKeyValueStore:
    return JsonFileKeyValueStore(settings.resolved_data_dir())


@pytest.fixture
def store(kv) -> LocalDomainStore:
    return LocalDomainStore(kv)


@pytest.fixture
def remote_config() -> RemoteConfig:
    return RemoteConfig(api_key=API_KEY, base_id=BASE_ID, table_name=TABLE)


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    return FakeAirtable()


@pytest.fixture
def transport(fake_airtable) -> httpx.MockTransport:
    return httpx.MockTransport(fake_airtable.handler)


@pytest.fixture
def airtable(settings, remote_config, transport) -> AirtableClient:
    return AirtableClient(settings, remote_config, transport=transport)
