"""
Shared fixtures: configuration, logger, and an in-process fake search cluster.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

import httpx
import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.document import DocumentContent

ENGINES = ["elasticsearch", "opensearch"]

_MANAGED_PREFIXES = ("SEARCH_", "DATABASE_", "APP_API_KEY", "REINDEX_")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from a known environment."""
    for key in list(os.environ):
        if key.startswith(_MANAGED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SEARCH_URL", "http://search.test:9200")
    monkeypatch.setenv("SEARCH_INDEX_PREFIX", "testing")
    monkeypatch.setenv("APP_API_KEY", "test-api-key")
    yield


@pytest.fixture
def helper_config():
    return HelperConfig(logger=ColorLogger(logging.getLogger("doclib_search.tests")))


def make_document(**overrides) -> DocumentContent:
    data = {
        "file_id": "101",
        "organization_id": "7",
        "title": "Quarterly budget report",
        "content": "The budget report for the third quarter.",
        "extracted_text": "Revenue grew while the budget report stayed flat.",
        "author": "Jane Doe",
        "department": "Finance",
        "tags": ["finance", "q3"],
        "file_type": "pdf",
        "mime_type": "application/pdf",
        "size_bytes": 2048,
        "created_at": datetime(2024, 7, 1, 9, 30, tzinfo=timezone.utc),
        "visibility": "org",
        "folder_path": "Reports/2024",
    }
    data.update(overrides)
    return DocumentContent(**data)


def _find_values(node, key: str, field: str):
    """Yield every value of {key: {field: value}} nested anywhere in a query."""
    if isinstance(node, dict):
        for k, v in node.items():
            if k == key and isinstance(v, dict) and field in v:
                yield v[field]
            else:
                yield from _find_values(v, key, field)
    elif isinstance(node, list):
        for item in node:
            yield from _find_values(item, key, field)


def _find_text(query) -> str | None:
    for text in _find_values(query, "multi_match", "query"):
        return text
    for value in _find_values(query, "match_phrase_prefix", "title"):
        return value["query"] if isinstance(value, dict) else value
    return None


def _sorts_by_score(sort) -> bool:
    if not sort:
        return True
    return any(entry == "_score" or (isinstance(entry, dict) and "_score" in entry) for entry in sort)


class FakeCluster:
    """Minimal search cluster speaking the shared Elasticsearch/OpenSearch REST dialect.

    Only understands what the adapters send: tenant term filters, one free-text
    multi_match or phrase prefix (evaluated as case-insensitive substring),
    terms aggregations. Like a real cluster, a field sort without _score
    returns null scores. Every request is recorded.
    """

    TEXT_FIELDS = ("title", "content", "extracted_text", "search_text")

    def __init__(self, status: str = "green"):
        self.status = status
        self.indices: dict[str, dict[str, dict]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_search = False
        self.fail_index = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bodies(self, method: str, suffix: str) -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == method and r.url.path.endswith(suffix) and r.content
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]
        method = request.method

        if parts == ["_cluster", "health"]:
            return httpx.Response(200, json={"cluster_name": "fake", "status": self.status})

        index = parts[0]
        if len(parts) == 1:
            if method == "HEAD":
                return httpx.Response(200 if index in self.indices else 404)
            if method == "PUT":
                if index in self.indices:
                    return httpx.Response(400, json={"error": {"type": "resource_already_exists_exception"}})
                self.indices[index] = {}
                return httpx.Response(200, json={"acknowledged": True, "index": index})

        if len(parts) == 3 and parts[1] == "_doc":
            docs = self.indices.get(index)
            doc_id = parts[2]
            if method == "PUT":
                if docs is None or self.fail_index:
                    return httpx.Response(500, json={"error": "index failure"})
                result = "updated" if doc_id in docs else "created"
                docs[doc_id] = json.loads(request.content)
                return httpx.Response(201 if result == "created" else 200, json={"_id": doc_id, "result": result})
            if method == "DELETE":
                if docs is None or doc_id not in docs:
                    return httpx.Response(404, json={"_id": doc_id, "result": "not_found"})
                del docs[doc_id]
                return httpx.Response(200, json={"_id": doc_id, "result": "deleted"})

        if len(parts) == 2 and parts[1] == "_search" and method == "POST":
            if self.fail_search:
                return httpx.Response(503, json={"error": "cluster unavailable"})
            return self._search(index, json.loads(request.content))

        return httpx.Response(400, json={"error": f"unsupported {method} {request.url.path}"})

    def _search(self, index: str, body: dict) -> httpx.Response:
        docs = self.indices.get(index, {})
        query = body.get("query", {})
        tenants = list(_find_values(query, "term", "organization_id"))
        text = _find_text(query)

        hits = []
        for doc_id, doc in docs.items():
            if tenants and doc.get("organization_id") not in tenants:
                continue
            if text:
                haystack = " ".join(str(doc.get(f) or "") for f in self.TEXT_FIELDS).lower()
                if text.lower() not in haystack:
                    continue
            hits.append({"_id": doc_id, "_score": 1.0 + len(hits) * 0.1, "_source": doc})
        hits.sort(key=lambda h: h["_score"], reverse=True)
        if not _sorts_by_score(body.get("sort")):
            for hit in hits:
                hit["_score"] = None

        aggregations = {}
        for name, agg in (body.get("aggregations") or body.get("aggs") or {}).items():
            field = agg["terms"]["field"]
            counts: dict[str, int] = {}
            for hit in hits:
                values = hit["_source"].get(field)
                for value in values if isinstance(values, list) else [values]:
                    if value:
                        counts[value] = counts.get(value, 0) + 1
            aggregations[name] = {
                "buckets": [{"key": k, "doc_count": c} for k, c in sorted(counts.items(), key=lambda kv: -kv[1])]
            }

        start = body.get("from", 0)
        size = body.get("size", 10)
        return httpx.Response(
            200,
            json={
                "took": 3,
                "hits": {"total": {"value": len(hits), "relation": "eq"}, "hits": hits[start:start + size]},
                "aggregations": aggregations,
            },
        )


@pytest.fixture
def fake_cluster():
    return FakeCluster()


@pytest.fixture
def document_factory():
    return make_document
