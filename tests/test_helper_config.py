"""
Unit tests for environment configuration
"""

import pytest


def test_string_value(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_INDEX_PREFIX", "  acme ")

    assert helper_config.get_string_val("search_index_prefix") == "acme"


def test_missing_required_value(helper_config):
    with pytest.raises(ValueError, match="DATABASE_URL"):
        helper_config.get_string_val("DATABASE_URL")


def test_number_value(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_TIMEOUT", "2.5")
    monkeypatch.setenv("SEARCH_DB_FALLBACK_LIMIT", "250")

    assert helper_config.get_number_val("SEARCH_TIMEOUT") == 2.5
    assert helper_config.get_number_val("SEARCH_DB_FALLBACK_LIMIT") == 250
    assert helper_config.get_number_val("DATABASE_POOL_SIZE", default=10) == 10


def test_invalid_number(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_TIMEOUT", "soon")

    with pytest.raises(ValueError, match="not a valid number"):
        helper_config.get_number_val("SEARCH_TIMEOUT")


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False)])
def test_bool_value(monkeypatch, helper_config, raw, expected):
    monkeypatch.setenv("SEARCH_HYBRID_ENABLED", raw)

    assert helper_config.get_bool_val("SEARCH_HYBRID_ENABLED") is expected


def test_list_value(monkeypatch, helper_config):
    monkeypatch.setenv("REINDEX_ORGANIZATION_IDS", "[1, 7 ,8]")

    assert helper_config.get_list_val("REINDEX_ORGANIZATION_IDS") == ["1", "7", "8"]
    assert helper_config.get_list_val("REINDEX_ORGANIZATION_IDS", element_type=int) == [1, 7, 8]


def test_list_value_requires_brackets(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_OPENSEARCH_HOST_PATTERNS", "bonsaisearch.net")

    with pytest.raises(ValueError, match="format"):
        helper_config.get_list_val("SEARCH_OPENSEARCH_HOST_PATTERNS")
