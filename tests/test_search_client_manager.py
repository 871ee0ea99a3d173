"""
Tests for search engine selection
"""

import pytest

from shared.clients.search.SearchClientManager import SearchClientManager
from shared.clients.search.elasticsearch.SearchClientElasticsearch import SearchClientElasticsearch
from shared.clients.search.opensearch.SearchClientOpensearch import SearchClientOpensearch


@pytest.mark.parametrize(
    "engine, expected",
    [
        ("elasticsearch", SearchClientElasticsearch),
        ("OpenSearch", SearchClientOpensearch),
        (" opensearch ", SearchClientOpensearch),
    ],
)
def test_explicit_engine(monkeypatch, helper_config, engine, expected):
    monkeypatch.setenv("SEARCH_ENGINE", engine)

    assert isinstance(SearchClientManager(helper_config).get_client(), expected)


def test_explicit_engine_beats_host_pattern(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_ENGINE", "elasticsearch")
    monkeypatch.setenv("SEARCH_URL", "https://user:pw@my-cluster.bonsaisearch.net:443")

    assert isinstance(SearchClientManager(helper_config).get_client(), SearchClientElasticsearch)


def test_unsupported_engine(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_ENGINE", "solr")

    with pytest.raises(ValueError, match="solr"):
        SearchClientManager(helper_config)


def test_hosted_opensearch_is_detected_from_url(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_URL", "https://my-cluster-123.us-east-1.bonsaisearch.net:443")

    assert isinstance(SearchClientManager(helper_config).get_client(), SearchClientOpensearch)


def test_custom_host_patterns(monkeypatch, helper_config):
    monkeypatch.setenv("SEARCH_URL", "https://search.aws-os.example.com")
    monkeypatch.setenv("SEARCH_OPENSEARCH_HOST_PATTERNS", "[aws-os.example.com,bonsaisearch.net]")

    assert isinstance(SearchClientManager(helper_config).get_client(), SearchClientOpensearch)


def test_defaults_to_elasticsearch(helper_config):
    assert isinstance(SearchClientManager(helper_config).get_client(), SearchClientElasticsearch)
