import base64

from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.search.QueryBuilder import BackendQuery


class SearchClientElasticsearch(SearchClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("URL", default="http://localhost:9200", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._username = self.get_config_val("USERNAME", default="", val_type="string")
        self._password = self.get_config_val("PASSWORD", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Elasticsearch"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URL", val_type="string", default="http://localhost:9200"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="USERNAME", val_type="string", default=""),
            EnvConfig(env_key="PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="INDEX_PREFIX", val_type="string", default="corporate"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # api key wins over basic auth
        if self._api_key:
            return {"Authorization": f"ApiKey {self._api_key}"}
        if self._username and self._password:
            token = base64.b64encode(f"{self._username}:{self._password}".encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {token}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_search_payload(self, backend_query: BackendQuery) -> dict:
        payload = {
            "query": backend_query.query,
            "aggregations": backend_query.aggregations,
            "sort": backend_query.sort,
            "from": backend_query.from_,
            "size": backend_query.size,
            "track_total_hits": True,
        }
        if backend_query.highlight:
            payload["highlight"] = backend_query.highlight
        return payload

    def get_suggestion_payload(self, prefix: str, organization_id: str, size: int) -> dict:
        # collapse on the exact title so one title is suggested once
        return {
            "query": {
                "bool": {
                    "filter": [{"term": {"organization_id": organization_id}}],
                    "must": [{"match_phrase_prefix": {"title": {"query": prefix, "max_expansions": 20}}}],
                }
            },
            "collapse": {"field": "title.keyword"},
            "_source": ["title"],
            "size": size,
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_total_hits(self, raw_response: dict) -> int:
        return self._result_mapper.extract_total((raw_response.get("hits") or {}).get("total"))

    def extract_suggestions(self, raw_response: dict) -> list[str]:
        hits = (raw_response.get("hits") or {}).get("hits") or []
        return [(hit.get("_source") or {}).get("title", "") for hit in hits]
