from urllib.parse import urlparse

from shared.helper.HelperConfig import HelperConfig
from shared.clients.search.SearchClientInterface import SearchClientInterface

SUPPORTED_ENGINES = ("elasticsearch", "opensearch")
DEFAULT_OPENSEARCH_HOST_PATTERNS = ["bonsaisearch.net"]


class SearchClientManager:
    """
    Manager class to pick and instantiate the search client based on configuration.

    The engine is chosen once at startup: an explicit SEARCH_ENGINE wins,
    otherwise the hostname of SEARCH_URL decides (hosts matching one of
    SEARCH_OPENSEARCH_HOST_PATTERNS speak the OpenSearch API), otherwise
    Elasticsearch.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Resolves the search engine from ENV configuration.

        Returns:
            str: The capitalized engine name, e.g. "Elasticsearch" or "Opensearch".

        Raises:
            ValueError: If SEARCH_ENGINE names an unsupported engine.
        """
        if self.helper_config.has_val("SEARCH_ENGINE"):
            engine = self.helper_config.get_string_val("SEARCH_ENGINE").strip().lower()
            if engine not in SUPPORTED_ENGINES:
                raise ValueError(f"Unsupported search engine specified: '{engine}'. Supported: {', '.join(SUPPORTED_ENGINES)}")
            return engine.capitalize()

        url = self.helper_config.get_string_val("SEARCH_URL", default="http://localhost:9200")
        hostname = (urlparse(url).hostname or "").lower()
        patterns = self.helper_config.get_list_val("SEARCH_OPENSEARCH_HOST_PATTERNS", default=DEFAULT_OPENSEARCH_HOST_PATTERNS)
        if any(pattern.lower() in hostname for pattern in patterns):
            return "Opensearch"
        return "Elasticsearch"

    def _initialize_client(self) -> SearchClientInterface:
        """
        Initializes the search client for the resolved engine.

        Returns:
            SearchClientInterface: An instance of the search client implementing SearchClientInterface.

        Raises:
            ValueError: If the client class for the engine cannot be loaded.
        """
        engine = self._get_engine_from_env()
        className = f"SearchClient{engine}"
        try:
            module = __import__(
                f"shared.clients.search.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported search engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.info("Using %s client for search index '%s'", client._get_engine_name(), client.get_index_name())
        return client

    def get_client(self) -> SearchClientInterface:
        """
        Returns the instantiated search client.

        Returns:
            SearchClientInterface: The search client instance.
        """
        return self.client
