from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import SearchBackendError


class ClientInterface(ABC):
    """Base for HTTP backend clients configured from ``<TYPE>[_<ENGINE>]_<KEY>`` variables."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._client: httpx.AsyncClient | None = None

        prefix = self.get_client_type().upper()
        self.timeout = helper_config.get_number_val(f"{prefix}_TIMEOUT", default=30.0)
        self.verify_tls = helper_config.get_bool_val(f"{prefix}_VERIFY_TLS", default=True)
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Resolve every required setting once so a missing one fails at construction.

        Raises:
            ValueError: If a setting without default is unset or malformed.
        """
        for setting in self._get_required_config():
            self.get_config_val(raw_key=setting.env_key, default=setting.default, val_type=setting.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client family, e.g. "search"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "opensearch"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings the engine reads, checked by validate_full_configuration."""
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine setting, preferring SEARCH_OPENSEARCH_URL over SEARCH_URL.

        Args:
            raw_key (str): Key without the client/engine prefix, e.g. "URL".
            default (Any): Returned when neither variable is set.
            val_type (str): One of "string", "number", "bool", "list".

        Raises:
            ValueError: If the value is required but unset, or val_type is unknown.
        """
        getters = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in getters:
            raise ValueError(
                f"Unsupported config value type '{val_type}' for '{raw_key}' "
                f"in {self.get_client_type()} client '{self.get_engine_name()}'."
            )

        client_type = self.get_client_type().upper()
        engine_key = f"{client_type}_{self.get_engine_name().upper()}_{raw_key.upper()}"
        shared_key = f"{client_type}_{raw_key.upper()}"
        key = engine_key if self._helper_config.has_val(engine_key) else shared_key
        return getters[val_type](key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Authorization header for the backend, or {} without credentials."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Backend root URL, e.g. "http://localhost:9200"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the pooled HTTP client. Tests pass an ``httpx.MockTransport``."""
        self._client = httpx.AsyncClient(
            base_url=self._get_base_url().rstrip("/"),
            headers=self._get_auth_header(),
            timeout=self.timeout,
            verify=self.verify_tls,
            transport=transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        params: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request relative to the backend URL.

        Transport failures always raise. A non-2xx status raises only with
        ``raise_on_error``; otherwise the caller inspects the response.

        Raises:
            SearchBackendError: Client not booted, transport failure, or
                (with raise_on_error) a non-2xx status.
        """
        if self._client is None:
            raise SearchBackendError("HTTP client not initialised. Call boot() before making requests.")

        path = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise SearchBackendError(f"{method} {self._get_base_url()}{path} failed: {exc}") from exc

        if raise_on_error and not response.is_success:
            self.logging.error("%s %s returned %d: %s", method, path, response.status_code, response.text)
            raise SearchBackendError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response
