"""Environment-backed settings for the document search service.

Every key is looked up upper-cased, so ``get_string_val("search_url")`` and
``get_string_val("SEARCH_URL")`` read the same variable. An empty variable
counts as unset.
"""

import logging
import os

_TRUTHY = ("true", "1", "yes", "on")


class HelperConfig:
    """Typed accessors over ``os.environ`` plus the shared application logger."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _raw(self, key: str) -> str | None:
        value = os.getenv(key.upper())
        if value is None or not value.strip():
            return None
        return value.strip()

    def _missing(self, key: str) -> ValueError:
        return ValueError(f"Environment variable '{key.upper()}' is not set.")

    def has_val(self, key: str) -> bool:
        """Return True when ``key`` is set to something other than blanks."""
        return self._raw(key) is not None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Raises:
            ValueError: If the variable is unset and no default is given.
        """
        value = self._raw(key)
        if value is not None:
            return value
        if default is None:
            raise self._missing(key)
        return default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric setting. Values containing a dot become floats, the rest ints.

        Raises:
            ValueError: If the variable is unset without a default, or not numeric.
        """
        value = self._raw(key)
        if value is None:
            if default is None:
                raise self._missing(key)
            return default
        try:
            return float(value) if "." in value else int(value)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{value}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean setting. Anything outside true/1/yes/on is False."""
        value = self._raw(key)
        if value is None:
            if default is None:
                raise self._missing(key)
            return default
        return value.lower() in _TRUTHY

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list setting such as ``REINDEX_ORGANIZATION_IDS=[1,7,8]``.

        Blank elements are dropped and the rest are cast with ``element_type``.

        Args:
            key (str): Environment variable name.
            default (list | None): Returned when the variable is unset.
            separator (str): Element delimiter inside the brackets.
            element_type (type): Callable applied to every element.

        Raises:
            ValueError: If the variable is unset without a default, is not wrapped
                in brackets, or holds an element ``element_type`` rejects.
        """
        value = self._raw(key)
        if value is None:
            if default is None:
                raise self._missing(key)
            return default
        if not (value.startswith("[") and value.endswith("]")):
            raise ValueError(
                f"Environment variable '{key.upper()}' must be in the format "
                f"'[elem1{separator}elem2{separator}...]'. Got: '{value}'"
            )
        items = [item.strip() for item in value[1:-1].split(separator)]
        try:
            return [element_type(item) for item in items if item]
        except ValueError as e:
            raise ValueError(
                f"Environment variable '{key.upper()}' holds an element that is not a valid "
                f"{element_type.__name__}: {e}"
            )

    def get_logger(self) -> logging.Logger:
        return self._logger
