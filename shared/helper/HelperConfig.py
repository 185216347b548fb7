"""Central configuration helper for the document chat core."""

import logging
import os


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    Values can be overridden per instance (used by tests and by embedding
    applications that do not configure through the process environment).
    """

    def __init__(self, logger: logging.Logger, overrides: dict[str, str] | None = None) -> None:
        self._logger = logger
        self._overrides = {k.upper(): str(v) for k, v in (overrides or {}).items()}

    def _read_raw(self, key: str) -> str | None:
        key = key.upper()
        if key in self._overrides:
            return self._overrides[key] or None
        return os.getenv(key) or None  # empty string → None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        val = self._read_raw(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (bool | None): Fallback value if the variable is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable written as "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type to which each element is cast.

        Returns:
            list: The resolved list of elements.

        Raises:
            ValueError: If the variable is not set and no default is provided, or is malformed.
        """
        raw_val = self._read_raw(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
