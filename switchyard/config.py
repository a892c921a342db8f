"""Configuration for the router and the default exception handler."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class DispatchConfig:
    """Settings shared by the router and the exception handler.

    Attributes:
        debug: Include exception class and traceback in rendered error bodies.
               Never enable in production.

        api_prefix: Requests whose path starts with this prefix get JSON error
                    bodies from the default exception handler.

        base_url: Scheme and host used by ``Router.url_for(..., absolute=True)``
                  when no domain is passed. Examples: "https://example.com"

    Examples:
        DispatchConfig(debug=True)
        DispatchConfig.from_env()  # reads SWITCHYARD_DEBUG, SWITCHYARD_API_PREFIX, SWITCHYARD_BASE_URL
    """

    debug: bool = False
    api_prefix: str = "/api"
    base_url: str = "http://localhost"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, prefix: str = "SWITCHYARD_") -> "DispatchConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        debug_value = env.get(f"{prefix}DEBUG")
        config = cls(
            debug=debug_value.strip().lower() in _TRUTHY if debug_value is not None else defaults.debug,
            api_prefix=env.get(f"{prefix}API_PREFIX", defaults.api_prefix),
            base_url=env.get(f"{prefix}BASE_URL", defaults.base_url),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.api_prefix.startswith("/"):
            raise ValueError(f"api_prefix must start with '/', got {self.api_prefix!r}")

        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"base_url must include a scheme and host, got {self.base_url!r}")

    def is_api_path(self, path: str) -> bool:
        prefix = self.api_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")
