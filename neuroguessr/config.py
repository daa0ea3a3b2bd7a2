# config.py

import os
from dataclasses import dataclass

GEO_API_ENV = "GEO_API"
GEOLOCATE_PATH = "/geolocate"
BACKEND_TIMEOUT = 30  # seconds
MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16 MB
PORT = 5000
# the page reaches the proxy over loopback, so the server needs at least two workers
PROXY_ENDPOINT = f"http://127.0.0.1:{PORT}/api/v1/geolocate"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ProxyConfig:
    """Where the proxy forwards uploads. Built once at startup, never mutated."""

    backend_url: str
    timeout: float = BACKEND_TIMEOUT

    def __post_init__(self):
        if not self.backend_url:
            raise ConfigError("backend_url must not be empty")
        object.__setattr__(self, "backend_url", self.backend_url.rstrip("/"))

    @property
    def geolocate_url(self):
        return f"{self.backend_url}{GEOLOCATE_PATH}"

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        url = environ.get(GEO_API_ENV, "").strip()
        if not url:
            raise ConfigError(f"{GEO_API_ENV} is not set; it must hold the geolocation service base URL")
        return cls(backend_url=url)
