"""Endpoint registry — loads the ordered list of endpoints to probe from endpoints.yaml.

File format (either form per entry; order is preserved)::

    endpoints:
      - name: Health Check
        url: "{api_url}/health"
      - "https://api.example.com/status"

``{api_url}`` is replaced with the configured base API URL.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .health.models import Endpoint
from .health.prober import validate_endpoint

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = (
    ("Health Check", "{api_url}/health"),
    ("Authentication", "{api_url}/auth/profile"),
    ("Food Preferences", "{api_url}/preferences/food"),
    ("Progress Tracking", "{api_url}/progress/stats"),
    ("Base API", "{api_url}"),
)


def default_endpoints(api_url: str) -> list[Endpoint]:
    base = api_url.rstrip("/")
    return [Endpoint(url=url.format(api_url=base), name=name) for name, url in DEFAULT_ENDPOINTS]


class EndpointRegistry:
    """Loads and caches the endpoint list."""

    def __init__(self, path: Path | str, api_url: str) -> None:
        self._path = Path(path)
        self._api_url = api_url.rstrip("/")
        self._endpoints: list[Endpoint] = []
        self._loaded = False

    def load(self, force: bool = False) -> list[Endpoint]:
        """Parse the YAML file; missing or empty file means the default list."""
        if self._loaded and not force:
            return self._endpoints

        self._endpoints = []
        raw: Any = None
        if self._path.exists():
            try:
                raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
            except Exception as e:
                logger.error("Failed to parse %s: %s", self._path, e)
        else:
            logger.info("Endpoint file not found: %s — using defaults for %s", self._path, self._api_url)

        entries = raw.get("endpoints") if isinstance(raw, dict) else None
        for entry in entries or []:
            try:
                self._endpoints.append(self._parse(entry))
            except Exception as e:
                logger.warning("Skipping malformed endpoint entry %r: %s", entry, e)

        if not self._endpoints:
            self._endpoints = default_endpoints(self._api_url)

        self._loaded = True
        logger.info("Loaded %d endpoints", len(self._endpoints))
        return self._endpoints

    @property
    def endpoints(self) -> list[Endpoint]:
        return self.load()

    def reload(self) -> list[Endpoint]:
        return self.load(force=True)

    def _parse(self, entry: Any) -> Endpoint:
        if isinstance(entry, str):
            name, url = "", entry
        else:
            name, url = str(entry.get("name", "")), entry["url"]
        url = str(url).format(api_url=self._api_url)
        validate_endpoint(url)
        return Endpoint(url=url, name=name)
