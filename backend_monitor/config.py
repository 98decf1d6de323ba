from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Backend under watch
    api_url: str = "http://localhost:3001/api"
    endpoints_file: str = "endpoints.yaml"  # ordered endpoint list; falls back to defaults from api_url

    # Probing
    probe_timeout_ms: int = 5_000
    check_interval_ms: int = 30_000
    probe_method: str = "GET"  # GET | HEAD

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    @property
    def probe_timeout(self) -> float:
        return self.probe_timeout_ms / 1000

    @property
    def check_interval(self) -> float:
        return self.check_interval_ms / 1000


settings = Settings()
