from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

SERVICE_NAME = "scout-search"
SERVICE_VERSION = "1.0.0"
SEARCH_COMPONENT_NAME = "google-search"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", frozen=True)

    # own network identity, announced to the registry
    service_host: str = "localhost"
    service_port: int = 4050

    # provider credentials; empty means search is disabled
    google_api_key: str = ""
    google_search_engine_id: str = ""
    google_search_url: str = "https://www.googleapis.com/customsearch/v1"
    provider_timeout_seconds: float = 10.0

    # registry
    service_registry_url: str = "http://localhost:8085/api/registry"
    registration_interval_seconds: float = 30.0
    heartbeat_interval_seconds: float = 30.0
    initial_heartbeat_delay_seconds: float = 2.0
    registration_timeout_seconds: float = 5.0
    heartbeat_timeout_seconds: float = 3.0

    # facade
    max_body_bytes: int = 1_048_576

    log_level: str = "INFO"


settings = Settings()
