from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scout.api.deps import FORM_CONTENT_TYPE, get_search_client, read_search_request
from scout.api.middleware import (
    BodySizeLimitMiddleware,
    PayloadTooLarge,
    payload_too_large_response,
    request_logging_middleware,
)
from scout.api.schemas import ErrorResponse, HealthResponse, SearchResponse, SimpleSearchRequest
from scout.common.config import SEARCH_COMPONENT_NAME, SERVICE_NAME, SERVICE_VERSION, Settings
from scout.common.config import settings as default_settings
from scout.common.errors import ConfigurationError, UpstreamError
from scout.provider.google import GoogleSearchClient
from scout.registry.client import RegistryClient
from scout.registry.lifecycle import RegistrationLifecycle

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the search facade.

    `transport` replaces the network for every outbound call (provider and
    registry); tests pass an `httpx.MockTransport`.
    """
    cfg = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        http = httpx.AsyncClient(transport=transport)

        search_client = GoogleSearchClient(
            http,
            api_key=cfg.google_api_key,
            search_engine_id=cfg.google_search_engine_id,
            url=cfg.google_search_url,
            timeout=cfg.provider_timeout_seconds,
        )
        if search_client.configured:
            log.info("search_client_ready")
        else:
            log.warning("search_credentials_missing", extra={"hint": "set GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID"})

        registration = RegistrationLifecycle(
            RegistryClient(
                http,
                registry_url=cfg.service_registry_url,
                service_host=cfg.service_host,
                service_port=cfg.service_port,
                registration_timeout=cfg.registration_timeout_seconds,
                heartbeat_timeout=cfg.heartbeat_timeout_seconds,
            ),
            registration_interval=cfg.registration_interval_seconds,
            heartbeat_interval=cfg.heartbeat_interval_seconds,
            initial_heartbeat_delay=cfg.initial_heartbeat_delay_seconds,
        )

        app.state.search_client = search_client
        app.state.registration = registration

        await registration.start()
        try:
            yield
        finally:
            await registration.stop()
            await http.aclose()

    app = FastAPI(title="Scout Search", version=SERVICE_VERSION, lifespan=lifespan)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=cfg.max_body_bytes)
    app.middleware("http")(request_logging_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=False,
        max_age=3600,
    )

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=_now(), service=SERVICE_NAME)

    @app.get("/api/search/health", response_model=HealthResponse)
    def search_health() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=_now(), service=SEARCH_COMPONENT_NAME)

    request_schema = SimpleSearchRequest.model_json_schema()

    @app.post(
        "/api/search/simple",
        response_model=SearchResponse,
        response_model_exclude_none=True,
        openapi_extra={
            "requestBody": {
                "required": True,
                "content": {
                    "application/json": {"schema": request_schema},
                    FORM_CONTENT_TYPE: {"schema": request_schema},
                },
            }
        },
    )
    async def simple_search(
        body: SimpleSearchRequest = Depends(read_search_request),
        client: GoogleSearchClient = Depends(get_search_client),
    ) -> SearchResponse:
        result = await client.perform_search(body.query)
        return SearchResponse(
            items=[asdict(item) for item in result.items],
            search_information=result.search_information,
        )

    @app.exception_handler(PayloadTooLarge)
    async def payload_too_large_handler(_: Request, exc: PayloadTooLarge):
        return payload_too_large_response()

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(_: Request, exc: ConfigurationError):
        return _error(503, "configuration_error", str(exc))

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(_: Request, exc: UpstreamError):
        return _error(502, "upstream_error", str(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_: Request, exc: Exception):
        log.exception("unhandled_exception", exc_info=exc)
        return _error(500, "internal_server_error")

    return app
