from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Optional

import httpx
import typer
import uvicorn

from scout.api.main import create_app
from scout.common.config import settings
from scout.common.errors import ScoutError
from scout.common.logging import setup_logging
from scout.provider.google import GoogleSearchClient
from scout.registry.client import RegistryClient

app = typer.Typer(add_completion=False, help="Scout search microservice CLI")


def _registry_client(http: httpx.AsyncClient) -> RegistryClient:
    return RegistryClient(
        http,
        registry_url=settings.service_registry_url,
        service_host=settings.service_host,
        service_port=settings.service_port,
        registration_timeout=settings.registration_timeout_seconds,
        heartbeat_timeout=settings.heartbeat_timeout_seconds,
    )


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: Optional[int] = typer.Option(None, help="Port to bind (defaults to SERVICE_PORT)"),
    log_level: str = typer.Option("info", help="Uvicorn log level"),
) -> None:
    """Run the FastAPI service with registry heartbeats."""
    setup_logging(settings.log_level)
    uvicorn.run(create_app(), host=host, port=port or settings.service_port, log_level=log_level, log_config=None)


@app.command()
def register() -> None:
    """Send one registration to the registry."""
    setup_logging(settings.log_level)

    async def run() -> None:
        async with httpx.AsyncClient() as http:
            await _registry_client(http).register()

    asyncio.run(run())


@app.command()
def heartbeat() -> None:
    """Send one heartbeat to the registry."""
    setup_logging(settings.log_level)

    async def run() -> None:
        async with httpx.AsyncClient() as http:
            await _registry_client(http).send_heartbeat()

    asyncio.run(run())


@app.command()
def search(query: str = typer.Argument(..., help="Search query")) -> None:
    """Query the provider once and print the mapped response."""
    setup_logging(settings.log_level)
    log = logging.getLogger("scout.cli")

    async def run() -> dict:
        async with httpx.AsyncClient() as http:
            client = GoogleSearchClient(
                http,
                api_key=settings.google_api_key,
                search_engine_id=settings.google_search_engine_id,
                url=settings.google_search_url,
                timeout=settings.provider_timeout_seconds,
            )
            result = await client.perform_search(query)
        payload: dict = {"items": [asdict(i) for i in result.items]}
        if result.search_information is not None:
            payload["searchInformation"] = result.search_information
        return payload

    try:
        payload = asyncio.run(run())
    except ScoutError as e:
        log.error("search_command_failed", extra={"error": str(e)})
        raise typer.Exit(code=1)
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
