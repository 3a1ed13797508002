from __future__ import annotations

import logging

import httpx

from scout.common.config import SERVICE_NAME, SERVICE_VERSION
from scout.common.errors import RegistryUnavailable
from scout.registry.models import ServiceRegistration

log = logging.getLogger(__name__)

OPERATIONS = frozenset({"simpleSearch"})
FRAMEWORK = "FastAPI"


class RegistryClient:
    """Best-effort client for the host registry's REST API.

    `register()` and `send_heartbeat()` never raise: a failed call is logged
    as a warning and the next timer tick is the only retry.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        registry_url: str,
        service_host: str,
        service_port: int,
        registration_timeout: float = 5.0,
        heartbeat_timeout: float = 3.0,
    ) -> None:
        self._http = http
        self.registry_url = registry_url.rstrip("/")
        self.service_host = service_host
        self.service_port = service_port
        self.registration_timeout = registration_timeout
        self.heartbeat_timeout = heartbeat_timeout

    @property
    def service_endpoint(self) -> str:
        return f"http://{self.service_host}:{self.service_port}"

    def build_registration(self) -> ServiceRegistration:
        endpoint = self.service_endpoint
        return ServiceRegistration(
            service_name=SERVICE_NAME,
            operations=OPERATIONS,
            endpoint=endpoint,
            health_check=f"{endpoint}/api/health",
            metadata={"type": "fastapi", "version": SERVICE_VERSION, "provider": "google"},
        )

    async def register(self) -> None:
        registration = self.build_registration()
        payload = registration.to_payload(framework=FRAMEWORK, version=SERVICE_VERSION, port=self.service_port)
        try:
            ack = await self._post(f"{self.registry_url}/register", payload, self.registration_timeout)
        except RegistryUnavailable as e:
            log.warning("registry_register_failed", extra={"registry_url": self.registry_url, "error": str(e)})
            return
        log.info("registry_registered", extra={"registry_url": self.registry_url, "ack": ack})

    async def send_heartbeat(self) -> None:
        url = f"{self.registry_url}/heartbeat/{SERVICE_NAME}"
        try:
            ack = await self._post(url, {}, self.heartbeat_timeout)
        except RegistryUnavailable as e:
            log.warning("registry_heartbeat_failed", extra={"registry_url": self.registry_url, "error": str(e)})
            return
        log.debug("registry_heartbeat_sent", extra={"ack": ack})

    async def _post(self, url: str, payload: dict, timeout: float) -> str:
        try:
            resp = await self._http.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise RegistryUnavailable(str(e) or type(e).__name__) from e
        return _ack_message(resp)


def _ack_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return "OK"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return "OK"
