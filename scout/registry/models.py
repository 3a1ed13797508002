from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceRegistration(BaseModel):
    """What this instance announces to the registry. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_name: str = Field(alias="serviceName", min_length=1)
    operations: frozenset[str]
    endpoint: str
    health_check: str = Field(alias="healthCheck")
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self, framework: str, version: str, port: int) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        payload["operations"] = sorted(self.operations)
        payload.update(framework=framework, version=version, port=port)
        return payload
