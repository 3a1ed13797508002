from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    service: str


class SimpleSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    # accepted for compatibility with existing callers; not forwarded
    token: str | None = None


class SearchResultItem(BaseModel):
    title: str
    link: str
    snippet: str


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[SearchResultItem]
    search_information: dict[str, Any] | None = Field(default=None, alias="searchInformation")


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
