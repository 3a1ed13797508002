from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from scout.api.schemas import SimpleSearchRequest
from scout.provider.google import GoogleSearchClient

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def get_search_client(request: Request) -> GoogleSearchClient:
    return request.app.state.search_client


async def read_search_request(request: Request) -> SimpleSearchRequest:
    """Accept the search body as JSON or as a URL-encoded form."""
    content_type = request.headers.get("content-type", "")
    data: Any
    if content_type.startswith(FORM_CONTENT_TYPE):
        form = await request.form()
        data = dict(form)
    else:
        try:
            data = await request.json()
        except ValueError:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
            )
    try:
        return SimpleSearchRequest.model_validate(data)
    except ValidationError as e:
        errors = [{**err, "loc": ("body", *err["loc"])} for err in e.errors(include_url=False)]
        raise RequestValidationError(errors, body=data)
