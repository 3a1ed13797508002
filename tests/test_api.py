import httpx
from fastapi.testclient import TestClient

from scout.api.main import create_app
from scout.common.config import Settings

REGISTRY = "http://registry.test/api/registry"


def make_settings(**overrides):
    values = dict(
        google_api_key="key-123",
        google_search_engine_id="cx-456",
        service_registry_url=REGISTRY,
        service_host="search.test",
        service_port=4050,
        # keep timers quiet for the duration of a test
        registration_interval_seconds=3600,
        heartbeat_interval_seconds=3600,
        initial_heartbeat_delay_seconds=3600,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeUpstream:
    """Serves both the search provider and the registry."""

    def __init__(self, search_status=200, search_payload=None, registry_up=True):
        self.search_status = search_status
        self.search_payload = search_payload if search_payload is not None else {}
        self.registry_up = registry_up
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "registry.test":
            if not self.registry_up:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"message": "ok"})
        return httpx.Response(self.search_status, json=self.search_payload)

    def paths(self, host):
        return [r.url.path for r in self.requests if r.url.host == host]


def client_for(upstream, **overrides):
    app = create_app(make_settings(**overrides), transport=httpx.MockTransport(upstream))
    return TestClient(app)


CATS = {
    "items": [
        {"title": "Cat - Wikipedia", "link": "https://en.wikipedia.org/wiki/Cat", "snippet": "The cat is a small mammal.", "kind": "x"},
        {"title": "Cats | ASPCA", "link": "https://www.aspca.org/cats", "snippet": "Cat care tips.", "htmlTitle": "<b>Cats</b>"},
    ],
    "searchInformation": {"totalResults": "2", "searchTime": 0.3},
}


def test_simple_search_end_to_end():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", json={"query": "cats"})

    assert r.status_code == 200
    data = r.json()
    assert len(data["items"]) == 2
    assert data["items"][0] == {
        "title": "Cat - Wikipedia",
        "link": "https://en.wikipedia.org/wiki/Cat",
        "snippet": "The cat is a small mammal.",
    }
    assert data["items"][1]["title"] == "Cats | ASPCA"
    assert data["items"][1]["link"] == "https://www.aspca.org/cats"
    assert data["items"][1]["snippet"] == "Cat care tips."
    assert data["searchInformation"] == {"totalResults": "2", "searchTime": 0.3}

    search_calls = [r for r in upstream.requests if r.url.host == "www.googleapis.com"]
    assert len(search_calls) == 1
    assert search_calls[0].url.params["q"] == "cats"


def test_token_is_accepted_and_search_information_omitted_when_absent():
    upstream = FakeUpstream(search_payload={"items": []})
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", json={"query": "cats", "token": "abc"})

    assert r.status_code == 200
    assert r.json() == {"items": []}


def test_empty_query_is_rejected():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream) as client:
        assert client.post("/api/search/simple", json={"query": ""}).status_code == 422
        assert client.post("/api/search/simple", json={}).status_code == 422

    assert upstream.paths("www.googleapis.com") == []


def test_missing_credentials_return_503():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream, google_api_key="") as client:
        r = client.post("/api/search/simple", json={"query": "cats"})
        health = client.get("/api/health")

    assert r.status_code == 503
    assert r.json()["error"] == "configuration_error"
    assert upstream.paths("www.googleapis.com") == []
    assert health.status_code == 200


def test_provider_failure_returns_502():
    upstream = FakeUpstream(search_status=500, search_payload={"error": "boom"})
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", json={"query": "cats"})

    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "upstream_error"
    assert body["detail"].startswith("Failed to perform search:")


def test_health_is_ok_even_when_registry_is_down():
    upstream = FakeUpstream(registry_up=False)
    with client_for(upstream, google_api_key="", google_search_engine_id="") as client:
        r = client.get("/api/health")
        component = client.get("/api/search/health")

    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["service"] == "scout-search"
    assert data["timestamp"]
    assert component.json()["status"] == "ok"
    assert component.json()["service"] == "google-search"


def test_startup_registers_with_registry():
    upstream = FakeUpstream()
    with client_for(upstream) as client:
        client.get("/api/health")

    # one registration at startup, no deregistration at shutdown
    assert upstream.paths("registry.test") == ["/api/registry/register"]


def test_oversized_body_is_rejected():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream, max_body_bytes=64) as client:
        r = client.post("/api/search/simple", json={"query": "x" * 200})

    assert r.status_code == 413
    assert r.json() == {"error": "payload_too_large"}
    assert upstream.paths("www.googleapis.com") == []


def test_cors_preflight_allows_any_origin():
    with client_for(FakeUpstream()) as client:
        r = client.options(
            "/api/search/simple",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]
    assert r.headers["access-control-max-age"] == "3600"
    assert "access-control-allow-credentials" not in r.headers


def test_chunked_oversized_body_is_rejected():
    upstream = FakeUpstream(search_payload=CATS)
    body = ('{"query": "' + "x" * 500 + '"}').encode()

    def chunks():
        for i in range(0, len(body), 50):
            yield body[i : i + 50]

    with client_for(upstream, max_body_bytes=64) as client:
        r = client.post("/api/search/simple", content=chunks(), headers={"content-type": "application/json"})

    assert r.status_code == 413
    assert r.json() == {"error": "payload_too_large"}
    assert upstream.paths("www.googleapis.com") == []


def test_chunked_body_under_limit_is_accepted():
    upstream = FakeUpstream(search_payload=CATS)
    body = b'{"query": "cats"}'

    def chunks():
        yield body[:5]
        yield body[5:]

    with client_for(upstream) as client:
        r = client.post("/api/search/simple", content=chunks(), headers={"content-type": "application/json"})

    assert r.status_code == 200
    assert len(r.json()["items"]) == 2


def test_form_encoded_search():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", data={"query": "cats", "token": "abc"})

    assert r.status_code == 200
    assert [item["title"] for item in r.json()["items"]] == ["Cat - Wikipedia", "Cats | ASPCA"]
    search_calls = [r for r in upstream.requests if r.url.host == "www.googleapis.com"]
    assert search_calls[0].url.params["q"] == "cats"


def test_form_encoded_empty_query_is_rejected():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", data={"query": ""})

    assert r.status_code == 422
    assert r.json()["detail"][0]["loc"] == ["body", "query"]
    assert upstream.paths("www.googleapis.com") == []


def test_invalid_json_is_rejected():
    upstream = FakeUpstream(search_payload=CATS)
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", content=b"{not json", headers={"content-type": "application/json"})

    assert r.status_code == 422
    assert upstream.paths("www.googleapis.com") == []


def test_mistyped_provider_fields_return_502():
    upstream = FakeUpstream(search_payload={"items": [{"title": 7, "link": "http://a", "snippet": "a"}]})
    with client_for(upstream) as client:
        r = client.post("/api/search/simple", json={"query": "cats"})

    assert r.status_code == 502
    assert r.json()["error"] == "upstream_error"
