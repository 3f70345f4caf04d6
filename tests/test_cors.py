import httpx
import pytest
from fastapi.testclient import TestClient

from chat_relay.app import create_app

from conftest import make_config


def relay_client(upstream, **cors):
    config = make_config(cors=cors) if cors else make_config()
    return TestClient(create_app(config, transport=httpx.MockTransport(upstream)))


@pytest.mark.parametrize("path", ["/api/chat", "/api/anything/else", "/", "/health"])
def test_preflight_on_any_path(client, upstream, path):
    r = client.request("OPTIONS", path, content=b"ignored body")

    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "Content-Type, Authorization"
    assert upstream.requests == []


def test_cors_headers_on_error_responses(client):
    r = client.post("/api/chat", json={"conversation": "nope"})
    assert r.status_code == 400
    assert r.headers["access-control-allow-origin"] == "*"


def test_cors_headers_on_streamed_responses(client, upstream):
    upstream.responder = lambda request: httpx.Response(200, content=b"data: hi\n\n")
    r = client.post("/api/chat", json={"conversation": []})
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


def test_fixed_origin(upstream):
    with relay_client(upstream, policy="fixed", allowed_origin="https://millionmedia.com") as c:
        r = c.options("/api/chat", headers={"Origin": "https://elsewhere.example"})

    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "https://millionmedia.com"


def test_reflect_origin(upstream):
    with relay_client(upstream, policy="reflect") as c:
        with_origin = c.options("/api/chat", headers={"Origin": "https://shop.example"})
        without_origin = c.options("/api/chat")

    assert with_origin.headers["access-control-allow-origin"] == "https://shop.example"
    assert with_origin.headers["vary"] == "Origin"
    assert "access-control-allow-origin" not in without_origin.headers


def test_custom_methods_and_headers(upstream):
    with relay_client(upstream, allow_methods="POST, OPTIONS", allow_headers="Content-Type") as c:
        r = c.options("/api/chat")

    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "Content-Type"


def test_unexpected_error_keeps_cors_and_request_id(upstream):
    def explode(request):
        raise RuntimeError("kaboom")

    upstream.responder = explode
    config = make_config(cors={"policy": "reflect"})
    app = create_app(config, transport=httpx.MockTransport(upstream))

    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.post(
            "/api/chat",
            json={"conversation": []},
            headers={"Origin": "https://x.example", "X-Request-ID": "req-500"},
        )

    assert r.status_code == 500
    assert r.json() == {"error": "kaboom"}
    assert r.headers["access-control-allow-origin"] == "https://x.example"
    assert r.headers["x-request-id"] == "req-500"
    assert "cache-control" not in r.headers
