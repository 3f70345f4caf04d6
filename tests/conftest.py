# conftest.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from chat_relay.app import create_app
from chat_relay.shared.config import RelayConfig

SYSTEM_PROMPT = "You are Trained, the assistant of a small media agency."
API_KEY = "sk-test-0123456789abcdef"


class FakeUpstream:
    """
    Stands in for the chat-completion API behind an httpx.MockTransport.
    Every outbound request is recorded; `responder` decides the answer.
    """

    def __init__(self):
        self.requests = []
        self.responder = lambda request: httpx.Response(200, content=b"")

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.responder(request)

    def sent_json(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def make_config(**sections) -> RelayConfig:
    upstream = {"api_key": API_KEY, "system_prompt": SYSTEM_PROMPT}
    upstream.update(sections.pop("upstream", {}))
    return RelayConfig(upstream=upstream, **sections)


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels or None) or 0.0


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def relay_config():
    return make_config()


@pytest.fixture()
def client(upstream, relay_config):
    app = create_app(relay_config, transport=httpx.MockTransport(upstream))
    with TestClient(app) as c:
        yield c
