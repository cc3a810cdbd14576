import json

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_relay.config import Settings
from chat_relay.main import create_app

UPSTREAM_URL = "https://upstream.test/v1/chat/completions"
API_KEY = "sk-test-key"
PERSONA = "You are a test persona.\n\nAnswer briefly."


class FakeUpstream:
    """Records outbound calls and answers them with a canned response."""

    def __init__(self) -> None:
        self.requests = []
        self.status_code = 200
        self.body = {"choices": [{"message": {"role": "assistant", "content": "hello"}}]}
        self.error = None

    def reply(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def fail_with(self, error_cls, message="boom"):
        self.error = (error_cls, message)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            error_cls, message = self.error
            raise error_cls(message, request=request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def last_payload(self):
        return json.loads(self.requests[-1].content)


def make_settings(**overrides) -> Settings:
    values = {
        "litellm_api_key": API_KEY,
        "upstream_url": UPSTREAM_URL,
        "upstream_model": None,
        "upstream_timeout_seconds": 5.0,
        "system_prompt": PERSONA,
        "cors_origins": [],
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def transport(upstream):
    return httpx.MockTransport(upstream.handler)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client(settings, transport):
    return TestClient(create_app(settings, transport=transport))
