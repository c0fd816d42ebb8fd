import json
from contextlib import ExitStack

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import AliasChoices

from kiddoc.config import Settings
from kiddoc.main import create_app


def _settings_env_names() -> set[str]:
    names = set()
    for field_name, field in Settings.model_fields.items():
        names.add(field_name.upper())
        if isinstance(field.validation_alias, AliasChoices):
            names.update(str(choice).upper() for choice in field.validation_alias.choices)
    return names


MANAGED_ENV_VARS = tuple(sorted(_settings_env_names()))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in MANAGED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class RecordingTransport:
    """Fake upstream: replays queued responses in order and records every request.

    The last queued response is repeated once the queue is down to one entry.
    """

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected upstream call to {request.url}")
        template = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def url(self, index: int = 0) -> str:
        return str(self.requests[index].url)

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def make_settings(**overrides) -> Settings:
    values = {"enable_request_logging": False}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


@pytest.fixture
def make_client():
    """Build a started TestClient around a fresh app; extra kwargs become settings."""
    with ExitStack() as stack:

        def _make(upstream: RecordingTransport = None, with_http_client: bool = True, **settings) -> TestClient:
            upstream = upstream or RecordingTransport()
            app = create_app(make_settings(**settings), transport=upstream.transport, with_http_client=with_http_client)
            return stack.enter_context(TestClient(app))

        yield _make


@pytest.fixture
def anyio_backend():
    return "asyncio"
