from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from ollama_chat.api.server import create_app
from ollama_chat.auth.crud import create_user
from ollama_chat.config import Config
from ollama_chat.db import connect, init_db


SECRET = "test-secret"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or ("" if payload is None else str(payload))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeOllama:
    """Stands in for requests.post/get inside ollama_chat.ollama.client."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.generate_response: FakeResponse | Exception = FakeResponse(200, {"response": "Hello from the model"})
        self.tags_response: FakeResponse | Exception = FakeResponse(
            200, {"models": [{"name": "llama2:latest"}, {"name": "mistral:7b"}]}
        )

    def post(self, url: str, json: Any = None, timeout: Any = None) -> FakeResponse:
        self.calls.append({"method": "POST", "url": url, "json": json, "timeout": timeout})
        if isinstance(self.generate_response, Exception):
            raise self.generate_response
        return self.generate_response

    def get(self, url: str, timeout: Any = None) -> FakeResponse:
        self.calls.append({"method": "GET", "url": url, "timeout": timeout})
        if isinstance(self.tags_response, Exception):
            raise self.tags_response
        return self.tags_response


@pytest.fixture
def cfg(tmp_path) -> Config:
    c = Config(
        DB_DSN=str(tmp_path / "chat.sqlite"),
        AUTH_JWT_SECRET=SECRET,
        OLLAMA_API_URL="http://ollama.test:11434",
    )
    init_db(c.DB_DSN)
    return c


@pytest.fixture
def ollama(monkeypatch) -> FakeOllama:
    fake = FakeOllama()
    monkeypatch.setattr("ollama_chat.ollama.client.requests.post", fake.post)
    monkeypatch.setattr("ollama_chat.ollama.client.requests.get", fake.get)
    return fake


@pytest.fixture
def client(cfg, ollama):
    with TestClient(create_app(cfg)) as c:
        yield c


def register(client: TestClient, username: str, password: str = "pw-123456") -> Dict[str, Any]:
    r = client.post("/api/auth/register", json={"username": username, "password": password})
    assert r.status_code == 201, r.text
    return r.json()


def make_user(cfg: Config, username: str, role: str, password: str = "pw-123456") -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return create_user(conn, username=username, password=password, role=role)


def login(client: TestClient, username: str, password: str = "pw-123456") -> str:
    r = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def auth(token: str) -> Dict[str, str]:
    return {"x-auth-token": token}
