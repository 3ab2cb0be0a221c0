"""
Shared test configuration and fixtures for the account linking flow.

The provider's token endpoint is scripted with httpx.MockTransport, the
identity provider with a dictionary-backed fake, and the document store
with a recording in-memory store.
"""

import copy
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from starlette.testclient import TestClient

from oauth_link.config import Settings
from oauth_link.errors import IdentityVerificationError
from oauth_link.identity.verifier import reset_identity_verifier
from oauth_link.main import create_app
from oauth_link.oauth.token_client import TokenExchangeClient
from oauth_link.store.memory import InMemoryCredentialStore

SESSION_SECRET = "test-session-secret"
CLIENT_ID = "client-123"
REDIRECT_URI = "https://app.example.com/auth/callback"

SUCCESS_TOKENS = {
    "access_token": "AT1",
    "refresh_token": "RT1",
    "token_type": "bearer",
    "expires_in": 3600,
}


class ScriptedTokenEndpoint:
    """Callable for httpx.MockTransport that records requests and replays a response."""

    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self.body = SUCCESS_TOKENS if body is None else body
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def call_count(self) -> int:
        return len(self.requests)


class FakeIdentityVerifier:
    """Identity verifier that knows a fixed set of tokens."""

    def __init__(self, subjects: Optional[Dict[str, str]] = None):
        self.subjects = subjects or {"good-id-token": "u123"}
        self.calls: List[str] = []

    async def verify_identity(self, token: str) -> str:
        self.calls.append(token)
        if token not in self.subjects:
            raise IdentityVerificationError("INVALID_TOKEN")
        return self.subjects[token]


class RecordingStore(InMemoryCredentialStore):
    """In-memory store that also keeps every upsert call."""

    def __init__(self):
        super().__init__()
        self.upserts: List[tuple] = []

    async def upsert(self, key: str, fields: Dict[str, Any]) -> None:
        self.upserts.append((key, copy.deepcopy(fields)))
        await super().upsert(key, fields)


class FailingStore:
    """Store whose writes always fail."""

    def __init__(self):
        self.attempts = 0

    async def upsert(self, key: str, fields: Dict[str, Any]) -> None:
        self.attempts += 1
        raise ConnectionError("store unavailable")

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        return None


def make_settings(**overrides: Any) -> Settings:
    values = {
        "oauth_client_id": CLIENT_ID,
        "oauth_redirect_uri": REDIRECT_URI,
        "session_secret": SESSION_SECRET,
        "identity_jwks_url": "",
        "redis_url": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def cookie_header(settings: Settings, verifier: Optional[str], state: Optional[str]) -> str:
    parts = []
    if verifier is not None:
        parts.append(f"{settings.verifier_cookie_name}={verifier}")
    if state is not None:
        parts.append(f"{settings.state_cookie_name}={state}")
    return "; ".join(parts)


def set_cookies(response: httpx.Response) -> Dict[str, str]:
    """Map cookie name -> full Set-Cookie header value."""
    result = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        result[name] = header
    return result


def cookie_value(header: str) -> str:
    return header.split(";", 1)[0].split("=", 1)[1]


def json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except json.JSONDecodeError:
        return response.text


@pytest.fixture(autouse=True)
def _reset_identity_singleton():
    reset_identity_verifier()
    yield
    reset_identity_verifier()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def token_endpoint() -> ScriptedTokenEndpoint:
    return ScriptedTokenEndpoint()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def identity_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture
def make_client(token_endpoint, store, identity_verifier):
    """Factory building a TestClient around create_app with scripted collaborators."""
    clients = []

    def _make(settings: Settings, credential_store=None, verifier=identity_verifier):
        token_client = TokenExchangeClient(
            settings.provider, transport=httpx.MockTransport(token_endpoint)
        )
        app = create_app(
            settings=settings,
            token_client=token_client,
            credential_store=store if credential_store is None else credential_store,
            identity_verifier=verifier,
        )
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings) -> TestClient:
    return make_client(settings)
