"""
Global test configuration: environment isolation, keys and a fake Google.
"""

from collections.abc import Callable
from contextlib import suppress
import json
import logging
import os
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import httpx
import pytest

from docsheet.config import DocsheetSettings
from docsheet.constants import TOKEN_URI

_ISOLATED_PREFIXES = ("DOCSHEET_", "GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CLOUD_")


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_docsheet_env(request, monkeypatch):
    """Ensure a clean DOCSHEET_* / Google environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the environment.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith(_ISOLATED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    # Telemetry toggles
    monkeypatch.delenv("DEBUG", raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Front-door tests against a faked Google endpoint",
        "allow_dotenv: Permit .env loading for this test",
        "allow_env_pollution: Keep the real environment for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Credential Fixtures ---


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """One RSA key per session; generation is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_info(private_key_pem) -> dict[str, Any]:
    """A service-account key file as Google issues it (minus unused fields)."""
    return {
        "type": "service_account",
        "project_id": "exam-sheets",
        "private_key_id": "0123456789abcdef",
        "private_key": private_key_pem,
        "client_email": "extractor@exam-sheets.iam.gserviceaccount.com",
        "token_uri": TOKEN_URI,
    }


@pytest.fixture
def service_account_json(service_account_info) -> str:
    return json.dumps(service_account_info)


@pytest.fixture
def settings(service_account_json) -> DocsheetSettings:
    return DocsheetSettings(credentials_json=service_account_json)


# --- Fake Google endpoints ---


def generation_body(
    text: str,
    *,
    finish_reason: str = "STOP",
    usage: tuple[int, int] = (120, 45),
) -> dict[str, Any]:
    """A minimal successful ``generateContent`` response body."""
    prompt_tokens, output_tokens = usage
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": finish_reason,
            }
        ],
        "usageMetadata": {
            "promptTokenCount": prompt_tokens,
            "candidatesTokenCount": output_tokens,
            "totalTokenCount": prompt_tokens + output_tokens,
        },
        "modelVersion": "gemini-2.5-flash-lite",
    }


class FakeGoogle:
    """Routes the OAuth2 token endpoint and Vertex AI through one transport.

    Responses are rebuilt per request from ``(status, body)`` pairs; a
    ``str`` body is sent as raw text.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_reply: tuple[int, Any] = (
            200,
            {
                "access_token": "ya29.fake-token",
                "expires_in": 3599,
                "token_type": "Bearer",
            },
        )
        self.generate_reply: tuple[int, Any] = (200, generation_body("[]"))

    def reply_with(self, text: str, **kwargs: Any) -> None:
        self.generate_reply = (200, generation_body(text, **kwargs))

    def _respond(self, reply: tuple[int, Any]) -> httpx.Response:
        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com":
            return self._respond(self.token_reply)
        if request.url.path.endswith(":generateContent"):
            return self._respond(self.generate_reply)
        return httpx.Response(404, json={"error": {"message": "no such route"}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "oauth2.googleapis.com"]

    @property
    def generate_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(":generateContent")]

    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.generate_requests[-1].content)


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def make_generation_body() -> Callable[..., dict[str, Any]]:
    return generation_body
