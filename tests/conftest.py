# tests/conftest.py
"""
Shared fixtures: an app wired with in-memory collaborators and a TestClient
talking HTTPS, so Secure cookies round-trip like in a browser.
"""

import re
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from snippetbox.core.config import Settings
from snippetbox.core.security.session import Session
from snippetbox.main import create_app
from snippetbox.models.request_context import RequestContext
from snippetbox.models.snippets import MemorySnippetModel
from snippetbox.models.users import MemoryUserModel
from snippetbox.services.session_store import MemorySessionStore

CSRF_TOKEN_RX = re.compile(r"<input type='hidden' name='csrf_token' value='(.+?)'>")

TEST_PASSWORD = "pa$$word123"


def extract_csrf_token(body: str) -> str:
    match = CSRF_TOKEN_RX.search(body)
    assert match, "no CSRF token in page"
    return match.group(1)


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: Optional[dict] = None,
    body: bytes = b"",
) -> Request:
    """A bare Starlette request for unit-testing handlers and layers"""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "server": ("testserver", 443),
        "client": ("127.0.0.1", 50000),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
    }
    return Request(scope, receive)


def make_context(values: Optional[dict] = None, **kwargs) -> RequestContext:
    """A context carrying a session with the given values"""
    from datetime import datetime, timedelta, timezone

    session = Session("tok", values or {}, datetime.now(timezone.utc) + timedelta(hours=1))
    return RequestContext(session=session, **kwargs)


def signup_and_login(client: TestClient, email: str = "alice@example.com") -> None:
    """Create an account and log in through the real forms"""
    page = client.get("/user/signup")
    client.post(
        "/user/signup",
        data={
            "name": "Alice",
            "email": email,
            "password": TEST_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        },
    )

    page = client.get("/user/login")
    response = client.post(
        "/user/login",
        data={"email": email, "password": TEST_PASSWORD, "csrf_token": extract_csrf_token(page.text)},
        follow_redirects=False,
    )
    assert response.status_code == 303


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from any .env file"""
    return Settings(_env_file=None, BCRYPT_ROUNDS=4, LOG_DIR=str(tmp_path), COOKIE_SECURE=True)


@pytest.fixture
def session_store():
    return MemorySessionStore()


@pytest.fixture
def users():
    return MemoryUserModel(bcrypt_rounds=4)


@pytest.fixture
def snippets():
    return MemorySnippetModel()


@pytest.fixture
def app(test_settings, users, snippets, session_store):
    return create_app(test_settings, users=users, snippets=snippets, session_store=session_store)


@pytest.fixture
def client(app):
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
