"""Pytest configuration and fixtures."""

import os
from unittest.mock import patch

import pytest

# Settings are read when app.main is imported, which happens at collection
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("AI_GATEWAY_API_KEY", "test-gateway-key")
os.environ.setdefault("APP_ENV", "test")

from tests.fakes.fake_db import OTHER_TOKEN, OTHER_USER_ID, USER_ID, USER_TOKEN  # noqa: E402

# Every module that binds get_supabase at import time
SUPABASE_PATCH_TARGETS = (
    "app.db.business_plan_analyses.get_supabase",
    "app.db.agent_conversations.get_supabase",
    "app.db.storage.get_supabase",
    "app.db.supabase_client.get_supabase",
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["AI_GATEWAY_API_KEY"] = "test-gateway-key"
    os.environ["APP_ENV"] = "test"


@pytest.fixture
def fake_supabase():
    """In-memory Supabase patched into every db module."""
    from tests.fakes.fake_db import FakeSupabase

    fake = FakeSupabase()
    fake.tokens[USER_TOKEN] = str(USER_ID)
    fake.tokens[OTHER_TOKEN] = str(OTHER_USER_ID)

    patches = [patch(target, return_value=fake) for target in SUPABASE_PATCH_TARGETS]
    for p in patches:
        p.start()
    try:
        yield fake
    finally:
        for p in patches:
            p.stop()


@pytest.fixture
def fake_gateway():
    from tests.fakes.fake_llm import FakeGateway

    return FakeGateway()


@pytest.fixture
def client(fake_supabase, fake_gateway):
    """TestClient with the fake gateway injected; auth runs against fake tokens."""
    from fastapi.testclient import TestClient

    from app.core.llm import get_gateway
    from app.main import app

    app.dependency_overrides[get_gateway] = lambda: fake_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture(autouse=True)
def reset_chat_rate_limiter():
    from app.core.rate_limiter import get_chat_rate_limiter

    get_chat_rate_limiter().reset()
    yield
