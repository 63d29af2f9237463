"""Pytest configuration and fixtures."""

import os

import pytest

# Set before app modules resolve settings at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("COMPAT_ENGINE_ENV", "test")


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ADMIN_API_KEY"] = "test-admin-key"
    os.environ["COMPAT_ENGINE_ENV"] = "test"


@pytest.fixture
def fake_gateway():
    """In-memory gateway seeded with the standard compat fixtures."""
    from tests.fakes.fake_gateway import FakeCompatGateway

    return FakeCompatGateway()
