"""Fixtures for FastAPI application and settings."""

import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from starlette.testclient import TestClient as StarletteTestClient

# Ensure tests can import from parent directory
THIS_DIR = Path(__file__).parent
TESTS_DIR = THIS_DIR.parent
TESTS_DIR_PARENT = (TESTS_DIR / "..").resolve()
sys.path.insert(0, str(TESTS_DIR_PARENT))

from tests.fixtures.directory_fixtures import DIRECTORY_URL  # noqa: E402

# Default headers sent by the admin console
DEFAULT_TEST_HEADERS = {
    "X-View-ID": "test-console",
    "X-WEBAUTH-USER": "admin@corp.test",
}


class ConsoleTestClient(StarletteTestClient):
    """Test client that automatically includes the console view headers."""

    def __init__(self, *args: Any, default_headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> None:
        """Initialize with default headers."""
        super().__init__(*args, **kwargs)
        self._default_headers = default_headers or DEFAULT_TEST_HEADERS

    def _merge_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Merge default headers with provided headers."""
        merged = dict(self._default_headers)
        if headers:
            merged.update(headers)
        return merged

    def get(self, url: str, **kwargs: Any) -> Any:
        """GET request with default headers."""
        kwargs["headers"] = self._merge_headers(kwargs.get("headers"))
        return super().get(url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        """POST request with default headers."""
        kwargs["headers"] = self._merge_headers(kwargs.get("headers"))
        return super().post(url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Any:
        """DELETE request with default headers."""
        kwargs["headers"] = self._merge_headers(kwargs.get("headers"))
        return super().delete(url, **kwargs)


@pytest.fixture
def mock_settings():
    """Settings of a non-enterprise build with in-memory storage."""
    from idsync_api.settings import Settings

    with patch.dict(
        "os.environ",
        {
            "DIRECTORY_URL": DIRECTORY_URL,
            "DIRECTORY_API_TOKEN": "gateway-test-token",
            "ENTERPRISE_BUILD": "false",
            "DOMAIN_DB_CONNECTION_STRING": "",
            "LOG_LEVEL": "DEBUG",
        },
    ):
        settings = Settings()
        yield settings


@pytest.fixture
def app(mock_settings, directory_client, session_store, user_store):
    """FastAPI test application wired to the fake directory gateway and in-memory stores."""
    from idsync_api.main import create_app

    app = create_app(
        settings=mock_settings,
        directory_client=directory_client,
        session_store=session_store,
        user_store=user_store,
    )
    yield app


@pytest.fixture
def client(app):
    """Test client sending the console view headers."""
    with ConsoleTestClient(app) as test_client:
        yield test_client


@pytest.fixture
def plain_client(app):
    """Test client without any default headers."""
    with TestClient(app) as test_client:
        yield test_client
