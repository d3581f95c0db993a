"""Shared fixtures for unit tests."""

import os
from collections.abc import Generator

import pytest
from pytest_mock import MockerFixture, MockType

from member_service.auth.principal import Principal
from member_service.core.config import LogConfig, Settings, get_settings
from member_service.core.context import RequestContext
from member_service.core.error_context import _get_sensitive_fields
from member_service.infrastructure.database.models import Member


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide a real Settings object built from test environment values.

    Returns:
        Settings: Settings with test defaults.
    """
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[pytest.MonkeyPatch]:
    """Remove application env vars so every test starts from the defaults."""
    original_env = os.environ.copy()

    env_prefixes = [
        "APP_",
        "API_",
        "DEBUG",
        "DATABASE_CONFIG__",
        "AWS_CONFIG__",
        "SEARCH_CONFIG__",
        "BUS_CONFIG__",
        "AUTH_CONFIG__",
        "MEMBER_CONFIG__",
    ]
    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield monkeypatch

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def mock_get_settings(mocker: MockerFixture) -> MockType:
    """Patch get_settings in error_context with custom sensitive fields.

    Returns:
        MockType: Mock get_settings function.
    """
    mock_settings = mocker.Mock(spec=Settings)
    mock_log_config = mocker.Mock(spec=LogConfig)
    mock_log_config.sensitive_fields = ["custom_secret", "my_password", "api_token"]
    mock_settings.log_config = mock_log_config

    mock_get_settings_fn = mocker.patch("member_service.core.error_context.get_settings")
    mock_get_settings_fn.return_value = mock_settings

    _get_sensitive_fields.cache_clear()
    return mock_get_settings_fn


@pytest.fixture
def member() -> Member:
    """Provide an unsaved member profile."""
    return Member(
        user_id=40000001,
        handle="JDoe",
        handle_lower="jdoe",
        email="jdoe@example.com",
        first_name="John",
        last_name="Doe",
        description="Member description",
        addresses=[{"city": "Boston", "type": "HOME"}],
        tracks=["DEVELOP"],
    )


@pytest.fixture
def owner_principal() -> Principal:
    """The member described by the ``member`` fixture."""
    return Principal(user_id="40000001", handle="jdoe", roles=frozenset({"Topcoder User"}))


@pytest.fixture
def other_principal() -> Principal:
    """A regular user who is not the ``member`` fixture."""
    return Principal(user_id="40000002", handle="someone", roles=frozenset({"Topcoder User"}))


@pytest.fixture
def admin_principal() -> Principal:
    """An administrator."""
    return Principal(
        user_id="40000003",
        handle="boss",
        roles=frozenset({"Topcoder User", "Administrator"}),
    )


@pytest.fixture
def machine_principal() -> Principal:
    """A machine-to-machine client."""
    return Principal(
        user_id="client-id@clients",
        scopes=frozenset({"read:members", "update:members"}),
        is_machine=True,
    )
