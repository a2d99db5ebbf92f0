"""Unit tests for the settings model and its grouped views."""

import os

import pytest

from transmute_ai.core.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("TRANSMUTE_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = Settings(_env_file=None)

    assert s.server_port == 8000
    assert s.database_url is None
    assert s.capabilities.max_retries == 3
    assert s.capabilities.timeout_seconds == 30.0
    assert s.providers.analyzer == "analyzer"
    assert s.hooks.allow_shell is False
    assert s.validation.required_files == ["README.md"]


def test_environment_overrides_flow_into_grouped_views(clean_env):
    clean_env.setenv("TRANSMUTE_CAPABILITY_MAX_RETRIES", "5")
    clean_env.setenv("TRANSMUTE_CAPABILITIES_FILE", "/etc/transmute/capabilities.json")
    clean_env.setenv("TRANSMUTE_REPOSITORY_SERVER", "github")
    clean_env.setenv("TRANSMUTE_HOOKS_ALLOW_SHELL", "true")
    clean_env.setenv("TRANSMUTE_REQUIRED_FILES", '["README.md", "package.json"]')

    s = Settings(_env_file=None)

    assert s.capabilities.max_retries == 5
    assert s.capabilities.config_file == "/etc/transmute/capabilities.json"
    assert s.providers.repository == "github"
    assert s.hooks.allow_shell is True
    assert s.validation.required_files == ["README.md", "package.json"]


def test_constructor_accepts_field_names(clean_env):
    s = Settings(_env_file=None, notify_channel="#builds", event_queue_size=8)

    assert s.hooks.default_channel == "#builds"
    assert s.event_queue_size == 8
