"""Tests for settings loaded from the environment."""

import os
from unittest.mock import patch

import pytest

from wabridge.config import Settings
from wabridge.infra.db import DEFAULT_DATABASE_URL


class TestSettingsFromEnv:
    def test_consumer_url_required(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DUMMY_AGENT_BASE_URL"):
                Settings.from_env()

    def test_defaults(self):
        with patch.dict(os.environ, {"DUMMY_AGENT_BASE_URL": "http://agent:9000/"}, clear=True):
            settings = Settings.from_env()

        assert settings.consumer_base_url == "http://agent:9000"
        assert settings.port == 8080
        assert settings.server_base_url == "http://localhost:8080"
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.display_timezone == "Asia/Kolkata"
        assert settings.history_context_limit == 10
        assert settings.consumer_http_timeout == 10.0
        assert settings.evolution_webhook_secret == ""

    def test_server_base_url_follows_port(self):
        env = {"DUMMY_AGENT_BASE_URL": "http://agent", "PORT": "9090"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        assert settings.server_base_url == "http://localhost:9090"

    def test_overrides(self):
        env = {
            "DUMMY_AGENT_BASE_URL": "http://agent",
            "SERVER_BASE_URL": "https://bridge.example.com/",
            "DATABASE_URL": "postgresql://u:p@db/wa",
            "DISPLAY_TIMEZONE": "UTC",
            "HISTORY_CONTEXT_LIMIT": "5",
            "CONSUMER_HTTP_TIMEOUT": "2.5",
            "PERSIST_WORKERS": "8",
            "PERSIST_QUEUE_SIZE": "50",
            "EVOLUTION_BASE_URL": "http://evo:8080",
            "EVOLUTION_INSTANCE": "bridge",
            "EVOLUTION_API_KEY": "key",
            "EVOLUTION_WEBHOOK_SECRET": "s3cret",
            "WA_OWN_JID": "5511900000000@s.whatsapp.net",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        assert settings.server_base_url == "https://bridge.example.com"
        assert settings.database_url == "postgresql://u:p@db/wa"
        assert settings.display_timezone == "UTC"
        assert settings.history_context_limit == 5
        assert settings.consumer_http_timeout == 2.5
        assert settings.persist_workers == 8
        assert settings.persist_queue_size == 50
        assert settings.evolution_instance == "bridge"
        assert settings.evolution_webhook_secret == "s3cret"
        assert settings.own_jid == "5511900000000@s.whatsapp.net"

    @pytest.mark.parametrize("name", ["PORT", "HISTORY_CONTEXT_LIMIT", "CONSUMER_HTTP_TIMEOUT"])
    def test_malformed_number_raises(self, name):
        env = {"DUMMY_AGENT_BASE_URL": "http://agent", name: "lots"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(RuntimeError, match=name):
                Settings.from_env()
