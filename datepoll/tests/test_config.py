"""Tests for centralized configuration."""

import os
from unittest.mock import patch


class TestPostgresSettings:
    def test_defaults(self):
        from datepoll.config import PostgresSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = PostgresSettings()
            assert settings.host == "postgres"
            assert settings.database == "datepoll"
            assert settings.pool_min_size == 2

    def test_dsn_from_environment(self):
        from datepoll.config import PostgresSettings

        env = {
            "POSTGRES_HOST": "dbhost",
            "POSTGRES_PORT": "5433",
            "POSTGRES_USER": "polls",
            "POSTGRES_PASSWORD": "secret",
            "POSTGRES_DB": "pollsdb",
        }
        with patch.dict(os.environ, env, clear=True):
            dsn = PostgresSettings().get_dsn()
            assert "host=dbhost" in dsn
            assert "port=5433" in dsn
            assert "user=polls" in dsn
            assert "dbname=pollsdb" in dsn


class TestFeatureSettings:
    def test_defaults(self):
        from datepoll.config import FeatureSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = FeatureSettings()
            assert settings.db is True
            assert settings.participation_updates is True

    def test_flags_from_environment(self):
        from datepoll.config import FeatureSettings

        env = {"ENABLE_DB": "0", "FEATURE_PARTICIPATION_UPDATES": "no"}
        with patch.dict(os.environ, env, clear=True):
            settings = FeatureSettings()
            assert settings.db is False
            assert settings.participation_updates is False


class TestVotingSettings:
    def test_defaults(self):
        from datepoll.config import VotingSettings

        with patch.dict(os.environ, {}, clear=True):
            settings = VotingSettings()
            assert settings.debounce_sec == 0.5
            assert settings.min_lookup_chars == 2
            assert settings.slug_length == 12

    def test_share_url(self):
        from datepoll.config import VotingSettings

        with patch.dict(os.environ, {"VOTING_PUBLIC_BASE_URL": "https://polls.example.com/"}, clear=True):
            assert VotingSettings().share_url("abc") == "https://polls.example.com/e/abc"


class TestCorsSettings:
    def test_origins_split(self):
        from datepoll.config import CorsSettings

        with patch.dict(os.environ, {"CORS_ORIGINS": "https://a.test, https://b.test"}, clear=True):
            settings = CorsSettings()
            assert settings.origins == ["https://a.test", "https://b.test"]
            assert settings.allow_credentials is True

    def test_wildcard_disables_credentials(self):
        from datepoll.config import CorsSettings

        with patch.dict(os.environ, {"CORS_ORIGINS": "*"}, clear=True):
            assert CorsSettings().allow_credentials is False


class TestGetSettings:
    def test_cached(self):
        from datepoll.config import get_settings

        assert get_settings() is get_settings()

    def test_clear_cache(self):
        from datepoll.config import clear_settings_cache, get_settings

        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
