"""
Unit tests for settings helpers.
"""
import pytest

from leadsync.core.config import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_cors_origins_split_on_commas(self):
        settings = make_settings(cors_origins="http://a.test, http://b.test,")

        assert settings.cors_origin_list == ["http://a.test", "http://b.test"]

    def test_explicit_conversations_url_wins(self):
        settings = make_settings(
            conversations_url="https://provider.test/conversations/",
            supabase_url="https://project.supabase.co",
        )

        assert settings.resolved_conversations_url == "https://provider.test/conversations"

    def test_conversations_url_defaults_to_edge_function(self):
        settings = make_settings(conversations_url=None, supabase_url="https://project.supabase.co/")

        assert settings.resolved_conversations_url == (
            "https://project.supabase.co/functions/v1/elevenlabs-conversations"
        )

    def test_missing_urls_raise(self):
        settings = make_settings(conversations_url=None, supabase_url=None)

        with pytest.raises(RuntimeError, match="CONVERSATIONS_URL"):
            settings.resolved_conversations_url

    def test_token_falls_back_to_service_key(self):
        settings = make_settings(conversations_token=None, supabase_service_key="service-key")

        assert settings.resolved_conversations_token == "service-key"
