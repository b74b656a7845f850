"""Unit tests for environment-driven settings."""

from pydantic import ValidationError
import pytest

from pagefind_client.config import Settings
from pagefind_client.domain.model import RankingWeights


@pytest.mark.unit
class TestSettings:
    def test_loads_from_environment(self):
        settings = Settings(_env_file=None)

        assert settings.base_path == "https://docs.example.com/pagefind/"
        assert settings.excerpt_length == 30
        assert settings.max_concurrent_requests == 4
        assert settings.is_remote()

    def test_defaults(self, monkeypatch):
        for key in ("PAGEFIND_BASE_PATH", "PAGEFIND_EXCERPT_LENGTH", "PAGEFIND_MAX_CONCURRENT_REQUESTS"):
            monkeypatch.delenv(key)

        settings = Settings(_env_file=None)

        assert settings.base_path == ""
        assert settings.excerpt_length == 30
        assert settings.max_concurrent_requests == 16
        assert not settings.is_remote()

    def test_excerpt_length_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("PAGEFIND_EXCERPT_LENGTH", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_local_base_path_is_not_remote(self):
        assert not Settings(base_path="/srv/site/pagefind", _env_file=None).is_remote()

    def test_is_remote_checks_explicit_base_path(self):
        settings = Settings(base_path="/srv/site/pagefind", _env_file=None)

        assert settings.is_remote("http://docs.example.com/pagefind/")
        assert not settings.is_remote("file:///srv/site/pagefind/")
        assert not settings.is_remote("/srv/other/pagefind")

    def test_log_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAGEFIND_LOG_LEVEL", "debug")
        monkeypatch.setenv("PAGEFIND_LOG_JSON", "false")

        settings = Settings(_env_file=None)

        assert settings.log_level == "debug"
        assert settings.log_json is False

    def test_no_ranking_overrides_by_default(self):
        assert Settings(_env_file=None).ranking_weights() is None

    def test_ranking_overrides_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAGEFIND_RANKING_TERM_SATURATION", "1.6")
        monkeypatch.setenv("PAGEFIND_RANKING_PAGE_LENGTH", "0")

        weights = Settings(_env_file=None).ranking_weights()

        assert weights == RankingWeights(term_saturation=1.6, page_length=0.0)

    def test_negative_ranking_weight_rejected(self, monkeypatch):
        monkeypatch.setenv("PAGEFIND_RANKING_TERM_FREQUENCY", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
