"""Tests for configuration module."""

import importlib.util
import sys
import warnings

import pytest

from bioresolve.config import ResolverThresholds, Settings
from bioresolve.errors import LLMUnavailableError
from bioresolve.llm.client import ResolverClient, create_client
from bioresolve.llm.config import LLMConfig


def test_default_settings():
    """Test that default settings are valid."""
    s = Settings()
    assert s.search_timeout_seconds == 5.0
    assert s.plan_timeout_seconds == 14.0
    assert s.opentargets_url.endswith("/graphql")
    assert isinstance(s.thresholds, ResolverThresholds)


def test_default_thresholds():
    """Test the tuned cut points keep their calibrated values."""
    t = ResolverThresholds()
    assert t.clear_leader_min_score == 2.2
    assert t.clear_leader_margin == 1.4
    assert t.weak_single_candidate_score == 3.1
    assert t.weak_top_disease_score == 3.3
    assert t.skip_single_disease_score == 3.2


def test_threshold_env_override(monkeypatch):
    """Test nested threshold override through the environment."""
    monkeypatch.setenv("BIORESOLVE_THRESHOLDS__CLEAR_LEADER_MARGIN", "1.2")
    s = Settings()
    assert s.thresholds.clear_leader_margin == 1.2
    assert s.thresholds.clear_leader_min_score == 2.2


def test_bundle_cache_limits():
    """Test that bundle cache settings are capped."""
    s = Settings(cache_ttl_seconds=600, cache_max_entries=5000)
    assert s.bundle_cache_ttl_seconds == 120.0
    assert s.bundle_cache_max_entries == 500

    s = Settings(cache_ttl_seconds=30, cache_max_entries=10)
    assert s.bundle_cache_ttl_seconds == 30
    assert s.bundle_cache_max_entries == 10


class TestLLMConfig:
    """Tests for the LLM configuration dataclass."""

    def test_disabled_without_key(self, monkeypatch):
        """Test that a missing API key disables the LLM."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config = LLMConfig()
        assert not config.enabled
        assert any("OPENAI_API_KEY" in e for e in config.validate())
        assert create_client(config) is None

    def test_env_overrides(self, monkeypatch):
        """Test that timeouts and models come from the environment."""
        monkeypatch.setenv("BIORESOLVE_RESOLUTION_TIMEOUT", "3")
        monkeypatch.setenv("OPENAI_SMALL_MODEL", "local-model")
        config = LLMConfig(api_key="k")
        assert config.enabled
        assert config.resolution_timeout_seconds == 3.0
        assert config.small_model == "local-model"
        assert config.validate() == []

    def test_summary(self):
        """Test configuration summary text."""
        config = LLMConfig(api_key="k", base_url="http://127.0.0.1:8081/v1")
        summary = config.summary()
        assert "127.0.0.1:8081" in summary
        assert "enabled=True" in summary

    def test_client_requires_key(self):
        """Test that constructing a client without a key fails loudly."""
        with pytest.raises(LLMUnavailableError):
            ResolverClient(LLMConfig(api_key=None))

    def test_client_import_has_no_deprecation_warnings(self, monkeypatch):
        """Test that the client module imports instructor without deprecated paths."""
        monkeypatch.delitem(sys.modules, "instructor.exceptions", raising=False)
        spec = importlib.util.find_spec("bioresolve.llm.client")
        module = importlib.util.module_from_spec(spec)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            spec.loader.exec_module(module)
        assert not [w for w in caught if issubclass(w.category, DeprecationWarning) and "instructor" in str(w.message)]
