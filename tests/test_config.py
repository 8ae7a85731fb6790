"""
Tests for engine configuration.
"""

import pytest

from rumtpl import EngineConfig, InvalidArgument, Template, RecursionLimitExceeded
from rumtpl import Collaborators, DictLoader
from rumtpl.config import DEFAULT_MAX_PARTIAL_DEPTH


class TestEngineConfig:
    """Test EngineConfig defaults and environment parsing."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.max_partial_depth == DEFAULT_MAX_PARTIAL_DEPTH == 32
        assert config.autoescape is True
        assert config.encoding == "utf-8"
        assert config.template_root is None

    def test_negative_depth_rejected(self):
        with pytest.raises(InvalidArgument):
            EngineConfig(max_partial_depth=-1)

    def test_from_env_empty(self):
        assert EngineConfig.from_env({}) == EngineConfig()

    def test_from_env_values(self):
        config = EngineConfig.from_env({
            "RUMTPL_MAX_PARTIAL_DEPTH": "4",
            "RUMTPL_AUTOESCAPE": "off",
            "RUMTPL_ENCODING": "latin-1",
            "RUMTPL_TEMPLATE_ROOT": "/srv/views",
        })
        assert config.max_partial_depth == 4
        assert config.autoescape is False
        assert config.encoding == "latin-1"
        assert config.template_root == "/srv/views"

    def test_from_process_environment(self, monkeypatch):
        monkeypatch.setenv("RUMTPL_MAX_PARTIAL_DEPTH", "7")
        monkeypatch.delenv("RUMTPL_AUTOESCAPE", raising=False)
        config = EngineConfig.from_env()
        assert config.max_partial_depth == 7
        assert config.autoescape is True

    @pytest.mark.parametrize("env", [
        {"RUMTPL_MAX_PARTIAL_DEPTH": "deep"},
        {"RUMTPL_AUTOESCAPE": "maybe"},
    ])
    def test_from_env_invalid(self, env):
        with pytest.raises(InvalidArgument):
            EngineConfig.from_env(env)

    def test_zero_depth_disables_partials(self):
        collab = Collaborators(loader=DictLoader({"p": "x"}))
        page = Template.from_source("<%% 'p' %>", collaborators=collab,
                                    config=EngineConfig(max_partial_depth=0))
        with pytest.raises(RecursionLimitExceeded):
            page.render()
