"""
Tests for environment-driven configuration.
"""
import pytest

from canvas_agent import config


@pytest.fixture
def restore_config(monkeypatch):
    # load_environment_config rewrites module globals; put them back afterwards
    for name in ("DEBUG_ENABLED", "VERBOSE_LOGGING", "LOG_LEVEL", "DEFAULT_MODEL",
                 "MAX_TOOL_ROUNDS", "BRIDGE_TIMEOUT_MS", "EXECUTION_MODE"):
        monkeypatch.setattr(config, name, getattr(config, name))
    for var in ("DEBUG", "VERBOSE", "CANVAS_AGENT_MODEL", "CANVAS_AGENT_MAX_TOOL_ROUNDS",
                "CANVAS_AGENT_BRIDGE_TIMEOUT_MS", "CANVAS_AGENT_EXECUTION_MODE"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_defaults(restore_config):
    config.load_environment_config()
    assert config.BRIDGE_TIMEOUT_MS == 30000
    assert config.EXECUTION_MODE == config.ExecutionContextMode.LOCAL
    assert config.get_agent_config().max_tool_rounds == config.MAX_TOOL_ROUNDS


def test_environment_overrides(restore_config):
    restore_config.setenv("DEBUG", "true")
    restore_config.setenv("CANVAS_AGENT_MODEL", "some-model")
    restore_config.setenv("CANVAS_AGENT_MAX_TOOL_ROUNDS", "7")
    restore_config.setenv("CANVAS_AGENT_BRIDGE_TIMEOUT_MS", "1500")
    restore_config.setenv("CANVAS_AGENT_EXECUTION_MODE", "BRIDGED")

    config.load_environment_config()

    assert config.LOG_LEVEL == "DEBUG"
    assert config.get_model_config().model == "some-model"
    assert config.get_agent_config().max_tool_rounds == 7
    assert config.get_bridge_config().timeout_ms == 1500
    assert config.EXECUTION_MODE == config.ExecutionContextMode.BRIDGED


@pytest.mark.parametrize("raw", ["abc", "0", "-5", " "])
def test_bad_integers_keep_default(restore_config, raw):
    restore_config.setenv("CANVAS_AGENT_BRIDGE_TIMEOUT_MS", raw)
    config.load_environment_config()
    assert config.BRIDGE_TIMEOUT_MS == 30000


def test_unknown_mode_is_ignored(restore_config):
    restore_config.setenv("CANVAS_AGENT_EXECUTION_MODE", "sideways")
    config.load_environment_config()
    assert config.EXECUTION_MODE == config.ExecutionContextMode.LOCAL


def test_api_key_from_environment(restore_config):
    restore_config.setenv(config.ANTHROPIC_API_KEY_ENV, "sk-test")
    assert config.get_model_config().api_key == "sk-test"
