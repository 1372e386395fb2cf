"""Tests for configuration loading, traits files and console logging."""

import os
from pathlib import Path

import pytest

from agentworld.config import AgentConfig
from agentworld.logging_utils import ConsoleLogger, colored, Color
from agentworld.traits import load_traits, parse_traits

CONFIG_VARS = (
    "OPENAI_API_KEY",
    "LLM_MODEL",
    "LLM_ENDPOINT",
    "LLM_TIMEOUT_SECONDS",
    "THREAD_MEMORY_SIZE",
    "AGENT_TRAITS_FILE",
    "AGENT_MEMORY_DB",
    "AGENT_NO_COLOR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate os.environ so load_dotenv cannot leak into other tests."""
    environ = {k: v for k, v in os.environ.items() if k not in CONFIG_VARS}
    monkeypatch.setattr(os, "environ", environ)
    return environ


def test_defaults_without_env(tmp_path):
    config = AgentConfig.from_env(tmp_path / "missing.env")

    assert config.host == "localhost"
    assert config.port == 8000
    assert config.api_key is None
    assert config.model == "gpt-4o"
    assert config.window_size == 5
    assert config.llm_timeout == 120.0
    assert config.traits_file == Path(".agentTraits")
    assert config.memory_db is None
    assert config.color is True


def test_env_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "OPENAI_API_KEY=sk-from-file\nTHREAD_MEMORY_SIZE=3\nAGENT_MEMORY_DB=memories.db\nAGENT_NO_COLOR=1\n"
    )

    config = AgentConfig.from_env(env_file)

    assert config.api_key == "sk-from-file"
    assert config.window_size == 3
    assert config.memory_db == Path("memories.db")
    assert config.color is False


def test_process_environment_wins_over_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("LLM_MODEL=from-file\n")
    monkeypatch.setenv("LLM_MODEL", "from-env")

    assert AgentConfig.from_env(env_file).model == "from-env"


def test_overrides_win_and_none_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

    config = AgentConfig.from_env(tmp_path / "none.env", port=9001, api_key=None, random_only=True)

    assert config.port == 9001
    assert config.api_key == "sk-env"
    assert config.random_only is True


def test_unknown_override_is_rejected(tmp_path):
    with pytest.raises(TypeError):
        AgentConfig.from_env(tmp_path / "none.env", colour=False)


def test_non_numeric_env_value_is_reported(tmp_path, monkeypatch):
    monkeypatch.setenv("THREAD_MEMORY_SIZE", "five")

    with pytest.raises(ValueError, match="THREAD_MEMORY_SIZE"):
        AgentConfig.from_env(tmp_path / "none.env")


@pytest.mark.parametrize(
    "changes",
    [
        {"port": 0},
        {"port": 70000},
        {"window_size": -1},
        {"llm_timeout": 0},
        {"read_timeout": -2.0},
        {"connect_attempts": 0},
    ],
)
def test_validate_rejects_bad_values(changes):
    config = AgentConfig(api_key="sk-test", **changes)

    with pytest.raises(ValueError):
        config.validate()


def test_validate_requires_key_unless_random_only():
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        AgentConfig().validate()

    AgentConfig(random_only=True).validate()
    AgentConfig(api_key="sk-test").validate()


def test_zero_window_is_valid():
    AgentConfig(api_key="sk-test", window_size=0).validate()


def test_display_never_shows_api_key():
    text = AgentConfig(api_key="sk-secret-value").display()

    assert "sk-secret-value" not in text
    assert "API key: set" in text


# ----------------------------------------------------------------------------
# Traits
# ----------------------------------------------------------------------------


def test_parse_traits_skips_blank_lines():
    assert parse_traits("Curious\n\n  Cautious around water  \n\n") == ["Curious", "Cautious around water"]


def test_load_traits_reads_file(tmp_path):
    path = tmp_path / ".agentTraits"
    path.write_text("Friendly\nLoves forests\n", encoding="utf-8")

    assert load_traits(path) == ["Friendly", "Loves forests"]


def test_missing_traits_file_means_no_traits(tmp_path, capsys):
    assert load_traits(tmp_path / "absent") == []
    assert "No agent traits file found" in capsys.readouterr().out


def test_unreadable_traits_file_means_no_traits(tmp_path):
    path = tmp_path / "binary"
    path.write_bytes(b"\xff\xfe\xfa")

    assert load_traits(path) == []


# ----------------------------------------------------------------------------
# Console logging
# ----------------------------------------------------------------------------


def test_debug_only_printed_when_verbose(capsys):
    ConsoleLogger("Quiet").debug("hidden")
    ConsoleLogger("Loud", verbose=True).debug("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "[Loud] [.] shown" in out


def test_tags_and_categories(capsys):
    logger = ConsoleLogger("Agent", color=False)
    logger.llm("calling model")
    logger.child("Network").error("refused")

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].endswith("[Agent] [AI] calling model")
    assert lines[1].endswith("[Network] [!] refused")
    assert "\033[" not in lines[0]


def test_colored_respects_enabled_flag():
    assert colored("x", Color.RED, enabled=False) == "x"
    assert colored("x", Color.RED, bold=True) == f"{Color.BOLD.value}{Color.RED.value}x{Color.RESET.value}"
