import pytest

from chat_gateway.config import (
    DEFAULT_MODEL,
    describe_config,
    load_config,
    mask_api_key,
    mask_assistant_id,
    parse_vector_store_ids,
)
from chat_gateway.errors import ConfigurationError
from chat_gateway.models import AUGMENTED, DIRECT, THREADED


def test_defaults_from_empty_env():
    config = load_config({})
    assert config.api_key == ""
    assert config.model == DEFAULT_MODEL
    assert config.backend_mode == DIRECT
    assert config.vector_store_ids == ()
    assert config.force_mode is False
    assert config.poll_max_attempts == 30
    assert config.poll_interval_s == 1.0


def test_vector_store_ids_are_trimmed_and_ordered():
    assert parse_vector_store_ids(" vs_b , ,vs_a,, vs_c ") == ("vs_b", "vs_a", "vs_c")
    assert parse_vector_store_ids("") == ()
    assert parse_vector_store_ids(None) == ()


@pytest.mark.parametrize(
    "env, expected",
    [
        ({"OPENAI_VECTOR_STORE_IDS": "vs_1", "OPENAI_ASSISTANT_ID": "asst_1"}, AUGMENTED),
        ({"OPENAI_ASSISTANT_ID": "asst_1"}, THREADED),
        ({"OPENAI_VECTOR_STORE_IDS": " , "}, DIRECT),
        ({"OPENAI_BACKEND_MODE": "Direct", "OPENAI_VECTOR_STORE_IDS": "vs_1"}, DIRECT),
    ],
)
def test_backend_mode_resolution(env, expected):
    assert load_config(env).backend_mode == expected


def test_unknown_backend_mode_is_rejected():
    with pytest.raises(ConfigurationError):
        load_config({"OPENAI_BACKEND_MODE": "streaming"})


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("Yes", True), ("off", False), ("", False)])
def test_force_mode_flag(raw, expected):
    assert load_config({"OPENAI_FORCE_MODE": raw}).force_mode is expected


def test_config_is_read_fresh_each_call(monkeypatch):
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    assert load_config().model == "gpt-4o"
    monkeypatch.delenv("OPENAI_MODEL")
    assert load_config().model == DEFAULT_MODEL


def test_masking():
    assert mask_api_key(None) == "Not configured"
    assert mask_api_key("short") == "Invalid key format"
    assert mask_api_key("sk-proj-abcdefghijklmnop") == "sk-proj...mnop"
    assert mask_assistant_id("bad") == "Invalid format"
    assert mask_assistant_id("asst_0123456789wxyz") == "asst_01234...wxyz"


def test_describe_config_never_leaks_the_key():
    config = load_config({"OPENAI_API_KEY": "sk-proj-abcdefghijklmnop", "OPENAI_VECTOR_STORE_IDS": "vs_1234567890"})
    summary = describe_config(config)
    assert summary["is_configured"] is True
    assert summary["has_vector_stores"] is True
    assert summary["api_mode"] == AUGMENTED
    assert "sk-proj-abcdefghijklmnop" not in str(summary)
    assert summary["details"]["vector_stores"] == ["vs_12345..."]
