import pytest
from pydantic import ValidationError

from askcat import config as config_module
from askcat.config import (
    AskCatConfig,
    ProviderConfig,
    configure,
    get_config,
    load_config,
    reload_config,
)
from askcat.providers import Provider

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"


def test_defaults_point_at_local_ollama():
    config = AskCatConfig()
    assert config.provider.url == "http://localhost:11434/api/generate"
    assert config.provider.model == "llama3.2:3b"
    assert config.provider.system_prompt == ""
    assert config.provider.kind is Provider.GENERATION
    assert config.keymaps.ask == "<leader>t"
    assert config.keymaps.cancel == "<leader>tt"
    assert config.window.height == 8
    assert config.curl == "curl"


def test_flat_options_are_lifted_into_provider():
    config = AskCatConfig(model="deepseek-r1:8b", system_prompt="Be direct.")
    assert config.provider.model == "deepseek-r1:8b"
    assert config.provider.system_prompt == "Be direct."


def test_legacy_ollama_url_key():
    config = AskCatConfig(ollama_url="http://100.64.0.7:11434/api/generate")
    assert config.provider.url == "http://100.64.0.7:11434/api/generate"


def test_flat_keys_override_nested_provider_table():
    config = AskCatConfig(provider={"model": "a", "url": GEMINI_URL}, model="b")
    assert config.provider.model == "b"
    assert config.provider.url == GEMINI_URL


def test_url_must_be_http():
    with pytest.raises(ValidationError, match="http"):
        ProviderConfig(url="localhost:11434")


def test_window_height_must_be_positive():
    with pytest.raises(ValidationError):
        AskCatConfig(window={"height": 0})


def test_config_is_immutable():
    config = ProviderConfig()
    with pytest.raises(ValidationError):
        config.model = "other"


def test_api_key_env_fallback_for_chat(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    assert ProviderConfig(url=GEMINI_URL).resolved_api_key() == "env-key"
    assert ProviderConfig(url=GEMINI_URL, api_key="explicit").resolved_api_key() == "explicit"


def test_no_env_fallback_for_generation(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    assert ProviderConfig().resolved_api_key() is None


def test_get_config_before_configure_raises():
    with pytest.raises(RuntimeError):
        get_config()


def test_configure_caches_config():
    config = configure({"model": "qwen2.5:7b"})
    assert get_config() is config
    assert config.provider.model == "qwen2.5:7b"


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "askcat.yaml"
    path.write_text(
        "provider:\n"
        f"  url: {GEMINI_URL}\n"
        "  system_prompt: |\n"
        "    You are a helpful coding assistant.\n"
        "window:\n"
        "  height: 12\n"
        "log_level: DEBUG\n"
    )

    config = load_config(str(path))

    assert config.provider.kind is Provider.CHAT
    assert config.provider.system_prompt == "You are a helpful coding assistant.\n"
    assert config.window.height == 12
    assert config.window.margin == 2
    assert config.log_level == "DEBUG"
    assert get_config() is config


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "askcat.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_load_config_rejects_malformed_yaml(tmp_path):
    path = tmp_path / "askcat.yaml"
    path.write_text("provider: [unclosed\n")
    with pytest.raises(ValueError, match="not valid YAML"):
        load_config(str(path))


def test_editor_options_override_file_and_survive_reload(tmp_path):
    path = tmp_path / "askcat.yaml"
    path.write_text("model: from-file\nwindow:\n  height: 10\n  margin: 4\n")

    config = configure({"config_file": str(path), "window": {"height": 5}})
    assert config.provider.model == "from-file"
    assert config.window.height == 5
    assert config.window.margin == 4

    path.write_text("model: edited\nwindow:\n  height: 20\n")
    reloaded = reload_config()
    assert reloaded.provider.model == "edited"
    assert reloaded.window.height == 5
    assert get_config() is reloaded


def test_reload_without_file_raises():
    configure({"model": "x"})
    with pytest.raises(RuntimeError):
        reload_config()


def test_reload_after_load_config(tmp_path):
    path = tmp_path / "askcat.yaml"
    path.write_text("model: one\n")
    load_config(str(path))
    path.write_text("model: two\n")

    assert reload_config().provider.model == "two"
    assert config_module._config_path == str(path)
