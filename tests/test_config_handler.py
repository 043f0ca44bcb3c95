# tests/test_config_handler.py

import os
import json
from unittest.mock import mock_open, patch

from aliasman import config_handler

# --- Test Cases for load_jsonc_file ---

@patch("os.path.exists", return_value=True)
def test_load_jsonc_with_single_line_comments(mock_exists):
    """Tests loading a settings file with // style comments."""
    jsonc_content = """
    {
        // Which CLI to call for generation
        "llm": {"command": "llm"}, // Another comment
        "logging": {"level": "DEBUG"}
    }
    """
    expected_dict = {"llm": {"command": "llm"}, "logging": {"level": "DEBUG"}}

    with patch("builtins.open", mock_open(read_data=jsonc_content)) as mock_file:
        result = config_handler.load_jsonc_file("dummy/settings.json")
        mock_file.assert_called_once_with("dummy/settings.json", 'r', encoding='utf-8')
        assert result == expected_dict


@patch("os.path.exists", return_value=True)
def test_load_jsonc_with_multi_line_comments(mock_exists):
    """Tests loading a settings file with /* */ style comments."""
    jsonc_content = """
    {
        /* UI tweaks
         */
        "ui": {"enable_mouse_support": true /* off by default */}
    }
    """
    with patch("builtins.open", mock_open(read_data=jsonc_content)):
        result = config_handler.load_jsonc_file("dummy/settings.json")
        assert result == {"ui": {"enable_mouse_support": True}}


@patch("os.path.exists", return_value=True)
def test_load_jsonc_with_malformed_json(mock_exists, capsys):
    """A syntax error is reported on stderr and yields None."""
    with patch("builtins.open", mock_open(read_data='{"key": "value",}')):
        result = config_handler.load_jsonc_file("dummy/settings.json")
    assert result is None
    assert "Could not parse the settings file" in capsys.readouterr().err


@patch("os.path.exists", return_value=True)
def test_load_jsonc_non_object_is_rejected(mock_exists):
    with patch("builtins.open", mock_open(read_data='["not", "an", "object"]')):
        assert config_handler.load_jsonc_file("dummy/settings.json") is None


@patch("os.path.exists", return_value=False)
def test_load_jsonc_file_not_found(mock_exists):
    """Tests loading a file that does not exist."""
    assert config_handler.load_jsonc_file("non/existent/settings.json") is None


@patch("os.path.exists", return_value=True)
def test_load_jsonc_io_error(mock_exists):
    m = mock_open()
    m.side_effect = IOError("Permission denied")
    with patch("builtins.open", m):
        assert config_handler.load_jsonc_file("dummy/protected.json") is None


# --- Test Cases for merge_configs ---

def test_merge_configs_recurses_into_nested_dicts():
    base = {"llm": {"command": "llm", "default_model": "llama3:8b"}, "ui": {"x": 1}}
    override = {"llm": {"default_model": "phi3"}, "extra": True}
    merged = config_handler.merge_configs(base, override)
    assert merged == {"llm": {"command": "llm", "default_model": "phi3"}, "ui": {"x": 1}, "extra": True}
    assert base["llm"]["default_model"] == "llama3:8b"


# --- Test Cases for load_settings ---

def test_load_settings_defaults_without_user_file(tmp_path):
    settings = config_handler.load_settings(str(tmp_path))
    assert settings == config_handler.DEFAULT_SETTINGS
    assert settings is not config_handler.DEFAULT_SETTINGS


def test_load_settings_merges_user_file(tmp_path):
    settings_path = config_handler.user_settings_path(str(tmp_path))
    os.makedirs(os.path.dirname(settings_path))
    with open(settings_path, 'w', encoding='utf-8') as f:
        f.write('{\n  // prefer zsh\n  "shell": {"config_candidates": [".zshrc"]}\n}\n')

    settings = config_handler.load_settings(str(tmp_path))

    assert settings["shell"]["config_candidates"] == [".zshrc"]
    assert settings["llm"] == config_handler.DEFAULT_SETTINGS["llm"]


def test_user_settings_path_is_under_home(tmp_path):
    path = config_handler.user_settings_path(str(tmp_path))
    assert path == os.path.join(str(tmp_path), ".config", "aliasman", "settings.json")


def test_expand_home():
    assert config_handler.expand_home("~/logs", "/home/u") == "/home/u/logs"
    assert config_handler.expand_home("~", "/home/u") == "/home/u"
    assert config_handler.expand_home("/var/log", "/home/u") == "/var/log"
    assert config_handler.expand_home("~other/x", "/home/u") == "~other/x"


def test_default_settings_are_json_serializable():
    assert json.loads(json.dumps(config_handler.DEFAULT_SETTINGS)) == config_handler.DEFAULT_SETTINGS


@patch("os.path.exists", return_value=True)
def test_load_jsonc_keeps_double_slash_inside_strings(mock_exists):
    jsonc_content = '{"docs": "https://llm.datasette.io/" /* url */, "a": "x//y"} // trailing'
    with patch("builtins.open", mock_open(read_data=jsonc_content)):
        result = config_handler.load_jsonc_file("dummy/settings.json")
    assert result == {"docs": "https://llm.datasette.io/", "a": "x//y"}


def test_merge_configs_replaces_dict_with_scalar():
    assert config_handler.merge_configs({"ui": {"x": 1}}, {"ui": None}) == {"ui": None}
