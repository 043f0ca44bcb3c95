# aliasman/config_handler.py

import os
import sys
import json
import re
import copy
import logging
from typing import Any, Dict, Optional

# --- Module-specific logger ---
logger = logging.getLogger(__name__)

SETTINGS_DIR = os.path.join("~", ".config", "aliasman")
USER_SETTINGS_FILENAME = "settings.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "paths": {
        "alias_file_name": ".aliasman_aliases",
        "log_dir": os.path.join(SETTINGS_DIR, "logs"),
    },
    "shell": {
        "config_candidates": [".bashrc", ".zshrc", ".bash_profile"],
    },
    "llm": {
        "command": "llm",
        "default_model": "llama3:8b",
    },
    "ui": {
        "enable_mouse_support": False,
        "max_output_buffer_lines": 500,
    },
    "logging": {
        "level": "INFO",
    },
}


# Group 1 matches a string literal, which is put back unchanged.
_JSONC_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)


def _strip_jsonc_comments(text: str) -> str:
    return _JSONC_COMMENT.sub(lambda m: m.group(1) or "", text)


def load_jsonc_file(filepath: str) -> Optional[Dict[str, Any]]:
    """
    Loads a settings file that may contain // and /* */ comments.

    Returns None when the file is missing, unreadable, malformed, or not a
    JSON object; parse errors are also reported on stderr.
    """
    if not os.path.exists(filepath):
        logger.info(f"Settings file not found at: {filepath}")
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.loads(_strip_jsonc_comments(f.read()))
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {filepath}: {e}", exc_info=True)
        print(f"❌ Error: Could not parse the settings file at {filepath}. Please check for syntax errors.", file=sys.stderr)
        return None
    except IOError as e:
        logger.error(f"Error reading file {filepath}: {e}", exc_info=True)
        print(f"❌ Error: Could not read the file at {filepath}.", file=sys.stderr)
        return None

    if not isinstance(data, dict):
        logger.error(f"Settings file {filepath} does not contain a JSON object.")
        return None
    return data


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Returns `base` with `override` laid over it; nested sections merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = merge_configs(current, value)
        merged[key] = value
    return merged


def user_settings_path(home_dir: str) -> str:
    return os.path.join(expand_home(SETTINGS_DIR, home_dir), USER_SETTINGS_FILENAME)


def load_settings(home_dir: str) -> Dict[str, Any]:
    """
    Builds the application settings: built-in defaults overlaid with the
    optional user settings file under ~/.config/aliasman.
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    user_path = user_settings_path(home_dir)
    user_settings = load_jsonc_file(user_path)
    if user_settings:
        settings = merge_configs(settings, user_settings)
        logger.info(f"Loaded and merged user settings from {user_path}")
    else:
        logger.info(f"{user_path} not found or is invalid. No user settings overrides applied.")
    return settings


def expand_home(path: str, home_dir: str) -> str:
    """Resolves a leading '~' against `home_dir` rather than the process environment."""
    if path == "~" or path.startswith("~" + os.sep) or path.startswith("~/"):
        return home_dir + path[1:]
    return path
