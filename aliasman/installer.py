# aliasman/installer.py

import os
import logging
from typing import Sequence

from aliasman.alias_store import DEFAULT_MODEL

logger = logging.getLogger(__name__)

TAG_START = "# START ALIASMAN MANAGED BLOCK"
TAG_END = "# END ALIASMAN MANAGED BLOCK"
DEFAULT_SHELL_CONFIGS = (".bashrc", ".zshrc", ".bash_profile")
RELOAD_ALIAS_NAME = "aliasman-reload"


def detect_shell_config(home_dir: str, candidates: Sequence[str] = DEFAULT_SHELL_CONFIGS) -> str:
    """Returns the first existing shell startup file under `home_dir`, or "" if none exists."""
    for candidate in candidates:
        path = os.path.join(home_dir, candidate)
        if os.path.exists(path):
            logger.debug(f"Detected shell config: {path}")
            return path
    logger.warning(f"No shell config found in {home_dir} (looked for {', '.join(candidates)})")
    return ""


def initial_alias_file_content(alias_file_path: str, default_model: str = DEFAULT_MODEL) -> str:
    return (
        f'# {{ "model": "{default_model}" }}\n'
        "# Aliasman managed aliases\n"
        "\n"
        "# Reload aliases\n"
        f"alias {RELOAD_ALIAS_NAME}='source {alias_file_path}'\n"
    )


def managed_block(alias_file_path: str) -> str:
    return f"\n{TAG_START}\nsource {alias_file_path}\n{TAG_END}\n"


def is_installed(alias_file_path: str, shell_config_path: str) -> bool:
    """
    Checks whether aliasman looks installed.

    The alias file must exist and the shell config must be readable. The
    shell config's content is not searched for the managed block.
    """
    if not os.path.exists(alias_file_path):
        return False
    try:
        with open(shell_config_path, 'r', encoding='utf-8') as f:
            f.read()
    except (OSError, UnicodeDecodeError):
        return False
    return True


def install(alias_file_path: str, shell_config_path: str, default_model: str = DEFAULT_MODEL,
            append_output_func=None) -> bool:
    """
    Creates the alias file and appends the managed `source` block to the shell config.

    Failures are logged and reported to the user; nothing is raised so that
    startup can continue.

    Args:
        alias_file_path (str): Path of the managed alias file.
        shell_config_path (str): Shell startup file to append the managed block to.
        default_model (str): Model written into the initial config comment.
        append_output_func (callable): Function to report progress to the UI.
                                       If None (e.g., at startup), prints to console.

    Returns:
        bool: True if both steps succeeded.
    """
    _print = append_output_func if callable(append_output_func) else \
             lambda msg, style_class='info': print(msg)

    if os.path.exists(alias_file_path):
        logger.info(f"Alias file {alias_file_path} already exists; leaving it untouched.")
    else:
        try:
            with open(alias_file_path, 'w', encoding='utf-8') as f:
                f.write(initial_alias_file_content(alias_file_path, default_model))
            logger.info(f"Created alias file at {alias_file_path}")
        except OSError as e:
            logger.error(f"Error creating alias file {alias_file_path}: {e}", exc_info=True)
            _print(f"Error creating alias file: {e}", style_class='error')
            return False

    if not shell_config_path or not os.path.isfile(shell_config_path):
        logger.error(f"Shell config file '{shell_config_path}' does not exist; cannot add source line.")
        _print(f"Error opening shell config file: '{shell_config_path}' not found", style_class='error')
        return False

    try:
        with open(shell_config_path, 'a', encoding='utf-8') as f:
            f.write(managed_block(alias_file_path))
    except OSError as e:
        logger.error(f"Error writing to shell config {shell_config_path}: {e}", exc_info=True)
        _print(f"Error writing to shell config file: {e}", style_class='error')
        return False

    logger.info(f"Added managed block sourcing {alias_file_path} to {shell_config_path}")
    return True


def ensure_installed(alias_file_path: str, shell_config_path: str, default_model: str = DEFAULT_MODEL) -> bool:
    """Installs only when `is_installed` reports False. Returns True if installed afterwards."""
    if is_installed(alias_file_path, shell_config_path):
        logger.debug("aliasman already installed.")
        return True
    logger.info("aliasman not installed; installing.")
    return install(alias_file_path, shell_config_path, default_model)


def reload_instructions(shell_config_path: str) -> str:
    return (
        "\nTo reload your aliases in the current shell, you can either:\n"
        f"1. Run the command: source {shell_config_path}\n"
        f"2. Or simply use the alias: {RELOAD_ALIAS_NAME}\n"
    )
