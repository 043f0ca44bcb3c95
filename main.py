# main.py

from prompt_toolkit import Application

import argparse
import asyncio
import datetime
import logging
import os
import sys
from typing import Optional

from aliasman import config_handler
from aliasman.alias_store import EntryKind, read_aliases
from aliasman.installer import detect_shell_config, ensure_installed, reload_instructions
from aliasman.menu_engine import MenuEngine, summarize_body
from aliasman.ui_manager import UIManager

LOG_FILENAME = "aliasman.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'

logger = logging.getLogger(__name__)


class HomeDirectoryError(Exception):
    """Raised when the user's home directory cannot be determined. Fatal at startup."""
    pass


def get_home_dir() -> str:
    home_dir = os.path.expanduser("~")
    if not home_dir or home_dir == "~":
        raise HomeDirectoryError("could not determine the user's home directory")
    return home_dir


def setup_logging(settings: dict, home_dir: str) -> Optional[str]:
    """
    Sends all logging to a file in the configured log directory.

    Returns the log file path, or None if the directory could not be created
    (logging is then discarded so the terminal UI is never written to).
    """
    log_dir = config_handler.expand_home(settings.get('paths', {}).get('log_dir', ''), home_dir)
    level_name = str(settings.get('logging', {}).get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e:
        print(f"⚠️ Warning: Could not create log directory {log_dir}: {e}", file=sys.stderr)
        logging.basicConfig(level=level, handlers=[logging.NullHandler()])
        return None

    log_file = os.path.join(log_dir, LOG_FILENAME)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file)]
    )
    return log_file


def list_aliases_cli(alias_file_path: str) -> int:
    """Prints every alias, then every function, one per line."""
    try:
        entries = read_aliases(alias_file_path)
    except OSError as e:
        logger.error(f"Error loading aliases from {alias_file_path}: {e}")
        print(f"Error loading aliases: {e}")
        return 0

    print("Available aliases:")
    for entry in entries:
        if entry.kind == EntryKind.ALIAS:
            print(f"{entry.name}: {entry.body}")

    functions = [entry for entry in entries if entry.kind == EntryKind.FUNCTION]
    if functions:
        print("\nAvailable functions:")
        for entry in functions:
            print(f"{entry.name}(): {summarize_body(entry.body)}")
    return 0


async def main_async_runner(settings: dict, alias_file_path: str, shell_config_path: str):
    """ Main asynchronous runner for the application. """
    ui_manager = UIManager(settings)
    menu_engine = MenuEngine(settings, ui_manager, alias_file_path, shell_config_path)
    ui_manager.menu_engine = menu_engine

    layout = ui_manager.initialize_ui_elements()

    enable_mouse = settings.get("ui", {}).get("enable_mouse_support", False)
    app_instance = Application(
        layout=layout,
        key_bindings=ui_manager.get_key_bindings(),
        style=ui_manager.style,
        full_screen=True,
        mouse_support=enable_mouse
    )
    ui_manager.app = app_instance

    menu_engine.start()
    logger.info("aliasman application starting.")
    await app_instance.run_async()
    logger.info("aliasman application run_async completed.")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aliasman",
        description="Manage shell aliases and functions, optionally generated with an LLM."
    )
    parser.add_argument(
        'command',
        nargs='?',
        choices=['list'],
        help="'list' prints all aliases and functions and exits. Without it the interactive UI starts."
    )
    return parser


def run(argv=None) -> int:
    """ Main entry point. Returns the process exit code. """
    args = build_arg_parser().parse_args(argv)

    try:
        home_dir = get_home_dir()
    except HomeDirectoryError as e:
        print(f"Error getting home directory: {e}")
        return 1

    settings = config_handler.load_settings(home_dir)
    setup_logging(settings, home_dir)

    alias_file_path = os.path.join(home_dir, settings['paths']['alias_file_name'])
    shell_config_path = detect_shell_config(home_dir, settings['shell']['config_candidates'])

    if args.command == 'list':
        return list_aliases_cli(alias_file_path)

    ensure_installed(alias_file_path, shell_config_path, settings['llm']['default_model'])

    logger.info("=" * 80)
    logger.info("  aliasman Session Started")
    logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 80)
    exit_code = 0
    try:
        asyncio.run(main_async_runner(settings, alias_file_path, shell_config_path))
        print(reload_instructions(shell_config_path))
    except (EOFError, KeyboardInterrupt):
        print("\nExiting aliasman. 👋")
        logger.info("Exiting due to EOF or KeyboardInterrupt.")
    except Exception as e:
        print(f"\nUnexpected critical error: {e}")
        logger.critical("Critical error in run or main_async_runner", exc_info=True)
        exit_code = 1
    finally:
        logger.info("=" * 80)
        logger.info("  aliasman Session Ended")
        logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 80)
        logging.shutdown()
    return exit_code


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
