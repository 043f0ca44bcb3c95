# aliasman/llm_handler.py

import logging
import subprocess
from typing import List, Optional

from aliasman.alias_store import (
    AliasEntry, EntryKind, parse_aliases,
    ALIAS_PREFIX, FUNCTION_PREFIX, FUNCTION_SUFFIX, FUNCTION_END,
)

# --- Logging Setup ---
logger = logging.getLogger(__name__)

DEFAULT_LLM_COMMAND = "llm"
LLM_INSTALL_URL = "https://llm.datasette.io/en/stable/"
FENCE = "```"
FENCE_LANGUAGES = ("", "bash", "sh", "shell", "zsh")

PROMPT_TEMPLATE = (
    "generate alias for {description}, output just the command, as a bash command alias "
    "(or a bash function if it needs several lines), inside a code block"
)


class LLMInvocationError(Exception):
    """Raised when the language-model CLI is missing or exits with an error."""
    pass


def _run(args: List[str]) -> subprocess.CompletedProcess:
    logger.info(f"Running: {' '.join(args[:3])}{' ...' if len(args) > 3 else ''}")
    return subprocess.run(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )


def is_llm_available(command: str = DEFAULT_LLM_COMMAND) -> bool:
    """Returns True if `<command> --version` runs and exits with status 0."""
    try:
        process = _run([command, "--version"])
    except OSError as e:
        logger.warning(f"'{command}' is not available: {e}")
        return False
    available = process.returncode == 0
    logger.info(f"'{command}' available: {available}")
    return available


def build_prompt(description: str) -> str:
    return PROMPT_TEMPLATE.format(description=description)


def _invoke(args: List[str], what: str) -> str:
    try:
        process = _run(args)
    except OSError as e:
        logger.error(f"Could not start '{args[0]}' for {what}: {e}", exc_info=True)
        raise LLMInvocationError(f"Error {what}: {e}") from e
    if process.returncode != 0:
        logger.error(f"'{args[0]}' exited with {process.returncode} while {what}: {process.stdout.strip()}")
        raise LLMInvocationError(f"Error {what}: exit status {process.returncode}\n{process.stdout.strip()}")
    return process.stdout


def generate_entry(description: str, model: str, command: str = DEFAULT_LLM_COMMAND) -> str:
    """
    Asks the language model for an alias or function matching `description`.

    Blocks until the subprocess exits; there is no timeout.

    Args:
        description (str): What the alias should do, in plain language.
        model (str): Model identifier passed with `-m`.
        command (str): The language-model CLI executable.

    Returns:
        str: The raw combined output of the CLI.

    Raises:
        LLMInvocationError: If the CLI cannot be started or fails.
    """
    logger.info(f"Generating entry with model '{model}' for: '{description}'")
    return _invoke([command, "-m", model, build_prompt(description)], "generating alias")


def list_models(command: str = DEFAULT_LLM_COMMAND) -> str:
    """Returns the output of `<command> models`. Raises LLMInvocationError on failure."""
    return _invoke([command, "models"], "getting available models")


def _fenced_blocks(output: str) -> List[List[str]]:
    """
    Collects the content lines of every closed ``` fence with an accepted language tag.

    Fences in other languages are still tracked so that their closing line is
    not mistaken for an opener.
    """
    blocks: List[List[str]] = []
    current: Optional[List[str]] = None
    accepted = False
    for line in output.split("\n"):
        stripped = line.strip()
        if current is None:
            if stripped.startswith(FENCE):
                current = []
                accepted = stripped[len(FENCE):].strip().lower() in FENCE_LANGUAGES
        elif stripped == FENCE:
            if accepted:
                blocks.append(current)
            current = None
        else:
            current.append(line.rstrip("\r"))
    return blocks


def _entry_from_block(lines: List[str]) -> Optional[AliasEntry]:
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    while lines and not lines[0].strip():
        lines = lines[1:]
    if not lines:
        return None

    first = lines[0]
    if len(lines) == 1 and first.startswith(ALIAS_PREFIX) and "=" in first:
        shape = EntryKind.ALIAS
    elif (first.startswith(FUNCTION_PREFIX) or first.endswith(FUNCTION_SUFFIX)) and lines[-1] == FUNCTION_END:
        shape = EntryKind.FUNCTION
    else:
        return None

    entries = parse_aliases("\n".join(lines))
    if len(entries) != 1 or entries[0].kind != shape or not entries[0].name:
        return None
    return entries[0]


def extract_entry_from_output(output: str) -> Optional[AliasEntry]:
    """
    Finds the alias or function the model produced inside a fenced code block.

    A block qualifies when it holds exactly one `alias name='cmd'` line, or a
    single `function name() {` ... `}` block. When several blocks qualify the
    last one wins.

    Returns:
        Optional[AliasEntry]: The extracted entry, or None if the output has to
        be shown to the user as-is.
    """
    found = None
    for block in _fenced_blocks(output):
        entry = _entry_from_block(block)
        if entry:
            found = entry
    if found:
        logger.info(f"Extracted {found.kind.value} '{found.name}' from model output.")
    else:
        logger.info("No alias or function block found in model output.")
    return found
