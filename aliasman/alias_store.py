# aliasman/alias_store.py

import json
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3:8b"

ALIAS_PREFIX = "alias "
FUNCTION_PREFIX = "function "
FUNCTION_SUFFIX = "() {"
FUNCTION_END = "}"
CONFIG_PREFIX = "# {"
CONFIG_SUFFIX = "}"
QUOTE_CHARS = "'\""


class EntryKind(Enum):
    """Whether an entry is a one-line alias or a multi-line function."""
    ALIAS = "alias"
    FUNCTION = "function"


@dataclass
class AliasEntry:
    """A single alias or function definition found in the managed file."""
    name: str
    body: str
    kind: EntryKind = EntryKind.ALIAS


@dataclass
class AliasConfig:
    """Settings stored in the `# {json}` comment of the managed file."""
    model: str = DEFAULT_MODEL


def _strip_one_quote_layer(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTE_CHARS:
        return value[1:-1]
    return value


def _is_config_line(line: str) -> bool:
    return line.startswith(CONFIG_PREFIX) and line.endswith(CONFIG_SUFFIX)


def parse_aliases(raw_text: str) -> List[AliasEntry]:
    """
    Parses the managed file's text into alias and function entries.

    Only `alias name=...` lines and `function name() {` ... `}` blocks are
    recognized; every other line is ignored here (the serializers keep them).
    A standalone `}` line always closes the current function, and a function
    still open when the text ends is dropped.

    Args:
        raw_text (str): Full content of the alias file.

    Returns:
        List[AliasEntry]: Entries in file order.
    """
    entries: List[AliasEntry] = []
    in_function = False
    function_name = ""
    body_lines: List[str] = []

    for line in raw_text.split("\n"):
        if in_function:
            if line == FUNCTION_END:
                entries.append(AliasEntry(function_name, "\n".join(body_lines), EntryKind.FUNCTION))
                in_function = False
                body_lines = []
            else:
                body_lines.append(line)
            continue

        if line.startswith(ALIAS_PREFIX):
            name, sep, command = line[len(ALIAS_PREFIX):].partition("=")
            if not sep:
                continue
            entries.append(AliasEntry(name.strip(), _strip_one_quote_layer(command.strip()), EntryKind.ALIAS))
        elif line.startswith(FUNCTION_PREFIX) or line.endswith(FUNCTION_SUFFIX):
            header = line
            if header.startswith(FUNCTION_PREFIX):
                header = header[len(FUNCTION_PREFIX):]
            if header.endswith(FUNCTION_SUFFIX):
                header = header[:-len(FUNCTION_SUFFIX)]
            function_name = header.strip()
            in_function = True
            body_lines = []

    if in_function:
        logger.debug(f"Dropping unterminated function '{function_name}'.")

    return entries


def _read_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def _write_text(path: str, text: str):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)


def read_aliases(path: str) -> List[AliasEntry]:
    """Reads and parses the alias file. Raises OSError if it cannot be read."""
    entries = parse_aliases(_read_text(path))
    logger.debug(f"Parsed {len(entries)} entries from {path}")
    return entries


def format_entry(name: str, body: str, kind: EntryKind = EntryKind.ALIAS) -> str:
    """Renders an entry exactly as it is written to the alias file."""
    if kind == EntryKind.FUNCTION:
        return f"function {name}() {{\n{body}\n}}\n"
    return f"alias {name}='{body}'\n"


def append_entry(path: str, name: str, body: str, kind: EntryKind = EntryKind.ALIAS):
    """
    Appends a new alias or function to the end of the alias file.

    The file has to exist already; it is opened in append mode without
    being created.

    Raises:
        OSError: If the file cannot be opened or written.
    """
    # 'r+' refuses to create a missing file, unlike 'a'.
    with open(path, 'r+', encoding='utf-8') as f:
        f.seek(0, 2)
        f.write(format_entry(name, body, kind))
    logger.info(f"Appended {kind.value} '{name}' to {path}")


def remove_entry(path: str, name: str):
    """
    Removes every `alias <name>=` line, leaving all other lines untouched.

    Function blocks are not matched by this and stay in the file.

    Raises:
        OSError: If the file cannot be read or rewritten.
    """
    prefix = f"alias {name}="
    lines = _read_text(path).split("\n")
    kept = [line for line in lines if not line.startswith(prefix)]
    _write_text(path, "\n".join(kept))
    logger.info(f"Removed {len(lines) - len(kept)} line(s) for alias '{name}' from {path}")


def read_config(path: str, default_model: str = DEFAULT_MODEL) -> AliasConfig:
    """
    Reads the first decodable `# {json}` comment line of the alias file.

    Args:
        path (str): The alias file.
        default_model (str): Model used when no config line can be decoded.

    Returns:
        AliasConfig: The stored config, or the default one.

    Raises:
        OSError: If the file cannot be read.
    """
    for line in _read_text(path).split("\n"):
        if not _is_config_line(line):
            continue
        try:
            data = json.loads(line[2:])
        except json.JSONDecodeError as e:
            logger.debug(f"Ignoring undecodable config line in {path}: {e}")
            continue
        if not isinstance(data, dict):
            continue
        model = data.get("model", default_model)
        if not isinstance(model, str):
            logger.debug(f"Ignoring config line in {path} with non-string model: {model!r}")
            continue
        return AliasConfig(model=model)

    logger.info(f"No config line found in {path}; using default model '{default_model}'")
    return AliasConfig(model=default_model)


def update_config(path: str, config: AliasConfig):
    """
    Writes `config` as the first line of the alias file.

    A config-shaped first line is replaced; all other lines keep their order.

    Raises:
        OSError: If the file cannot be read or rewritten.
    """
    lines = _read_text(path).split("\n")
    if lines and _is_config_line(lines[0]):
        lines = lines[1:]
    config_line = f"# {json.dumps(asdict(config))}"
    _write_text(path, "\n".join([config_line] + lines))
    logger.info(f"Updated config in {path}: model='{config.model}'")
