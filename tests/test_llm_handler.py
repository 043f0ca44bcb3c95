# tests/test_llm_handler.py
#
# The language-model CLI is never actually run: subprocess.run is patched
# with pytest-mock's `mocker` fixture where it is used.

import subprocess
from unittest.mock import MagicMock

import pytest

from aliasman import llm_handler
from aliasman.alias_store import AliasEntry, EntryKind
from aliasman.llm_handler import LLMInvocationError, extract_entry_from_output


def _completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


# --- Test Cases for extract_entry_from_output ---

def test_extract_alias_from_bash_block():
    output = "Here you go:\n```bash\nalias ll='ls -la'\n```\n"
    assert extract_entry_from_output(output) == AliasEntry("ll", "ls -la", EntryKind.ALIAS)


def test_extract_alias_from_untagged_block():
    output = "```\nalias gs='git status'\n```"
    assert extract_entry_from_output(output) == AliasEntry("gs", "git status", EntryKind.ALIAS)


def test_extract_function_block():
    output = (
        "Use this function:\n"
        "```sh\n"
        "function mkcd() {\n"
        "  mkdir -p \"$1\" && cd \"$1\"\n"
        "}\n"
        "```\n"
        "Then reload your shell."
    )
    assert extract_entry_from_output(output) == AliasEntry(
        "mkcd", '  mkdir -p "$1" && cd "$1"', EntryKind.FUNCTION)


def test_extract_last_qualifying_block_wins():
    output = "```bash\nalias a='first'\n```\ntext\n```bash\nalias b='second'\n```\n"
    assert extract_entry_from_output(output).name == "b"


def test_extract_skips_blocks_with_extra_lines():
    output = "```bash\n# comment\nalias ll='ls -la'\n```"
    assert extract_entry_from_output(output) is None


def test_extract_ignores_blocks_in_other_languages():
    output = "```python\nalias ll='ls -la'\n```"
    assert extract_entry_from_output(output) is None


def test_extract_requires_closing_fence():
    assert extract_entry_from_output("```bash\nalias ll='ls -la'\n") is None


def test_extract_plain_text_returns_none():
    assert extract_entry_from_output("alias ll='ls -la'") is None


def test_extract_function_without_closing_brace_returns_none():
    assert extract_entry_from_output("```bash\nfunction f() {\necho hi\n```") is None


def test_extract_tolerates_crlf_and_padding():
    output = "```bash\r\n\r\nalias ll='ls -la'\r\n```\r\n"
    assert extract_entry_from_output(output) == AliasEntry("ll", "ls -la", EntryKind.ALIAS)


# --- Test Cases for the subprocess wrappers ---

def test_is_llm_available_true(mocker):
    mock_run = mocker.patch("aliasman.llm_handler.subprocess.run", return_value=_completed(0, "llm 0.13"))
    assert llm_handler.is_llm_available() is True
    assert mock_run.call_args.args[0] == ["llm", "--version"]


def test_is_llm_available_missing_binary(mocker):
    mocker.patch("aliasman.llm_handler.subprocess.run", side_effect=FileNotFoundError("llm"))
    assert llm_handler.is_llm_available() is False


def test_is_llm_available_nonzero_exit(mocker):
    mocker.patch("aliasman.llm_handler.subprocess.run", return_value=_completed(1))
    assert llm_handler.is_llm_available("other-llm") is False


def test_generate_entry_invokes_model(mocker):
    mock_run = mocker.patch("aliasman.llm_handler.subprocess.run",
                            return_value=_completed(0, "```bash\nalias ll='ls -la'\n```"))
    output = llm_handler.generate_entry("list files in long format", "llama3:8b")

    assert "alias ll" in output
    args = mock_run.call_args.args[0]
    assert args[:3] == ["llm", "-m", "llama3:8b"]
    assert args[3] == llm_handler.build_prompt("list files in long format")
    assert "list files in long format" in args[3]
    assert "code block" in args[3]


def test_generate_entry_failure_raises(mocker):
    mocker.patch("aliasman.llm_handler.subprocess.run", return_value=_completed(2, "Unknown model"))
    with pytest.raises(LLMInvocationError, match="Unknown model"):
        llm_handler.generate_entry("anything", "nope")


def test_generate_entry_missing_binary_raises(mocker):
    mocker.patch("aliasman.llm_handler.subprocess.run", side_effect=FileNotFoundError("llm"))
    with pytest.raises(LLMInvocationError, match="Error generating alias"):
        llm_handler.generate_entry("anything", "llama3:8b")


def test_list_models(mocker):
    mock_run = mocker.patch("aliasman.llm_handler.subprocess.run",
                            return_value=_completed(0, "OpenAI Chat: gpt-4o\n"))
    assert llm_handler.list_models("llm") == "OpenAI Chat: gpt-4o\n"
    assert mock_run.call_args.args[0] == ["llm", "models"]


def test_list_models_failure_raises(mocker):
    mocker.patch("aliasman.llm_handler.subprocess.run", return_value=_completed(1, "boom"))
    with pytest.raises(LLMInvocationError, match="Error getting available models"):
        llm_handler.list_models()


def test_extract_skips_other_language_block_before_bash_block():
    output = (
        "Check first:\n```text\n$ ls -la\n```\n"
        "Then add:\n```bash\nalias ll='ls -la'\n```\n"
    )
    assert extract_entry_from_output(output) == AliasEntry("ll", "ls -la", EntryKind.ALIAS)


def test_extract_other_language_block_after_bash_block():
    output = "```bash\nalias ll='ls -la'\n```\n```python\nprint('alias x=1')\n```\n"
    assert extract_entry_from_output(output) == AliasEntry("ll", "ls -la", EntryKind.ALIAS)
