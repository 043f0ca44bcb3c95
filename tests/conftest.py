# tests/conftest.py
#
# Project-wide fixtures for pytest. The project root is put on the Python path
# so that 'main' and the 'aliasman' modules import without installation.

import sys
import os

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


SAMPLE_ALIAS_FILE = (
    '# {"model": "llama3:8b"}\n'
    "# Aliasman managed aliases\n"
    "\n"
    "alias gs='git status'\n"
    "alias gp=\"git push\"\n"
    "function mkcd() {\n"
    "  mkdir -p \"$1\"\n"
    "  cd \"$1\"\n"
    "}\n"
)


@pytest.fixture
def alias_file(tmp_path):
    """Writes a small managed alias file and returns its path as a string."""
    path = tmp_path / ".aliasman_aliases"
    path.write_text(SAMPLE_ALIAS_FILE, encoding="utf-8")
    return str(path)
