# aliasman/forms.py

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from aliasman.alias_store import EntryKind

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'^[A-Za-z0-9_.:@%+-]+$')
KIND_CHOICES = {
    "": EntryKind.ALIAS,
    "a": EntryKind.ALIAS,
    "alias": EntryKind.ALIAS,
    "f": EntryKind.FUNCTION,
    "function": EntryKind.FUNCTION,
}


class FormValidationError(Exception):
    """Raised when submitted form values are invalid. The message is shown to the user."""
    pass


@dataclass
class FormField:
    key: str
    label: str
    default: str = ""


class FormSession:
    """
    Collects one value per field, in order, from successive input lines.

    An empty line takes the field's default.
    """
    def __init__(self, fields: List[FormField]):
        self.fields = fields
        self.values: Dict[str, str] = {}
        self._index = 0

    @property
    def current_field(self) -> Optional[FormField]:
        if self._index < len(self.fields):
            return self.fields[self._index]
        return None

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self.fields)

    def feed(self, text: str) -> Optional[Dict[str, str]]:
        """Stores `text` for the current field. Returns all values once the last field is filled."""
        field = self.current_field
        if field is None:
            return dict(self.values)
        self.values[field.key] = text if text != "" else field.default
        logger.debug(f"Form field '{field.key}' filled ({len(self.values[field.key])} chars)")
        self._index += 1
        if self.is_complete:
            return dict(self.values)
        return None


ADD_ENTRY_FIELDS = [
    FormField("kind", "Kind [a]lias / [f]unction (default alias)", "alias"),
    FormField("name", "Alias Name"),
    FormField("body", "Command (Ctrl+N for a new line)"),
]

DESCRIBE_FIELDS = [
    FormField("description", "Describe the alias you want to create"),
]


def model_fields(current_model: str) -> List[FormField]:
    return [FormField("model", f"LLM Model (Enter keeps '{current_model}')", current_model)]


@dataclass
class AddEntryForm:
    name: str
    body: str
    kind: EntryKind = EntryKind.ALIAS

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "AddEntryForm":
        name = values.get("name", "").strip()
        body = values.get("body", "").strip("\n")
        if not name or not body.strip():
            raise FormValidationError("Both fields are required")
        kind_text = values.get("kind", "").strip().lower()
        if kind_text not in KIND_CHOICES:
            raise FormValidationError(f"Unknown kind '{kind_text}'. Use 'alias' or 'function'.")
        if not NAME_PATTERN.match(name):
            raise FormValidationError(f"'{name}' is not a valid alias name")
        kind = KIND_CHOICES[kind_text]
        if kind == EntryKind.ALIAS:
            if "\n" in body:
                raise FormValidationError("An alias command must fit on one line; use a function instead")
            if "'" in body:
                raise FormValidationError("An alias command cannot contain single quotes")
        return cls(name=name, body=body, kind=kind)


@dataclass
class DescribeForm:
    description: str

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "DescribeForm":
        description = values.get("description", "").strip()
        if not description:
            raise FormValidationError("Please enter a description for the alias.")
        return cls(description=description)


@dataclass
class ModelForm:
    model: str

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "ModelForm":
        model = values.get("model", "").strip()
        if not model:
            raise FormValidationError("Model name cannot be empty")
        return cls(model=model)
