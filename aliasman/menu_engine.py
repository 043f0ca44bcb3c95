# aliasman/menu_engine.py

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from aliasman.alias_store import (
    AliasConfig, AliasEntry, EntryKind, DEFAULT_MODEL,
    read_aliases, append_entry, remove_entry, read_config, update_config, format_entry,
)
from aliasman.forms import (
    FormSession, FormValidationError, AddEntryForm, DescribeForm, ModelForm,
    ADD_ENTRY_FIELDS, DESCRIBE_FIELDS, model_fields,
)
from aliasman.installer import is_installed, install
from aliasman.llm_handler import (
    LLMInvocationError, DEFAULT_LLM_COMMAND, LLM_INSTALL_URL,
    is_llm_available, generate_entry, list_models, extract_entry_from_output,
)
from aliasman.state import StateManager, ViewAction, ViewState

logger = logging.getLogger(__name__)

MENU_PROMPT = "Choice > "


@dataclass
class MenuItem:
    key: str
    label: str
    description: str
    action: ViewAction


MAIN_MENU_ITEMS = [
    MenuItem("m", "Manage Aliases", "Add, remove, or list aliases", ViewAction.OPEN_MANAGE),
    MenuItem("a", "AI Assisted Alias Creation", "Create an alias using AI assistance", ViewAction.OPEN_AI),
    MenuItem("s", "Settings", "Configure Aliasman settings", ViewAction.OPEN_SETTINGS),
    MenuItem("q", "Quit", "Exit the application", ViewAction.QUIT),
]

MANAGE_MENU_ITEMS = [
    MenuItem("l", "List Aliases", "Show all defined aliases", ViewAction.LIST),
    MenuItem("a", "Add Alias", "Create a new alias", ViewAction.ADD),
    MenuItem("q", "Back", "Return to main menu", ViewAction.BACK),
]

SETTINGS_MENU_ITEMS = [
    MenuItem("c", "Check Installation", "Check if Aliasman is installed", ViewAction.CHECK_INSTALL),
    MenuItem("m", "Change LLM Model", "Modify the AI model used for alias generation", ViewAction.CHANGE_MODEL),
    MenuItem("q", "Back", "Return to main menu", ViewAction.BACK),
]

YES_ANSWERS = ("y", "yes")
BACK_ANSWERS = ("q", "quit", "back")


def match_menu_choice(items: List[MenuItem], choice: str) -> Optional[MenuItem]:
    """Matches a menu item by its shortcut key or its 1-based position."""
    choice = choice.strip().lower()
    for index, item in enumerate(items, start=1):
        if choice == item.key or choice == str(index):
            return item
    return None


def summarize_body(body: str, width: int = 60) -> str:
    summary = "; ".join(line.strip() for line in body.split("\n") if line.strip())
    if len(summary) > width:
        summary = summary[:width - 3] + "..."
    return summary


class MenuEngine:
    """
    Drives every aliasman screen.

    All submitted input goes through `handle_input`, which looks up the handler
    for the current ViewState. Each screen is rendered when it is entered,
    through the UI manager's `append_output`.
    """
    def __init__(self, config: dict, ui_manager, alias_file_path: str, shell_config_path: str,
                 state_manager: Optional[StateManager] = None):
        self.config = config
        self.ui_manager = ui_manager
        self.alias_file_path = alias_file_path
        self.shell_config_path = shell_config_path
        self.state = state_manager or StateManager()
        self.llm_command = config.get("llm", {}).get("command", DEFAULT_LLM_COMMAND)
        self.default_model = config.get("llm", {}).get("default_model", DEFAULT_MODEL)

        self.form: Optional[FormSession] = None
        self.entries: List[AliasEntry] = []
        self.install_check_installed = False

        self._renderers: Dict[ViewState, Callable[[], None]] = {
            ViewState.MAIN_MENU: self._render_main_menu,
            ViewState.MANAGE_MENU: self._render_manage_menu,
            ViewState.ALIAS_LIST: self._render_alias_list,
            ViewState.ADD_ENTRY: self._render_add_entry,
            ViewState.CONFIRM_DELETE: self._render_confirm_delete,
            ViewState.AI_DESCRIBE: self._render_ai_describe,
            ViewState.AI_OUTPUT: self._render_ai_output,
            ViewState.AI_CONFIRM: self._render_ai_confirm,
            ViewState.SETTINGS_MENU: self._render_settings_menu,
            ViewState.INSTALL_CHECK: self._render_install_check,
            ViewState.CHANGE_MODEL: self._render_change_model,
            ViewState.ERROR: self._render_error,
            ViewState.EXITING: self._render_exiting,
        }
        self._handlers: Dict[ViewState, Callable[[str], None]] = {
            ViewState.MAIN_MENU: self._handle_main_menu,
            ViewState.MANAGE_MENU: self._handle_manage_menu,
            ViewState.ALIAS_LIST: self._handle_alias_list,
            ViewState.ADD_ENTRY: self._handle_add_entry,
            ViewState.CONFIRM_DELETE: self._handle_confirm_delete,
            ViewState.AI_DESCRIBE: self._handle_ai_describe,
            ViewState.AI_OUTPUT: self._handle_ai_output,
            ViewState.AI_CONFIRM: self._handle_ai_confirm,
            ViewState.SETTINGS_MENU: self._handle_settings_menu,
            ViewState.INSTALL_CHECK: self._handle_install_check,
            ViewState.CHANGE_MODEL: self._handle_change_model,
            ViewState.ERROR: self._handle_error,
        }
        logger.debug("MenuEngine initialized.")

    @property
    def current_state(self) -> ViewState:
        return self.state.current_state

    # --- Entry points used by the UI ---

    def start(self):
        self._render()

    def handle_input(self, text: str):
        """Routes one submitted input to the handler of the current screen."""
        state = self.state.current_state
        handler = self._handlers.get(state)
        if handler is None:
            logger.debug(f"Input ignored in state {state.name}")
            return
        logger.debug(f"Handling input in {state.name}")
        handler(text)

    def cancel(self):
        """Escape: dismisses an error, otherwise goes back or cancels one level."""
        if self.state.current_state == ViewState.ERROR:
            self.state.acknowledge()
        elif self.state.can_dispatch(ViewAction.BACK):
            self.state.dispatch(ViewAction.BACK)
        elif self.state.can_dispatch(ViewAction.CANCEL):
            self.state.context.delete_target = None
            self.state.context.pending_entry = None
            self.state.dispatch(ViewAction.CANCEL)
        else:
            return
        self._render()

    # --- Helpers ---

    def _output(self, text: str, style_class: str = 'default'):
        self.ui_manager.append_output(text, style_class=style_class)

    def _render(self):
        state = self.state.current_state
        self.ui_manager.update_status_bar(f" aliasman | {state.name} | {self.alias_file_path}")
        self._renderers[state]()

    def _go(self, action: ViewAction):
        self.state.dispatch(action)
        self._render()

    def _fail(self, message: str, back: Optional[ViewAction] = None):
        """
        Shows an error screen. `back` first leaves the current screen, so the
        user returns to its parent instead of re-entering a failing screen.
        """
        if back is not None:
            self.state.dispatch(back)
        self.state.fail(message)
        self._render()

    def _render_menu(self, title: str, items: List[MenuItem]):
        self._output(f"\n{title}", style_class='info-header')
        for index, item in enumerate(items, start=1):
            self._output(f"  [{item.key}] {index}. {item.label:<28} {item.description}", style_class='info-item')
        self.ui_manager.set_prompt(MENU_PROMPT)

    def _handle_menu(self, items: List[MenuItem], text: str):
        item = match_menu_choice(items, text)
        if item is None:
            keys = "/".join(i.key for i in items)
            self._output(f"⚠️ Invalid choice. Use {keys} or 1-{len(items)}.", style_class='warning')
            return
        self._go(item.action)

    def _start_form(self, form: FormSession):
        self.form = form
        self._prompt_current_field()

    def _prompt_current_field(self):
        field = self.form.current_field
        self._output(f"{field.label}:", style_class='categorize-prompt')
        self.ui_manager.set_prompt(f"{field.key} > ")

    def _feed_form(self, text: str) -> Optional[Dict[str, str]]:
        values = self.form.feed(text)
        if values is None:
            self._prompt_current_field()
        return values

    def _load_config(self) -> AliasConfig:
        return read_config(self.alias_file_path, self.default_model)

    # --- Main / manage / settings menus ---

    def _render_main_menu(self):
        self._render_menu("Aliasman", MAIN_MENU_ITEMS)

    def _handle_main_menu(self, text: str):
        self._handle_menu(MAIN_MENU_ITEMS, text)

    def _render_manage_menu(self):
        self._render_menu("Manage Aliases", MANAGE_MENU_ITEMS)

    def _handle_manage_menu(self, text: str):
        self._handle_menu(MANAGE_MENU_ITEMS, text)

    def _render_settings_menu(self):
        self._render_menu("Settings", SETTINGS_MENU_ITEMS)

    def _handle_settings_menu(self, text: str):
        self._handle_menu(SETTINGS_MENU_ITEMS, text)

    def _render_exiting(self):
        logger.info("Quit selected; exiting application.")
        self.ui_manager.exit()

    # --- Alias list and deletion ---

    def _render_alias_list(self):
        try:
            self.entries = read_aliases(self.alias_file_path)
        except OSError as e:
            self._fail(f"Error reading aliases: {e}", back=ViewAction.BACK)
            return

        self._output("\nAliases (enter a number or 'd <number>' to delete, 'q' to go back)", style_class='info-header')
        if not self.entries:
            self._output("  (no aliases defined)", style_class='info-item-empty')
        for index, entry in enumerate(self.entries, start=1):
            if entry.kind == EntryKind.FUNCTION:
                label = f"{entry.name}()"
                body = summarize_body(entry.body)
            else:
                label = entry.name
                body = entry.body
            self._output(f"  {index:>3}. {label:<20} {body}", style_class='info-item')
        self.ui_manager.set_prompt(MENU_PROMPT)

    def _handle_alias_list(self, text: str):
        choice = text.strip().lower()
        if choice in BACK_ANSWERS:
            self._go(ViewAction.BACK)
            return
        if choice.startswith("d"):
            choice = choice[1:].strip()
        if not choice.isdigit() or not 1 <= int(choice) <= len(self.entries):
            self._output(f"⚠️ Invalid selection '{text.strip()}'.", style_class='warning')
            return

        entry = self.entries[int(choice) - 1]
        if entry.kind == EntryKind.FUNCTION:
            self._output(
                f"⚠️ '{entry.name}' is a function; remove it by editing {self.alias_file_path}.",
                style_class='warning')
            return
        self.state.context.delete_target = entry.name
        self._go(ViewAction.DELETE)

    def _render_confirm_delete(self):
        name = self.state.context.delete_target
        self._output(f"Are you sure you want to delete the alias '{name}'? [y/N]", style_class='categorize-prompt')
        self.ui_manager.set_prompt("[y/N] > ")

    def _handle_confirm_delete(self, text: str):
        name = self.state.context.delete_target
        if text.strip().lower() not in YES_ANSWERS:
            self.state.context.delete_target = None
            self._go(ViewAction.CANCEL)
            return
        try:
            remove_entry(self.alias_file_path, name)
        except OSError as e:
            self._fail(f"Error deleting alias: {e}", back=ViewAction.CANCEL)
            return
        self.state.context.delete_target = None
        self._output(f"🗑️ Alias '{name}' deleted.", style_class='success')
        self._go(ViewAction.CONFIRM)

    # --- Manual add ---

    def _render_add_entry(self):
        self._output("\nAdd Alias (Esc to cancel)", style_class='info-header')
        self._start_form(FormSession(ADD_ENTRY_FIELDS))

    def _handle_add_entry(self, text: str):
        values = self._feed_form(text)
        if values is None:
            return
        try:
            form = AddEntryForm.from_values(values)
        except FormValidationError as e:
            self._fail(str(e))
            return
        try:
            append_entry(self.alias_file_path, form.name, form.body, form.kind)
        except OSError as e:
            self._fail(f"Error adding alias: {e}")
            return
        self._output(f"✅ Added {form.kind.value} '{form.name}'.", style_class='success')
        self._go(ViewAction.SAVE)

    # --- AI assisted creation ---

    def _render_ai_describe(self):
        if not is_llm_available(self.llm_command):
            self._fail(
                f"The '{self.llm_command}' command is not available on your system. Install it: {LLM_INSTALL_URL}",
                back=ViewAction.BACK)
            return
        self._output("\nAI Assisted Alias Creation (Esc to cancel)", style_class='info-header')
        self._start_form(FormSession(DESCRIBE_FIELDS))

    def _handle_ai_describe(self, text: str):
        values = self._feed_form(text)
        if values is None:
            return
        try:
            form = DescribeForm.from_values(values)
        except FormValidationError as e:
            self._fail(str(e))
            return
        try:
            config = self._load_config()
        except OSError as e:
            self._fail(f"Error reading configuration: {e}")
            return

        self._output(f"🤖 Asking '{config.model}' for: {form.description}", style_class='ai-thinking')
        try:
            output = generate_entry(form.description, config.model, self.llm_command)
        except LLMInvocationError as e:
            self._fail(str(e))
            return

        entry = extract_entry_from_output(output)
        if entry is None:
            self.state.context.ai_output = output
            self._go(ViewAction.UNPARSED)
        else:
            self.state.context.pending_entry = entry
            self._go(ViewAction.GENERATED)

    def _render_ai_output(self):
        self._output("\nAI Output (press Enter to go back)", style_class='info-header')
        self._output(self.state.context.ai_output, style_class='ai-response')
        self.ui_manager.set_prompt("[Enter] > ")

    def _handle_ai_output(self, text: str):
        self.state.context.ai_output = ""
        self._go(ViewAction.BACK)

    def _render_ai_confirm(self):
        entry = self.state.context.pending_entry
        definition = format_entry(entry.name, entry.body, entry.kind).rstrip("\n")
        self._output(f"Do you want to add this {entry.kind.value}?\n\n{definition}\n", style_class='categorize-prompt')
        self.ui_manager.set_prompt("[y] Add / [n] Cancel > ")

    def _handle_ai_confirm(self, text: str):
        entry = self.state.context.pending_entry
        if text.strip().lower() not in YES_ANSWERS:
            self.state.context.pending_entry = None
            self._go(ViewAction.CANCEL)
            return
        try:
            append_entry(self.alias_file_path, entry.name, entry.body, entry.kind)
        except OSError as e:
            self._fail(f"Error adding alias: {e}")
            return
        self.state.context.pending_entry = None
        self._output(f"✅ Added {entry.kind.value} '{entry.name}'.", style_class='success')
        self._go(ViewAction.CONFIRM)

    # --- Settings screens ---

    def _render_install_check(self):
        self.install_check_installed = is_installed(self.alias_file_path, self.shell_config_path)
        if self.install_check_installed:
            self._output("Aliasman is already installed.", style_class='success')
            self.ui_manager.set_prompt("[Enter] OK > ")
        else:
            self._output("Aliasman is not installed. Would you like to install it?", style_class='categorize-prompt')
            self.ui_manager.set_prompt("[i] Install / [c] Cancel > ")

    def _handle_install_check(self, text: str):
        choice = text.strip().lower()
        if self.install_check_installed or choice not in ("i", "install") + YES_ANSWERS:
            self._go(ViewAction.BACK)
            return
        if install(self.alias_file_path, self.shell_config_path, self.default_model,
                   append_output_func=self._output):
            self._output("✅ Aliasman has been installed successfully.", style_class='success')
        self._go(ViewAction.CONFIRM)

    def _render_change_model(self):
        try:
            config = self._load_config()
        except OSError as e:
            self._fail(f"Error reading configuration: {e}", back=ViewAction.BACK)
            return
        try:
            models = list_models(self.llm_command)
        except LLMInvocationError as e:
            self._fail(str(e), back=ViewAction.BACK)
            return
        self._output("\nChange LLM Model (Esc to cancel)", style_class='info-header')
        self._output("Available Models:", style_class='info-subheader')
        self._output(models.rstrip("\n"), style_class='info-item')
        self._start_form(FormSession(model_fields(config.model)))

    def _handle_change_model(self, text: str):
        values = self._feed_form(text)
        if values is None:
            return
        try:
            form = ModelForm.from_values(values)
        except FormValidationError as e:
            self._fail(str(e))
            return
        try:
            update_config(self.alias_file_path, AliasConfig(model=form.model))
        except OSError as e:
            self._fail(f"Error updating configuration: {e}")
            return
        self._output(f"✅ Model set to '{form.model}'.", style_class='success')
        self._go(ViewAction.SAVE)

    # --- Errors ---

    def _render_error(self):
        self._output(f"❌ {self.state.context.last_error}", style_class='error')
        self.ui_manager.set_prompt("[Enter] OK > ")

    def _handle_error(self, text: str):
        self.state.acknowledge()
        self._render()
