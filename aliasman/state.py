# aliasman/state.py

from enum import Enum, auto
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import logging

from aliasman.alias_store import AliasEntry

logger = logging.getLogger(__name__)


class ViewState(Enum):
    """The screen the application is showing."""
    MAIN_MENU = auto()
    MANAGE_MENU = auto()
    ALIAS_LIST = auto()
    ADD_ENTRY = auto()
    CONFIRM_DELETE = auto()
    AI_DESCRIBE = auto()
    AI_OUTPUT = auto()          # Model output that held no usable entry
    AI_CONFIRM = auto()         # "Add this alias?" for an extracted entry
    SETTINGS_MENU = auto()
    INSTALL_CHECK = auto()
    CHANGE_MODEL = auto()
    ERROR = auto()
    EXITING = auto()


class ViewAction(Enum):
    """Named user intents that move between screens."""
    OPEN_MANAGE = auto()
    OPEN_AI = auto()
    OPEN_SETTINGS = auto()
    QUIT = auto()
    LIST = auto()
    ADD = auto()
    DELETE = auto()
    SAVE = auto()
    CONFIRM = auto()
    CANCEL = auto()
    GENERATED = auto()
    UNPARSED = auto()
    CHECK_INSTALL = auto()
    CHANGE_MODEL = auto()
    BACK = auto()


TRANSITIONS: Dict[Tuple[ViewState, ViewAction], ViewState] = {
    (ViewState.MAIN_MENU, ViewAction.OPEN_MANAGE): ViewState.MANAGE_MENU,
    (ViewState.MAIN_MENU, ViewAction.OPEN_AI): ViewState.AI_DESCRIBE,
    (ViewState.MAIN_MENU, ViewAction.OPEN_SETTINGS): ViewState.SETTINGS_MENU,
    (ViewState.MAIN_MENU, ViewAction.QUIT): ViewState.EXITING,

    (ViewState.MANAGE_MENU, ViewAction.LIST): ViewState.ALIAS_LIST,
    (ViewState.MANAGE_MENU, ViewAction.ADD): ViewState.ADD_ENTRY,
    (ViewState.MANAGE_MENU, ViewAction.BACK): ViewState.MAIN_MENU,

    (ViewState.ALIAS_LIST, ViewAction.DELETE): ViewState.CONFIRM_DELETE,
    (ViewState.ALIAS_LIST, ViewAction.BACK): ViewState.MANAGE_MENU,
    (ViewState.CONFIRM_DELETE, ViewAction.CONFIRM): ViewState.ALIAS_LIST,
    (ViewState.CONFIRM_DELETE, ViewAction.CANCEL): ViewState.ALIAS_LIST,

    (ViewState.ADD_ENTRY, ViewAction.SAVE): ViewState.MANAGE_MENU,
    (ViewState.ADD_ENTRY, ViewAction.BACK): ViewState.MANAGE_MENU,

    (ViewState.AI_DESCRIBE, ViewAction.GENERATED): ViewState.AI_CONFIRM,
    (ViewState.AI_DESCRIBE, ViewAction.UNPARSED): ViewState.AI_OUTPUT,
    (ViewState.AI_DESCRIBE, ViewAction.BACK): ViewState.MAIN_MENU,
    (ViewState.AI_OUTPUT, ViewAction.BACK): ViewState.AI_DESCRIBE,
    (ViewState.AI_CONFIRM, ViewAction.CONFIRM): ViewState.MAIN_MENU,
    (ViewState.AI_CONFIRM, ViewAction.CANCEL): ViewState.AI_DESCRIBE,

    (ViewState.SETTINGS_MENU, ViewAction.CHECK_INSTALL): ViewState.INSTALL_CHECK,
    (ViewState.SETTINGS_MENU, ViewAction.CHANGE_MODEL): ViewState.CHANGE_MODEL,
    (ViewState.SETTINGS_MENU, ViewAction.BACK): ViewState.MAIN_MENU,
    (ViewState.INSTALL_CHECK, ViewAction.CONFIRM): ViewState.MAIN_MENU,
    (ViewState.INSTALL_CHECK, ViewAction.BACK): ViewState.MAIN_MENU,
    (ViewState.CHANGE_MODEL, ViewAction.SAVE): ViewState.SETTINGS_MENU,
    (ViewState.CHANGE_MODEL, ViewAction.BACK): ViewState.SETTINGS_MENU,
}


class InvalidTransitionError(Exception):
    """Raised when an action has no transition from the current state."""
    pass


@dataclass
class StateContext:
    """Holds data relevant to the current screen (pending targets, AI output, errors)."""
    delete_target: Optional[str] = None
    pending_entry: Optional[AliasEntry] = None
    ai_output: str = ""
    last_error: Optional[str] = None
    error_return_state: Optional[ViewState] = None


class StateManager:
    """
    The single source of truth for which screen is active.

    Every screen change goes through `dispatch`, which only follows the
    TRANSITIONS table. Errors are the one exception: `fail` can be entered from
    any screen and `acknowledge` returns to it.
    """
    def __init__(self, initial_state: ViewState = ViewState.MAIN_MENU):
        self._state: ViewState = initial_state
        self._context: StateContext = StateContext()

    @property
    def current_state(self) -> ViewState:
        return self._state

    @property
    def context(self) -> StateContext:
        return self._context

    def can_dispatch(self, action: ViewAction) -> bool:
        return (self._state, action) in TRANSITIONS

    def _set_state(self, new_state: ViewState):
        if self._state != new_state:
            logger.info(f"State Transition: {self._state.name} -> {new_state.name}")
        self._state = new_state

    def dispatch(self, action: ViewAction) -> ViewState:
        target = TRANSITIONS.get((self._state, action))
        if target is None:
            raise InvalidTransitionError(f"No transition for {action.name} from {self._state.name}")
        self._set_state(target)
        return target

    def fail(self, message: str) -> ViewState:
        """Shows an error; acknowledging it returns to the screen it was raised from."""
        logger.error(f"Error in {self._state.name}: {message}")
        if self._state != ViewState.ERROR:
            self._context.error_return_state = self._state
        self._context.last_error = message
        self._set_state(ViewState.ERROR)
        return ViewState.ERROR

    def acknowledge(self) -> ViewState:
        if self._state != ViewState.ERROR:
            raise InvalidTransitionError(f"Nothing to acknowledge in {self._state.name}")
        target = self._context.error_return_state or ViewState.MAIN_MENU
        self._context.last_error = None
        self._context.error_return_state = None
        self._set_state(target)
        return target
