# aliasman/ui_manager.py
import logging

from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Window, Layout
from prompt_toolkit.widgets import TextArea
from prompt_toolkit.styles import Style
from prompt_toolkit.document import Document
from prompt_toolkit.layout.controls import FormattedTextControl

logger = logging.getLogger(__name__)

KEY_HELP_TEXT = "Enter: Submit | Ctrl+N: Newline | Esc: Back/Cancel | Ctrl+C/D: Exit"


class UIManager:
    """The main class for managing the application's UI.

    Owns the `prompt_toolkit` widgets, keybindings and styling. It holds no
    screen logic: submitted input and Escape are forwarded to the MenuEngine,
    which renders back through `append_output`.
    """
    def __init__(self, config: dict, menu_engine=None):
        """Initializes the UIManager with the application configuration.

        The Application instance itself is set later via `ui_manager.app = app_instance`,
        and the MenuEngine via `ui_manager.menu_engine = engine`.

        Args:
            config: The application settings.
        """
        self.config = config
        self.menu_engine = menu_engine
        self.app = None  # This will be set by main.py
        self.output_field = None
        self.input_field = None
        self.status_bar = None
        self.layout = None
        self.style = None
        self.output_buffer = []
        self.max_output_buffer_lines = config.get('ui', {}).get('max_output_buffer_lines', 500)
        self.current_prompt_text = "> "
        self.status_bar_control = FormattedTextControl("")

        self.kb = KeyBindings()
        self._register_keybindings()

        logger.debug("UIManager initialized with config and keybindings.")

    def _register_keybindings(self):
        @self.kb.add('c-c')
        @self.kb.add('c-d')
        def _handle_exit(event):
            logger.info("Exit keybinding triggered.")
            event.app.exit()

        @self.kb.add('escape')
        def _handle_cancel(event):
            if self.menu_engine:
                self.menu_engine.cancel()
            event.app.invalidate()

        @self.kb.add('c-n')
        def _handle_newline(event):
            event.current_buffer.insert_text('\n')

        @self.kb.add('enter')
        def _handle_enter(event):
            event.current_buffer.validate_and_handle()

    def get_key_bindings(self) -> KeyBindings:
        return self.kb

    def _accept_input(self, buff) -> bool:
        """Accept handler for the input field: forwards the text to the MenuEngine."""
        text = buff.text
        logger.info(f"Input submitted: '{text}'")
        if self.menu_engine:
            self.menu_engine.handle_input(text)
        else:
            logger.warning("Input submitted but no MenuEngine is attached.")
        return False  # Clear the input field

    def exit(self):
        if self.app and getattr(self.app, 'is_running', False):
            self.app.exit()
        else:
            logger.debug("UIManager.exit: app not running; nothing to exit.")

    def _get_current_prompt(self) -> str:
        return self.current_prompt_text

    def set_prompt(self, text: str):
        self.current_prompt_text = text
        if self.app:
            self.app.invalidate()

    def initialize_ui_elements(self) -> Layout:
        """Creates all the prompt_toolkit widgets and constructs the main UI layout.

        Returns:
            The main prompt_toolkit Layout object for the application.
        """
        logger.info("UIManager: Initializing UI elements...")
        self.style = Style.from_dict({
            'output-field': 'bg:#282c34 #abb2bf', 'input-field': 'bg:#21252b #d19a66',
            'key-help': 'bg:#282c34 #5c6370', 'line': '#3e4451',
            'prompt': 'bg:#21252b #61afef', 'default': '#abb2bf',
            'status-bar': 'bg:#282c34 #abb2bf',
            'info-header': 'bold #61afef', 'info-subheader': 'underline #61afef',
            'info-item': '#abb2bf', 'info-item-empty': 'italic #5c6370',
            'success': '#98c379', 'error': '#e06c75', 'warning': '#d19a66',
            'ai-thinking': 'italic #56b6c2', 'ai-response': '#56b6c2',
            'categorize-prompt': 'bold #d19a66',
        })

        self.output_field = TextArea(
            text="".join(text for _, text in self.output_buffer),
            style='class:output-field', scrollbar=True, focusable=False,
            wrap_lines=True, read_only=True
        )
        self.input_field = TextArea(
            prompt=self._get_current_prompt,
            style='class:input-field',
            multiline=True, wrap_lines=False,
            height=3,
            accept_handler=self._accept_input
        )
        key_help_field = Window(
            content=FormattedTextControl(KEY_HELP_TEXT),
            height=1, style='class:key-help'
        )
        self.status_bar = Window(
            content=self.status_bar_control,
            height=1,
            style='class:status-bar'
        )
        root_container = HSplit([
            self.output_field,
            self.status_bar,
            Window(height=1, char='─', style='class:line'),
            self.input_field,
            key_help_field
        ])
        self.layout = Layout(root_container, focused_element=self.input_field)
        logger.info("UIManager: UI elements fully initialized.")
        return self.layout

    def update_status_bar(self, text: str):
        self.status_bar_control.text = text
        if self.app:
            self.app.invalidate()

    def append_output(self, text: str, style_class: str = 'default'):
        """The primary method for adding text to the main output field."""
        logger.info(f"UI_OUTPUT: {text.rstrip()}")
        if not text.endswith('\n'):
            text += '\n'
        self.output_buffer.append((style_class, text))

        if len(self.output_buffer) > self.max_output_buffer_lines:
            lines_to_remove = len(self.output_buffer) - self.max_output_buffer_lines + (self.max_output_buffer_lines // 10)
            self.output_buffer = self.output_buffer[lines_to_remove:]
            logger.debug(f"Output buffer trimmed. New size: {len(self.output_buffer)} lines.")

        if not self.output_field:
            logger.debug("UIManager.append_output called before UI initialization. Buffering message.")
            return

        plain_text_output = "".join(content for _, content in self.output_buffer)
        self.output_field.buffer.set_document(
            Document(plain_text_output, cursor_position=len(plain_text_output)), bypass_readonly=True)

        if self.app and getattr(self.app, 'is_running', False):
            self.app.invalidate()
