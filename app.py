"""
Persona Chat — Gradio UI
========================
Single-page chat with Rick. Conversations live in a local SQLite file and the
replies stream in through the /api/together gateway (backend/main.py).
"""

import sys, os, logging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

import gradio as gr
from database import make_session_factory
from errors import ConversationBusy, RequestFailure
from services.chat import ChatController
from services.gateway import CompletionGateway
from services.session_store import SessionStore
from services.storage import SqliteStorage
from services.streaming import StreamingAssembler
from services.view import header_title, sidebar_choices, to_chatbot_messages
from settings import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

ERROR_NOTICE = "Something went wrong. Please try again."
BUSY_NOTICE = "Rick is still answering in this chat. Hold your portal gun."


def handle_error(error: Exception):
    logger.error("Error: %s", error, exc_info=error)
    gr.Warning(ERROR_NOTICE)


# ---------------------------------------------------------------------------
# UI state -> component values
# ---------------------------------------------------------------------------
class ChatUI:
    """Event handlers for the Blocks app, bound to one session store."""

    def __init__(self, controller: ChatController):
        self.controller = controller
        self.store = controller.store

    def _sidebar(self):
        return gr.update(choices=sidebar_choices(self.store.conversations), value=self.store.active_conversation_id)

    def _send_button(self):
        # Send stays disabled only while the chat on screen is still streaming
        active_id = self.store.active_conversation_id
        return gr.update(interactive=not (active_id and self.controller.is_streaming(active_id)))

    def render(self):
        """(chatbot, header, sidebar, send button) for the current active conversation."""
        active = self.store.active_conversation
        return to_chatbot_messages(active), f"## {header_title(active)}", self._sidebar(), self._send_button()

    def initial_view(self):
        return self.render()

    def new_chat(self):
        self.store.create_conversation()
        return self.render()

    def select_chat(self, conv_id: str | None):
        if conv_id:
            self.store.select_conversation(conv_id)
        return self.render()

    async def send_message(self, user_input: str):
        """
        Streaming handler for the send form.
        Yields (chatbot, header, sidebar, send button, input box) after every update.
        """
        if not user_input or not user_input.strip():
            yield *self.render(), user_input
            return

        try:
            async for _ in self.controller.send(user_input):
                yield *self.render(), ""
        except RequestFailure as e:
            handle_error(e)
        except ConversationBusy:
            gr.Warning(BUSY_NOTICE)

        yield *self.render(), ""


def toggle_sidebar(is_open: bool):
    return not is_open, gr.update(visible=not is_open)


def build_ui(settings: Settings, store: SessionStore | None = None, gateway: CompletionGateway | None = None) -> ChatUI:
    if store is None:
        store = SessionStore(SqliteStorage(make_session_factory(settings.get_database_path()))).load()
    if gateway is None:
        gateway = CompletionGateway(settings.get_gateway_url())
    controller = ChatController(store, StreamingAssembler(gateway), settings.get_model())
    return ChatUI(controller)


# ---------------------------------------------------------------------------
# Custom CSS (user bubbles blue, Rick green)
# ---------------------------------------------------------------------------
CUSTOM_CSS = """
body, .gradio-container {
    background: #262626 !important;
    max-width: 100% !important;
}
footer { display: none !important; }

#sidebar {
    background: #1a1a1a !important;
    border-right: 1px solid rgba(255,255,255,0.05) !important;
}
#chat-title h2 { color: #4ade80 !important; }

.message.user {
    background: #2563eb !important;
    color: white !important;
    border: none !important;
}
.message.bot {
    background: #22c55e !important;
    color: white !important;
    border: none !important;
}

#conv-list .wrap {
    max-height: 75vh;
    overflow-y: auto;
}
"""


# ---------------------------------------------------------------------------
# Build Gradio UI
# ---------------------------------------------------------------------------
def create_app(ui: ChatUI):
    with gr.Blocks(title="Talk to Rick", fill_height=True) as app:
        with gr.Row(equal_height=True):
            # ============ SIDEBAR ============
            with gr.Column(scale=1, min_width=240, elem_id="sidebar") as sidebar:
                new_chat_btn = gr.Button("➕  New Chat", variant="primary")
                conv_list = gr.Radio(
                    choices=[],
                    show_label=False,
                    elem_id="conv-list",
                )

            # ============ MAIN CHAT AREA ============
            with gr.Column(scale=4, min_width=600):
                with gr.Row(equal_height=True):
                    sidebar_btn = gr.Button("☰", size="sm", scale=0, min_width=48, elem_id="sidebar-toggle")
                    header = gr.Markdown(elem_id="chat-title")
                chatbot = gr.Chatbot(
                    show_label=False,
                    height="70vh",
                    autoscroll=True,
                    render_markdown=True,
                    placeholder="Select a chat from the sidebar or create a new one",
                )
                with gr.Row():
                    msg_input = gr.Textbox(
                        placeholder="Talk to Rick...",
                        show_label=False,
                        container=False,
                        scale=5,
                    )
                    send_btn = gr.Button("Send", variant="primary", scale=1)

        sidebar_open = gr.State(True)
        view_outputs = [chatbot, header, conv_list, send_btn]
        send_outputs = view_outputs + [msg_input]

        # ============ EVENT WIRING ============
        # Replies in different chats may stream side by side
        msg_input.submit(fn=ui.send_message, inputs=msg_input, outputs=send_outputs, concurrency_limit=None)
        send_btn.click(fn=ui.send_message, inputs=msg_input, outputs=send_outputs, concurrency_limit=None)

        sidebar_btn.click(fn=toggle_sidebar, inputs=sidebar_open, outputs=[sidebar_open, sidebar])

        new_chat_btn.click(fn=ui.new_chat, inputs=None, outputs=view_outputs)

        # .input fires on user clicks only, not on the programmatic refreshes above
        conv_list.input(fn=ui.select_chat, inputs=conv_list, outputs=view_outputs)

        app.load(fn=ui.initial_view, inputs=None, outputs=view_outputs)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    settings = load_settings(require_api_key=False)
    configure_logging(settings.get_log_level())
    app = create_app(build_ui(settings))
    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False,
        show_error=True,
        css=CUSTOM_CSS,
        theme=gr.themes.Base(primary_hue=gr.themes.colors.green, neutral_hue=gr.themes.colors.neutral),
    )
