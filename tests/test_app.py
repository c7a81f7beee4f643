"""Tests for the Gradio event handlers (no server is launched)."""
import os
import sys
import asyncio
import pytest
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../backend")))
import app as chat_app
from errors import RequestFailure
from services.session_store import SessionStore
from services.storage import MemoryStorage
from settings import Settings


class ScriptedGateway:
    def __init__(self, deltas=(), fail_with=None, gate=None):
        self.deltas = list(deltas)
        self.fail_with = fail_with
        self.gate = gate

    async def stream_deltas(self, prompt, model):
        for delta in self.deltas:
            if self.gate is not None:
                await self.gate.wait()
            yield delta
        if self.fail_with is not None:
            raise self.fail_with


def make_ui(gateway):
    store = SessionStore(MemoryStorage()).load()
    return chat_app.build_ui(Settings(), store=store, gateway=gateway)


async def run_send(ui, text):
    return [frame async for frame in ui.send_message(text)]


def test_initial_view_without_chats():
    ui = make_ui(ScriptedGateway())
    chatbot, header, sidebar, send_btn = ui.initial_view()
    assert chatbot == []
    assert header == "## Select or Create a Chat"
    assert sidebar["choices"] == []
    assert send_btn["interactive"] is True


def test_new_chat_and_select():
    ui = make_ui(ScriptedGateway())
    ui.new_chat()
    _, header, sidebar, _ = ui.new_chat()

    assert header == "## New Chat 2"
    first_id = sidebar["choices"][0][1]
    _, header, sidebar, _ = ui.select_chat(first_id)
    assert header == "## New Chat 1"
    assert sidebar["value"] == first_id


@pytest.mark.asyncio
async def test_send_streams_frames_and_clears_input():
    ui = make_ui(ScriptedGateway(["H", "i", " there"]))

    frames = await run_send(ui, "Hello")

    chatbot, header, sidebar, send_btn, text_box = frames[-1]
    assert header == "## Hello"
    assert text_box == ""
    assert send_btn["interactive"] is True
    assert [m["role"] for m in chatbot] == ["user", "assistant"]
    assert chatbot[1]["content"].startswith("Hi there")
    # the button stays disabled while the reply streams
    assert all(frame[3]["interactive"] is False for frame in frames[:-1])
    assert sidebar["choices"] == [("Hello", ui.store.active_conversation_id)]


@pytest.mark.asyncio
async def test_send_failure_shows_notification():
    ui = make_ui(ScriptedGateway(fail_with=RequestFailure("HTTP error! status: 500", status_code=500)))

    with patch("app.gr.Warning") as mock_warning:
        frames = await run_send(ui, "Hello")

    mock_warning.assert_called_once_with(chat_app.ERROR_NOTICE)
    chatbot = frames[-1][0]
    assert [m["role"] for m in chatbot] == ["user"]


@pytest.mark.asyncio
async def test_blank_send_keeps_input():
    ui = make_ui(ScriptedGateway(["unused"]))
    frames = await run_send(ui, "   ")

    assert len(frames) == 1
    assert frames[0][4] == "   "
    assert ui.store.conversations == []


@pytest.mark.asyncio
async def test_second_send_while_streaming_warns_and_keeps_send_disabled():
    gate = asyncio.Event()
    ui = make_ui(ScriptedGateway(["Wubba", " lubba"], gate=gate))

    first = ui.send_message("one")
    first_frame = await first.__anext__()
    assert first_frame[3]["interactive"] is False

    with patch("app.gr.Warning") as mock_warning:
        frames = await run_send(ui, "two")

    mock_warning.assert_called_once_with(chat_app.BUSY_NOTICE)
    assert len(frames) == 1
    assert frames[0][3]["interactive"] is False
    assert [m["role"] for m in frames[0][0]] == ["user"]
    assert frames[0][0][0]["content"].startswith("one")

    gate.set()
    rest = [frame async for frame in first]
    assert rest[-1][3]["interactive"] is True
    assert [m.content for m in ui.store.active_conversation.messages] == ["one", "Wubba lubba"]


@pytest.mark.asyncio
async def test_switching_away_from_streaming_chat_enables_send():
    gate = asyncio.Event()
    ui = make_ui(ScriptedGateway(["Hi"], gate=gate))
    idle = ui.store.create_conversation()
    ui.store.create_conversation()

    streaming = ui.send_message("Hello")
    await streaming.__anext__()

    assert ui.select_chat(idle.id)[3]["interactive"] is True
    busy_id = ui.store.conversations[-1].id
    assert ui.select_chat(busy_id)[3]["interactive"] is False

    gate.set()
    assert [frame async for frame in streaming][-1][3]["interactive"] is True


def test_sidebar_toggle_flips_visibility():
    is_open, update = chat_app.toggle_sidebar(True)
    assert is_open is False
    assert update["visible"] is False

    is_open, update = chat_app.toggle_sidebar(is_open)
    assert is_open is True
    assert update["visible"] is True
